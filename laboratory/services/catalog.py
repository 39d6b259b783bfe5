from typing import Optional

from laboratory.models import LabTest


def list_tests(*, category: Optional[str] = None, active_only: bool = True):
    qs = LabTest.objects.all()
    if category:
        qs = qs.filter(category=category)
    if active_only:
        qs = qs.active()
    return qs.order_by('name')


def deactivate_test(test: LabTest) -> LabTest:
    test.is_active = False
    test.save(update_fields=['is_active', 'updated_at'])
    return test


def format_lab_test(test: LabTest) -> dict:
    return {
        'id': test.id,
        'name': test.name,
        'category': test.category,
        'description': test.description,
        'price': float(test.price),
        'duration': test.duration,
        'sampleType': test.sample_type,
        'preparationInstructions': test.preparation_instructions,
        'normalRange': test.normal_range,
        'units': test.units,
        'isActive': test.is_active,
        'createdAt': test.created_at.isoformat() if test.created_at else None,
        'updatedAt': test.updated_at.isoformat() if test.updated_at else None,
    }
