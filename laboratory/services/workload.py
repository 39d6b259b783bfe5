"""
Technician selection and workload actions.

The counter operations themselves live on :class:`LabTechnician`; this
module dispatches the named actions coming from the API, selects
technicians for assignment and reconciles every counter in bulk.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction

from laboratory.models import LabTechnician, LabTest, SPECIALIZATIONS
from laboratory.services.audit import log_action

logger = logging.getLogger(__name__)


def apply_workload_action(technician: LabTechnician, action: str, *, user=None) -> LabTechnician:
    """Run ``assign``, ``complete`` or ``update`` against one technician."""
    if action == 'assign':
        technician.assign_test()
    elif action == 'complete':
        technician.complete_test()
    elif action == 'update':
        technician.update_workload()
    else:
        raise ValueError(f'unknown workload action: {action}')
    log_action(user=user, action=f'workload_{action}', object_type='lab_technician',
               object_id=technician.pk, detail={'workload': technician.current_workload})
    return technician


def reconcile_all_workloads() -> int:
    """Recount every technician's workload from the request table."""
    count = 0
    for technician in LabTechnician.objects.order_by('id').iterator():
        with transaction.atomic():
            technician.update_workload()
        count += 1
    logger.info({'event': 'workloads_reconciled', 'technicians': count})
    return count


def resolve_specialization(key: str) -> Optional[str]:
    """Map a catalog test id or a specialization name to a specialization.

    A numeric key naming an existing test resolves to that test's
    category (``OTHER`` maps to ``GENERAL``).  Unknown keys resolve to
    ``None`` meaning "any specialization".
    """
    key = (key or '').strip()
    if key.isdigit():
        test = LabTest.objects.filter(pk=int(key)).only('category').first()
        if test:
            return test.category if test.category in SPECIALIZATIONS else 'GENERAL'
    key = key.upper()
    return key if key in SPECIALIZATIONS else None


def list_technicians(*, specialization: Optional[str] = None, available_only: bool = False,
                     include_inactive: bool = False) -> list[LabTechnician]:
    qs = LabTechnician.objects.select_related('user')
    if available_only:
        qs = qs.accepting()
    elif not include_inactive:
        qs = qs.active()
    qs = qs.order_by('current_workload', '-performance_score', 'id')
    # specialization is a JSON list; filtered here so SQLite works too
    if specialization:
        return [t for t in qs if specialization in (t.specialization or [])]
    return list(qs)


def available_technicians(specialization: Optional[str] = None, *,
                          max_workload: Optional[int] = None) -> list[LabTechnician]:
    """Technicians able to take a test, least loaded first."""
    technicians = list_technicians(specialization=specialization, available_only=True)
    if max_workload is not None:
        technicians = [t for t in technicians if t.current_workload <= max_workload]
    return technicians


def format_technician(t: LabTechnician, *, include_workload: bool = True) -> dict:
    data = {
        'id': t.id,
        'user': {
            'id': t.user.id,
            'name': t.user.display_name,
            'email': t.user.email,
            'phone': t.user.phone,
        },
        'employeeId': t.employee_id,
        'specialization': t.specialization or [],
        'licenseNumber': t.license_number,
        'licenseExpiry': t.license_expiry.isoformat() if t.license_expiry else None,
        'isLicenseExpired': t.is_license_expired,
        'qualifications': t.qualifications or [],
        'yearsOfExperience': t.years_of_experience,
        'shift': t.shift,
        'isAvailable': t.is_available,
        'isActive': t.is_active,
        'performanceScore': t.performance_score,
        'joinedDate': t.joined_date.isoformat() if t.joined_date else None,
        'createdAt': t.created_at.isoformat() if t.created_at else None,
        'updatedAt': t.updated_at.isoformat() if t.updated_at else None,
    }
    if include_workload:
        data.update({
            'currentWorkload': t.current_workload,
            'maxConcurrentTests': t.max_concurrent_tests,
            'efficiency': t.efficiency,
            'availableSlots': t.available_slots,
            'canAcceptMore': t.can_accept_more_tests(),
        })
    return data


def format_workload(t: LabTechnician) -> dict:
    active_tests = t.assigned_requests.active().count()
    return {
        'technician': {
            'id': t.id,
            'name': t.user.display_name,
            'currentWorkload': t.current_workload,
            'maxConcurrentTests': t.max_concurrent_tests,
            'efficiency': t.efficiency,
            'isAvailable': t.is_available,
        },
        'activeTests': active_tests,
        'availableSlots': t.available_slots,
        'canAcceptMore': t.can_accept_more_tests(),
    }
