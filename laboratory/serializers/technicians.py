from django.contrib.auth import get_user_model
from rest_framework import serializers

from . import clean_text
from ..models import LabTechnician, SPECIALIZATIONS

User = get_user_model()

WORKLOAD_ACTIONS = ('assign', 'complete', 'update')


class LabTechnicianUpdateSerializer(serializers.Serializer):
    """Fields an administrator or the technician may change.

    ``user``, ``employeeId`` and the workload counter are not writable
    here; workload moves only through the workload actions.
    """
    specialization = serializers.ListField(
        child=serializers.ChoiceField(choices=SPECIALIZATIONS), required=False
    )
    licenseNumber = serializers.CharField(max_length=64, required=False, allow_blank=True, source='license_number')
    licenseExpiry = serializers.DateField(required=False, allow_null=True, source='license_expiry')
    qualifications = serializers.ListField(child=serializers.CharField(max_length=255), required=False)
    yearsOfExperience = serializers.IntegerField(min_value=0, max_value=50, source='years_of_experience')
    shift = serializers.ChoiceField(choices=LabTechnician.SHIFT_CHOICES, required=False)
    isAvailable = serializers.BooleanField(required=False, source='is_available')
    maxConcurrentTests = serializers.IntegerField(
        min_value=1, max_value=20, required=False, source='max_concurrent_tests'
    )
    performanceScore = serializers.FloatField(
        min_value=0, max_value=100, required=False, source='performance_score'
    )

    def validate_qualifications(self, v):
        return [q for q in (clean_text(item) for item in v) if q]

    def validate(self, attrs):
        number = attrs.get('license_number', getattr(self.instance, 'license_number', ''))
        expiry = attrs.get('license_expiry', getattr(self.instance, 'license_expiry', None))
        if number and not expiry:
            raise serializers.ValidationError(
                {'licenseExpiry': 'License expiry date is required when license number is provided'}
            )
        limit = attrs.get('max_concurrent_tests')
        if self.instance is not None and limit is not None and limit < self.instance.current_workload:
            raise serializers.ValidationError(
                {'maxConcurrentTests': 'Cannot be lower than the current workload '
                                       f'({self.instance.current_workload})'}
            )
        return attrs

    def update(self, instance, validated_data):
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        return instance


class LabTechnicianCreateSerializer(LabTechnicianUpdateSerializer):
    user = serializers.PrimaryKeyRelatedField(queryset=User.objects.all())
    employeeId = serializers.CharField(max_length=32, source='employee_id')

    def validate_user(self, user):
        if LabTechnician.objects.filter(user=user).exists():
            raise serializers.ValidationError('Employee ID or user already exists')
        return user

    def validate_employeeId(self, v):
        v = (v or '').strip().upper()
        if not v:
            raise serializers.ValidationError('Employee ID is required')
        if LabTechnician.objects.filter(employee_id=v).exists():
            raise serializers.ValidationError('Employee ID or user already exists')
        return v

    def create(self, validated_data):
        return LabTechnician.objects.create(**validated_data)


class LabTechnicianListQuerySerializer(serializers.Serializer):
    specialization = serializers.ChoiceField(choices=SPECIALIZATIONS, required=False)
    availableOnly = serializers.BooleanField(required=False, default=False)
    includeInactive = serializers.BooleanField(required=False, default=False)


class AvailableTechniciansQuerySerializer(serializers.Serializer):
    includeWorkload = serializers.BooleanField(required=False, default=False)
    maxWorkload = serializers.IntegerField(required=False, min_value=0)


class WorkloadActionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(
        choices=WORKLOAD_ACTIONS,
        error_messages={'invalid_choice': 'Invalid action. Use "assign", "complete", or "update"'},
    )


class TechnicianWorkloadActionSerializer(WorkloadActionSerializer):
    technicianId = serializers.IntegerField(
        min_value=1,
        error_messages={'required': 'Valid technician ID is required',
                        'invalid': 'Valid technician ID is required'},
    )
    action = serializers.ChoiceField(
        choices=WORKLOAD_ACTIONS, required=False, default='assign',
        error_messages={'invalid_choice': 'Invalid action. Use "assign", "complete", or "update"'},
    )
