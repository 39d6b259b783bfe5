from django.contrib.auth import get_user_model
from rest_framework import serializers

from . import clean_text
from ..models import LabTechnician, LabTest, LabTestRequest

User = get_user_model()

STATUS_VALUES = [s for s, _ in LabTestRequest.STATUS_CHOICES]
PRIORITY_VALUES = [p for p, _ in LabTestRequest.PRIORITY_CHOICES]

# Older clients send ``patientId``/``testId``/``technicianId``.
ALIASES = {
    'patientId': 'patient',
    'testId': 'test',
    'technicianId': 'labTechnician',
}


def _with_aliases(data):
    if not hasattr(data, 'items'):
        return data
    data = dict(data.items())
    for legacy, current in ALIASES.items():
        if legacy in data and current not in data:
            data[current] = data.pop(legacy)
    return data


class _FreeTextMixin:
    def validate_results(self, v):
        return clean_text(v)

    def validate_findings(self, v):
        return clean_text(v)

    def validate_notes(self, v):
        return clean_text(v)

    def validate_referral(self, v):
        return clean_text(v)


class LabTestRequestCreateSerializer(_FreeTextMixin, serializers.Serializer):
    patient = serializers.PrimaryKeyRelatedField(queryset=User.objects.all())
    test = serializers.PrimaryKeyRelatedField(
        queryset=LabTest.objects.active(),
        error_messages={'does_not_exist': 'Lab test not found or inactive'},
    )
    labTechnician = serializers.PrimaryKeyRelatedField(
        queryset=LabTechnician.objects.active(), source='lab_technician', required=False, allow_null=True,
    )
    priority = serializers.ChoiceField(choices=PRIORITY_VALUES, required=False, default='NORMAL')
    requestedDate = serializers.DateTimeField(required=False, source='requested_date')
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    referral = serializers.CharField(max_length=255, required=False, allow_blank=True)
    isCritical = serializers.BooleanField(required=False, default=False, source='is_critical')
    attachments = serializers.ListField(child=serializers.URLField(max_length=500), required=False)

    def to_internal_value(self, data):
        return super().to_internal_value(_with_aliases(data))

    def validate_patient(self, user):
        if user.role != User.ROLE_PATIENT:
            raise serializers.ValidationError('Referenced user is not a patient')
        return user


class LabTestRequestUpdateSerializer(_FreeTextMixin, serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUS_VALUES, required=False)
    results = serializers.CharField(required=False, allow_blank=True)
    findings = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    labTechnician = serializers.PrimaryKeyRelatedField(
        queryset=LabTechnician.objects.active(), source='lab_technician', required=False, allow_null=True,
    )
    priority = serializers.ChoiceField(choices=PRIORITY_VALUES, required=False)
    isCritical = serializers.BooleanField(required=False, source='is_critical')

    def to_internal_value(self, data):
        return super().to_internal_value(_with_aliases(data))


class LabTestRequestListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUS_VALUES, required=False)
    priority = serializers.ChoiceField(choices=PRIORITY_VALUES, required=False)
    patientId = serializers.IntegerField(min_value=1, required=False)
    technicianId = serializers.IntegerField(min_value=1, required=False)
    overdue = serializers.BooleanField(required=False, default=False)
