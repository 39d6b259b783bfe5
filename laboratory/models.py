"""
Database models for the laboratory workflow.

These models capture the lab test catalog, the technicians who run the
tests, the lab test requests that move through a status lifecycle and a
per-technician dashboard that is recomputed from those requests.  Field
names on the wire are camelCase (see the ``format_*`` helpers in
``laboratory.services``); the models themselves follow Django naming.
"""
from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Count, F, Q
from django.utils import timezone

from .exceptions import InvalidStatusTransition, TechnicianUnavailableError, WorkloadCapacityError

logger = logging.getLogger(__name__)


class User(AbstractUser):
    """Custom user model carrying the clinic role.

    Patients and doctors referenced by lab test requests are plain users
    with the matching role.
    """
    ROLE_ADMIN = 'ADMIN'
    ROLE_DOCTOR = 'DOCTOR'
    ROLE_LABTECH = 'LABTECH'
    ROLE_PATIENT = 'PATIENT'
    ROLE_CHOICES = [
        ('ADMIN', 'Admin'),
        ('DOCTOR', 'Medical Doctor'),
        ('NURSE', 'Registered Nurse'),
        ('RECEPTIONIST', 'Receptionist'),
        ('LABTECH', 'Laboratory Technician'),
        ('PHARMACIST', 'Pharmacist'),
        ('STAFF', 'Staff Member'),
        ('PATIENT', 'Patient'),
        ('USER', 'User'),
    ]
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default='USER', db_index=True)
    phone = models.CharField(max_length=32, blank=True)

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

TEST_CATEGORIES = (
    'HEMATOLOGY',
    'BIOCHEMISTRY',
    'MICROBIOLOGY',
    'IMMUNOLOGY',
    'PATHOLOGY',
    'URINALYSIS',
    'ENDOCRINOLOGY',
    'TOXICOLOGY',
    'MOLECULAR_DIAGNOSTICS',
    'OTHER',
)

SAMPLE_TYPES = ('BLOOD', 'URINE', 'STOOL', 'SALIVA', 'TISSUE', 'SWAB', 'CSF', 'SPUTUM', 'OTHER')


class LabTestQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)


class LabTest(models.Model):
    """A catalog entry.  Never deleted; ``is_active`` is flipped instead."""
    CATEGORY_CHOICES = [(c, c) for c in TEST_CATEGORIES]
    SAMPLE_TYPE_CHOICES = [(s, s) for s in SAMPLE_TYPES]

    name = models.CharField(max_length=100)
    category = models.CharField(max_length=32, choices=CATEGORY_CHOICES, db_index=True)
    description = models.CharField(max_length=500, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    duration = models.PositiveIntegerField(validators=[MinValueValidator(1)], help_text="Minutes")
    sample_type = models.CharField(max_length=16, choices=SAMPLE_TYPE_CHOICES)
    preparation_instructions = models.CharField(max_length=1000, blank=True)
    normal_range = models.CharField(max_length=255, blank=True)
    units = models.CharField(max_length=64, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LabTestQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['name', 'category'], name='uniq_labtest_name_category'),
        ]

    def __str__(self) -> str:
        return f"{self.name} [{self.category}]"


# ---------------------------------------------------------------------------
# Technicians and workload accounting
# ---------------------------------------------------------------------------

SPECIALIZATIONS = TEST_CATEGORIES[:-1] + ('GENERAL',)


class LabTechnicianQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def accepting(self):
        """Technicians that can take another test right now."""
        return self.filter(
            is_active=True,
            is_available=True,
            current_workload__lt=F('max_concurrent_tests'),
        )


class LabTechnician(models.Model):
    """A lab technician and their denormalized workload counter.

    ``current_workload`` is a cache of the number of active requests
    assigned to the technician; :meth:`update_workload` rebuilds it from
    the request table.
    """
    SHIFT_CHOICES = [
        ('MORNING', 'Morning'),
        ('EVENING', 'Evening'),
        ('NIGHT', 'Night'),
        ('GENERAL', 'General'),
    ]

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='lab_technician')
    employee_id = models.CharField(max_length=32, unique=True)
    specialization = models.JSONField(default=list, blank=True)
    license_number = models.CharField(max_length=64, blank=True)
    license_expiry = models.DateField(null=True, blank=True)
    qualifications = models.JSONField(default=list, blank=True)
    years_of_experience = models.PositiveIntegerField(default=0, validators=[MaxValueValidator(50)])
    shift = models.CharField(max_length=10, choices=SHIFT_CHOICES, default='GENERAL', db_index=True)
    is_available = models.BooleanField(default=True, db_index=True)
    # Tombstone: technicians are never hard-deleted
    is_active = models.BooleanField(default=True, db_index=True)
    max_concurrent_tests = models.PositiveIntegerField(
        default=5, validators=[MinValueValidator(1), MaxValueValidator(20)]
    )
    current_workload = models.PositiveIntegerField(default=0, db_index=True)
    performance_score = models.FloatField(default=0, validators=[MinValueValidator(0), MaxValueValidator(100)])
    joined_date = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LabTechnicianQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=['is_available', 'current_workload'], name='labtech_avail_workload_idx'),
            models.Index(fields=['-performance_score'], name='labtech_perf_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.employee_id} ({self.user.username})"

    def save(self, *args, **kwargs):
        self.employee_id = (self.employee_id or '').strip().upper()
        super().save(*args, **kwargs)

    def clean(self):
        if self.license_number and not self.license_expiry:
            raise ValidationError({'license_expiry': 'License expiry date is required when license number is provided'})

    @property
    def is_license_expired(self) -> bool:
        if not self.license_expiry:
            return False
        return timezone.localdate() > self.license_expiry

    @property
    def efficiency(self) -> float:
        if not self.max_concurrent_tests:
            return 0.0
        return self.current_workload / self.max_concurrent_tests * 100

    @property
    def available_slots(self) -> int:
        return max(self.max_concurrent_tests - self.current_workload, 0)

    def can_accept_more_tests(self) -> bool:
        return self.is_available and self.current_workload < self.max_concurrent_tests

    def _reload_workload(self) -> None:
        self.refresh_from_db(fields=['current_workload', 'max_concurrent_tests', 'is_available', 'updated_at'])

    def assign_test(self) -> 'LabTechnician':
        """Take one more test, or raise if at capacity.

        The capacity check and the increment are one conditional UPDATE,
        so concurrent callers cannot push the counter past the limit.
        An unavailable technician raises TechnicianUnavailableError, not
        the capacity error.
        """
        updated = LabTechnician.objects.filter(
            pk=self.pk,
            is_available=True,
            current_workload__lt=F('max_concurrent_tests'),
        ).update(current_workload=F('current_workload') + 1, updated_at=timezone.now())
        self._reload_workload()
        if not updated:
            logger.warning({'event': 'assign_rejected', 'technician': self.pk,
                            'workload': self.current_workload, 'max': self.max_concurrent_tests,
                            'available': self.is_available})
            if not self.is_available:
                raise TechnicianUnavailableError()
            raise WorkloadCapacityError()
        logger.info({'event': 'assign_test', 'technician': self.pk, 'workload': self.current_workload})
        return self

    def complete_test(self) -> 'LabTechnician':
        LabTechnician.objects.filter(pk=self.pk, current_workload__gt=0).update(
            current_workload=F('current_workload') - 1, updated_at=timezone.now()
        )
        self._reload_workload()
        logger.info({'event': 'complete_test', 'technician': self.pk, 'workload': self.current_workload})
        return self

    def update_workload(self) -> 'LabTechnician':
        """Recount active requests and overwrite the cached counter."""
        previous = self.current_workload
        self.current_workload = self.assigned_requests.filter(
            status__in=LabTestRequest.ACTIVE_STATUSES
        ).count()
        self.save(update_fields=['current_workload', 'updated_at'])
        if previous != self.current_workload:
            logger.info({'event': 'workload_reconciled', 'technician': self.pk,
                         'from': previous, 'to': self.current_workload})
        return self


# ---------------------------------------------------------------------------
# Lab test requests
# ---------------------------------------------------------------------------

class LabTestRequestQuerySet(models.QuerySet):
    def pending(self):
        return self.filter(status__in=LabTestRequest.PENDING_STATUSES)

    def active(self):
        return self.filter(status__in=LabTestRequest.ACTIVE_STATUSES)


class LabTestRequest(models.Model):
    """One order for one catalog test on one patient."""
    STATUS_REQUESTED = 'REQUESTED'
    STATUS_SAMPLE_COLLECTED = 'SAMPLE_COLLECTED'
    STATUS_IN_PROGRESS = 'IN_PROGRESS'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_VERIFIED = 'VERIFIED'
    STATUS_CANCELLED = 'CANCELLED'
    STATUS_CHOICES = [
        (STATUS_REQUESTED, 'Requested'),
        (STATUS_SAMPLE_COLLECTED, 'Sample collected'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_VERIFIED, 'Verified'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    PRIORITY_CHOICES = [
        ('LOW', 'Low'),
        ('NORMAL', 'Normal'),
        ('HIGH', 'High'),
        ('STAT', 'Stat'),
    ]

    ACTIVE_STATUSES = (STATUS_SAMPLE_COLLECTED, STATUS_IN_PROGRESS)
    PENDING_STATUSES = (STATUS_REQUESTED, STATUS_SAMPLE_COLLECTED, STATUS_IN_PROGRESS)
    FINISHED_STATUSES = (STATUS_COMPLETED, STATUS_VERIFIED)
    TERMINAL_STATUSES = (STATUS_VERIFIED, STATUS_CANCELLED)

    TRANSITIONS = {
        STATUS_REQUESTED: (STATUS_SAMPLE_COLLECTED, STATUS_IN_PROGRESS, STATUS_CANCELLED),
        STATUS_SAMPLE_COLLECTED: (STATUS_IN_PROGRESS, STATUS_CANCELLED),
        STATUS_IN_PROGRESS: (STATUS_COMPLETED, STATUS_CANCELLED),
        STATUS_COMPLETED: (STATUS_VERIFIED, STATUS_CANCELLED),
        STATUS_VERIFIED: (),
        STATUS_CANCELLED: (),
    }

    STATUS_DATE_FIELDS = {
        STATUS_SAMPLE_COLLECTED: 'sample_collected_date',
        STATUS_IN_PROGRESS: 'started_date',
        STATUS_COMPLETED: 'completed_date',
        STATUS_VERIFIED: 'verified_date',
    }

    patient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='lab_test_requests')
    doctor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='ordered_lab_tests')
    lab_technician = models.ForeignKey(
        LabTechnician, null=True, blank=True, on_delete=models.SET_NULL, related_name='assigned_requests'
    )
    test = models.ForeignKey(LabTest, on_delete=models.PROTECT, related_name='requests')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_REQUESTED, db_index=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='NORMAL', db_index=True)
    requested_date = models.DateTimeField(default=timezone.now, db_index=True)
    sample_collected_date = models.DateTimeField(null=True, blank=True)
    started_date = models.DateTimeField(null=True, blank=True)
    completed_date = models.DateTimeField(null=True, blank=True)
    verified_date = models.DateTimeField(null=True, blank=True)
    results = models.TextField(blank=True)
    findings = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    attachments = models.JSONField(default=list, blank=True)
    is_critical = models.BooleanField(default=False)
    referral = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LabTestRequestQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=['patient', '-requested_date'], name='labreq_patient_date_idx'),
            models.Index(fields=['lab_technician', 'status'], name='labreq_tech_status_idx'),
        ]

    def __str__(self) -> str:
        return f"LabTestRequest #{self.pk} {self.test_id} -> {self.status}"

    @classmethod
    def can_transition(cls, current: str, new: str) -> bool:
        return new in cls.TRANSITIONS.get(current, ())

    def can_be_cancelled(self) -> bool:
        return self.status not in self.TERMINAL_STATUSES

    def update_status(self, new_status: str, *, save: bool = True) -> 'LabTestRequest':
        """Move to ``new_status`` and stamp the matching date field.

        Re-applying the current status is a no-op.  Workload counters are
        not touched here; see ``services.lab_requests.update_request``.
        """
        if new_status not in dict(self.STATUS_CHOICES):
            raise InvalidStatusTransition(f'Invalid status: {new_status}')
        if new_status == self.status:
            return self
        if not self.can_transition(self.status, new_status):
            raise InvalidStatusTransition(f'Cannot change status from {self.status} to {new_status}')
        previous = self.status
        self.status = new_status
        date_field = self.STATUS_DATE_FIELDS.get(new_status)
        if date_field:
            setattr(self, date_field, timezone.now())
        if save:
            self.save()
        logger.info({'event': 'status_change', 'request': self.pk, 'from': previous, 'to': new_status})
        return self

    @property
    def turnaround_time(self) -> Optional[float]:
        """Hours between request and completion, ``None`` until completed."""
        if self.completed_date and self.requested_date:
            return (self.completed_date - self.requested_date).total_seconds() / 3600
        return None

    @property
    def due_date(self) -> Optional[datetime]:
        if not self.requested_date:
            return None
        sla_hours = settings.LAB_PRIORITY_SLA_HOURS.get(self.priority, 24)
        window = timedelta(hours=sla_hours)
        if self.test_id and self.test.duration:
            window = max(window, timedelta(minutes=self.test.duration))
        return self.requested_date + window

    @property
    def is_overdue(self) -> bool:
        if self.status in (self.STATUS_CANCELLED, self.STATUS_COMPLETED, self.STATUS_VERIFIED):
            return False
        due = self.due_date
        return bool(due and timezone.now() > due)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

class LabDashboard(models.Model):
    """Per-technician summary, rebuilt from the request table."""
    lab_technician = models.OneToOneField(LabTechnician, on_delete=models.CASCADE, related_name='dashboard')
    total_tests_completed = models.PositiveIntegerField(default=0)
    tests_today = models.PositiveIntegerField(default=0)
    pending_tests = models.PositiveIntegerField(default=0)
    average_turnaround_time = models.FloatField(default=0)
    critical_findings = models.PositiveIntegerField(default=0)
    last_activity = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Dashboard({self.lab_technician_id}) done={self.total_tests_completed} pending={self.pending_tests}"

    def update_stats(self) -> 'LabDashboard':
        day_start = timezone.make_aware(datetime.combine(timezone.localdate(), time.min))
        day_end = day_start + timedelta(days=1)

        requests = LabTestRequest.objects.filter(lab_technician_id=self.lab_technician_id)
        finished = Q(status__in=LabTestRequest.FINISHED_STATUSES)
        stats = requests.aggregate(
            total_completed=Count('id', filter=finished),
            today=Count('id', filter=finished & Q(completed_date__gte=day_start, completed_date__lt=day_end)),
            pending=Count('id', filter=Q(status__in=LabTestRequest.PENDING_STATUSES)),
            critical=Count('id', filter=Q(is_critical=True)),
        )
        turnarounds = [
            (completed - requested).total_seconds() / 3600
            for requested, completed in requests.filter(
                completed_date__isnull=False, requested_date__isnull=False
            ).values_list('requested_date', 'completed_date')
        ]

        self.total_tests_completed = stats['total_completed'] or 0
        self.tests_today = stats['today'] or 0
        self.pending_tests = stats['pending'] or 0
        self.critical_findings = stats['critical'] or 0
        self.average_turnaround_time = sum(turnarounds) / len(turnarounds) if turnarounds else 0
        self.last_activity = timezone.now()
        self.save()
        return self


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------

class AuditEvent(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.action}:{self.object_type}#{self.object_id}"
