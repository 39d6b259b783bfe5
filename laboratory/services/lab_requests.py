"""
Lab test request workflow.

Creating a request, moving it through its statuses and (re)assigning a
technician all happen here.  Every change that can alter which requests
a technician is actively working on is committed in one transaction
together with a recount of the affected technicians' workload, so the
stored counters always match the request table after a call returns.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from django.db import transaction

from laboratory.exceptions import TechnicianUnavailableError, WorkloadCapacityError
from laboratory.models import LabTechnician, LabTestRequest, User
from laboratory.services.audit import log_action
from laboratory.services.catalog import format_lab_test

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = ('results', 'findings', 'notes', 'priority', 'is_critical')


def list_requests(*, status: Optional[str] = None, priority: Optional[str] = None,
                  patient_id: Optional[int] = None, technician_id: Optional[int] = None,
                  overdue: bool = False) -> list[LabTestRequest]:
    qs = LabTestRequest.objects.select_related('patient', 'doctor', 'lab_technician__user', 'test')
    if status:
        qs = qs.filter(status=status)
    if priority:
        qs = qs.filter(priority=priority)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if technician_id:
        qs = qs.filter(lab_technician_id=technician_id)
    qs = qs.order_by('-requested_date', '-id')
    if overdue:
        # due date depends on the SLA table and the test duration
        return [r for r in qs.pending() if r.is_overdue]
    return list(qs)


def get_request(pk: int) -> Optional[LabTestRequest]:
    return (LabTestRequest.objects
            .select_related('patient', 'doctor', 'lab_technician__user', 'test')
            .filter(pk=pk).first())


def _ensure_can_take(technician: LabTechnician) -> None:
    if not technician.is_available:
        raise TechnicianUnavailableError()
    if technician.current_workload >= technician.max_concurrent_tests:
        raise WorkloadCapacityError()


@transaction.atomic
def create_request(*, doctor: User, data: dict[str, Any]) -> LabTestRequest:
    """Create a request ordered by ``doctor``.

    A technician given up front is checked for capacity but does not
    count against it until the request becomes active.
    """
    technician = data.get('lab_technician')
    if technician is not None:
        technician = LabTechnician.objects.select_for_update().get(pk=technician.pk)
        _ensure_can_take(technician)
    req = LabTestRequest.objects.create(doctor=doctor, **data)
    log_action(user=doctor, action='lab_request_create', object_type='lab_test_request', object_id=req.pk,
               detail={'test': req.test_id, 'patient': req.patient_id, 'priority': req.priority})
    logger.info({'event': 'lab_request_created', 'request': req.pk, 'test': req.test_id,
                 'technician': req.lab_technician_id, 'priority': req.priority})
    return req


def update_request(req: LabTestRequest, data: dict[str, Any], *, user: Optional[User] = None) -> LabTestRequest:
    """Apply a partial update.

    ``data`` holds validated model field names.  A status change goes
    through :meth:`LabTestRequest.update_status`; a new technician must be
    able to take another test.  The old and new technicians' workloads
    are recounted before the transaction commits.
    """
    with transaction.atomic():
        req = LabTestRequest.objects.select_for_update().get(pk=req.pk)
        affected: set[int] = set()
        previous_technician = req.lab_technician_id
        previous_status = req.status
        checked = False

        if 'lab_technician' in data:
            technician = data['lab_technician']
            new_id = technician.pk if technician else None
            if new_id != previous_technician:
                if technician is not None:
                    technician = LabTechnician.objects.select_for_update().get(pk=new_id)
                    _ensure_can_take(technician)
                    checked = True
                req.lab_technician = technician
                affected.update(pk for pk in (previous_technician, new_id) if pk)
                log_action(user=user, action='lab_request_assign', object_type='lab_test_request',
                           object_id=req.pk, detail={'from': previous_technician, 'to': new_id})

        for field in PATCHABLE_FIELDS:
            if field in data:
                setattr(req, field, data[field])

        new_status = data.get('status')
        if new_status and new_status != previous_status:
            req.update_status(new_status, save=False)
            becomes_active = (new_status in LabTestRequest.ACTIVE_STATUSES
                              and previous_status not in LabTestRequest.ACTIVE_STATUSES)
            if becomes_active and req.lab_technician_id and not checked:
                _ensure_can_take(LabTechnician.objects.select_for_update().get(pk=req.lab_technician_id))
            if req.lab_technician_id:
                affected.add(req.lab_technician_id)
            log_action(user=user, action='lab_request_status', object_type='lab_test_request',
                       object_id=req.pk, detail={'from': previous_status, 'to': new_status})

        req.save()

        for technician in LabTechnician.objects.filter(pk__in=affected).order_by('pk'):
            technician.update_workload()

    return get_request(req.pk)


def _user_ref(u: Optional[User], *, with_phone: bool = False) -> Optional[dict]:
    if u is None:
        return None
    data = {'id': u.id, 'name': u.display_name, 'email': u.email}
    if with_phone:
        data['phone'] = u.phone
    return data


def format_request(r: LabTestRequest) -> dict:
    tech = r.lab_technician
    turnaround = r.turnaround_time
    return {
        'id': r.id,
        'patient': _user_ref(r.patient, with_phone=True),
        'doctor': _user_ref(r.doctor),
        'labTechnician': {
            'id': tech.id,
            'name': tech.user.display_name,
            'email': tech.user.email,
            'employeeId': tech.employee_id,
        } if tech else None,
        'test': format_lab_test(r.test),
        'status': r.status,
        'priority': r.priority,
        'requestedDate': r.requested_date.isoformat() if r.requested_date else None,
        'sampleCollectedDate': r.sample_collected_date.isoformat() if r.sample_collected_date else None,
        'startedDate': r.started_date.isoformat() if r.started_date else None,
        'completedDate': r.completed_date.isoformat() if r.completed_date else None,
        'verifiedDate': r.verified_date.isoformat() if r.verified_date else None,
        'results': r.results,
        'findings': r.findings,
        'notes': r.notes,
        'attachments': r.attachments or [],
        'referral': r.referral,
        'isCritical': r.is_critical,
        'isOverdue': r.is_overdue,
        'turnaroundTime': round(turnaround, 2) if turnaround is not None else None,
        'canBeCancelled': r.can_be_cancelled(),
        'createdAt': r.created_at.isoformat() if r.created_at else None,
        'updatedAt': r.updated_at.isoformat() if r.updated_at else None,
    }
