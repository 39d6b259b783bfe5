"""
Lab technician endpoints: registry, workload actions, selection and
per-technician dashboards.
"""
from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import LabTechnician
from ..permissions import IsAdminRole, IsDoctorOrAdmin, IsLabStaff, ReadOnly
from ..serializers.technicians import (
    AvailableTechniciansQuerySerializer,
    LabTechnicianCreateSerializer,
    LabTechnicianListQuerySerializer,
    LabTechnicianUpdateSerializer,
    TechnicianWorkloadActionSerializer,
    WorkloadActionSerializer,
)
from ..services.audit import log_action
from ..services.dashboard import format_dashboard, get_dashboard, refresh_dashboard
from ..services.workload import (
    apply_workload_action,
    available_technicians,
    format_technician,
    format_workload,
    list_technicians,
    resolve_specialization,
)

logger = logging.getLogger(__name__)

ACTION_PAST = {'assign': 'assigned', 'complete': 'completed', 'update': 'updated'}


def _get_technician(pk: int, *, active_only: bool = False) -> LabTechnician:
    qs = LabTechnician.objects.select_related('user')
    if active_only:
        qs = qs.active()
    technician = qs.filter(pk=pk).first()
    if technician is None:
        raise NotFound('Lab technician not found')
    return technician


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ReadOnly | IsAdminRole])
def lab_technicians(request):
    if request.method == 'GET':
        q = LabTechnicianListQuerySerializer(data=request.query_params.dict())
        q.is_valid(raise_exception=True)
        technicians = list_technicians(
            specialization=q.validated_data.get('specialization'),
            available_only=q.validated_data['availableOnly'],
            include_inactive=q.validated_data['includeInactive'],
        )
        return Response({'technicians': [format_technician(t) for t in technicians]})

    s = LabTechnicianCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    technician = s.save()
    get_dashboard(technician)
    log_action(user=request.user, action='lab_technician_create', object_type='lab_technician',
               object_id=technician.pk, detail={'employeeId': technician.employee_id})
    logger.info({'event': 'technician_onboarded', 'technician': technician.pk,
                 'employee_id': technician.employee_id})
    return Response({'technician': format_technician(technician)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def lab_technician_detail(request, pk: int):
    technician = _get_technician(pk)
    if request.method == 'GET':
        return Response({'technician': format_technician(technician)})

    user = request.user
    if request.method == 'PATCH':
        if not IsLabStaff().has_permission(request, None):
            raise PermissionDenied()
        # a lab technician may only edit their own record
        if user.role == 'LABTECH' and technician.user_id != user.id:
            raise PermissionDenied('You can only update your own technician record')
        s = LabTechnicianUpdateSerializer(technician, data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        technician = s.save()
        if 'max_concurrent_tests' in s.validated_data or 'is_available' in s.validated_data:
            logger.info({'event': 'technician_capacity_changed', 'technician': technician.pk,
                         'max': technician.max_concurrent_tests, 'available': technician.is_available})
        log_action(user=user, action='lab_technician_update', object_type='lab_technician',
                   object_id=technician.pk, detail={'fields': sorted(s.validated_data)})
        return Response({'technician': format_technician(technician)})

    if not IsAdminRole().has_permission(request, None):
        raise PermissionDenied()
    technician.is_active = False
    technician.is_available = False
    technician.save(update_fields=['is_active', 'is_available', 'updated_at'])
    log_action(user=user, action='lab_technician_deactivate', object_type='lab_technician',
               object_id=technician.pk)
    return Response({'message': 'Lab technician deactivated', 'technician': format_technician(technician)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def technician_workload(request, pk: int):
    if request.method == 'GET':
        return Response(format_workload(_get_technician(pk)))

    s = WorkloadActionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    action = s.validated_data['action']
    technician = apply_workload_action(_get_technician(pk, active_only=True), action, user=request.user)
    return Response({
        'technician': format_technician(technician),
        'message': f'Workload {ACTION_PAST[action]} successfully',
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def technician_dashboard(request, pk: int):
    technician = _get_technician(pk)
    if request.method == 'GET':
        dashboard = get_dashboard(technician)
    else:
        dashboard = refresh_dashboard(technician)
    return Response({'dashboard': format_dashboard(dashboard)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ReadOnly | IsDoctorOrAdmin])
def available_for(request, key: str):
    """Technicians able to take a test of the given catalog id or specialization."""
    if request.method == 'GET':
        q = AvailableTechniciansQuerySerializer(data=request.query_params.dict())
        q.is_valid(raise_exception=True)
        specialization = resolve_specialization(key)
        technicians = available_technicians(specialization, max_workload=q.validated_data.get('maxWorkload'))
        include_workload = q.validated_data['includeWorkload']
        return Response({
            'technicians': [format_technician(t, include_workload=include_workload) for t in technicians],
            'specialization': specialization or 'GENERAL',
            'totalAvailable': len(technicians),
        })

    s = TechnicianWorkloadActionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    action = s.validated_data['action']
    technician = _get_technician(s.validated_data['technicianId'], active_only=True)
    technician = apply_workload_action(technician, action, user=request.user)
    return Response({
        'technician': format_technician(technician),
        'action': action,
        'message': f'Test {ACTION_PAST[action]} successfully',
    })
