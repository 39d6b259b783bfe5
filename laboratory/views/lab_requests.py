"""
Lab test request endpoints.

Requests are ordered by doctors or administrators and then worked
through their statuses by lab staff.  Request records are never deleted;
``CANCELLED`` is a terminal status.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsDoctorOrAdmin
from ..serializers.lab_requests import (
    LabTestRequestCreateSerializer,
    LabTestRequestListQuerySerializer,
    LabTestRequestUpdateSerializer,
)
from ..services.lab_requests import create_request, format_request, get_request, list_requests, update_request


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def lab_test_requests(request):
    if request.method == 'GET':
        q = LabTestRequestListQuerySerializer(data=request.query_params.dict())
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        requests = list_requests(
            status=vd.get('status'),
            priority=vd.get('priority'),
            patient_id=vd.get('patientId'),
            technician_id=vd.get('technicianId'),
            overdue=vd['overdue'],
        )
        return Response({'requests': [format_request(r) for r in requests]})

    if not IsDoctorOrAdmin().has_permission(request, None):
        raise PermissionDenied('Only doctors and administrators can order lab tests')
    s = LabTestRequestCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    req = create_request(doctor=request.user, data=s.validated_data)
    return Response({'testRequest': format_request(get_request(req.pk))}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def lab_test_request_detail(request, pk: int):
    req = get_request(pk)
    if req is None:
        raise NotFound('Test request not found')
    if request.method == 'GET':
        return Response({'testRequest': format_request(req)})

    s = LabTestRequestUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    req = update_request(req, s.validated_data, user=request.user)
    return Response({'testRequest': format_request(req)})
