"""
Dashboard of the calling lab technician.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import LabTechnician
from ..permissions import IsLabTechRole
from ..services.dashboard import format_dashboard, get_dashboard
from ..services.workload import format_workload


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsLabTechRole])
def my_dashboard(request):
    """Stored dashboard plus a live workload snapshot."""
    technician = LabTechnician.objects.select_related('user').filter(user=request.user).first()
    if technician is None:
        raise NotFound('No lab technician profile for this user')
    return Response({
        'dashboard': format_dashboard(get_dashboard(technician)),
        'workload': format_workload(technician),
    })
