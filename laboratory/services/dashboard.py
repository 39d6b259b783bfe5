import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

from laboratory.models import LabDashboard, LabTechnician

logger = logging.getLogger(__name__)

UPDATES_GROUP = 'updates'


def get_dashboard(technician: LabTechnician) -> LabDashboard:
    """Stored dashboard for ``technician``; computed on first access."""
    dashboard, created = LabDashboard.objects.get_or_create(lab_technician=technician)
    if created:
        dashboard.update_stats()
    return dashboard


def refresh_dashboard(technician: LabTechnician, *, broadcast: bool = True) -> LabDashboard:
    dashboard, _ = LabDashboard.objects.get_or_create(lab_technician=technician)
    dashboard.update_stats()
    if broadcast:
        broadcast_refresh([f'dashboard:{technician.pk}'])
    return dashboard


def refresh_all_dashboards() -> list[LabDashboard]:
    dashboards = [
        refresh_dashboard(t, broadcast=False)
        for t in LabTechnician.objects.active().order_by('id')
    ]
    broadcast_refresh([f'dashboard:{d.lab_technician_id}' for d in dashboards])
    return dashboards


def broadcast_refresh(keys: list[str]) -> None:
    """Tell WebSocket subscribers which dashboards changed."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    now = timezone.now()
    event = {'type': 'broadcast.refresh', 'version': int(now.timestamp()), 'ts': now.isoformat(), 'keys': keys[:50]}
    async_to_sync(channel_layer.group_send)(UPDATES_GROUP, event)
    logger.info({'event': 'dashboard_broadcast', 'keys': len(keys)})


def format_dashboard(d: LabDashboard) -> dict:
    return {
        'id': d.id,
        'labTechnicianId': d.lab_technician_id,
        'totalTestsCompleted': d.total_tests_completed,
        'testsToday': d.tests_today,
        'pendingTests': d.pending_tests,
        'averageTurnaroundTime': round(d.average_turnaround_time, 2),
        'criticalFindings': d.critical_findings,
        'lastActivity': d.last_activity.isoformat() if d.last_activity else None,
        'updatedAt': d.updated_at.isoformat() if d.updated_at else None,
    }
