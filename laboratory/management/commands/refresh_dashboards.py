from django.core.management.base import BaseCommand
from django.utils import timezone

from laboratory.services.dashboard import refresh_all_dashboards


class Command(BaseCommand):
    help = "Recompute every active technician's lab dashboard; broadcast a WebSocket refresh event."

    def handle(self, *args, **options):
        dashboards = refresh_all_dashboards()
        self.stdout.write(self.style.SUCCESS(f"Refreshed {len(dashboards)} dashboards at {timezone.now()}"))
