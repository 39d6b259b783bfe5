from django.core.management.base import BaseCommand

from laboratory.services.workload import reconcile_all_workloads


class Command(BaseCommand):
    help = "Recount every lab technician's workload from active lab test requests."

    def handle(self, *args, **options):
        count = reconcile_all_workloads()
        self.stdout.write(self.style.SUCCESS(f"Reconciled workload of {count} technicians"))
