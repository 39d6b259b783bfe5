from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand

from laboratory.models import User

TEST_SET = [
    ("admin1", "ADMIN"),
    ("doctor1", "DOCTOR"),
    ("labtech1", "LABTECH"),
    ("patient1", "PATIENT"),
]


class Command(BaseCommand):
    help = "Ensure one test user per main role exists with password=123456 (idempotent)."

    def handle(self, *args, **opts):
        for username, role in TEST_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "password": make_password("123456"), "is_active": True},
            )
            if not created:
                # reset password, activation and role
                u.password = make_password("123456")
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
