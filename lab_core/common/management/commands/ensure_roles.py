# lab_core/common/management/commands/ensure_roles.py

from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand

from lab_core.common.permissions import ROLE_CAPABILITIES


class Command(BaseCommand):
    help = "Ensure the lab role groups exist (idempotent)."

    def handle(self, *args, **options):
        created = 0
        for name in ROLE_CAPABILITIES:
            _, was_created = Group.objects.get_or_create(name=name)
            created += 1 if was_created else 0

        self.stdout.write(self.style.SUCCESS(f"Roles ensured. Newly created: {created}"))
