# lab_core/orders/management/commands/auto_cancel_lab_orders.py

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_datetime

from lab_core.orders.services import AutoCancelService


class Command(BaseCommand):
    help = "Cancel today's unfulfilled lab orders once the daily cutoff has passed."

    def add_arguments(self, parser):
        parser.add_argument(
            "--at",
            type=str,
            default=None,
            help="Run as if the current time were this ISO timestamp (default: now).",
        )

    def handle(self, *args, **options):
        at_raw = options.get("at")
        now = None
        if at_raw:
            now = parse_datetime(at_raw)
            if now is None:
                raise CommandError(f"--at must be an ISO timestamp, got {at_raw!r}")

        result = AutoCancelService.sweep(now=now)

        if not result.ran:
            self.stdout.write(result.message)
            return

        for order_id in result.cancelled_orders:
            self.stdout.write(f"  cancelled {order_id}")
        for order_id in result.skipped:
            self.stderr.write(f"  failed {order_id}")

        self.stdout.write(
            self.style.SUCCESS(
                f"{result.message} Checked at {result.check_time.isoformat()}; skipped: {len(result.skipped)}"
            )
        )
