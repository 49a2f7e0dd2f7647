# lab_core/orders/management/commands/reconcile_lab_order_status.py

from django.core.management.base import BaseCommand

from lab_core.orders.services import OrderStatusService


class Command(BaseCommand):
    help = "Mark lab orders completed where every item is already completed (idempotent)."

    def handle(self, *args, **options):
        results = OrderStatusService.reconcile_completed()
        for r in results:
            self.stdout.write(f"  {r.order_id}: {r.old_status} -> {r.new_status} ({r.completed_items}/{r.total_items})")
        self.stdout.write(self.style.SUCCESS(f"Lab orders reconciled: {len(results)}"))
