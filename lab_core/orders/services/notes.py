# lab_core/orders/services/notes.py
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from django.utils import timezone

from lab_core.orders.models import LabOrderNote


def append_note(
    *,
    order_id: UUID,
    body: str,
    author_id: int | None = None,
    at: datetime | None = None,
) -> LabOrderNote:
    """Append one remarks entry; existing entries are never rewritten."""
    return LabOrderNote.objects.create(
        order_id=order_id,
        author_id=author_id,
        body=body,
        created_at=at or timezone.now(),
    )
