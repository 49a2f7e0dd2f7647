# lab_core/audit/services.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from uuid import UUID

from django.db import transaction

from lab_core.audit.models import AuditEvent


@dataclass(frozen=True)
class AuditRecord:
    id: UUID
    event_code: str
    entity_type: str
    entity_id: UUID
    actor_user_id: int | None
    detail: str
    metadata: Dict[str, Any]


class AuditService:
    """
    Central audit writer. Every mutating lab-order operation logs through here.
    """

    @staticmethod
    @transaction.atomic
    def log(
        *,
        event_code: str,
        entity_type: str,
        entity_id: UUID,
        actor_user_id: int | None,
        detail: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditRecord:
        metadata = metadata or {}

        event = AuditEvent.objects.create(
            event_code=event_code,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_user_id=actor_user_id,  # None => system
            detail=detail,
            metadata=metadata,
        )

        return AuditRecord(
            id=event.id,
            event_code=event_code,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_user_id=actor_user_id,
            detail=detail,
            metadata=metadata,
        )
