# lab_core/audit/models.py
import uuid

from django.conf import settings
from django.db import models

from lab_core.common.permissions import SYSTEM_ACTOR_ID


class AuditEvent(models.Model):
    """
    Immutable, append-only log entry.

    actor_user NULL means the reserved system actor (reported as SYSTEM_ACTOR_ID).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    event_code = models.CharField(max_length=64, db_index=True)  # e.g. "auto_cancelled"
    entity_type = models.CharField(max_length=64, db_index=True)  # e.g. "LabOrder"
    entity_id = models.UUIDField(db_index=True)

    actor_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="audit_events",
        null=True,
        blank=True,
    )

    detail = models.TextField(blank=True, default="")
    occurred_at = models.DateTimeField(auto_now_add=True, db_index=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "audit_audit_event"
        ordering = ["occurred_at"]
        indexes = [
            models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx"),
            models.Index(fields=["event_code", "occurred_at"], name="audit_event_code_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.event_code} {self.entity_type}:{self.entity_id}"

    @property
    def actor_id(self) -> int:
        return SYSTEM_ACTOR_ID if self.actor_user_id is None else self.actor_user_id

    @property
    def is_system(self) -> bool:
        return self.actor_user_id is None

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PermissionError("Audit events are immutable.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionError("Audit events are immutable.")
