"""
Audit trail for invoice changes.

Every invoice mutation is logged here. The audit log is:
- Append-only (entries never modified or deleted)
- Actor-attributed (which admin, or "system", made the change)
- Detailed (captures the transition and any warnings raised on the way)
"""

import logging
from enum import Enum
from typing import Any
from uuid import uuid4

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.actor_context import get_current_actor
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class AuditAction(Enum):
    """Type of change made to an invoice."""

    GENERATE = "generate"
    RAISE = "raise"
    DOWNLOAD = "download"
    DELETE = "delete"


class AuditLogger:
    """
    Writes audit entries to the audit_log table.

    IMPORTANT: Use model_dump(mode="json") when passing pydantic models in
    `changes` so UUIDs, dates and Decimals serialize.

    Usage:
        audit = AuditLogger(postgres)

        audit.log_change(
            entity_type="invoice",
            entity_id=invoice.id,
            action=AuditAction.RAISE,
            changes={"status": {"old": "generated", "new": "raised"}}
        )

        history = audit.get_entity_history("invoice", invoice.id)
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        entity_type: str,
        entity_id: Any,
        action: AuditAction,
        changes: dict[str, Any],
        actor: str | None = None
    ) -> None:
        """
        Log an entity change.

        Args:
            entity_type: Type of entity ("invoice")
            entity_id: ID of the entity; stored as text
            action: The action performed
            changes: What changed (JSON-serializable)
            actor: Who made the change (defaults to current context)
        """
        if actor is None:
            actor = get_current_actor()

        self.postgres.execute(
            """
            INSERT INTO audit_log (id, actor, entity_type, entity_id, action, changes, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (
                uuid4(),
                actor,
                entity_type,
                str(entity_id),
                action.value,
                Json(changes),
                now_utc()
            )
        )

    def get_entity_history(self, entity_type: str, entity_id: Any) -> list[dict[str, Any]]:
        """
        Full audit history for an entity, newest first.
        """
        return self.postgres.execute(
            """
            SELECT id, actor, entity_type, entity_id, action, changes, created_at
            FROM audit_log
            WHERE entity_type = %s AND entity_id = %s
            ORDER BY created_at DESC
            """,
            (entity_type, str(entity_id))
        )
