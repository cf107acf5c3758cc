"""Activity feed writer.

Every mutating route records one line here; ``GET /dashboard/recent`` reads
the newest entries back.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from dealstack.db.models import ActivityModel

logger = structlog.get_logger()


def record_activity(
    session: AsyncSession,
    org_id: str,
    entity_type: str,
    action: str,
    message: str,
    entity_id: str | UUID | None = None,
    username: str | None = None,
) -> ActivityModel:
    """Add an activity entry to the caller's session.

    The caller owns the transaction; the entry is committed (or rolled back)
    together with the change it describes.

    Args:
        session: Open database session
        org_id: Organisation the change belongs to
        entity_type: "customer", "worksheet", "invoice", "order" or "ticket"
        action: "created", "updated", "deleted", ...
        message: Human-readable line shown in the feed
        entity_id: Id of the affected record
        username: Actor
    """
    entry = ActivityModel(
        org_id=org_id,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        action=action,
        message=message,
        username=username,
    )
    session.add(entry)
    logger.info(
        "activity_recorded",
        org_id=org_id,
        entity_type=entity_type,
        action=action,
        entity_id=entry.entity_id,
    )
    return entry
