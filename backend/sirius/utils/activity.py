"""Lightweight helper for recording activity log entries.

Usage:
    await log_activity(
        db, user, action="created", module="wizard",
        entity_id=wizard.id, host_entity_id=wizard.entity_id,
        description="Created wizard: report_workers_duplicate_ssn",
    )

The row is added to the current session and committed with the
enclosing transaction; no extra flush is performed.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from sirius.auth.deps import CurrentUser
from sirius.models.activity_log import ActivityLog


async def log_activity(
    db: AsyncSession,
    user: CurrentUser,
    *,
    action: str,
    module: str,
    entity_id: str | None = None,
    host_entity_id: str | None = None,
    description: str | None = None,
    details: dict | None = None,
) -> None:
    """Append an activity log entry to the current DB session."""
    entry = ActivityLog(
        user_id=user.id,
        user_name=user.name,
        action=action,
        module=module,
        entity_id=entity_id,
        host_entity_id=host_entity_id,
        description=description,
        details=details,
    )
    db.add(entry)
