"""Retention enforcement for stored report rows.

Each report wizard carries a retention tag in data.retention (default
30days). Rows in wizard_report_data older than the tag's period are
deleted; `always` and unrecognised tags keep them. Each wizard is pruned
in its own savepoint, so one failure is logged and counted without undoing
the others. In `test` mode nothing is deleted, only counted.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sirius.models.wizard import Wizard, WizardReportData
from sirius.wizards.registry import wizard_registry
from sirius.wizards.retention import cutoff_for, parse_retention

logger = logging.getLogger("sirius.report_cleanup")

CLEANUP_MODES = ("live", "test")


async def _prune_wizard(
    db: AsyncSession, wizard_id: str, cutoff: datetime, delete_rows: bool
) -> int:
    """Count (and optionally delete) one wizard's expired rows in a savepoint."""
    expired = (
        WizardReportData.wizard_id == wizard_id,
        WizardReportData.created_at < cutoff,
    )
    async with db.begin_nested():
        count = (await db.execute(
            select(func.count()).select_from(WizardReportData).where(*expired)
        )).scalar_one()
        if count and delete_rows:
            await db.execute(delete(WizardReportData).where(*expired))
    return count


async def delete_expired_reports(
    db: AsyncSession,
    mode: str = "live",
    now: datetime | None = None,
) -> dict:
    if mode not in CLEANUP_MODES:
        raise ValueError(f"Unknown cleanup mode: {mode}")

    now = now or datetime.now(timezone.utc)
    report_types = [n for n in wizard_registry.names() if wizard_registry.is_report_wizard(n)]
    result = await db.execute(
        select(Wizard.id, Wizard.type, Wizard.data).where(Wizard.type.in_(report_types))
    )
    wizards = result.all()

    summary = {
        "mode": mode,
        "wizardsChecked": len(wizards),
        "wizardsAffected": 0,
        "wizardsSkipped": 0,
        "wizardsFailed": 0,
        "rowsDeleted": 0,
        "byRetention": {},
    }

    for wizard_id, wizard_type, data in wizards:
        log_extra = {"wizard_id": wizard_id, "wizard_type": wizard_type}
        tag = (data or {}).get("retention")
        period = parse_retention(tag)
        if period is None:
            logger.warning("Unknown retention tag %r, keeping report rows", tag, extra=log_extra)
            summary["wizardsSkipped"] += 1
            continue
        cutoff = cutoff_for(period, now)
        if cutoff is None:
            continue

        try:
            count = await _prune_wizard(db, wizard_id, cutoff, delete_rows=mode == "live")
        except Exception:
            logger.exception("Report cleanup failed for wizard", extra=log_extra)
            summary["wizardsFailed"] += 1
            continue
        if not count:
            continue

        summary["wizardsAffected"] += 1
        summary["rowsDeleted"] += count
        summary["byRetention"][period.value] = summary["byRetention"].get(period.value, 0) + count
        logger.info(
            "%s %d expired report rows (retention %s)",
            "Deleted" if mode == "live" else "Would delete",
            count,
            period.value,
            extra=log_extra,
        )

    logger.info(
        "Report cleanup (%s): %d rows across %d wizards, %d failed",
        mode,
        summary["rowsDeleted"],
        summary["wizardsAffected"],
        summary["wizardsFailed"],
    )
    return summary
