"""Report run orchestration.

A run goes through two persisted phases. `progress.run` is written as
in_progress first, in its own committed session so that clients polling
the wizard see it while `fetch_records` is still working. On success the
stored rows are replaced and `reportMeta`, `reportDataId` and a completed
`progress.run` are merged into the wizard row as re-read under a row lock,
so fields changed by other requests during the run survive. On failure
only `progress.run` changes; rows and metadata from an earlier successful
run stay as they were, and the original error propagates to the caller.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from sirius.config import settings
from sirius.database import async_session
from sirius.middleware.exceptions import WizardTypeError
from sirius.models.wizard import Wizard, WizardReportData
from sirius.utils.merge_patch import merge_patch
from sirius.wizards.registry import wizard_registry
from sirius.wizards.report import ReportProgress, ReportRecord, WizardReport

logger = logging.getLogger("sirius.report_runner")

SessionFactory = Callable[[], Any]


def should_poll(run: dict | None) -> bool:
    """Client polling predicate: only while a run is visibly under way."""
    if not isinstance(run, dict):
        return False
    percent = run.get("percentComplete")
    return (
        run.get("status") == "in_progress"
        and isinstance(percent, (int, float))
        and percent > 0
    )


def running_percent(progress: ReportProgress) -> int:
    """Percent shown while running: at least 1, and 100 only on completion."""
    return max(1, min(99, progress.percent))


async def update_run_progress(
    wizard_id: str,
    run: dict,
    session_factory: SessionFactory = async_session,
) -> None:
    """Merge `run` into progress.run and commit in a separate session."""
    async with session_factory() as session:
        result = await session.execute(select(Wizard).where(Wizard.id == wizard_id))
        wizard = result.scalar_one_or_none()
        if wizard is None:
            return
        wizard.data = merge_patch(wizard.data or {}, {"progress": {"run": run}})
        await session.commit()


def _dedupe(records: list[ReportRecord], primary_key: str) -> dict[str, ReportRecord]:
    rows: dict[str, ReportRecord] = {}
    for record in records:
        key = record.get(primary_key)
        if key is None:
            continue
        rows[str(key)] = record
    return rows


async def save_report_data(
    db: AsyncSession,
    wizard_id: str,
    run_id: str,
    records: list[ReportRecord],
    primary_key: str,
) -> int:
    """Replace the wizard's stored rows with this run's records."""
    rows = _dedupe(records, primary_key)
    await db.execute(delete(WizardReportData).where(WizardReportData.wizard_id == wizard_id))
    now = datetime.now(timezone.utc)
    db.add_all([
        WizardReportData(wizard_id=wizard_id, run_id=run_id, pk=pk, data=record, created_at=now)
        for pk, record in rows.items()
    ])
    await db.flush()
    return len(rows)


async def get_report_data(db: AsyncSession, wizard_id: str) -> list[dict]:
    result = await db.execute(
        select(WizardReportData.data)
        .where(WizardReportData.wizard_id == wizard_id)
        .order_by(WizardReportData.created_at, WizardReportData.pk)
    )
    return [row[0] for row in result.all()]


async def run_report(
    db: AsyncSession,
    wizard: Wizard,
    batch_size: int | None = None,
    session_factory: SessionFactory = async_session,
) -> Wizard:
    report = wizard_registry.get(wizard.type)
    if not isinstance(report, WizardReport):
        raise WizardTypeError(f"Wizard type {wizard.type} is not a report")

    batch_size = batch_size or settings.report_batch_size
    log_extra = {"wizard_id": wizard.id, "wizard_type": wizard.type}
    config = (wizard.data or {}).get("config") or {}

    await update_run_progress(
        wizard.id,
        {
            "status": "in_progress",
            "percentComplete": 0,
            "startedAt": datetime.now(timezone.utc).isoformat(),
            "completedAt": None,
            "failedAt": None,
            "error": None,
        },
        session_factory,
    )
    logger.info("Report run started", extra=log_extra)

    async def on_progress(progress: ReportProgress) -> None:
        await update_run_progress(
            wizard.id,
            {
                "status": "in_progress",
                "percentComplete": running_percent(progress),
                "processed": progress.processed,
                "total": progress.total,
            },
            session_factory,
        )

    try:
        records = await report.fetch_records(db, config, batch_size, on_progress)
        run_id = str(uuid.uuid4())
        count = await save_report_data(
            db, wizard.id, run_id, records, report.get_primary_key_field()
        )
    except Exception as exc:
        logger.exception("Report run failed", extra=log_extra)
        try:
            await update_run_progress(
                wizard.id,
                {
                    "status": "failed",
                    "error": str(exc) or exc.__class__.__name__,
                    "failedAt": datetime.now(timezone.utc).isoformat(),
                },
                session_factory,
            )
        except Exception:
            logger.exception("Could not record report failure", extra=log_extra)
        raise

    # Re-read: progress writes and concurrent PATCHes committed since load
    await db.refresh(wizard, with_for_update=True)
    now = datetime.now(timezone.utc).isoformat()
    wizard.data = merge_patch(wizard.data or {}, {
        "reportMeta": {
            "generatedAt": now,
            "recordCount": count,
            "columns": [c.to_dict() for c in report.get_columns()],
            "primaryKeyField": report.get_primary_key_field(),
        },
        "reportDataId": run_id,
        "progress": {
            "run": {
                "status": "completed",
                "percentComplete": 100,
                "completedAt": now,
                "error": None,
            },
        },
    })
    await db.flush()
    logger.info("Report run completed with %d records", count, extra=log_extra)
    return wizard
