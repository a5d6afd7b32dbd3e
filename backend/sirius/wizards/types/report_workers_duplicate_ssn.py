"""Workers sharing one SSN.

The grain of this report is the SSN value, not the worker: every worker
carrying the same (normalized) SSN collapses into a single row, so the
primary key is the SSN itself.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sirius.models.worker import Contact, Worker
from sirius.wizards.report import (
    ColumnType,
    ProgressCallback,
    ReportColumn,
    ReportRecord,
    WizardReport,
    report_progress,
)

_NON_DIGITS = re.compile(r"\D")


def normalize_ssn(value: Any) -> str | None:
    """Canonical XXX-XX-XXXX form, or the stripped input if not 9 digits."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    digits = _NON_DIGITS.sub("", text)
    if len(digits) == 9:
        return f"{digits[:3]}-{digits[3:5]}-{digits[5:]}"
    return text


def _get(row: Any, key: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(key)
    return getattr(row, key, None)


def group_duplicate_ssns(workers: Iterable[Any]) -> list[ReportRecord]:
    """One record per SSN held by two or more workers, in first-seen order."""
    groups: dict[str, list[Any]] = {}
    for worker in workers:
        ssn = normalize_ssn(_get(worker, "ssn"))
        if ssn is None:
            continue
        groups.setdefault(ssn, []).append(worker)

    records = []
    for ssn, members in groups.items():
        if len(members) < 2:
            continue
        records.append({
            "ssn": ssn,
            "workerCount": len(members),
            "workerIds": [_get(w, "workerId") for w in members],
            "siriusIds": ", ".join(
                str(_get(w, "siriusId")) for w in members if _get(w, "siriusId") is not None
            ),
            "displayNames": "; ".join(
                _get(w, "displayName") or "Unknown" for w in members
            ),
        })
    return records


class ReportWorkersDuplicateSsn(WizardReport):
    name = "report_workers_duplicate_ssn"
    display_name = "Workers With Duplicate SSNs"
    description = "Find SSNs shared by more than one worker record"
    category = "Data Quality"

    def get_primary_key_field(self) -> str:
        return "ssn"

    def get_columns(self) -> list[ReportColumn]:
        return [
            ReportColumn("ssn", "SSN", ColumnType.STRING, 130),
            ReportColumn("workerCount", "Workers", ColumnType.NUMBER, 90),
            ReportColumn("siriusIds", "Sirius IDs", ColumnType.STRING, 180),
            ReportColumn("displayNames", "Worker Names", ColumnType.STRING, 320),
        ]

    async def fetch_records(
        self,
        db: AsyncSession,
        config: dict,
        batch_size: int = 100,
        on_progress: ProgressCallback | None = None,
    ) -> list[ReportRecord]:
        result = await db.execute(
            select(
                Worker.id.label("workerId"),
                Worker.sirius_id.label("siriusId"),
                Worker.ssn.label("ssn"),
                Contact.display_name.label("displayName"),
            )
            .join(Contact, Worker.contact_id == Contact.id)
            .where(Worker.ssn.is_not(None))
            .order_by(Worker.sirius_id)
        )
        rows = result.all()
        total = len(rows)

        scanned = []
        for i, row in enumerate(rows):
            scanned.append(row)
            if (i + 1) % batch_size == 0:
                await report_progress(on_progress, i + 1, total)

        records = group_duplicate_ssns(scanned)
        await report_progress(on_progress, total, total)
        return records
