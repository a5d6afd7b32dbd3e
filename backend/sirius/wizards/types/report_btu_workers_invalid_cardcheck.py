"""BTU workers without a valid cardcheck (site-specific).

A worker is flagged when they hold no signed cardcheck of the chosen
definition, or when none of their signed cardchecks carries the worker's
current bargaining unit.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from sirius.models.cardcheck import BargainingUnit, Cardcheck
from sirius.models.employer import Employer
from sirius.models.worker import Contact, Worker
from sirius.wizards.report import (
    ColumnType,
    ProgressCallback,
    ReportColumn,
    ReportRecord,
    WizardReport,
    report_progress,
)
from sirius.wizards.steps import Step, evaluate_always_complete

NO_SIGNED_CARDCHECK = "No Signed Cardcheck"
BARGAINING_UNIT_MISMATCH = "Bargaining Unit Mismatch"


def classify_worker(worker_bu: str | None, signed_bus: list[str | None]) -> str | None:
    """Issue type for a worker given the bargaining units of their signed cardchecks."""
    if not signed_bus:
        return NO_SIGNED_CARDCHECK
    if worker_bu not in signed_bus:
        return BARGAINING_UNIT_MISMATCH
    return None


class ReportBtuWorkersInvalidCardcheck(WizardReport):
    name = "report_btu_workers_invalid_cardcheck"
    display_name = "BTU Workers Without Valid Cardchecks"
    description = (
        "Find workers who either have no signed cardcheck of the specified type, "
        "or have a signed cardcheck with a bargaining unit that differs from "
        "their current bargaining unit"
    )
    category = "BTU"
    required_component = "sitespecific.btu"

    def get_input_step(self) -> Step:
        return Step(
            "inputs",
            "Inputs",
            "Choose the cardcheck definition and employer",
            "report/BTUWorkersInvalidCardcheckInputsStep",
            evaluate_always_complete,
        )

    def get_columns(self) -> list[ReportColumn]:
        return [
            ReportColumn("siriusId", "Sirius ID", ColumnType.NUMBER, 100),
            ReportColumn("displayName", "Worker Name", ColumnType.STRING, 200),
            ReportColumn("employerName", "Home Employer", ColumnType.STRING, 200),
            ReportColumn("workerBargainingUnit", "Worker Bargaining Unit", ColumnType.STRING, 180),
            ReportColumn("cardcheckBargainingUnit", "Cardcheck Bargaining Unit", ColumnType.STRING, 180),
            ReportColumn("issueType", "Issue", ColumnType.STRING, 150),
        ]

    async def fetch_records(
        self,
        db: AsyncSession,
        config: dict,
        batch_size: int = 100,
        on_progress: ProgressCallback | None = None,
    ) -> list[ReportRecord]:
        filters = (config or {}).get("filters") or {}
        definition_id = filters.get("cardcheckDefinitionId")
        employer_id = filters.get("employerId")

        if not definition_id:
            await report_progress(on_progress, 0, 0)
            return []

        stmt = (
            select(
                Worker.id.label("worker_id"),
                Worker.sirius_id,
                Contact.display_name,
                Worker.bargaining_unit_id.label("worker_bu"),
                Employer.name.label("employer_name"),
                Cardcheck.id.label("cardcheck_id"),
                Cardcheck.bargaining_unit_id.label("cardcheck_bu"),
            )
            .join(Contact, Worker.contact_id == Contact.id)
            .outerjoin(Employer, Worker.denorm_home_employer_id == Employer.id)
            .outerjoin(
                Cardcheck,
                and_(
                    Cardcheck.worker_id == Worker.id,
                    Cardcheck.cardcheck_definition_id == definition_id,
                    Cardcheck.status == "signed",
                ),
            )
            .order_by(Worker.sirius_id)
        )
        if employer_id:
            stmt = stmt.where(Worker.denorm_home_employer_id == employer_id)

        rows = (await db.execute(stmt)).all()

        # One worker may join to several signed cardchecks
        workers: dict[str, dict[str, Any]] = {}
        bu_ids: set[str] = set()
        for row in rows:
            entry = workers.setdefault(row.worker_id, {"row": row, "signed": []})
            if row.cardcheck_id is not None:
                entry["signed"].append(row.cardcheck_bu)
            bu_ids.update(b for b in (row.worker_bu, row.cardcheck_bu) if b)

        bu_names: dict[str, str] = {}
        if bu_ids:
            bu_names = dict((await db.execute(
                select(BargainingUnit.id, BargainingUnit.name).where(BargainingUnit.id.in_(bu_ids))
            )).all())

        def bu_label(bu_id: str | None) -> str:
            return bu_names.get(bu_id, "Unknown") if bu_id else "None"

        records: list[ReportRecord] = []
        total = len(workers)
        for i, entry in enumerate(workers.values()):
            row, signed = entry["row"], entry["signed"]
            issue = classify_worker(row.worker_bu, signed)
            if issue:
                records.append({
                    "workerId": row.worker_id,
                    "siriusId": row.sirius_id,
                    "displayName": row.display_name or "",
                    "employerName": row.employer_name or "No Home Employer",
                    "workerBargainingUnit": bu_label(row.worker_bu),
                    "cardcheckBargainingUnit": bu_label(signed[0]) if signed else "N/A",
                    "issueType": issue,
                })
            if (i + 1) % batch_size == 0:
                await report_progress(on_progress, i + 1, total)

        await report_progress(on_progress, total, total)
        return records
