"""GBHET legal compliance check.

Workers with 80+ hours in a work month must receive the legal benefit a
few months later (the billing lag, 3 months by default: January work →
April benefit). This report lists worker/employer/months where the benefit
row is missing.

Which benefit and lag apply comes from the `gbhet-legal-benefit` charge
plugin configuration. An employer-scoped configuration overrides the
global one; an employer with neither is skipped, not defaulted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sirius.models.employer import Employer
from sirius.models.trust import ChargePluginConfig, TrustBenefit, TrustWmb
from sirius.models.worker import Contact, Worker, WorkerHours
from sirius.wizards.feed import format_month_year
from sirius.wizards.report import (
    ColumnType,
    ProgressCallback,
    ReportColumn,
    ReportRecord,
    WizardReport,
    report_progress,
)

PLUGIN_ID = "gbhet-legal-benefit"
HOURS_THRESHOLD = 80
DEFAULT_BILLING_OFFSET_MONTHS = -3


@dataclass(frozen=True)
class ComplianceSettings:
    benefit_id: str | None
    lag_months: int


class ComplianceConfigResolver:
    """Picks the configuration row that governs a given employer."""

    def __init__(self, configs: Iterable[Any]):
        self.global_config = None
        self.employer_configs: dict[str, Any] = {}
        for cfg in configs:
            if cfg.scope == "global":
                self.global_config = cfg
            elif cfg.scope == "employer" and cfg.employer_id:
                self.employer_configs[cfg.employer_id] = cfg

    def config_for(self, employer_id: str) -> Any | None:
        return self.employer_configs.get(employer_id, self.global_config)

    def settings_for(self, employer_id: str) -> ComplianceSettings | None:
        cfg = self.config_for(employer_id)
        if cfg is None:
            return None
        raw = cfg.settings or {}
        offset = raw.get("billingOffsetMonths")
        if offset is None:
            offset = DEFAULT_BILLING_OFFSET_MONTHS
        return ComplianceSettings(
            benefit_id=raw.get("benefitId"),
            lag_months=abs(int(offset)),
        )


def add_months(year: int, month: int, months: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def wmb_key(worker_id, employer_id, benefit_id, year, month) -> tuple:
    return (worker_id, employer_id, benefit_id, int(year), int(month))


class ReportGbhetLegalCompliance(WizardReport):
    name = "report_gbhet_legal_compliance"
    display_name = "GBHET Legal Compliance Check"
    description = (
        "Identifies workers with 80+ hours in a work month who are missing "
        "the legal benefit after the billing lag (e.g. January work → April benefit)"
    )
    category = "Compliance"

    def get_primary_key_field(self) -> str:
        return "recordKey"

    def get_columns(self) -> list[ReportColumn]:
        return [
            ReportColumn("siriusId", "Sirius ID", ColumnType.NUMBER, 100),
            ReportColumn("displayName", "Worker Name", ColumnType.STRING, 200),
            ReportColumn("workMonth", "Work Month", ColumnType.STRING, 120),
            ReportColumn("totalHours", "Hours", ColumnType.NUMBER, 80),
            ReportColumn("expectedBenefitMonth", "Expected Benefit Month", ColumnType.STRING, 160),
            ReportColumn("employerName", "Employer", ColumnType.STRING, 200),
            ReportColumn("benefitName", "Missing Benefit", ColumnType.STRING, 180),
        ]

    async def fetch_records(
        self,
        db: AsyncSession,
        config: dict,
        batch_size: int = 100,
        on_progress: ProgressCallback | None = None,
    ) -> list[ReportRecord]:
        result = await db.execute(
            select(ChargePluginConfig).where(
                ChargePluginConfig.plugin_id == PLUGIN_ID,
                ChargePluginConfig.enabled.is_(True),
            )
        )
        configs = list(result.scalars().all())
        if not configs:
            await report_progress(on_progress, 0, 0)
            return []

        resolver = ComplianceConfigResolver(configs)
        benefit_ids = {
            (cfg.settings or {}).get("benefitId")
            for cfg in configs
            if (cfg.settings or {}).get("benefitId")
        }
        if not benefit_ids:
            await report_progress(on_progress, 0, 0)
            return []

        total_hours = func.sum(WorkerHours.hours)
        hours_result = await db.execute(
            select(
                WorkerHours.worker_id,
                WorkerHours.employer_id,
                WorkerHours.year,
                WorkerHours.month,
                total_hours.label("total_hours"),
            )
            .group_by(
                WorkerHours.worker_id,
                WorkerHours.employer_id,
                WorkerHours.year,
                WorkerHours.month,
            )
            .having(total_hours >= HOURS_THRESHOLD)
        )
        monthly_hours = hours_result.all()
        if not monthly_hours:
            await report_progress(on_progress, 0, 0)
            return []

        worker_ids = {e.worker_id for e in monthly_hours}
        employer_ids = {e.employer_id for e in monthly_hours}

        benefit_names = dict((await db.execute(
            select(TrustBenefit.id, TrustBenefit.name).where(TrustBenefit.id.in_(benefit_ids))
        )).all())
        workers = {
            row.id: row
            for row in (await db.execute(
                select(Worker.id, Worker.sirius_id, Contact.display_name)
                .join(Contact, Worker.contact_id == Contact.id)
                .where(Worker.id.in_(worker_ids))
            )).all()
        }
        employer_names = dict((await db.execute(
            select(Employer.id, Employer.name).where(Employer.id.in_(employer_ids))
        )).all())
        granted = {
            wmb_key(w.worker_id, w.employer_id, w.benefit_id, w.year, w.month)
            for w in (await db.execute(
                select(
                    TrustWmb.worker_id,
                    TrustWmb.employer_id,
                    TrustWmb.benefit_id,
                    TrustWmb.year,
                    TrustWmb.month,
                ).where(TrustWmb.benefit_id.in_(benefit_ids))
            )).all()
        }

        records: list[ReportRecord] = []
        total = len(monthly_hours)
        for i, entry in enumerate(monthly_hours):
            record = self._check_entry(
                entry, resolver, granted, workers, employer_names, benefit_names
            )
            if record:
                records.append(record)
            if (i + 1) % batch_size == 0:
                await report_progress(on_progress, i + 1, total)

        await report_progress(on_progress, total, total)
        return records

    def _check_entry(
        self,
        entry: Any,
        resolver: ComplianceConfigResolver,
        granted: set[tuple],
        workers: dict[str, Any],
        employer_names: dict[str, str],
        benefit_names: dict[str, str],
    ) -> ReportRecord | None:
        """Return a record when the entry's expected benefit is missing."""
        settings = resolver.settings_for(entry.employer_id)
        if settings is None or not settings.benefit_id:
            return None

        benefit_year, benefit_month = add_months(entry.year, entry.month, settings.lag_months)
        key = wmb_key(
            entry.worker_id, entry.employer_id, settings.benefit_id, benefit_year, benefit_month
        )
        if key in granted:
            return None

        worker = workers.get(entry.worker_id)
        return {
            "recordKey": f"{entry.worker_id}-{entry.employer_id}-{entry.year}-{entry.month}",
            "workerId": entry.worker_id,
            "siriusId": worker.sirius_id if worker else None,
            "displayName": (worker.display_name if worker else None) or "Unknown",
            "workMonth": format_month_year(entry.year, entry.month),
            "totalHours": float(entry.total_hours),
            "expectedBenefitMonth": format_month_year(benefit_year, benefit_month),
            "employerName": employer_names.get(entry.employer_id, "Unknown"),
            "benefitName": benefit_names.get(settings.benefit_id, "Legal Benefit"),
        }
