"""GBHET legal workers feeds (monthly and corrections).

Each wizard is tied to one employer and one work month. The upload is a
roster of workers and their hours; generated output lists every worker
with hours at the employer for the period.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sirius.models.worker import Contact, Worker, WorkerHours
from sirius.wizards.feed import FeedField, FeedWizard

SSN_PATTERN = r"\d{3}-\d{2}-\d{4}"


class GbhetLegalWorkersMonthly(FeedWizard):
    name = "gbhet_legal_workers_monthly"
    display_name = "GBHET Legal Workers (Monthly)"
    description = "Monthly upload of legal-benefit eligible workers and their hours"

    def get_fields(self) -> list[FeedField]:
        return [
            FeedField(
                "ssn", "SSN", required=True, format="ssn", pattern=SSN_PATTERN,
                description="Social Security Number (XXX-XX-XXXX)", display_order=1,
            ),
            FeedField("firstName", "First Name", required_for_create=True, max_length=100, display_order=2),
            FeedField("lastName", "Last Name", required_for_create=True, max_length=100, display_order=3),
            FeedField("birthDate", "Birth Date", type="date", format="date", display_order=4),
            FeedField("hours", "Hours", type="number", required=True, display_order=5),
            FeedField("employeeNumber", "Employee Number", required_for_update=True, max_length=50, display_order=6),
        ]

    async def generate_records(
        self,
        db: AsyncSession,
        year: int,
        month: int,
        entity_id: str | None = None,
    ) -> list[dict[str, Any]]:
        total_hours = func.sum(WorkerHours.hours).label("hours")
        stmt = (
            select(
                Worker.sirius_id,
                Worker.ssn,
                Contact.given,
                Contact.family,
                Contact.display_name,
                total_hours,
            )
            .join(WorkerHours, WorkerHours.worker_id == Worker.id)
            .join(Contact, Worker.contact_id == Contact.id)
            .where(WorkerHours.year == year, WorkerHours.month == month)
            .group_by(
                Worker.sirius_id, Worker.ssn, Contact.given, Contact.family, Contact.display_name
            )
            .order_by(Worker.sirius_id)
        )
        if entity_id:
            stmt = stmt.where(WorkerHours.employer_id == entity_id)

        rows = (await db.execute(stmt)).all()
        return [
            {
                "siriusId": row.sirius_id,
                "ssn": row.ssn,
                "firstName": row.given,
                "lastName": row.family,
                "displayName": row.display_name,
                "hours": float(row.hours or 0),
            }
            for row in rows
        ]


class GbhetLegalWorkersCorrections(GbhetLegalWorkersMonthly):
    """Corrections to an already completed monthly feed for the same period."""

    name = "gbhet_legal_workers_corrections"
    display_name = "GBHET Legal Workers Corrections"
    description = "Corrections to a completed monthly legal workers upload"
