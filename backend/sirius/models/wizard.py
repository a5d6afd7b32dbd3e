"""Wizard instances and the rows they produce.

A Wizard is one run of a multi-step workflow (a data feed or a report).
Its `data` column is an open JSON document: step progress, feed mapping,
validation results, report metadata and the retention tag all live there
and are updated with merge-patch semantics (see sirius.utils.merge_patch).
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sirius.database import Base, utcnow


class Wizard(Base):
    __tablename__ = "wizards"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    # Key into the wizard type registry; never changes after creation
    type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    # draft | in_progress | completed | cancelled | failed | (feeds) generating | ready
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="draft")
    current_step: Mapped[str | None] = mapped_column(String(100))
    # Business entity the wizard operates on (e.g. an employer)
    entity_id: Mapped[str | None] = mapped_column(String(36), index=True)
    data: Mapped[dict | None] = mapped_column(JSON, default=dict)


class WizardReportData(Base):
    """One result row of a report run, keyed by the report's primary key."""

    __tablename__ = "wizard_report_data"
    __table_args__ = (
        UniqueConstraint("wizard_id", "pk", name="uq_wizard_report_data_wizard_pk"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    wizard_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("wizards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Matches wizard.data.reportDataId of the run that wrote the row
    run_id: Mapped[str] = mapped_column(String(36), nullable=False)
    pk: Mapped[str] = mapped_column(String(255), nullable=False)
    data: Mapped[dict | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )


class WizardEmployerMonthly(Base):
    """Links a monthly feed wizard to the employer and period it covers."""

    __tablename__ = "wizard_employer_monthly"

    wizard_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("wizards.id", ondelete="CASCADE"), primary_key=True
    )
    employer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("employers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
