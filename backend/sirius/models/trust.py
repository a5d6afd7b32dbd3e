"""Trust benefits, worker-month-benefit rows, and charge plugin configs."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sirius.database import Base, utcnow


class TrustBenefit(Base):
    __tablename__ = "trust_benefits"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    benefit_type: Mapped[str | None] = mapped_column(String(50))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class TrustWmb(Base):
    """A benefit granted to a worker, by an employer, for one month."""

    __tablename__ = "trust_wmb"
    __table_args__ = (
        UniqueConstraint("worker_id", "employer_id", "benefit_id", "month", "year"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    worker_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workers.id"), nullable=False, index=True
    )
    employer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("employers.id"), nullable=False
    )
    benefit_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("trust_benefits.id"), nullable=False, index=True
    )


class ChargePluginConfig(Base):
    """Per-plugin settings, either global or scoped to one employer."""

    __tablename__ = "charge_plugin_configs"
    __table_args__ = (
        UniqueConstraint("plugin_id", "scope", "employer_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    plugin_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # global | employer
    scope: Mapped[str] = mapped_column(String(20), nullable=False)
    employer_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("employers.id", ondelete="CASCADE")
    )
    settings: Mapped[dict | None] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
