import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sirius.database import Base


class BargainingUnit(Base):
    __tablename__ = "bargaining_units"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)


class Cardcheck(Base):
    __tablename__ = "cardchecks"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    worker_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    cardcheck_definition_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    # pending | signed | revoked
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    bargaining_unit_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("bargaining_units.id")
    )
    signed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
