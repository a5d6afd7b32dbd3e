"""Workers, their contact record, and monthly hours.

Read by the report and feed wizards; maintained elsewhere in the system.
"""

import uuid

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sirius.database import Base


class Contact(Base):
    __tablename__ = "contacts"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    given: Mapped[str | None] = mapped_column(Text)
    family: Mapped[str | None] = mapped_column(Text)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str | None] = mapped_column(Text)


class Worker(Base):
    __tablename__ = "workers"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    sirius_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    contact_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("contacts.id"), nullable=False
    )
    ssn: Mapped[str | None] = mapped_column(Text, index=True)
    bargaining_unit_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("bargaining_units.id")
    )
    denorm_home_employer_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("employers.id"), index=True
    )


class WorkerHours(Base):
    __tablename__ = "worker_hours"
    __table_args__ = (
        UniqueConstraint("worker_id", "employer_id", "year", "month", "day"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    worker_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workers.id"), nullable=False, index=True
    )
    employer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("employers.id"), nullable=False, index=True
    )
    hours: Mapped[float | None] = mapped_column(Float)
    home: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
