"""Wizard persistence: create, read, merge-patch and delete wizard rows.

All writes to `wizard.data` go through `patch_wizard_data`, which applies
JSON Merge Patch so concurrent writers of different keys do not clobber
each other's state.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from sirius.auth.deps import CurrentUser
from sirius.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from sirius.models.employer import Employer
from sirius.models.wizard import Wizard, WizardEmployerMonthly
from sirius.utils.activity import log_activity
from sirius.utils.merge_patch import merge_patch
from sirius.wizards.registry import wizard_registry

logger = logging.getLogger(__name__)

MONTHLY_TYPE = "gbhet_legal_workers_monthly"
CORRECTIONS_TYPE = "gbhet_legal_workers_corrections"


async def list_wizards(
    db: AsyncSession,
    *,
    wizard_type: str | None = None,
    status: str | None = None,
    entity_id: str | None = None,
) -> list[Wizard]:
    query = select(Wizard)
    if wizard_type:
        query = query.where(Wizard.type == wizard_type)
    if status:
        query = query.where(Wizard.status == status)
    if entity_id:
        query = query.where(Wizard.entity_id == entity_id)
    result = await db.execute(query.order_by(Wizard.date.desc()))
    return list(result.scalars().all())


async def get_wizard(db: AsyncSession, wizard_id: str) -> Wizard:
    result = await db.execute(select(Wizard).where(Wizard.id == wizard_id))
    wizard = result.scalar_one_or_none()
    if not wizard:
        raise ResourceNotFoundError("Wizard", wizard_id)
    return wizard


def initial_wizard_data(wizard_type: str, data: dict | None = None) -> tuple[str | None, dict]:
    """First step id and the starting data document for a new wizard."""
    steps = wizard_registry.get_steps_for_type(wizard_type)
    first = steps[0].id if steps else None
    initial: dict = {}
    if first:
        initial = {"progress": {first: {"status": "in_progress"}}}
    return first, merge_patch(initial, data or {})


async def create_wizard(
    db: AsyncSession,
    user: CurrentUser,
    *,
    wizard_type: str,
    status: str = "draft",
    entity_id: str | None = None,
    data: dict | None = None,
) -> Wizard:
    wizard_registry.validate_type(wizard_type)
    current_step, initial = initial_wizard_data(wizard_type, data)

    wizard = Wizard(
        id=str(uuid.uuid4()),
        type=wizard_type,
        status=status,
        entity_id=entity_id,
        current_step=current_step,
        data=initial,
        date=datetime.now(timezone.utc),
    )
    db.add(wizard)
    await db.flush()

    await log_activity(
        db, user,
        action="created",
        module="wizard",
        entity_id=wizard.id,
        host_entity_id=entity_id,
        description=f"Created wizard: {wizard_type}",
    )
    logger.info(
        "Created wizard %s",
        wizard.id,
        extra={"wizard_id": wizard.id, "wizard_type": wizard_type},
    )
    return wizard


async def patch_wizard_data(db: AsyncSession, wizard: Wizard, patch: dict) -> Wizard:
    wizard.data = merge_patch(wizard.data or {}, patch)
    await db.flush()
    return wizard


async def update_wizard(
    db: AsyncSession,
    user: CurrentUser,
    wizard: Wizard,
    *,
    status: str | None = None,
    current_step: str | None = None,
    data: dict | None = None,
) -> Wizard:
    """Apply a PATCH. Type and entity are fixed at creation."""
    changes: dict = {}
    if status is not None and status != wizard.status:
        valid = {s.id for s in wizard_registry.get_statuses_for_type(wizard.type)}
        if valid and status not in valid:
            raise BusinessLogicError(
                f'Invalid status "{status}" for wizard type {wizard.type}',
                error_code="INVALID_STATUS",
            )
        changes["status"] = {"from": wizard.status, "to": status}
        wizard.status = status
    if current_step is not None and current_step != wizard.current_step:
        changes["currentStep"] = {"from": wizard.current_step, "to": current_step}
        wizard.current_step = current_step
    if data is not None:
        wizard.data = merge_patch(wizard.data or {}, data)
        changes["data"] = sorted(data)
    await db.flush()

    if changes:
        await log_activity(
            db, user,
            action="updated",
            module="wizard",
            entity_id=wizard.id,
            host_entity_id=wizard.entity_id,
            description=f"Updated wizard: {wizard.type}",
            details=changes,
        )
    return wizard


async def delete_wizard(db: AsyncSession, user: CurrentUser, wizard: Wizard) -> None:
    await log_activity(
        db, user,
        action="deleted",
        module="wizard",
        entity_id=wizard.id,
        host_entity_id=wizard.entity_id,
        description=f"Deleted wizard: {wizard.type}",
    )
    await db.execute(delete(WizardEmployerMonthly).where(WizardEmployerMonthly.wizard_id == wizard.id))
    await db.delete(wizard)
    await db.flush()
    logger.info("Deleted wizard %s", wizard.id, extra={"wizard_id": wizard.id})


# ── Monthly employer wizards ────────────────────────────────

async def _monthly_wizards(
    db: AsyncSession, wizard_type: str, employer_id: str, year: int, month: int
) -> list[Wizard]:
    result = await db.execute(
        select(Wizard)
        .join(WizardEmployerMonthly, WizardEmployerMonthly.wizard_id == Wizard.id)
        .where(
            Wizard.type == wizard_type,
            WizardEmployerMonthly.employer_id == employer_id,
            WizardEmployerMonthly.year == year,
            WizardEmployerMonthly.month == month,
        )
    )
    return list(result.scalars().all())


async def _require_employer(db: AsyncSession, employer_id: str) -> None:
    result = await db.execute(select(Employer.id).where(Employer.id == employer_id))
    if result.scalar_one_or_none() is None:
        raise ResourceNotFoundError("Employer", employer_id)


def _check_period(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise BusinessLogicError("Month must be between 1 and 12", error_code="INVALID_PERIOD")
    if year < 1900:
        raise BusinessLogicError("Year is out of range", error_code="INVALID_PERIOD")


async def _create_linked(
    db: AsyncSession,
    user: CurrentUser,
    wizard_type: str,
    employer_id: str,
    year: int,
    month: int,
    data: dict | None,
) -> Wizard:
    period = {"period": {"year": year, "month": month}}
    wizard = await create_wizard(
        db, user,
        wizard_type=wizard_type,
        entity_id=employer_id,
        data=merge_patch(period, data or {}),
    )
    db.add(WizardEmployerMonthly(
        wizard_id=wizard.id, employer_id=employer_id, year=year, month=month
    ))
    await db.flush()
    return wizard


async def create_monthly_wizard(
    db: AsyncSession,
    user: CurrentUser,
    *,
    employer_id: str,
    year: int,
    month: int,
    data: dict | None = None,
) -> Wizard:
    """One monthly wizard per employer and period."""
    _check_period(year, month)
    await _require_employer(db, employer_id)
    if await _monthly_wizards(db, MONTHLY_TYPE, employer_id, year, month):
        raise BusinessLogicError(
            f"A monthly wizard already exists for this employer for {month}/{year}",
            error_code="DUPLICATE_MONTHLY_WIZARD",
            details={"employerId": employer_id, "year": year, "month": month},
        )
    return await _create_linked(db, user, MONTHLY_TYPE, employer_id, year, month, data)


async def create_corrections_wizard(
    db: AsyncSession,
    user: CurrentUser,
    *,
    employer_id: str,
    year: int,
    month: int,
    data: dict | None = None,
) -> Wizard:
    """Corrections need a completed monthly wizard for the same period."""
    _check_period(year, month)
    await _require_employer(db, employer_id)
    monthly = await _monthly_wizards(db, MONTHLY_TYPE, employer_id, year, month)
    if not any(w.status == "completed" for w in monthly):
        raise BusinessLogicError(
            f"Corrections require a completed monthly wizard for {month}/{year}",
            error_code="MONTHLY_WIZARD_NOT_COMPLETED",
            details={"employerId": employer_id, "year": year, "month": month},
        )
    return await _create_linked(db, user, CORRECTIONS_TYPE, employer_id, year, month, data)
