"""Wizard instances: CRUD, step navigation, feed files, feed/report generation.

Endpoints:
    GET    /api/wizards                         List (filters: type, status, entityId)
    POST   /api/wizards                         Create
    POST   /api/wizards/employer-monthly        Create a monthly / corrections feed wizard
    GET    /api/wizards/{id}                    Fetch one
    PATCH  /api/wizards/{id}                    Update status / currentStep / merge-patch data
    DELETE /api/wizards/{id}                    Delete
    POST   /api/wizards/{id}/steps/next         Advance one step
    POST   /api/wizards/{id}/steps/previous     Go back one step
    GET    /api/wizards/{id}/steps/current      Current step, component, completion
    GET    /api/wizards/{id}/files              Files attached to a feed wizard
    POST   /api/wizards/{id}/files              Upload a CSV/XLSX file
    DELETE /api/wizards/{id}/files/{file_id}    Remove an attached file
    POST   /api/wizards/{id}/validate           Validate mapped upload rows
    POST   /api/wizards/{id}/generate-feed      Generate feed output for the period
    POST   /api/wizards/{id}/generate-report    Run a report
    GET    /api/wizards/{id}/report-data        Stored rows of the last report run
"""

import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File as FileParam, Query, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sirius.auth.deps import CurrentUser, require_permission
from sirius.config import settings
from sirius.database import get_db
from sirius.middleware.exceptions import BusinessLogicError, ResourceNotFoundError, WizardTypeError
from sirius.models.file import File
from sirius.models.wizard import Wizard
from sirius.schemas.wizard import (
    CurrentStepOut,
    EmployerMonthlyCreate,
    FeedDataOut,
    FileOut,
    GenerateFeedRequest,
    ReportDataOut,
    StepAdvance,
    ValidateRequest,
    WizardCreate,
    WizardOut,
    WizardUpdate,
)
from sirius.services import feed_runner, report_runner, wizard_store
from sirius.services.file_storage import delete_file, save_file
from sirius.utils.csv_import import ALLOWED_MIME_TYPES
from sirius.utils.merge_patch import merge_patch
from sirius.wizards.feed import FeedWizard
from sirius.wizards.navigation import next_step, previous_step, resolve_current, step_index
from sirius.wizards.registry import wizard_registry
from sirius.wizards.report import WizardReport
from sirius.wizards.steps import StepContext

logger = logging.getLogger(__name__)

router = APIRouter()


def _out(wizard: Wizard) -> WizardOut:
    return WizardOut.model_validate(wizard)


def _require_feed(wizard: Wizard) -> FeedWizard:
    feed = wizard_registry.get(wizard.type)
    if not isinstance(feed, FeedWizard):
        raise WizardTypeError(f"Wizard type {wizard.type} is not a feed")
    return feed


# ── CRUD ─────────────────────────────────────────────────────

@router.get("", response_model=list[WizardOut])
async def list_wizards(
    type: str | None = None,
    status_: str | None = Query(None, alias="status"),
    entity_id: str | None = Query(None, alias="entityId"),
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(require_permission("wizards.read")),
):
    wizards = await wizard_store.list_wizards(
        db, wizard_type=type, status=status_, entity_id=entity_id
    )
    return [_out(w) for w in wizards]


@router.post("", response_model=WizardOut, status_code=status.HTTP_201_CREATED)
async def create_wizard(
    body: WizardCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission("wizards.write")),
):
    """Create a wizard positioned on its first step."""
    data = body.data.model_dump(by_alias=True, exclude_none=True) if body.data else None
    wizard = await wizard_store.create_wizard(
        db, user,
        wizard_type=body.type,
        status=body.status,
        entity_id=body.entity_id,
        data=data,
    )
    return _out(wizard)


@router.post("/employer-monthly", response_model=WizardOut, status_code=status.HTTP_201_CREATED)
async def create_employer_monthly_wizard(
    body: EmployerMonthlyCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission("wizards.write")),
):
    create = (
        wizard_store.create_monthly_wizard
        if body.type == wizard_store.MONTHLY_TYPE
        else wizard_store.create_corrections_wizard
    )
    wizard = await create(
        db, user,
        employer_id=body.employer_id,
        year=body.year,
        month=body.month,
        data=body.data,
    )
    return _out(wizard)


@router.get("/{wizard_id}", response_model=WizardOut)
async def get_wizard(
    wizard_id: str,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(require_permission("wizards.read")),
):
    return _out(await wizard_store.get_wizard(db, wizard_id))


@router.patch("/{wizard_id}", response_model=WizardOut)
async def update_wizard(
    wizard_id: str,
    body: WizardUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission("wizards.write")),
):
    """Update status/current step; `data` is applied as a JSON merge patch."""
    wizard = await wizard_store.get_wizard(db, wizard_id)
    if body.current_step is not None:
        steps = wizard_registry.get_steps_for_type(wizard.type)
        if step_index(steps, body.current_step) == -1:
            raise BusinessLogicError(
                f'Unknown step "{body.current_step}" for wizard type {wizard.type}',
                error_code="INVALID_STEP",
            )
    wizard = await wizard_store.update_wizard(
        db, user, wizard,
        status=body.status,
        current_step=body.current_step,
        data=body.data,
    )
    return _out(wizard)


@router.delete("/{wizard_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_wizard(
    wizard_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission("wizards.delete")),
):
    wizard = await wizard_store.get_wizard(db, wizard_id)
    await wizard_store.delete_wizard(db, user, wizard)


# ── Step navigation ─────────────────────────────────────────

@router.post("/{wizard_id}/steps/next", response_model=WizardOut)
async def go_to_next_step(
    wizard_id: str,
    body: StepAdvance | None = None,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(require_permission("wizards.write")),
):
    """Complete the current step and enter the next; no-op on the last step."""
    wizard = await wizard_store.get_wizard(db, wizard_id)
    steps = wizard_registry.get_steps_for_type(wizard.type)
    current = resolve_current(steps, wizard.current_step)
    target = next_step(steps, current)
    if target == current:
        return _out(wizard)

    left = {"status": "completed", "completedAt": datetime.now(timezone.utc).isoformat()}
    if body and body.payload is not None:
        left["payload"] = body.payload
    wizard.current_step = target
    wizard.data = merge_patch(wizard.data or {}, {
        "progress": {current: left, target: {"status": "in_progress"}},
    })
    await db.flush()
    return _out(wizard)


@router.post("/{wizard_id}/steps/previous", response_model=WizardOut)
async def go_to_previous_step(
    wizard_id: str,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(require_permission("wizards.write")),
):
    """Step back one step; no-op on the first step."""
    wizard = await wizard_store.get_wizard(db, wizard_id)
    steps = wizard_registry.get_steps_for_type(wizard.type)
    current = resolve_current(steps, wizard.current_step)
    target = previous_step(steps, current)
    if target == current:
        return _out(wizard)

    wizard.current_step = target
    wizard.data = merge_patch(wizard.data or {}, {
        "progress": {
            current: {"status": "pending", "completedAt": None},
            target: {"status": "in_progress", "completedAt": None},
        },
    })
    await db.flush()
    return _out(wizard)


@router.get("/{wizard_id}/steps/current", response_model=CurrentStepOut)
async def get_current_step(
    wizard_id: str,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(require_permission("wizards.read")),
):
    """The active step, its UI component and whether it may be left forward."""
    wizard = await wizard_store.get_wizard(db, wizard_id)
    definition = wizard_registry.get(wizard.type)
    steps = definition.get_steps() if definition else []
    current = resolve_current(steps, wizard.current_step)
    index = step_index(steps, current)
    if index == -1:
        return CurrentStepOut(step_id=current, component=None, is_complete=False, index=-1, total=len(steps))

    files, fields = None, None
    if isinstance(definition, FeedWizard):
        files = await definition.get_associated_files(db, wizard.id)
        fields = definition.get_fields()
    step = steps[index]
    ctx = StepContext(wizard=wizard, files=files, fields=fields)
    return CurrentStepOut(
        step_id=step.id,
        component=step.component,
        is_complete=step.evaluate_completion(ctx),
        index=index,
        total=len(steps),
    )


# ── Feed files ──────────────────────────────────────────────

@router.get("/{wizard_id}/files", response_model=list[FileOut])
async def list_files(
    wizard_id: str,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(require_permission("feeds.upload")),
):
    wizard = await wizard_store.get_wizard(db, wizard_id)
    feed = _require_feed(wizard)
    return [FileOut.model_validate(f) for f in await feed.get_associated_files(db, wizard.id)]


@router.post("/{wizard_id}/files", response_model=FileOut, status_code=status.HTTP_201_CREATED)
async def upload_file(
    wizard_id: str,
    file: UploadFile = FileParam(...),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission("feeds.upload")),
):
    """Upload a CSV or XLSX file and make it the wizard's current upload."""
    wizard = await wizard_store.get_wizard(db, wizard_id)
    feed = _require_feed(wizard)

    if file.content_type not in ALLOWED_MIME_TYPES:
        raise BusinessLogicError(
            "Invalid file type. Only CSV and XLSX files are supported.",
            error_code="UNSUPPORTED_FILE_TYPE",
        )
    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        raise BusinessLogicError(
            f"File exceeds the {settings.max_upload_bytes // (1024 * 1024)}MB upload limit",
            error_code="FILE_TOO_LARGE",
        )

    file_id = str(uuid.uuid4())
    file_name = file.filename or "upload"
    storage_path = await save_file(f"wizards/{wizard.id}/{file_id}_{file_name}", content)
    record = File(
        id=file_id,
        file_name=file_name,
        storage_path=storage_path,
        mime_type=file.content_type,
        size=len(content),
        uploaded_by=user.id,
        entity_type="wizard",
        entity_id=wizard.id,
    )
    await feed.associate_file(db, wizard, record)
    logger.info(
        "Uploaded %s (%d bytes)",
        file_name,
        len(content),
        extra={"wizard_id": wizard.id, "wizard_type": wizard.type},
    )
    return FileOut.model_validate(record)


@router.delete("/{wizard_id}/files/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_file(
    wizard_id: str,
    file_id: str,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(require_permission("feeds.upload")),
):
    wizard = await wizard_store.get_wizard(db, wizard_id)
    feed = _require_feed(wizard)
    result = await db.execute(select(File).where(File.id == file_id))
    record = result.scalar_one_or_none()
    if record is None:
        raise ResourceNotFoundError("File", file_id)
    try:
        await feed.delete_associated_file(db, wizard, record)
    except ValueError as exc:
        raise BusinessLogicError(str(exc), error_code="FILE_NOT_ATTACHED") from exc
    await delete_file(record.storage_path)


# ── Generation ──────────────────────────────────────────────

@router.post("/{wizard_id}/validate")
async def validate_upload(
    wizard_id: str,
    body: ValidateRequest | None = None,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(require_permission("feeds.upload")),
):
    wizard = await wizard_store.get_wizard(db, wizard_id)
    results = await feed_runner.validate_feed_data(
        db, wizard, batch_size=body.batch_size if body else None
    )
    return results.to_dict()


@router.post("/{wizard_id}/generate-feed", response_model=FeedDataOut)
async def generate_feed(
    wizard_id: str,
    body: GenerateFeedRequest | None = None,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(require_permission("wizards.write")),
):
    """Generate feed output; launch arguments apply to this call only."""
    wizard = await wizard_store.get_wizard(db, wizard_id)
    config = dict((wizard.data or {}).get("config") or {})
    if body and body.output_format:
        config["outputFormat"] = body.output_format
    feed_data = await feed_runner.generate_feed_output(
        db, wizard, config, launch_arguments=body.launch_arguments if body else None
    )
    return FeedDataOut(**feed_data.to_dict())


@router.post("/{wizard_id}/generate-report", response_model=WizardOut)
async def generate_report(
    wizard_id: str,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(require_permission("reports.run")),
):
    """Run the report synchronously; progress is visible to pollers meanwhile."""
    wizard = await wizard_store.get_wizard(db, wizard_id)
    wizard = await report_runner.run_report(db, wizard)
    return _out(wizard)


@router.get("/{wizard_id}/report-data", response_model=ReportDataOut)
async def get_report_data(
    wizard_id: str,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(require_permission("wizards.read")),
):
    wizard = await wizard_store.get_wizard(db, wizard_id)
    report = wizard_registry.get(wizard.type)
    if not isinstance(report, WizardReport):
        raise WizardTypeError(f"Wizard type {wizard.type} is not a report")
    data = wizard.data or {}
    meta = data.get("reportMeta") or {}
    return ReportDataOut(
        wizard_id=wizard.id,
        report_data_id=data.get("reportDataId"),
        columns=meta.get("columns") or [c.to_dict() for c in report.get_columns()],
        primary_key_field=meta.get("primaryKeyField") or report.get_primary_key_field(),
        records=await report_runner.get_report_data(db, wizard.id),
    )
