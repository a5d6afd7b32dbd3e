"""Feed validation and generation against stored wizard state.

validate_feed_data: uploaded file → parsed rows → column mapping →
field validation; the result is merged into wizard.data.validationResults
where the validate step's evaluator reads it.

generate_feed_output: resolve the period, build the records, write the
serialized output to the file store and record the FeedData on the wizard.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sirius.config import settings
from sirius.middleware.exceptions import BusinessLogicError, ResourceNotFoundError, WizardTypeError
from sirius.models.file import File
from sirius.models.wizard import Wizard
from sirius.services.file_storage import read_file, save_file
from sirius.utils.csv_import import UnsupportedFileType, map_columns, parse_rows
from sirius.utils.merge_patch import merge_patch
from sirius.wizards.feed import FeedData, FeedWizard, ValidationResults
from sirius.wizards.registry import wizard_registry

logger = logging.getLogger("sirius.feed_runner")


def get_feed(wizard: Wizard) -> FeedWizard:
    feed = wizard_registry.get(wizard.type)
    if not isinstance(feed, FeedWizard):
        raise WizardTypeError(f"Wizard type {wizard.type} is not a feed")
    return feed


async def load_uploaded_rows(db: AsyncSession, wizard: Wizard) -> list[list[str]]:
    data = wizard.data or {}
    file_id = data.get("uploadedFileId")
    if not file_id:
        raise BusinessLogicError("No file has been uploaded for this wizard", error_code="NO_UPLOAD")

    result = await db.execute(select(File).where(File.id == file_id))
    file = result.scalar_one_or_none()
    if file is None:
        raise ResourceNotFoundError("File", file_id)

    content = await read_file(file.storage_path)
    try:
        return parse_rows(content, file.mime_type)
    except UnsupportedFileType as exc:
        raise BusinessLogicError(str(exc), error_code="UNSUPPORTED_FILE_TYPE") from exc


async def validate_feed_data(
    db: AsyncSession,
    wizard: Wizard,
    batch_size: int | None = None,
) -> ValidationResults:
    feed = get_feed(wizard)
    data = wizard.data or {}
    mapping = data.get("columnMapping")
    if not isinstance(mapping, dict) or not mapping:
        raise BusinessLogicError("Column mapping is required before validation", error_code="NO_MAPPING")

    raw_rows = await load_uploaded_rows(db, wizard)
    rows = map_columns(raw_rows, mapping, has_headers=data.get("hasHeaders", True) is not False)
    results = await feed.validate_rows(
        rows,
        mode=data.get("mode") or "create",
        batch_size=batch_size or settings.report_batch_size,
    )

    wizard.data = merge_patch(data, {"validationResults": results.to_dict()})
    await db.flush()
    logger.info(
        "Validated %d rows (%d invalid)",
        results.total_rows,
        results.invalid_rows,
        extra={"wizard_id": wizard.id, "wizard_type": wizard.type},
    )
    return results


async def generate_feed_output(
    db: AsyncSession,
    wizard: Wizard,
    config: dict | None = None,
    launch_arguments: dict | None = None,
) -> FeedData:
    feed = get_feed(wizard)
    data = wizard.data or {}
    config = config if config is not None else (data.get("config") or {})

    problems = feed.validate_config(config)
    if problems:
        raise BusinessLogicError(
            "Invalid feed configuration",
            error_code="INVALID_FEED_CONFIG",
            details={"errors": problems},
        )

    feed_data = await feed.generate_feed(
        db, config, data, wizard.entity_id, launch_arguments=launch_arguments
    )
    body = feed.serialize(feed_data.records, feed_data.output_format)
    stored_path = f"feeds/{wizard.id}/{feed_data.output_path}"
    await save_file(stored_path, body.encode("utf-8"))

    wizard.data = merge_patch(data, {
        "period": feed_data.filters,
        "feed": {**feed_data.to_dict(), "storagePath": stored_path},
    })
    await db.flush()
    logger.info(
        "Generated feed %s with %d records",
        feed_data.output_path,
        feed_data.record_count,
        extra={"wizard_id": wizard.id, "wizard_type": wizard.type},
    )
    return feed_data
