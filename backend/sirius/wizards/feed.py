"""Feed wizard contract.

A feed moves a month of data in or out of Sirius. Import-style feeds walk
upload → map → validate → process; every feed can generate its output for
a period via `generate_feed`, which resolves the period from per-call
launch arguments, then a stored `period`, then the current month.
"""

from __future__ import annotations

import calendar
import json
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sirius.models.file import File
from sirius.models.wizard import Wizard
from sirius.utils.csv_import import ALLOWED_MIME_TYPES, serialize_csv
from sirius.utils.merge_patch import merge_patch
from sirius.wizards.base import BaseWizard, WizardStatus, create_standard_statuses
from sirius.wizards.steps import (
    Step,
    evaluate_always_complete,
    evaluate_map_complete,
    evaluate_upload_complete,
    evaluate_validate_complete,
    required_fields_for_mode,
)

ERROR_LIMIT_PER_TYPE = 12
OUTPUT_FORMATS = ("csv", "json")

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


# ── Value types ──────────────────────────────────────────────

@dataclass(frozen=True)
class FeedField:
    id: str
    name: str
    type: str = "string"  # string | number | date
    required: bool = False
    required_for_create: bool = False
    required_for_update: bool = False
    description: str | None = None
    format: str | None = None  # ssn | date | currency | phone | email
    pattern: str | None = None
    max_length: int | None = None
    display_order: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "required": self.required,
            "requiredForCreate": self.required_for_create,
            "requiredForUpdate": self.required_for_update,
            "description": self.description,
            "format": self.format,
            "pattern": self.pattern,
            "maxLength": self.max_length,
            "displayOrder": self.display_order,
        }


@dataclass(frozen=True)
class LaunchArgument:
    id: str
    name: str
    type: str
    required: bool = True
    default: Any = None
    description: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "required": self.required,
            "default": self.default,
            "description": self.description,
        }


@dataclass
class RowError:
    row_index: int
    field: str
    message: str
    value: Any = None

    def to_dict(self) -> dict:
        return {
            "rowIndex": self.row_index,
            "field": self.field,
            "message": self.message,
            "value": self.value,
        }


@dataclass
class ValidationResults:
    total_rows: int = 0
    valid_rows: int = 0
    invalid_rows: int = 0
    errors: list[RowError] = field(default_factory=list)
    error_summary: dict[str, int] = field(default_factory=dict)
    completed_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "totalRows": self.total_rows,
            "validRows": self.valid_rows,
            "invalidRows": self.invalid_rows,
            "errors": [e.to_dict() for e in self.errors],
            "errorSummary": self.error_summary,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class ValidationProgress:
    processed: int
    total: int
    valid_rows: int
    invalid_rows: int


@dataclass
class FeedData:
    record_count: int
    generated_at: datetime
    filters: dict[str, int]
    output_path: str
    output_format: str = "csv"
    records: list[dict[str, Any]] = field(default_factory=list, repr=False)

    def to_dict(self) -> dict:
        return {
            "recordCount": self.record_count,
            "generatedAt": self.generated_at.isoformat(),
            "filters": dict(self.filters),
            "outputPath": self.output_path,
            "outputFormat": self.output_format,
        }


# ── Period helpers ───────────────────────────────────────────

def create_monthly_date_range(year: int, month: int) -> tuple[date, date]:
    """First and last day of the month."""
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def get_current_month(today: date | None = None) -> tuple[int, int]:
    today = today or date.today()
    return today.year, today.month


def format_month_year(year: int, month: int) -> str:
    return f"{MONTH_NAMES[month - 1]} {year}"


def _coerce_period(candidate: Any) -> tuple[int, int] | None:
    """Return (year, month) when `candidate` holds a usable pair."""
    if not isinstance(candidate, dict):
        return None
    try:
        year = int(candidate["year"])
        month = int(candidate["month"])
    except (KeyError, TypeError, ValueError):
        return None
    if not 1 <= month <= 12 or year < 1:
        return None
    return year, month


# ── Base class ───────────────────────────────────────────────

class FeedWizard(BaseWizard):
    is_feed = True
    entity_type = "employer"

    def get_fields(self) -> list[FeedField]:
        return []

    def get_launch_arguments(self) -> list[LaunchArgument]:
        year, month = get_current_month()
        return [
            LaunchArgument("year", "Year", "number", required=True, default=year),
            LaunchArgument("month", "Month", "number", required=True, default=month),
        ]

    def get_steps(self) -> list[Step]:
        return [
            Step("upload", "Upload", "Upload data file", "feed/UploadStep", evaluate_upload_complete),
            Step("map", "Map", "Map columns to fields", "feed/MapStep", evaluate_map_complete),
            Step("validate", "Validate", "Validate mapped rows", "feed/ValidateStep", evaluate_validate_complete),
            Step("process", "Process", "Generate the feed data", "feed/ProcessStep", evaluate_always_complete),
            Step("review", "Review", "Review generated feed", "feed/ReviewStep", evaluate_always_complete),
        ]

    def get_statuses(self) -> list[WizardStatus]:
        return [
            *create_standard_statuses(),
            WizardStatus("generating", "Generating", "Feed data is being generated"),
            WizardStatus("ready", "Ready", "Feed is ready for download"),
        ]

    # ── Generation ───────────────────────────────────────────

    def resolve_period(
        self,
        data: dict | None,
        launch_arguments: dict | None = None,
        today: date | None = None,
    ) -> tuple[int, int]:
        """Period for one generation call.

        Arguments passed with this call win, then the stored `period` (the
        last generated one), then launch arguments stored when the wizard
        was created, then the current month.
        """
        data = data or {}
        return (
            _coerce_period(launch_arguments)
            or _coerce_period(data.get("period"))
            or _coerce_period(data.get("launchArguments"))
            or get_current_month(today)
        )

    def output_filename(self, year: int, month: int, output_format: str = "csv") -> str:
        return f"{self.name}_{year}_{month:02d}.{output_format}"

    def validate_config(self, config: dict | None) -> list[str]:
        errors = []
        config = config or {}
        output_format = config.get("outputFormat", "csv")
        if output_format not in OUTPUT_FORMATS:
            errors.append(f"Unsupported output format: {output_format}")
        date_range = config.get("dateRange")
        if isinstance(date_range, dict):
            start, end = date_range.get("start"), date_range.get("end")
            if start and end and str(start) > str(end):
                errors.append("Start date must be before end date")
        return errors

    async def generate_records(
        self,
        db: AsyncSession,
        year: int,
        month: int,
        entity_id: str | None = None,
    ) -> list[dict[str, Any]]:
        raise NotImplementedError

    async def generate_feed(
        self,
        db: AsyncSession,
        config: dict | None,
        data: dict | None,
        entity_id: str | None = None,
        launch_arguments: dict | None = None,
    ) -> FeedData:
        config = config or {}
        year, month = self.resolve_period(data, launch_arguments)
        output_format = config.get("outputFormat") or "csv"
        records = await self.generate_records(db, year, month, entity_id)
        return FeedData(
            record_count=len(records),
            generated_at=datetime.now(timezone.utc),
            filters={"year": year, "month": month},
            output_path=self.output_filename(year, month, output_format),
            output_format=output_format,
            records=records,
        )

    def serialize_to_csv(self, records: list[dict[str, Any]]) -> str:
        return serialize_csv(records)

    def serialize_to_json(self, records: list[dict[str, Any]]) -> str:
        return json.dumps(records, indent=2, default=str)

    def serialize(self, records: list[dict[str, Any]], output_format: str = "csv") -> str:
        if output_format == "json":
            return self.serialize_to_json(records)
        return self.serialize_to_csv(records)

    # ── Validation ───────────────────────────────────────────

    def validate_row(self, row: dict[str, Any], row_index: int, mode: str) -> list[RowError]:
        errors: list[RowError] = []
        required_ids = {f.id for f in required_fields_for_mode(self.get_fields(), mode)}

        for fd in self.get_fields():
            value = row.get(fd.id)
            is_empty = value is None or value == ""

            if fd.id in required_ids and is_empty:
                errors.append(RowError(row_index, fd.id, f"{fd.name} is required", value))
                continue

            if is_empty:
                continue

            if fd.type == "number":
                try:
                    float(value)
                except (TypeError, ValueError):
                    errors.append(RowError(row_index, fd.id, f"{fd.name} must be a number", value))
                    continue

            text = str(value)
            if fd.pattern and not re.fullmatch(fd.pattern, text):
                message = (
                    f"{fd.name} must match format XXX-XX-XXXX"
                    if fd.format == "ssn"
                    else f"{fd.name} does not match required pattern"
                )
                errors.append(RowError(row_index, fd.id, message, value))

            if fd.max_length and len(text) > fd.max_length:
                errors.append(RowError(
                    row_index,
                    fd.id,
                    f"{fd.name} exceeds maximum length of {fd.max_length}",
                    text[:20] + "...",
                ))

        return errors

    async def validate_rows(
        self,
        rows: list[dict[str, Any]],
        mode: str = "create",
        batch_size: int = 100,
        on_progress: Callable[[ValidationProgress], Awaitable[None]] | None = None,
    ) -> ValidationResults:
        """Validate mapped rows in batches.

        Only the first ERROR_LIMIT_PER_TYPE errors of each field/message
        pair are kept; counts in `invalid_rows` are exact.
        """
        results = ValidationResults(total_rows=len(rows))
        error_counts: dict[str, int] = {}

        for start in range(0, len(rows), batch_size):
            for offset, row in enumerate(rows[start:start + batch_size]):
                row_errors = self.validate_row(row, start + offset, mode)
                if not row_errors:
                    results.valid_rows += 1
                    continue
                results.invalid_rows += 1
                for error in row_errors:
                    key = f"{error.field}:{error.message}"
                    error_counts[key] = error_counts.get(key, 0) + 1
                    if error_counts[key] <= ERROR_LIMIT_PER_TYPE:
                        results.errors.append(error)

            if on_progress is not None:
                await on_progress(ValidationProgress(
                    processed=min(start + batch_size, len(rows)),
                    total=len(rows),
                    valid_rows=results.valid_rows,
                    invalid_rows=results.invalid_rows,
                ))

        for error in results.errors:
            key = f"{error.field}: {error.message}"
            results.error_summary[key] = results.error_summary.get(key, 0) + 1
        results.completed_at = datetime.now(timezone.utc)
        return results

    # ── File association ─────────────────────────────────────

    async def associate_file(self, db: AsyncSession, wizard: Wizard, file: File) -> File:
        """Attach an uploaded file to the wizard and record it as the upload."""
        if file.mime_type and file.mime_type not in ALLOWED_MIME_TYPES:
            raise ValueError("Invalid file type. Only CSV and XLSX files are supported.")

        file.metadata_ = {**(file.metadata_ or {}), "wizardId": wizard.id}
        db.add(file)
        await db.flush()

        wizard.data = merge_patch(wizard.data, {"uploadedFileId": file.id})
        await db.flush()
        return file

    async def get_associated_files(self, db: AsyncSession, wizard_id: str) -> list[File]:
        result = await db.execute(
            select(File)
            .where(File.metadata_["wizardId"].as_string() == wizard_id)
            .order_by(File.uploaded_at.desc())
        )
        return list(result.scalars().all())

    async def delete_associated_file(
        self, db: AsyncSession, wizard: Wizard, file: File
    ) -> None:
        if (file.metadata_ or {}).get("wizardId") != wizard.id:
            raise ValueError("File is not associated with this wizard")

        await db.delete(file)
        if (wizard.data or {}).get("uploadedFileId") == file.id:
            wizard.data = merge_patch(wizard.data, {"uploadedFileId": None})
        await db.flush()
