"""Pydantic schemas for wizards, wizard types and step navigation.

The API speaks camelCase (`entityId`, `currentStep`) to match the shape of
`wizard.data`; Python code uses snake_case attribute names.
"""

from datetime import datetime
from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


RetentionTag = Literal["1day", "7days", "30days", "1year", "always"]
RETENTION_TAGS = get_args(RetentionTag)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Wizard data document ────────────────────────────────────

class StepProgress(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    status: str | None = None
    percent_complete: int | None = None
    completed_at: str | None = None
    error: str | None = None
    payload: dict[str, Any] | None = None


class ReportConfig(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    filters: dict[str, Any] | None = None
    date_range: dict[str, Any] | None = None


class WizardData(CamelModel):
    """Typed view of the known keys in wizard.data; unknown keys pass through."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    progress: dict[str, StepProgress] | None = None
    config: dict[str, Any] | None = None
    report_meta: dict[str, Any] | None = None
    report_data_id: str | None = None
    retention: RetentionTag | None = None
    uploaded_file_id: str | None = None
    column_mapping: dict[str, str] | None = None
    has_headers: bool | None = None
    mode: Literal["create", "update"] | None = None
    validation_results: dict[str, Any] | None = None
    period: dict[str, int] | None = None
    launch_arguments: dict[str, Any] | None = None


# ── Wizards ─────────────────────────────────────────────────

class WizardCreate(CamelModel):
    type: str = Field(..., max_length=100)
    status: str = "draft"
    entity_id: str | None = None
    data: WizardData | None = None


class WizardUpdate(CamelModel):
    """PATCH body. `data` is a merge patch; type and entityId are fixed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    status: str | None = None
    current_step: str | None = None
    data: dict[str, Any] | None = None

    @field_validator("data")
    @classmethod
    def check_retention(cls, data: dict[str, Any] | None) -> dict[str, Any] | None:
        # null removes the tag (default applies); anything else must be known
        tag = (data or {}).get("retention")
        if tag is not None and tag not in RETENTION_TAGS:
            raise ValueError(f"retention must be one of: {', '.join(RETENTION_TAGS)}")
        return data


class EmployerMonthlyCreate(CamelModel):
    type: Literal["gbhet_legal_workers_monthly", "gbhet_legal_workers_corrections"]
    employer_id: str
    year: int = Field(..., ge=1900, le=9999)
    month: int = Field(..., ge=1, le=12)
    data: dict[str, Any] | None = None


class WizardOut(CamelModel):
    id: str
    date: datetime
    type: str
    status: str
    current_step: str | None
    entity_id: str | None
    data: dict[str, Any] | None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ── Steps & types ───────────────────────────────────────────

class StepOut(CamelModel):
    id: str
    name: str
    description: str
    component: str


class StatusOut(CamelModel):
    id: str
    name: str
    description: str


class WizardTypeOut(CamelModel):
    name: str
    display_name: str
    description: str
    is_feed: bool
    is_report: bool
    entity_type: str | None = None
    category: str | None = None


class StepAdvance(CamelModel):
    """Optional payload recorded against the step being completed."""

    payload: dict[str, Any] | None = None


class CurrentStepOut(CamelModel):
    step_id: str | None
    component: str | None
    is_complete: bool
    index: int
    total: int


# ── Feeds & reports ─────────────────────────────────────────

class GenerateFeedRequest(CamelModel):
    output_format: Literal["csv", "json"] | None = None
    launch_arguments: dict[str, int] | None = None


class FeedDataOut(CamelModel):
    record_count: int
    generated_at: datetime
    filters: dict[str, int]
    output_path: str
    output_format: str


class ValidateRequest(CamelModel):
    batch_size: int | None = Field(None, ge=1, le=10000)


class ReportDataOut(CamelModel):
    wizard_id: str
    report_data_id: str | None
    columns: list[dict[str, Any]]
    primary_key_field: str | None
    records: list[dict[str, Any]]


class FileOut(CamelModel):
    id: str
    file_name: str
    mime_type: str | None
    size: int
    uploaded_by: str
    uploaded_at: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)
