"""Report wizard contract.

A report type declares a fixed column schema and a primary key field, and
implements `fetch_records`: a read-only query returning one dict per row.
Implementations report progress through the optional `on_progress`
coroutine at least once when they finish, and every `batch_size` rows on
long scans so the run step can show a progress bar.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from sirius.wizards.base import BaseWizard
from sirius.wizards.steps import (
    Step,
    evaluate_always_complete,
    evaluate_run_complete,
)

ReportRecord = dict[str, Any]


class ColumnType(str, enum.Enum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    # Rendered by the UI as a clickable reference ({"url", "label"})
    LINK = "link"


@dataclass(frozen=True)
class ReportColumn:
    id: str
    header: str
    type: ColumnType = ColumnType.STRING
    width: int | None = None  # presentation hint only

    def to_dict(self) -> dict:
        out = asdict(self)
        out["type"] = self.type.value
        if self.width is None:
            out.pop("width")
        return out


@dataclass(frozen=True)
class ReportProgress:
    processed: int
    total: int

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 100
        return min(100, int(self.processed * 100 / self.total))


ProgressCallback = Callable[[ReportProgress], Awaitable[None]]


class WizardReport(BaseWizard):
    is_report = True
    category: str = "General"

    def get_columns(self) -> list[ReportColumn]:
        raise NotImplementedError

    def get_primary_key_field(self) -> str:
        return "workerId"

    async def fetch_records(
        self,
        db: AsyncSession,
        config: dict,
        batch_size: int = 100,
        on_progress: ProgressCallback | None = None,
    ) -> list[ReportRecord]:
        raise NotImplementedError

    def get_input_step(self) -> Step | None:
        """Override to put a filter form in front of the run step."""
        return None

    def get_steps(self) -> list[Step]:
        steps = [
            Step("run", "Run", "Generate the report", "report/RunStep", evaluate_run_complete),
            Step("results", "Results", "Review report results", "report/ResultsStep", evaluate_always_complete),
        ]
        inputs = self.get_input_step()
        return [inputs, *steps] if inputs else steps

    def describe(self) -> dict:
        out = super().describe()
        out["category"] = self.category
        return out


async def report_progress(
    on_progress: ProgressCallback | None, processed: int, total: int
) -> None:
    if on_progress is not None:
        await on_progress(ReportProgress(processed=processed, total=total))
