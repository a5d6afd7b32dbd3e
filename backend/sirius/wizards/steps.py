"""Wizard steps and their completion evaluators.

A step binds a UI component reference to an evaluator. Evaluators are pure
predicates over a StepContext: they decide whether the user may move past
the step, and they never raise. Anything missing or malformed reads as
"not complete", with one exception: a map step whose feed has no required
fields is complete.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

UNMAPPED = "_unmapped"


@dataclass(frozen=True)
class StepContext:
    """What an evaluator may look at.

    `wizard` may be a Wizard row, a response schema or a plain dict; only
    its `data` document is read. `files` are the wizard's associated file
    records and `fields` the feed's field definitions.
    """
    wizard: Any = None
    files: Sequence[Any] | None = None
    fields: Sequence[Any] | None = None

    @property
    def data(self) -> dict:
        wizard = self.wizard
        if wizard is None:
            return {}
        raw = wizard.get("data") if isinstance(wizard, Mapping) else getattr(wizard, "data", None)
        return raw if isinstance(raw, dict) else {}


Evaluator = Callable[[StepContext], bool]


@dataclass(frozen=True)
class StepController:
    component: str
    evaluate_completion: Evaluator


@dataclass(frozen=True)
class Step:
    id: str
    name: str
    description: str
    component: str
    evaluate_completion: Evaluator

    @property
    def controller(self) -> StepController:
        return StepController(self.component, self.evaluate_completion)

    def describe(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description}


def _field_attr(field: Any, name: str, default: Any = None) -> Any:
    if isinstance(field, Mapping):
        return field.get(name, default)
    return getattr(field, name, default)


# ── Evaluators ──────────────────────────────────────────────

def evaluate_upload_complete(ctx: StepContext) -> bool:
    """A file id is recorded AND at least one file record exists for it."""
    return bool(ctx.data.get("uploadedFileId")) and bool(ctx.files)


def required_fields_for_mode(fields: Sequence[Any] | None, mode: str) -> list[Any]:
    """Fields required in every mode, plus those required for `mode`."""
    required = []
    for field in fields or ():
        if (
            _field_attr(field, "required", False)
            or (mode == "create" and _field_attr(field, "required_for_create", False))
            or (mode == "update" and _field_attr(field, "required_for_update", False))
        ):
            required.append(field)
    return required


def evaluate_map_complete(ctx: StepContext) -> bool:
    """Every required field id appears among the column mapping's values."""
    data = ctx.data
    mode = data.get("mode") or "create"
    required = required_fields_for_mode(ctx.fields, mode)
    if not required:
        return True

    mapping = data.get("columnMapping")
    if not isinstance(mapping, dict):
        return False
    mapped = [v for v in mapping.values() if isinstance(v, str) and v and v != UNMAPPED]
    return all(_field_attr(f, "id") in mapped for f in required)


def evaluate_validate_complete(ctx: StepContext) -> bool:
    """Validation has run and found zero invalid rows."""
    results = ctx.data.get("validationResults")
    if not isinstance(results, dict):
        return False
    invalid = results.get("invalidRows")
    return isinstance(invalid, int) and not isinstance(invalid, bool) and invalid == 0


def evaluate_run_complete(ctx: StepContext) -> bool:
    """The report run reached its terminal success state."""
    progress = ctx.data.get("progress")
    if not isinstance(progress, dict):
        return False
    run = progress.get("run")
    return isinstance(run, dict) and run.get("status") == "completed"


def evaluate_always_complete(ctx: StepContext) -> bool:
    return True
