"""Step navigation: array order within a wizard type defines Previous/Next.

Moving past either end is a no-op: the current step id comes back
unchanged. Navigation does not consult completion evaluators; callers that
want gated forward movement check the step's evaluator first.
"""

from __future__ import annotations

from typing import Sequence

from sirius.wizards.steps import Step


def step_index(steps: Sequence[Step], step_id: str | None) -> int:
    """Position of `step_id`, or -1 when it is not a step of this type."""
    for i, step in enumerate(steps):
        if step.id == step_id:
            return i
    return -1


def resolve_current(steps: Sequence[Step], current: str | None) -> str | None:
    """The stored current step, falling back to the first step."""
    if current:
        return current
    return steps[0].id if steps else None


def next_step(steps: Sequence[Step], current: str | None) -> str | None:
    current = resolve_current(steps, current)
    i = step_index(steps, current)
    if i == -1 or i >= len(steps) - 1:
        return current
    return steps[i + 1].id


def previous_step(steps: Sequence[Step], current: str | None) -> str | None:
    current = resolve_current(steps, current)
    i = step_index(steps, current)
    if i <= 0:
        return current
    return steps[i - 1].id
