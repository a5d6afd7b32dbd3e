"""Step navigation tests."""

import pytest

from sirius.wizards.navigation import next_step, previous_step, resolve_current, step_index
from sirius.wizards.registry import wizard_registry
from sirius.wizards.steps import Step, evaluate_always_complete

STEPS = [
    Step(step_id, step_id.title(), "", f"test/{step_id}", evaluate_always_complete)
    for step_id in ("upload", "map", "validate", "process", "review")
]


@pytest.mark.unit
class TestNavigation:

    def test_next_moves_forward(self):
        assert next_step(STEPS, "upload") == "map"
        assert next_step(STEPS, "process") == "review"

    def test_previous_moves_back(self):
        assert previous_step(STEPS, "map") == "upload"
        assert previous_step(STEPS, "review") == "process"

    def test_next_on_last_step_is_noop(self):
        assert next_step(STEPS, "review") == "review"

    def test_previous_on_first_step_is_noop(self):
        assert previous_step(STEPS, "upload") == "upload"

    def test_unknown_step_is_noop(self):
        assert next_step(STEPS, "nope") == "nope"
        assert previous_step(STEPS, "nope") == "nope"

    def test_missing_current_starts_at_first_step(self):
        assert resolve_current(STEPS, None) == "upload"
        assert next_step(STEPS, None) == "map"
        assert previous_step(STEPS, None) == "upload"

    def test_empty_step_list(self):
        assert next_step([], None) is None
        assert step_index([], "upload") == -1

    @pytest.mark.parametrize("wizard_type", wizard_registry.names())
    def test_walks_every_registered_type(self, wizard_type):
        steps = wizard_registry.get_steps_for_type(wizard_type)
        current = steps[0].id
        visited = [current]
        for _ in range(len(steps) + 2):
            current = next_step(steps, current)
            if current != visited[-1]:
                visited.append(current)
        assert visited == [s.id for s in steps]

        for _ in range(len(steps) + 2):
            current = previous_step(steps, current)
        assert current == steps[0].id
