"""Wizard type registry.

Every wizard type (report or feed) registers one instance here at import
time. Routers and services resolve types through `wizard_registry`; the
step lookups below are what the UI layer uses to find the component and
completion evaluator for a (type, step) pair.
"""

from __future__ import annotations

import logging

from sirius.config import settings
from sirius.middleware.exceptions import WizardTypeError
from sirius.wizards.base import BaseWizard, WizardStatus
from sirius.wizards.feed import FeedWizard
from sirius.wizards.report import WizardReport
from sirius.wizards.steps import Step, StepController
from sirius.wizards.types.feed_gbhet_legal_workers import (
    GbhetLegalWorkersCorrections,
    GbhetLegalWorkersMonthly,
)
from sirius.wizards.types.report_btu_workers_invalid_cardcheck import (
    ReportBtuWorkersInvalidCardcheck,
)
from sirius.wizards.types.report_gbhet_legal_compliance import ReportGbhetLegalCompliance
from sirius.wizards.types.report_workers_duplicate_ssn import ReportWorkersDuplicateSsn

logger = logging.getLogger(__name__)


class WizardRegistry:
    def __init__(self) -> None:
        self._wizards: dict[str, BaseWizard] = {}

    def register(self, wizard: BaseWizard) -> None:
        if wizard.name in self._wizards:
            raise ValueError(f'Wizard type "{wizard.name}" is already registered')
        self._wizards[wizard.name] = wizard

    def get(self, name: str) -> BaseWizard | None:
        return self._wizards.get(name)

    def names(self) -> list[str]:
        return list(self._wizards)

    def is_available(self, wizard: BaseWizard, components: set[str] | None = None) -> bool:
        if not wizard.required_component:
            return True
        if components is None:
            components = settings.enabled_component_set
        return wizard.required_component in components

    def get_all(self, components: set[str] | None = None) -> list[BaseWizard]:
        """Registered types whose required component (if any) is enabled."""
        return [w for w in self._wizards.values() if self.is_available(w, components)]

    def validate_type(self, name: str) -> BaseWizard:
        wizard = self.get(name)
        if wizard is None:
            raise WizardTypeError(f'Unknown wizard type "{name}"', details={"type": name})
        if not self.is_available(wizard):
            raise WizardTypeError(
                f'Wizard type "{name}" requires component "{wizard.required_component}"',
                details={"type": name, "component": wizard.required_component},
            )
        return wizard

    def get_steps_for_type(self, name: str) -> list[Step]:
        wizard = self.get(name)
        return wizard.get_steps() if wizard else []

    def get_statuses_for_type(self, name: str) -> list[WizardStatus]:
        wizard = self.get(name)
        return wizard.get_statuses() if wizard else []

    def is_report_wizard(self, name: str) -> bool:
        return isinstance(self.get(name), WizardReport)

    def is_feed_wizard(self, name: str) -> bool:
        return isinstance(self.get(name), FeedWizard)


wizard_registry = WizardRegistry()

for _wizard in (
    GbhetLegalWorkersMonthly(),
    GbhetLegalWorkersCorrections(),
    ReportWorkersDuplicateSsn(),
    ReportGbhetLegalCompliance(),
    ReportBtuWorkersInvalidCardcheck(),
):
    wizard_registry.register(_wizard)


# ── Step lookups ────────────────────────────────────────────

def _find_step(wizard_type: str, step_id: str) -> Step | None:
    for step in wizard_registry.get_steps_for_type(wizard_type):
        if step.id == step_id:
            return step
    return None


def get_step_component(wizard_type: str, step_id: str) -> str | None:
    step = _find_step(wizard_type, step_id)
    return step.component if step else None


def get_step_controller(wizard_type: str, step_id: str) -> StepController | None:
    step = _find_step(wizard_type, step_id)
    return step.controller if step else None


def check_registry_consistency(registry: WizardRegistry | None = None) -> list[str]:
    """Problems with the registered step tables; empty when all is well."""
    registry = registry or wizard_registry
    problems: list[str] = []
    for name in registry.names():
        steps = registry.get_steps_for_type(name)
        if not steps:
            problems.append(f"{name}: no steps")
            continue
        seen: set[str] = set()
        for step in steps:
            if step.id in seen:
                problems.append(f"{name}: duplicate step id {step.id!r}")
            seen.add(step.id)
            if not step.component:
                problems.append(f"{name}.{step.id}: missing component")
            if not callable(step.evaluate_completion):
                problems.append(f"{name}.{step.id}: missing evaluator")
    for problem in problems:
        logger.warning("Wizard registry problem: %s", problem)
    return problems
