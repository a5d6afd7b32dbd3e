"""Common shape of every wizard type (reports and feeds)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class WizardStatus:
    id: str
    name: str
    description: str


def create_standard_statuses() -> list[WizardStatus]:
    return [
        WizardStatus("draft", "Draft", "Wizard created but not started"),
        WizardStatus("in_progress", "In Progress", "Wizard is being worked on"),
        WizardStatus("completed", "Completed", "Wizard finished successfully"),
        WizardStatus("cancelled", "Cancelled", "Wizard was abandoned"),
        WizardStatus("failed", "Failed", "Wizard stopped because of an error"),
    ]


class BaseWizard:
    name: str = ""
    display_name: str = ""
    description: str = ""
    # Business entity type the wizard attaches to (e.g. "employer"), if any
    entity_type: str | None = None
    # Component that must be enabled for this type to be offered
    required_component: str | None = None

    is_feed: bool = False
    is_report: bool = False

    def get_steps(self) -> list:
        raise NotImplementedError

    def get_statuses(self) -> list[WizardStatus]:
        return create_standard_statuses()

    def describe(self) -> dict:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "description": self.description,
            "isFeed": self.is_feed,
            "isReport": self.is_report,
            "entityType": self.entity_type,
        }
