"""Wizard type catalogue.

Endpoints:
    GET /api/wizard-types                       Available types (component-gated)
    GET /api/wizard-types/{type}/steps          Ordered steps with UI components
    GET /api/wizard-types/{type}/statuses       Status vocabulary
    GET /api/wizard-types/{type}/fields         Feed fields and launch arguments
    GET /api/wizard-types/{type}/template       CSV upload template for a feed
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from sirius.auth.deps import CurrentUser, require_permission
from sirius.middleware.exceptions import WizardTypeError
from sirius.schemas.wizard import StatusOut, StepOut, WizardTypeOut
from sirius.utils.csv_import import generate_template_csv
from sirius.wizards.feed import FeedWizard
from sirius.wizards.registry import wizard_registry

router = APIRouter()


def _feed_or_400(wizard_type: str) -> FeedWizard:
    wizard = wizard_registry.validate_type(wizard_type)
    if not isinstance(wizard, FeedWizard):
        raise WizardTypeError(f"Wizard type {wizard_type} is not a feed")
    return wizard


@router.get("", response_model=list[WizardTypeOut])
async def list_wizard_types(
    _user: CurrentUser = Depends(require_permission("wizards.read")),
):
    return [WizardTypeOut(**w.describe()) for w in wizard_registry.get_all()]


@router.get("/{wizard_type}/steps", response_model=list[StepOut])
async def get_steps(
    wizard_type: str,
    _user: CurrentUser = Depends(require_permission("wizards.read")),
):
    wizard = wizard_registry.validate_type(wizard_type)
    return [StepOut(component=s.component, **s.describe()) for s in wizard.get_steps()]


@router.get("/{wizard_type}/statuses", response_model=list[StatusOut])
async def get_statuses(
    wizard_type: str,
    _user: CurrentUser = Depends(require_permission("wizards.read")),
):
    wizard = wizard_registry.validate_type(wizard_type)
    return [StatusOut(id=s.id, name=s.name, description=s.description) for s in wizard.get_statuses()]


@router.get("/{wizard_type}/fields")
async def get_fields(
    wizard_type: str,
    _user: CurrentUser = Depends(require_permission("wizards.read")),
):
    feed = _feed_or_400(wizard_type)
    return {
        "fields": [f.to_dict() for f in sorted(feed.get_fields(), key=lambda f: f.display_order)],
        "launchArguments": [a.to_dict() for a in feed.get_launch_arguments()],
    }


@router.get("/{wizard_type}/template")
async def download_template(
    wizard_type: str,
    _user: CurrentUser = Depends(require_permission("wizards.read")),
):
    """Header row of the feed's fields, in display order."""
    feed = _feed_or_400(wizard_type)
    fields = sorted(feed.get_fields(), key=lambda f: f.display_order)
    body = generate_template_csv([f.name for f in fields])
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{wizard_type}_template.csv"'},
    )
