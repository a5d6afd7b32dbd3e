"""Aggregate model imports for Alembic auto-detection."""

# Wizard engine
from sirius.models.wizard import Wizard, WizardEmployerMonthly, WizardReportData  # noqa: F401
from sirius.models.file import File  # noqa: F401
from sirius.models.activity_log import ActivityLog  # noqa: F401

# Business tables read by reports and feeds
from sirius.models.employer import Employer  # noqa: F401
from sirius.models.worker import Contact, Worker, WorkerHours  # noqa: F401
from sirius.models.trust import ChargePluginConfig, TrustBenefit, TrustWmb  # noqa: F401
from sirius.models.cardcheck import BargainingUnit, Cardcheck  # noqa: F401
