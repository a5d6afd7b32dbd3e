"""Wizard store and retention cleanup tests."""

from datetime import datetime

import pytest

from sirius.auth.deps import CurrentUser
from sirius.middleware.exceptions import BusinessLogicError, WizardTypeError
from sirius.models.activity_log import ActivityLog
from sirius.models.wizard import WizardEmployerMonthly
from sirius.services import wizard_store
from sirius.services.report_cleanup import delete_expired_reports

USER = CurrentUser(id="user-1", name="Test User", permissions=["admin"])


def added(mock_db, cls):
    return [c.args[0] for c in mock_db.add.call_args_list if isinstance(c.args[0], cls)]


@pytest.mark.unit
class TestWizardStore:

    async def test_create_starts_on_first_step(self, mock_db):
        wizard = await wizard_store.create_wizard(
            mock_db, USER, wizard_type="gbhet_legal_workers_monthly", data={"mode": "update"}
        )
        assert wizard.current_step == "upload"
        assert wizard.data == {"progress": {"upload": {"status": "in_progress"}}, "mode": "update"}
        assert added(mock_db, ActivityLog)[0].action == "created"

    async def test_create_unknown_type(self, mock_db):
        with pytest.raises(WizardTypeError):
            await wizard_store.create_wizard(mock_db, USER, wizard_type="nope")

    async def test_update_merges_data_and_checks_status(self, mock_db, make_wizard):
        wizard = make_wizard(data={"config": {"filters": {"a": 1}}, "retention": "7days"})
        await wizard_store.update_wizard(
            mock_db, USER, wizard, data={"config": {"filters": {"b": 2}}, "retention": None}
        )
        assert wizard.data == {"config": {"filters": {"a": 1, "b": 2}}}

        with pytest.raises(BusinessLogicError):
            await wizard_store.update_wizard(mock_db, USER, wizard, status="ready")

    async def test_monthly_wizard_is_unique_per_period(self, mock_db, make_result, make_wizard):
        mock_db.execute.side_effect = [
            make_result(scalar="emp-1"),
            make_result(scalars=[make_wizard(type="gbhet_legal_workers_monthly")]),
        ]
        with pytest.raises(BusinessLogicError) as exc:
            await wizard_store.create_monthly_wizard(mock_db, USER, employer_id="emp-1", year=2024, month=5)
        assert exc.value.error_code == "DUPLICATE_MONTHLY_WIZARD"

    async def test_monthly_wizard_links_period(self, mock_db, make_result):
        mock_db.execute.side_effect = [make_result(scalar="emp-1"), make_result(scalars=[])]
        wizard = await wizard_store.create_monthly_wizard(
            mock_db, USER, employer_id="emp-1", year=2024, month=5
        )
        assert wizard.entity_id == "emp-1"
        assert wizard.data["period"] == {"year": 2024, "month": 5}
        link = added(mock_db, WizardEmployerMonthly)[0]
        assert (link.employer_id, link.year, link.month) == ("emp-1", 2024, 5)

    async def test_corrections_need_completed_monthly(self, mock_db, make_result, make_wizard):
        draft = make_wizard(type="gbhet_legal_workers_monthly", status="in_progress")
        mock_db.execute.side_effect = [make_result(scalar="emp-1"), make_result(scalars=[draft])]
        with pytest.raises(BusinessLogicError):
            await wizard_store.create_corrections_wizard(
                mock_db, USER, employer_id="emp-1", year=2024, month=5
            )

        done = make_wizard(type="gbhet_legal_workers_monthly", status="completed")
        mock_db.execute.side_effect = [make_result(scalar="emp-1"), make_result(scalars=[done])]
        wizard = await wizard_store.create_corrections_wizard(
            mock_db, USER, employer_id="emp-1", year=2024, month=5
        )
        assert wizard.type == "gbhet_legal_workers_corrections"

    async def test_invalid_month(self, mock_db):
        with pytest.raises(BusinessLogicError):
            await wizard_store.create_monthly_wizard(mock_db, USER, employer_id="e", year=2024, month=13)


@pytest.mark.unit
class TestReportCleanup:

    async def test_prunes_by_retention(self, mock_db, make_result):
        mock_db.execute.side_effect = [
            make_result(rows=[
                ("w-keep", "report_workers_duplicate_ssn", {"retention": "always"}),
                ("w-day", "report_workers_duplicate_ssn", {"retention": "1day"}),
                ("w-default", "report_gbhet_legal_compliance", {}),
            ]),
            make_result(scalar=4),   # w-day count
            make_result(),           # w-day delete
            make_result(scalar=0),   # w-default count
        ]

        summary = await delete_expired_reports(mock_db, "live", now=datetime(2024, 6, 1))

        assert summary["rowsDeleted"] == 4
        assert summary["wizardsAffected"] == 1
        assert summary["byRetention"] == {"1day": 4}
        assert mock_db.execute.await_count == 4

    async def test_test_mode_only_counts(self, mock_db, make_result):
        mock_db.execute.side_effect = [
            make_result(rows=[("w-day", "report_workers_duplicate_ssn", {"retention": "1day"})]),
            make_result(scalar=2),
        ]

        summary = await delete_expired_reports(mock_db, "test")

        assert summary["rowsDeleted"] == 2
        assert mock_db.execute.await_count == 2

    async def test_unknown_retention_tag_keeps_rows(self, mock_db, make_result):
        mock_db.execute.side_effect = [
            make_result(rows=[("w-odd", "report_workers_duplicate_ssn", {"retention": "forever"})]),
        ]

        summary = await delete_expired_reports(mock_db, "live", now=datetime(2024, 6, 1))

        assert summary["rowsDeleted"] == 0
        assert summary["wizardsSkipped"] == 1
        assert mock_db.execute.await_count == 1

    async def test_one_failing_wizard_does_not_stop_the_pass(self, mock_db, make_result):
        mock_db.execute.side_effect = [
            make_result(rows=[
                ("w-bad", "report_workers_duplicate_ssn", {"retention": "1day"}),
                ("w-ok", "report_workers_duplicate_ssn", {"retention": "1day"}),
            ]),
            RuntimeError("deadlock detected"),  # w-bad count
            make_result(scalar=3),               # w-ok count
            make_result(),                       # w-ok delete
        ]

        summary = await delete_expired_reports(mock_db, "live", now=datetime(2024, 6, 1))

        assert summary["wizardsFailed"] == 1
        assert summary["wizardsAffected"] == 1
        assert summary["rowsDeleted"] == 3
        assert mock_db.begin_nested.call_count == 2

    async def test_unknown_mode(self, mock_db):
        with pytest.raises(ValueError):
            await delete_expired_reports(mock_db, "dry-run")