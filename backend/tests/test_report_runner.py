"""Report run orchestration tests."""

import copy
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from sirius.middleware.exceptions import WizardTypeError
from sirius.services.report_runner import run_report, running_percent, should_poll
from sirius.wizards.report import ReportProgress

PRIOR = {
    "reportMeta": {"generatedAt": "2024-01-01T00:00:00", "recordCount": 7, "columns": []},
    "reportDataId": "run-old",
    "retention": "7days",
}


class StoredWizardSessions:
    """Session factory over a single wizard row, as seen by other sessions."""

    def __init__(self, wizard, fail_from_call: int | None = None):
        self.wizard = wizard
        self.calls = 0
        self.fail_from_call = fail_from_call
        self.runs: list[dict] = []

    def __call__(self):
        self.calls += 1
        if self.fail_from_call is not None and self.calls >= self.fail_from_call:
            raise ConnectionError("database went away")
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, _stmt):
        result = MagicMock()
        result.scalar_one_or_none.return_value = self.wizard
        return result

    async def commit(self):
        self.runs.append(copy.deepcopy(self.wizard.data["progress"]["run"]))


def reload_from(mock_db, stored):
    """Make db.refresh(wizard) load the stored row's current data."""

    async def refresh(wizard, **kwargs):
        wizard.data = copy.deepcopy(stored.data)

    mock_db.refresh.side_effect = refresh


@pytest.mark.unit
class TestRunReport:

    async def test_success_replaces_rows_and_marks_completed(self, mock_db, make_result, make_wizard):
        wizard = make_wizard(data=copy.deepcopy(PRIOR))
        sessions = StoredWizardSessions(make_wizard(data=copy.deepcopy(PRIOR)))
        reload_from(mock_db, sessions.wizard)
        rows = [
            SimpleNamespace(workerId="w1", siriusId=1, ssn="111-11-1111", displayName="Ann"),
            SimpleNamespace(workerId="w2", siriusId=2, ssn="111-11-1111", displayName="Bob"),
        ]
        mock_db.execute.side_effect = [make_result(rows=rows), make_result()]

        await run_report(mock_db, wizard, batch_size=100, session_factory=sessions)

        run = wizard.data["progress"]["run"]
        assert run["status"] == "completed"
        assert run["percentComplete"] == 100
        assert "error" not in run
        assert wizard.data["reportMeta"]["recordCount"] == 1
        assert wizard.data["reportMeta"]["primaryKeyField"] == "ssn"
        assert wizard.data["reportDataId"] != "run-old"
        assert wizard.data["retention"] == "7days"
        assert run["startedAt"] == sessions.runs[0]["startedAt"]
        mock_db.refresh.assert_awaited_once_with(wizard, with_for_update=True)

        stored_rows = mock_db.add_all.call_args.args[0]
        assert [r.pk for r in stored_rows] == ["111-11-1111"]
        assert all(r.run_id == wizard.data["reportDataId"] for r in stored_rows)

        assert sessions.runs[0]["status"] == "in_progress"
        assert sessions.runs[0]["percentComplete"] == 0
        assert all(r["percentComplete"] >= 1 for r in sessions.runs[1:])

    async def test_fields_changed_during_run_survive(self, mock_db, make_result, make_wizard):
        wizard = make_wizard(data=copy.deepcopy(PRIOR))
        stored = make_wizard(data=copy.deepcopy(PRIOR))
        sessions = StoredWizardSessions(stored)
        reload_from(mock_db, stored)
        results = iter([
            make_result(rows=[SimpleNamespace(workerId="w1", siriusId=1, ssn="1", displayName="A")]),
            make_result(),
        ])

        async def execute(_stmt):
            # another request patches the row while the report query runs
            stored.data["retention"] = "always"
            stored.data["config"] = {"filters": {"employerId": "e-9"}}
            return next(results)

        mock_db.execute.side_effect = execute

        await run_report(mock_db, wizard, session_factory=sessions)

        assert wizard.data["retention"] == "always"
        assert wizard.data["config"] == {"filters": {"employerId": "e-9"}}
        assert wizard.data["progress"]["run"]["status"] == "completed"

    async def test_failure_keeps_prior_results(self, mock_db, make_wizard):
        wizard = make_wizard(data=copy.deepcopy(PRIOR))
        stored = make_wizard(data=copy.deepcopy(PRIOR))
        sessions = StoredWizardSessions(stored)
        mock_db.execute.side_effect = RuntimeError("query timed out")

        with pytest.raises(RuntimeError, match="query timed out"):
            await run_report(mock_db, wizard, session_factory=sessions)

        run = stored.data["progress"]["run"]
        assert run["status"] == "failed"
        assert run["error"] == "query timed out"
        assert stored.data["reportDataId"] == "run-old"
        assert stored.data["reportMeta"] == PRIOR["reportMeta"]
        assert wizard.data == PRIOR
        mock_db.add_all.assert_not_called()

    async def test_failure_write_error_does_not_mask_original(self, mock_db, make_wizard):
        wizard = make_wizard(data={})
        sessions = StoredWizardSessions(make_wizard(data={}), fail_from_call=2)
        mock_db.execute.side_effect = RuntimeError("query timed out")

        with pytest.raises(RuntimeError, match="query timed out"):
            await run_report(mock_db, wizard, session_factory=sessions)

    async def test_feed_wizard_rejected(self, mock_db, make_wizard):
        wizard = make_wizard(type="gbhet_legal_workers_monthly")
        with pytest.raises(WizardTypeError):
            await run_report(mock_db, wizard, session_factory=AsyncMock())


@pytest.mark.unit
class TestPolling:

    def test_polls_only_while_running_with_progress(self):
        assert should_poll({"status": "in_progress", "percentComplete": 5})
        assert not should_poll({"status": "in_progress", "percentComplete": 0})
        assert not should_poll({"status": "completed", "percentComplete": 100})
        assert not should_poll({"status": "failed"})
        assert not should_poll(None)

    def test_running_percent_bounds(self):
        assert running_percent(ReportProgress(0, 10)) == 1
        assert running_percent(ReportProgress(5, 10)) == 50
        assert running_percent(ReportProgress(10, 10)) == 99
        assert running_percent(ReportProgress(0, 0)) == 99
