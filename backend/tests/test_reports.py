"""Report type tests: record building, config resolution, progress reporting."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from sirius.wizards.report import ReportProgress
from sirius.wizards.types.report_btu_workers_invalid_cardcheck import (
    BARGAINING_UNIT_MISMATCH,
    NO_SIGNED_CARDCHECK,
    ReportBtuWorkersInvalidCardcheck,
    classify_worker,
)
from sirius.wizards.types.report_gbhet_legal_compliance import (
    ComplianceConfigResolver,
    ReportGbhetLegalCompliance,
    add_months,
)
from sirius.wizards.types.report_workers_duplicate_ssn import (
    ReportWorkersDuplicateSsn,
    group_duplicate_ssns,
    normalize_ssn,
)


def config_row(scope, benefit_id, employer_id=None, offset=None):
    settings = {"benefitId": benefit_id}
    if offset is not None:
        settings["billingOffsetMonths"] = offset
    return SimpleNamespace(scope=scope, employer_id=employer_id, settings=settings)


@pytest.mark.unit
class TestDuplicateSsn:

    def test_groups_shared_ssns(self):
        workers = [
            {"workerId": "w1", "siriusId": 1, "ssn": "111-11-1111", "displayName": "Ann"},
            {"workerId": "w2", "siriusId": 2, "ssn": "111111111", "displayName": "Bob"},
            {"workerId": "w3", "siriusId": 3, "ssn": "222-22-2222", "displayName": "Cy"},
        ]
        records = group_duplicate_ssns(workers)
        assert records == [{
            "ssn": "111-11-1111",
            "workerCount": 2,
            "workerIds": ["w1", "w2"],
            "siriusIds": "1, 2",
            "displayNames": "Ann; Bob",
        }]

    def test_unique_ssn_never_reported(self):
        records = group_duplicate_ssns([
            {"workerId": "w1", "ssn": "111-11-1111"},
            {"workerId": "w2", "ssn": "111-11-1111"},
            {"workerId": "w3", "ssn": "222-22-2222"},
        ])
        assert all(r["ssn"] != "222-22-2222" for r in records)
        assert records[0]["workerCount"] == 2

    def test_blank_ssns_ignored(self):
        assert group_duplicate_ssns([{"ssn": None}, {"ssn": "  "}, {"ssn": ""}]) == []

    def test_normalize(self):
        assert normalize_ssn("123 45 6789") == "123-45-6789"
        assert normalize_ssn("12-345") == "12-345"
        assert normalize_ssn(None) is None

    async def test_fetch_reports_progress(self, mock_db, make_result):
        rows = [
            SimpleNamespace(workerId=f"w{i}", siriusId=i, ssn="111-11-1111" if i < 2 else f"00{i}", displayName=None)
            for i in range(5)
        ]
        mock_db.execute.return_value = make_result(rows=rows)
        on_progress = AsyncMock()

        records = await ReportWorkersDuplicateSsn().fetch_records(mock_db, {}, batch_size=2, on_progress=on_progress)

        assert [r["ssn"] for r in records] == ["111-11-1111"]
        assert records[0]["displayNames"] == "Unknown; Unknown"
        calls = [c.args[0] for c in on_progress.await_args_list]
        assert calls == [ReportProgress(2, 5), ReportProgress(4, 5), ReportProgress(5, 5)]


@pytest.mark.unit
class TestComplianceConfig:

    def test_employer_override_wins(self):
        resolver = ComplianceConfigResolver([
            config_row("global", "b-global"),
            config_row("employer", "b-override", employer_id="E"),
        ])
        assert resolver.settings_for("E").benefit_id == "b-override"
        assert resolver.settings_for("OTHER").benefit_id == "b-global"

    def test_no_applicable_config_skips(self):
        resolver = ComplianceConfigResolver([config_row("employer", "b1", employer_id="E")])
        assert resolver.settings_for("OTHER") is None

    def test_lag_defaults_to_three_months(self):
        resolver = ComplianceConfigResolver([config_row("global", "b1")])
        assert resolver.settings_for("E").lag_months == 3

    def test_lag_uses_absolute_offset(self):
        resolver = ComplianceConfigResolver([config_row("global", "b1", offset=-2)])
        assert resolver.settings_for("E").lag_months == 2

    def test_add_months_rolls_over_year(self):
        assert add_months(2024, 1, 3) == (2024, 4)
        assert add_months(2024, 11, 3) == (2025, 2)
        assert add_months(2024, 12, 0) == (2024, 12)


@pytest.mark.unit
class TestComplianceReport:

    async def test_no_configuration_is_empty_result(self, mock_db, make_result):
        mock_db.execute.return_value = make_result(scalars=[])
        on_progress = AsyncMock()

        records = await ReportGbhetLegalCompliance().fetch_records(mock_db, {}, on_progress=on_progress)

        assert records == []
        on_progress.assert_awaited_once_with(ReportProgress(0, 0))

    async def test_missing_benefits_reported(self, mock_db, make_result):
        configs = [
            config_row("global", "b-global", offset=-3),
            config_row("employer", "b-e2", employer_id="E2", offset=-2),
        ]

        def hours(worker, employer, year, month, total):
            return SimpleNamespace(worker_id=worker, employer_id=employer, year=year, month=month, total_hours=total)

        def wmb(worker, employer, benefit, year, month):
            return SimpleNamespace(worker_id=worker, employer_id=employer, benefit_id=benefit, year=year, month=month)

        mock_db.execute.side_effect = [
            make_result(scalars=configs),
            make_result(rows=[
                hours("W1", "E1", 2024, 1, 90),    # granted in April
                hours("W2", "E1", 2024, 11, 120),  # missing Feb 2025
                hours("W3", "E2", 2024, 1, 80),    # override: granted in March
                hours("W4", "E2", 2024, 2, 85),    # only the global benefit granted
            ]),
            make_result(rows=[("b-global", "Legal"), ("b-e2", "Legal E2")]),
            make_result(rows=[
                SimpleNamespace(id=w, sirius_id=i, display_name=f"Worker {i}")
                for i, w in enumerate(["W1", "W2", "W3", "W4"], start=1)
            ]),
            make_result(rows=[("E1", "Acme"), ("E2", "Globex")]),
            make_result(rows=[
                wmb("W1", "E1", "b-global", 2024, 4),
                wmb("W3", "E2", "b-e2", 2024, 3),
                wmb("W4", "E2", "b-global", 2024, 5),
            ]),
        ]
        on_progress = AsyncMock()

        records = await ReportGbhetLegalCompliance().fetch_records(mock_db, {}, on_progress=on_progress)

        assert [(r["workerId"], r["expectedBenefitMonth"], r["benefitName"]) for r in records] == [
            ("W2", "February 2025", "Legal"),
            ("W4", "April 2024", "Legal E2"),
        ]
        assert records[0]["recordKey"] == "W2-E1-2024-11"
        assert records[0]["workMonth"] == "November 2024"
        assert records[0]["employerName"] == "Acme"
        on_progress.assert_awaited_with(ReportProgress(4, 4))

    def test_primary_key(self):
        assert ReportGbhetLegalCompliance().get_primary_key_field() == "recordKey"


@pytest.mark.unit
class TestBtuCardcheckReport:

    def test_classify(self):
        assert classify_worker("bu1", []) == NO_SIGNED_CARDCHECK
        assert classify_worker("bu1", ["bu2"]) == BARGAINING_UNIT_MISMATCH
        assert classify_worker("bu1", ["bu2", "bu1"]) is None

    async def test_requires_cardcheck_definition(self, mock_db):
        on_progress = AsyncMock()
        records = await ReportBtuWorkersInvalidCardcheck().fetch_records(
            mock_db, {"filters": {}}, on_progress=on_progress
        )
        assert records == []
        mock_db.execute.assert_not_awaited()
        on_progress.assert_awaited_once_with(ReportProgress(0, 0))

    async def test_flags_workers(self, mock_db, make_result):
        def row(worker, worker_bu, cardcheck=None, cardcheck_bu=None):
            return SimpleNamespace(
                worker_id=worker, sirius_id=worker[-1], display_name=f"Name {worker}",
                worker_bu=worker_bu, employer_name=None,
                cardcheck_id=cardcheck, cardcheck_bu=cardcheck_bu,
            )

        mock_db.execute.side_effect = [
            make_result(rows=[
                row("w1", "bu1"),                   # nothing signed
                row("w2", "bu1", "c2", "bu2"),      # wrong unit
                row("w3", "bu1", "c3", "bu2"),
                row("w3", "bu1", "c4", "bu1"),      # one matching card is enough
            ]),
            make_result(rows=[("bu1", "Teachers"), ("bu2", "Paraprofessionals")]),
        ]

        records = await ReportBtuWorkersInvalidCardcheck().fetch_records(
            mock_db, {"filters": {"cardcheckDefinitionId": "def-1"}}
        )

        assert [(r["workerId"], r["issueType"]) for r in records] == [
            ("w1", NO_SIGNED_CARDCHECK),
            ("w2", BARGAINING_UNIT_MISMATCH),
        ]
        assert records[0]["cardcheckBargainingUnit"] == "N/A"
        assert records[1]["cardcheckBargainingUnit"] == "Paraprofessionals"
        assert records[1]["employerName"] == "No Home Employer"
