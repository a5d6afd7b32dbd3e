"""Completion evaluator tests."""

import pytest

from sirius.wizards.feed import FeedField
from sirius.wizards.steps import (
    StepContext,
    evaluate_always_complete,
    evaluate_map_complete,
    evaluate_run_complete,
    evaluate_upload_complete,
    evaluate_validate_complete,
    required_fields_for_mode,
)

FIELDS = [
    FeedField("ssn", "SSN", required=True),
    FeedField("firstName", "First Name", required_for_create=True),
    FeedField("employeeNumber", "Employee Number", required_for_update=True),
    FeedField("birthDate", "Birth Date"),
]


def ctx(data, files=None, fields=None):
    return StepContext(wizard={"data": data}, files=files, fields=fields)


@pytest.mark.unit
class TestUploadEvaluator:

    def test_requires_file_id_and_files(self):
        assert evaluate_upload_complete(ctx({"uploadedFileId": "f1"}, files=[{"id": "f1"}]))

    def test_file_id_without_files(self):
        assert not evaluate_upload_complete(ctx({"uploadedFileId": "f1"}, files=[]))
        assert not evaluate_upload_complete(ctx({"uploadedFileId": "f1"}, files=None))

    def test_files_without_file_id(self):
        assert not evaluate_upload_complete(ctx({}, files=[{"id": "f1"}]))

    def test_missing_wizard(self):
        assert not evaluate_upload_complete(StepContext(wizard=None, files=[{"id": "f1"}]))


@pytest.mark.unit
class TestMapEvaluator:

    def test_create_mode_needs_create_fields(self):
        data = {"mode": "create", "columnMapping": {"0": "ssn"}}
        assert not evaluate_map_complete(ctx(data, fields=FIELDS))

        data["columnMapping"]["1"] = "firstName"
        assert evaluate_map_complete(ctx(data, fields=FIELDS))

    def test_update_mode_needs_update_fields(self):
        data = {"mode": "update", "columnMapping": {"0": "ssn", "1": "firstName"}}
        assert not evaluate_map_complete(ctx(data, fields=FIELDS))

        data["columnMapping"]["2"] = "employeeNumber"
        assert evaluate_map_complete(ctx(data, fields=FIELDS))

    def test_mode_defaults_to_create(self):
        data = {"columnMapping": {"0": "ssn", "1": "firstName"}}
        assert evaluate_map_complete(ctx(data, fields=FIELDS))

    def test_unmapped_marker_does_not_count(self):
        data = {"columnMapping": {"0": "ssn", "1": "_unmapped"}}
        assert not evaluate_map_complete(ctx(data, fields=FIELDS))

    def test_no_required_fields_is_complete(self):
        optional = [FeedField("birthDate", "Birth Date")]
        assert evaluate_map_complete(ctx({}, fields=optional))
        assert evaluate_map_complete(ctx({}, fields=None))

    def test_missing_or_malformed_mapping(self):
        assert not evaluate_map_complete(ctx({}, fields=FIELDS))
        assert not evaluate_map_complete(ctx({"columnMapping": ["ssn"]}, fields=FIELDS))
        assert not evaluate_map_complete(ctx({"columnMapping": {"0": ["ssn"]}}, fields=FIELDS))

    def test_dict_shaped_fields(self):
        fields = [{"id": "ssn", "required": True}]
        assert evaluate_map_complete(ctx({"columnMapping": {"3": "ssn"}}, fields=fields))

    def test_required_fields_for_mode(self):
        ids = [f.id for f in required_fields_for_mode(FIELDS, "create")]
        assert ids == ["ssn", "firstName"]


@pytest.mark.unit
class TestValidateEvaluator:

    def test_zero_invalid_rows(self):
        assert evaluate_validate_complete(ctx({"validationResults": {"invalidRows": 0}}))

    def test_invalid_rows_present(self):
        assert not evaluate_validate_complete(ctx({"validationResults": {"invalidRows": 3}}))

    @pytest.mark.parametrize("results", [None, {}, {"invalidRows": "0"}, {"invalidRows": False}, "done"])
    def test_absent_or_malformed(self, results):
        assert not evaluate_validate_complete(ctx({"validationResults": results}))


@pytest.mark.unit
class TestRunEvaluator:

    def test_completed(self):
        assert evaluate_run_complete(ctx({"progress": {"run": {"status": "completed"}}}))

    @pytest.mark.parametrize("status", ["in_progress", "failed", "pending", None])
    def test_other_statuses(self, status):
        assert not evaluate_run_complete(ctx({"progress": {"run": {"status": status}}}))

    def test_missing_progress(self):
        assert not evaluate_run_complete(ctx({}))
        assert not evaluate_run_complete(ctx({"progress": "bad"}))

    def test_reads_orm_like_objects(self, make_wizard):
        wizard = make_wizard(data={"progress": {"run": {"status": "completed"}}})
        assert evaluate_run_complete(StepContext(wizard=wizard))

    def test_non_dict_data(self):
        assert not evaluate_run_complete(StepContext(wizard={"data": "oops"}))


@pytest.mark.unit
def test_always_complete():
    assert evaluate_always_complete(StepContext())
