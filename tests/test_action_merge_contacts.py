"""Tests for the workflow action entry point."""

from __future__ import annotations

from typing import Any

import pytest

from mergeflow.actions.merge_contacts import ActionEvent, build_output, main
from mergeflow.config import ConfigError
from mergeflow.services.resolution.finder import CandidateFinder
from mergeflow.services.resolution.merger import MergeExecutor
from mergeflow.services.resolution.models import RawCandidate
from mergeflow.services.resolution.scorer import QualityScorer
from mergeflow.services.resolution.service import DuplicateResolutionService
from tests.fixtures.resolution import (
    PHONE,
    FakeRecordStore,
    FakeValidationSignal,
    make_raw,
    transport_error,
    ts,
)


def _service(
    records: list[RawCandidate] | None = None,
    *,
    search_error: Exception | None = None,
) -> tuple[DuplicateResolutionService, FakeRecordStore]:
    store = FakeRecordStore(records, search_error=search_error)
    signal = FakeValidationSignal({"a@example.com": 0.9, "b@example.com": 0.2})
    service = DuplicateResolutionService(
        finder=CandidateFinder(store),
        scorer=QualityScorer(signal, max_workers=2),
        merger=MergeExecutor(store),
    )
    return service, store


RECORDS = [
    make_raw("101", "b@example.com", ts(2020, 1, 1)),
    make_raw("102", "a@example.com", ts(2022, 1, 1)),
]


class TestActionEvent:
    def test_fields_take_precedence(self) -> None:
        event = ActionEvent.model_validate(
            {"fields": {"phone": "1"}, "inputFields": {"phone": "2"}, "callbackId": "cb"}
        )
        assert event.get_field("phone") == "1"
        assert event.callback_id == "cb"

    def test_falls_back_to_input_fields(self) -> None:
        event = ActionEvent.model_validate({"inputFields": {"phone": "2"}})
        assert event.get_field("phone") == "2"
        assert event.get_field("email") is None


class TestMain:
    def test_merges_and_calls_back(self) -> None:
        service, store = _service(RECORDS)
        received: list[dict[str, Any]] = []

        output = main(
            {"inputFields": {"phone": PHONE}, "callbackId": "cb-1"},
            received.append,
            service=service,
        )

        assert received == [output]
        assert output["outputFields"] == {
            "status": "DONE",
            "mergedCount": 1,
            "failedCount": 0,
            "targetId": "102",
            "error": None,
        }
        assert store.merge_calls == [("101", "102")]

    def test_missing_key_is_noop(self) -> None:
        service, store = _service(RECORDS)

        output = main({"fields": {}}, service=service)

        assert output["outputFields"]["status"] == "DONE"
        assert output["outputFields"]["mergedCount"] == 0
        assert store.search_calls == []

    def test_lookup_failure_reports_aborted(self) -> None:
        service, store = _service(search_error=transport_error())

        output = main({"fields": {"phone": PHONE}}, service=service)

        assert output["outputFields"]["status"] == "ABORTED"
        assert output["outputFields"]["error"]
        assert store.merge_calls == []

    def test_custom_dedup_property(self) -> None:
        service, store = _service(RECORDS)

        main({"fields": {"mobile": PHONE}}, service=service, dedup_property="mobile")

        assert store.search_calls == [(PHONE, "phone")]

    def test_without_service_requires_config(self) -> None:
        with pytest.raises(ConfigError):
            main({"fields": {"phone": PHONE}})


class TestBuildOutput:
    def test_no_target_when_skipped(self) -> None:
        service, _ = _service([RECORDS[0]])
        output = build_output(service.run(PHONE))
        assert output["outputFields"]["targetId"] is None
