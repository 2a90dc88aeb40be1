"""Tests for the mergeflow CLI."""

from __future__ import annotations

import json

import pytest

from mergeflow import cli
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

RECORDS = [
    make_raw("1", "old@example.com", ts(2019, 1, 1)),
    make_raw("2", "new@example.com", ts(2023, 1, 1)),
]


def _install_service(
    monkeypatch: pytest.MonkeyPatch,
    records: list[RawCandidate] | None = None,
    *,
    search_error: Exception | None = None,
) -> FakeRecordStore:
    store = FakeRecordStore(records, search_error=search_error)
    signal = FakeValidationSignal({"old@example.com": 0.5, "new@example.com": 0.5})

    def factory(config: object) -> DuplicateResolutionService:
        return DuplicateResolutionService(
            finder=CandidateFinder(store),
            scorer=QualityScorer(signal),
            merger=MergeExecutor(store),
        )

    monkeypatch.setattr(cli, "create_default_resolution_service", factory)
    return store


class TestResolveCommand:
    def test_done_exit_zero(
        self,
        base_env: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        store = _install_service(monkeypatch, RECORDS)

        exit_code = cli.main(["resolve", "--key", PHONE])

        assert exit_code == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["state"] == "DONE"
        assert summary["target_id"] == "1"
        assert summary["merged_count"] == 1
        assert store.merge_calls == [("2", "1")]

    def test_dry_run_does_not_merge(
        self,
        base_env: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        store = _install_service(monkeypatch, RECORDS)

        exit_code = cli.main(["resolve", "--key", PHONE, "--dry-run"])

        assert exit_code == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["skipped_reason"] == "dry run"
        assert summary["ranked_ids"] == ["1", "2"]
        assert store.merge_calls == []

    def test_aborted_exit_two(
        self,
        base_env: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        _install_service(monkeypatch, search_error=transport_error())

        exit_code = cli.main(["resolve", "--key", PHONE])

        assert exit_code == 2
        assert json.loads(capsys.readouterr().out)["state"] == "ABORTED"

    def test_config_error_exit_one(self, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code = cli.main(["resolve", "--key", PHONE])

        assert exit_code == 1
        error = json.loads(capsys.readouterr().out)["error"]
        assert error["code"] == "INVALID_CONFIG"

    def test_unexpected_error_exit_one(
        self,
        base_env: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        def boom(config: object) -> DuplicateResolutionService:
            raise RuntimeError("boom")

        monkeypatch.setattr(cli, "create_default_resolution_service", boom)

        exit_code = cli.main(["resolve", "--key", PHONE])

        assert exit_code == 1
        assert json.loads(capsys.readouterr().out)["error"]["code"] == "INTERNAL_ERROR"


class TestProvidersCommand:
    def test_lists_configured(
        self,
        base_env: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("MERGEFLOW_KICKBOX_API_KEY", "kb")

        assert cli.main(["providers"]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output == {"configured": ["abstractapi", "kickbox"], "selected": "abstractapi"}


class TestParser:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main([]) == 0
        assert "mergeflow" in capsys.readouterr().out
