"""Tests for the validation provider registry and default wiring."""

from __future__ import annotations

import pytest

from mergeflow.config import ResolutionConfig
from mergeflow.services.resolution.registry import (
    DuplicateProviderError,
    ProviderNotRegisteredError,
    ValidationSignalRegistry,
)
from mergeflow.services.resolution.service import build_validation_registry
from tests.fixtures.resolution import FakeValidationSignal


class TestRegistry:
    def test_register_and_get(self) -> None:
        registry = ValidationSignalRegistry()
        signal = FakeValidationSignal({}, provider_id="fake_a")

        registry.register(signal)

        assert registry.get("fake_a") is signal
        assert registry.provider_ids == frozenset({"fake_a"})

    def test_unknown_provider_fails_closed(self) -> None:
        with pytest.raises(ProviderNotRegisteredError) as exc_info:
            ValidationSignalRegistry().get("nope")
        assert exc_info.value.provider_id == "nope"

    def test_duplicate_rejected(self) -> None:
        registry = ValidationSignalRegistry()
        registry.register(FakeValidationSignal({}, provider_id="dup"))
        with pytest.raises(DuplicateProviderError):
            registry.register(FakeValidationSignal({}, provider_id="dup"))


class TestBuildValidationRegistry:
    def test_only_configured_providers_registered(self) -> None:
        config = ResolutionConfig(hubspot_access_token="t", abstractapi_key="k")
        assert build_validation_registry(config).provider_ids == frozenset({"abstractapi"})

    def test_both_providers(self) -> None:
        config = ResolutionConfig(
            hubspot_access_token="t",
            validation_provider="kickbox",
            abstractapi_key="k",
            kickbox_api_key="kb",
        )
        assert build_validation_registry(config).provider_ids == frozenset(
            {"abstractapi", "kickbox"}
        )
