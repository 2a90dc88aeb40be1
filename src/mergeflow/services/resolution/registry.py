"""Validation provider registry.

Catalog of validation signals keyed by provider id. Fail-closed on unknown
providers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mergeflow.services.resolution.models import ValidationSignal

logger = logging.getLogger(__name__)


class ProviderNotRegisteredError(Exception):
    """Raised when a requested provider is not in the registry."""

    def __init__(self, provider_id: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"Validation provider not registered: {provider_id}")


class DuplicateProviderError(Exception):
    """Raised when attempting to register a provider that already exists."""

    def __init__(self, provider_id: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"Validation provider already registered: {provider_id}")


@dataclass
class ValidationSignalRegistry:
    """Registry of validation signals, looked up by provider_id."""

    _providers: dict[str, ValidationSignal] = field(default_factory=dict)

    def register(self, signal: ValidationSignal) -> None:
        """Register a validation signal.

        Raises:
            DuplicateProviderError: If the provider id is already registered.
        """
        pid = signal.provider_id
        if pid in self._providers:
            raise DuplicateProviderError(pid)
        self._providers[pid] = signal
        logger.debug("Registered validation provider: %s", pid)

    def get(self, provider_id: str) -> ValidationSignal:
        """Look up a provider by id.

        Raises:
            ProviderNotRegisteredError: If provider_id is not registered.
        """
        signal = self._providers.get(provider_id)
        if signal is None:
            raise ProviderNotRegisteredError(provider_id)
        return signal

    @property
    def provider_ids(self) -> frozenset[str]:
        """Return the set of registered provider ids."""
        return frozenset(self._providers.keys())
