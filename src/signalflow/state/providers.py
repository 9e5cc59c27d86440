# src/signalflow/state/providers.py
"""External prediction providers consumed by provider-backed nodes.

A provider wraps an out-of-process model (HTTP service, local model
server). The registry is explicitly constructed and passed to the nodes
that need it; there is no process-wide default.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Provider(Protocol):
    """Prediction provider contract.

    predict() returns a mapping of prediction fields, or None when the
    provider has nothing to say. It may raise ProviderUnavailableError.
    """

    provider_id: str

    def is_available(self) -> bool: ...

    def predict(self, provider_input: Mapping[str, Any]) -> Mapping[str, Any] | None: ...


@dataclass(frozen=True, slots=True)
class _Registration:
    provider: Provider
    priority: int
    order: int


class ProviderRegistry:
    """Priority-ordered set of providers.

    best_provider() returns the highest-priority provider that reports
    itself available; ties go to the earlier registration.
    """

    def __init__(self) -> None:
        self._registrations: dict[str, _Registration] = {}

    def register(self, provider: Provider, *, priority: int = 0) -> None:
        if provider.provider_id in self._registrations:
            raise ValueError(f"Provider already registered: {provider.provider_id}")
        self._registrations[provider.provider_id] = _Registration(provider, priority, len(self._registrations))

    def unregister(self, provider_id: str) -> None:
        del self._registrations[provider_id]

    def get(self, provider_id: str) -> Provider | None:
        registration = self._registrations.get(provider_id)
        return registration.provider if registration else None

    def __len__(self) -> int:
        return len(self._registrations)

    def best_provider(self) -> Provider | None:
        ranked = sorted(self._registrations.values(), key=lambda r: (-r.priority, r.order))
        for registration in ranked:
            if registration.provider.is_available():
                logger.debug("Selected provider %s (priority %d)", registration.provider.provider_id, registration.priority)
                return registration.provider
            logger.debug("Provider %s is not available", registration.provider.provider_id)
        return None
