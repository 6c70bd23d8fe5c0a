"""Adapter cache keyed by configuration identity."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from dramaforge.config import get_logger
from dramaforge.models.ai_config import AIServiceConfig
from dramaforge.providers.base import HTTPProvider

if TYPE_CHECKING:
    from dramaforge.engine.runner import BackgroundRunner

logger = get_logger(__name__)

P = TypeVar("P", bound=HTTPProvider)


class ProviderClientCache:
    """Reuse adapters across back-to-back jobs against the same configuration.

    Entries are keyed by ``(kind, config id, model)`` and remember the
    configuration fingerprint they were built from; a changed fingerprint
    rebuilds the adapter. A replaced adapter may still serve jobs already
    running, so with a runner it is closed once those jobs finish. Without a
    runner, or outside an event loop, it is kept until ``aclose``.
    """

    def __init__(self, runner: BackgroundRunner | None = None) -> None:
        self.runner = runner
        self._entries: dict[tuple[str, int, str], tuple[str, HTTPProvider]] = {}
        self._retired: list[HTTPProvider] = []

    def get_or_create(
        self,
        kind: str,
        config: AIServiceConfig,
        model: str | None,
        factory: Callable[[], P],
    ) -> P:
        key = (kind, config.id, model or "")
        fingerprint = config.fingerprint()
        cached = self._entries.get(key)
        if cached is not None and cached[0] == fingerprint:
            logger.debug("Provider cache hit", kind=kind, config_id=config.id)
            return cached[1]  # type: ignore[return-value]

        if cached is not None:
            self._retire(cached[1])
        logger.debug("Provider cache miss", kind=kind, config_id=config.id)
        provider = factory()
        self._entries[key] = (fingerprint, provider)
        return provider

    def invalidate(self, config_id: int | None = None) -> int:
        """Drop cached adapters for one configuration, or all of them.

        Returns:
            Number of entries dropped.
        """
        keys = [k for k in self._entries if config_id is None or k[1] == config_id]
        for key in keys:
            self._retire(self._entries.pop(key)[1])
        if keys:
            logger.debug("Provider cache invalidated", config_id=config_id, dropped=len(keys))
        return len(keys)

    def _retire(self, provider: HTTPProvider) -> None:
        if self.runner is None:
            self._retired.append(provider)
            return
        in_flight = self.runner.snapshot()
        try:
            self.runner.submit(
                self._close_after(provider, in_flight), name="close-retired-adapter"
            )
        except RuntimeError:
            # No running loop
            self._retired.append(provider)

    async def _close_after(self, provider: HTTPProvider, in_flight: list[Any]) -> None:
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)
        await provider.aclose()
        logger.debug("Retired provider closed", provider=provider.provider_name)

    @property
    def retired(self) -> int:
        """Replaced adapters waiting for ``aclose``."""
        return len(self._retired)

    def __len__(self) -> int:
        return len(self._entries)

    async def aclose(self) -> None:
        """Close every adapter still held, cached or retired."""
        providers = self._retired + [entry[1] for entry in self._entries.values()]
        self._entries.clear()
        self._retired.clear()
        for provider in providers:
            await provider.aclose()
