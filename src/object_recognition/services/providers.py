"""Selection of external recognition providers."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from object_recognition.domain.objects import ApiResult
from object_recognition.domain.quota import ApiStatus, ProviderConfig
from object_recognition.errors import ProviderTimeoutError, TransportError
from object_recognition.services.quota import QuotaTracker

_logger = logging.getLogger(__name__)


class ProviderClient(Protocol):
    """Interface for one external recognition API."""

    async def recognize(self, image: bytes, provider: ProviderConfig) -> ApiResult:
        """Return the provider's top prediction or raise TransportError."""


@dataclass
class ProviderSelector:
    """Picks a provider with quota left, calls it and charges the quota.

    Providers that fail during a call are not retried within that call.
    Quota is only charged after a well-formed response.
    """

    quota_tracker: QuotaTracker
    clients: dict[str, ProviderClient]
    timeout_seconds: float = 5.0
    max_attempts: int = 3

    async def recognize(self, image: bytes) -> ApiResult | None:
        """Return the first successful provider result, or None."""
        failed: set[str] = set()
        for _ in range(self.max_attempts):
            provider = await self.quota_tracker.get_next_available_api(exclude=failed)
            if provider is None:
                if not failed:
                    _logger.info("No provider has quota left")
                return None
            try:
                result = await self._call(provider, image)
            except (TransportError, httpx.HTTPError, ValueError) as exc:
                _logger.warning("Provider %s failed: %s", provider.name, exc)
                failed.add(provider.name)
                continue
            await self.quota_tracker.decrement_quota(provider.name)
            return result
        _logger.warning("Provider attempts exhausted: failed=%s", sorted(failed))
        return None

    async def _call(self, provider: ProviderConfig, image: bytes) -> ApiResult:
        client = self.clients.get(provider.name)
        if client is None:
            raise TransportError(f"No client registered for {provider.name}")
        try:
            result = await asyncio.wait_for(
                client.recognize(image, provider), timeout=self.timeout_seconds
            )
        except TimeoutError as exc:
            raise ProviderTimeoutError(
                f"{provider.name} timed out after {self.timeout_seconds}s"
            ) from exc
        if not isinstance(result, ApiResult) or not result.name.strip():
            raise TransportError(f"{provider.name} returned a malformed result")
        return result

    async def has_available_api(self) -> bool:
        return await self.quota_tracker.get_next_available_api() is not None

    async def get_api_status(self) -> list[ApiStatus]:
        return [
            ApiStatus(
                name=quota.provider,
                remaining_quota=min(quota.remaining_daily, quota.remaining_monthly),
                last_reset=quota.last_reset,
                is_available=quota.is_available,
            )
            for quota in await self.quota_tracker.get_all_quota_status()
        ]
