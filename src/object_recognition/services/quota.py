"""Quota accounting for external recognition providers."""

import asyncio
import logging
from collections.abc import Callable, Collection
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
from typing import Protocol

from object_recognition.domain.quota import ProviderConfig, QuotaState

_logger = logging.getLogger(__name__)


class QuotaLedger(Protocol):
    """Persistence interface for provider usage counters."""

    def get_quota(self, provider: str) -> QuotaState | None:
        """Return the stored quota row for a provider, if present."""

    def list_quotas(self) -> list[QuotaState]:
        """Return every stored quota row."""

    def upsert_provider(self, config: ProviderConfig) -> None:
        """Create the row for a provider, or sync its limits if it exists."""

    def increment_usage(self, provider: str) -> None:
        """Add one to both the daily and monthly counters."""

    def reset_daily(self, provider: str, reset_at: datetime) -> None:
        """Zero the daily counter and record the reset time."""

    def reset_monthly(self, provider: str, reset_at: datetime) -> None:
        """Zero the monthly counter and record the reset time."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def crossed_day(last_reset: datetime | None, now: datetime, tz: tzinfo) -> bool:
    """Return True when ``now`` falls on a later calendar day than the reset."""
    if last_reset is None:
        return True
    return last_reset.astimezone(tz).date() != now.astimezone(tz).date()


def crossed_month(last_reset: datetime | None, now: datetime, tz: tzinfo) -> bool:
    """Return True when ``now`` falls in another calendar month than the reset."""
    if last_reset is None:
        return True
    last_local = last_reset.astimezone(tz)
    now_local = now.astimezone(tz)
    return (last_local.year, last_local.month) != (now_local.year, now_local.month)


@dataclass
class QuotaTracker:
    """Owns the ledger and decides which providers may be called.

    Providers are listed in priority order. Each provider's row is read and
    written under its own lock. Selection and the later decrement are
    separate critical sections, so under real concurrency a provider with a
    single unit left may be handed out twice.
    """

    ledger: QuotaLedger
    providers: list[ProviderConfig]
    timezone: tzinfo = UTC
    clock: Callable[[], datetime] = _utc_now
    _locks: dict[str, asyncio.Lock] = field(default_factory=dict, init=False)
    _selection_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)
    _seeded: bool = field(default=False, init=False)

    def _lock_for(self, provider: str) -> asyncio.Lock:
        lock = self._locks.get(provider)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[provider] = lock
        return lock

    def _ensure_seeded(self) -> None:
        if self._seeded:
            return
        for provider in self.providers:
            self.ledger.upsert_provider(provider)
        self._seeded = True

    async def check_and_reset_quotas(self) -> None:
        """Zero counters whose day or month window has rolled over."""
        self._ensure_seeded()
        now = self.clock()
        for provider in self.providers:
            async with self._lock_for(provider.name):
                quota = self.ledger.get_quota(provider.name)
                if quota is None:
                    continue
                if crossed_day(quota.last_daily_reset, now, self.timezone):
                    self.ledger.reset_daily(provider.name, now)
                    _logger.info("Daily quota reset: provider=%s", provider.name)
                if crossed_month(quota.last_monthly_reset, now, self.timezone):
                    self.ledger.reset_monthly(provider.name, now)
                    _logger.info("Monthly quota reset: provider=%s", provider.name)

    async def has_available_quota(self, provider: str) -> bool:
        await self.check_and_reset_quotas()
        async with self._lock_for(provider):
            quota = self.ledger.get_quota(provider)
        return quota is not None and quota.is_available

    async def get_next_available_api(
        self, exclude: Collection[str] = ()
    ) -> ProviderConfig | None:
        """Return the highest-priority provider with quota left, if any."""
        async with self._selection_lock:
            await self.check_and_reset_quotas()
            for provider in self.providers:
                if provider.name in exclude:
                    continue
                async with self._lock_for(provider.name):
                    quota = self.ledger.get_quota(provider.name)
                if quota is not None and quota.is_available:
                    return provider
        return None

    async def decrement_quota(self, provider: str) -> None:
        """Charge one successful call to a provider's daily and monthly quota."""
        async with self._lock_for(provider):
            self.ledger.increment_usage(provider)
        _logger.info("Quota charged: provider=%s", provider)

    async def get_all_quota_status(self) -> list[QuotaState]:
        await self.check_and_reset_quotas()
        by_name = {quota.provider: quota for quota in self.ledger.list_quotas()}
        return [
            by_name[provider.name]
            for provider in self.providers
            if provider.name in by_name
        ]

    async def get_quota_status(self, provider: str) -> QuotaState | None:
        await self.check_and_reset_quotas()
        async with self._lock_for(provider):
            return self.ledger.get_quota(provider)
