"""Quota models for external recognition providers."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ProviderConfig:
    """Static configuration of one external provider."""

    name: str
    daily_limit: int
    monthly_limit: int
    params: dict[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if self.daily_limit < 0 or self.monthly_limit < 0:
            raise ValueError(f"Quota limits must be non-negative for {self.name}")


@dataclass(frozen=True)
class QuotaState:
    """Usage counters and reset timestamps of one provider."""

    provider: str
    daily_used: int
    daily_limit: int
    monthly_used: int
    monthly_limit: int
    last_daily_reset: datetime | None = None
    last_monthly_reset: datetime | None = None

    @property
    def is_available(self) -> bool:
        return (
            self.daily_used < self.daily_limit
            and self.monthly_used < self.monthly_limit
        )

    @property
    def remaining_daily(self) -> int:
        return max(self.daily_limit - self.daily_used, 0)

    @property
    def remaining_monthly(self) -> int:
        return max(self.monthly_limit - self.monthly_used, 0)

    @property
    def last_reset(self) -> datetime | None:
        stamps = [
            stamp
            for stamp in (self.last_daily_reset, self.last_monthly_reset)
            if stamp is not None
        ]
        return max(stamps) if stamps else None


@dataclass(frozen=True)
class ApiStatus:
    """Display snapshot of a provider's availability."""

    name: str
    remaining_quota: int
    last_reset: datetime | None
    is_available: bool
