"""Supabase-backed provider quota ledger."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from object_recognition.domain.quota import ProviderConfig, QuotaState
from object_recognition.services.quota import QuotaLedger

_COLUMNS = (
    "provider, daily_used, daily_limit, monthly_used, monthly_limit, "
    "last_daily_reset, last_monthly_reset"
)


@dataclass
class SupabaseQuotaLedger(QuotaLedger):
    """Supabase implementation of the quota ledger.

    Increments read then write the row; callers serialize them per provider.
    """

    client: Client

    def get_quota(self, provider: str) -> QuotaState | None:
        """Return the quota row for a provider."""
        response = (
            self.client.table("api_quotas")
            .select(_COLUMNS)
            .eq("provider", provider)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_state(response.data[0])

    def list_quotas(self) -> list[QuotaState]:
        """Return every quota row."""
        response = self.client.table("api_quotas").select(_COLUMNS).execute()
        return [_to_state(row) for row in response.data or []]

    def upsert_provider(self, config: ProviderConfig) -> None:
        """Create the provider row or sync its limits."""
        existing = self.get_quota(config.name)
        if existing is None:
            response = (
                self.client.table("api_quotas")
                .insert(
                    {
                        "provider": config.name,
                        "daily_used": 0,
                        "daily_limit": config.daily_limit,
                        "monthly_used": 0,
                        "monthly_limit": config.monthly_limit,
                        "last_daily_reset": None,
                        "last_monthly_reset": None,
                    }
                )
                .execute()
            )
            if not response.data:
                raise RuntimeError(f"Failed to create quota row for {config.name}")
            return
        if (existing.daily_limit, existing.monthly_limit) != (
            config.daily_limit,
            config.monthly_limit,
        ):
            self.client.table("api_quotas").update(
                {
                    "daily_limit": config.daily_limit,
                    "monthly_limit": config.monthly_limit,
                }
            ).eq("provider", config.name).execute()

    def increment_usage(self, provider: str) -> None:
        """Add one call to the daily and monthly counters."""
        current = self.get_quota(provider)
        if current is None:
            raise RuntimeError(f"No quota row for provider {provider}")
        self.client.table("api_quotas").update(
            {
                "daily_used": current.daily_used + 1,
                "monthly_used": current.monthly_used + 1,
            }
        ).eq("provider", provider).execute()

    def reset_daily(self, provider: str, reset_at: datetime) -> None:
        """Zero the daily counter."""
        self.client.table("api_quotas").update(
            {"daily_used": 0, "last_daily_reset": reset_at.isoformat()}
        ).eq("provider", provider).execute()

    def reset_monthly(self, provider: str, reset_at: datetime) -> None:
        """Zero the monthly counter."""
        self.client.table("api_quotas").update(
            {"monthly_used": 0, "last_monthly_reset": reset_at.isoformat()}
        ).eq("provider", provider).execute()


def _to_state(row: dict[str, object]) -> QuotaState:
    return QuotaState(
        provider=str(row["provider"]),
        daily_used=int(row.get("daily_used") or 0),
        daily_limit=int(row.get("daily_limit") or 0),
        monthly_used=int(row.get("monthly_used") or 0),
        monthly_limit=int(row.get("monthly_limit") or 0),
        last_daily_reset=_parse_timestamp(row.get("last_daily_reset")),
        last_monthly_reset=_parse_timestamp(row.get("last_monthly_reset")),
    )


def _parse_timestamp(raw: object) -> datetime | None:
    if not raw:
        return None
    return datetime.fromisoformat(str(raw))
