"""Supabase-backed priority config store."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from object_recognition.domain.priority import PriorityConfig, RecognitionMethod
from object_recognition.services.priority import PriorityStore


@dataclass
class SupabasePriorityStore(PriorityStore):
    """Stores the whole priority config as one JSON row."""

    client: Client
    config_key: str = "default"

    def load(self) -> PriorityConfig | None:
        """Return the stored config, if present."""
        response = (
            self.client.table("priority_configs")
            .select("methods")
            .eq("config_key", self.config_key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        methods = response.data[0].get("methods") or []
        return PriorityConfig.from_pairs(
            (RecognitionMethod(item["method"]), bool(item.get("enabled", True)))
            for item in methods
        )

    def save(self, config: PriorityConfig) -> None:
        """Replace the stored config."""
        self.client.table("priority_configs").upsert(
            {
                "config_key": self.config_key,
                "methods": [
                    {"method": entry.method.value, "enabled": entry.enabled}
                    for entry in config.entries
                ],
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="config_key",
        ).execute()

    def clear(self) -> None:
        """Delete the stored config."""
        self.client.table("priority_configs").delete().eq(
            "config_key", self.config_key
        ).execute()
