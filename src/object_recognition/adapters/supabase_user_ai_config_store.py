"""Supabase repository for user AI configs."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from object_recognition.domain.user_ai import AiApiType, UserAiConfig, UserAiConfigList
from object_recognition.services.user_ai import UserAiConfigStore


@dataclass
class SupabaseUserAiConfigStore(UserAiConfigStore):
    """Keeps the config list and the active id in one row."""

    client: Client
    owner_key: str = "default"

    def load(self) -> UserAiConfigList:
        """Return the saved configs, or an empty list."""
        response = (
            self.client.table("user_ai_configs")
            .select("configs, active_config_id")
            .eq("owner_key", self.owner_key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return UserAiConfigList()
        row = response.data[0]
        return UserAiConfigList(
            configs=tuple(_to_config(item) for item in row.get("configs") or []),
            active_config_id=row.get("active_config_id"),
        )

    def save(self, configs: UserAiConfigList) -> None:
        """Replace the saved configs."""
        self.client.table("user_ai_configs").upsert(
            {
                "owner_key": self.owner_key,
                "configs": [_to_row(config) for config in configs.configs],
                "active_config_id": configs.active_config_id,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="owner_key",
        ).execute()


def _to_config(item: dict[str, object]) -> UserAiConfig:
    return UserAiConfig(
        id=str(item["id"]),
        name=str(item.get("name") or ""),
        api_type=AiApiType.parse(str(item.get("api_type") or "")),
        api_url=str(item.get("api_url") or ""),
        api_key=str(item.get("api_key") or ""),
        model_name=str(item.get("model_name") or ""),
    )


def _to_row(config: UserAiConfig) -> dict[str, str]:
    return {
        "id": config.id,
        "name": config.name,
        "api_type": config.api_type.value,
        "api_url": config.api_url,
        "api_key": config.api_key,
        "model_name": config.model_name,
    }
