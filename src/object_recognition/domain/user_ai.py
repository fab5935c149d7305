"""User-supplied AI backend configuration."""

from dataclasses import dataclass, field, replace
from enum import Enum
from uuid import uuid4

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
OPENAI_BASE_URL = "https://api.openai.com/v1"


class AiApiType(Enum):
    """Supported request formats for user AI backends."""

    GOOGLE_GEMINI = "GOOGLE_GEMINI"
    OPENAI_COMPATIBLE = "OPENAI_COMPATIBLE"

    @classmethod
    def parse(cls, value: str) -> "AiApiType":
        for api_type in cls:
            if api_type.value == value:
                return api_type
        return cls.OPENAI_COMPATIBLE


@dataclass(frozen=True)
class UserAiConfig:
    """Connection details of one user AI backend."""

    api_type: AiApiType
    api_url: str
    api_key: str
    model_name: str
    name: str = ""
    id: str = field(default_factory=lambda: str(uuid4()))

    @classmethod
    def gemini(
        cls, api_key: str, model_name: str = "gemini-1.5-flash", name: str = "Gemini"
    ) -> "UserAiConfig":
        return cls(
            api_type=AiApiType.GOOGLE_GEMINI,
            api_url=GEMINI_BASE_URL,
            api_key=api_key,
            model_name=model_name,
            name=name,
        )

    @classmethod
    def openai_compatible(
        cls,
        api_key: str,
        api_url: str = OPENAI_BASE_URL,
        model_name: str = "gpt-4o-mini",
        name: str = "OpenAI",
    ) -> "UserAiConfig":
        return cls(
            api_type=AiApiType.OPENAI_COMPATIBLE,
            api_url=api_url,
            api_key=api_key,
            model_name=model_name,
            name=name,
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key.strip() and self.model_name.strip())


@dataclass(frozen=True)
class UserAiConfigList:
    """All saved user AI configs and which one is active."""

    configs: tuple[UserAiConfig, ...] = ()
    active_config_id: str | None = None

    def active_config(self) -> UserAiConfig | None:
        for config in self.configs:
            if config.id == self.active_config_id:
                return config
        return None

    def add(self, config: UserAiConfig) -> "UserAiConfigList":
        """Append a config; the first one added becomes active."""
        active_id = config.id if not self.configs else self.active_config_id
        return UserAiConfigList(
            configs=(*self.configs, config), active_config_id=active_id
        )

    def update(self, config: UserAiConfig) -> "UserAiConfigList":
        configs = tuple(
            config if existing.id == config.id else existing
            for existing in self.configs
        )
        return replace(self, configs=configs)

    def delete(self, config_id: str) -> "UserAiConfigList":
        """Remove a config; deleting the active one activates the first left."""
        configs = tuple(config for config in self.configs if config.id != config_id)
        active_id = self.active_config_id
        if active_id == config_id:
            active_id = configs[0].id if configs else None
        return UserAiConfigList(configs=configs, active_config_id=active_id)

    def set_active(self, config_id: str) -> "UserAiConfigList":
        if any(config.id == config_id for config in self.configs):
            return replace(self, active_config_id=config_id)
        return self
