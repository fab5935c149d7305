"""Pydantic models for the HTTP API."""

from dataclasses import replace
from datetime import datetime

from pydantic import BaseModel, Field

from object_recognition.domain.priority import (
    PriorityConfig,
    PriorityEntry,
    RecognitionMethod,
)
from object_recognition.domain.quota import ApiStatus, QuotaState
from object_recognition.domain.recognition import (
    Failed,
    RecognitionState,
    Succeeded,
    TierAttempt,
    state_name,
)
from object_recognition.domain.user_ai import (
    GEMINI_BASE_URL,
    OPENAI_BASE_URL,
    AiApiType,
    UserAiConfig,
    UserAiConfigList,
)


class PriorityEntryPayload(BaseModel):
    """One method in a priority payload."""

    method: RecognitionMethod
    enabled: bool = True


class PriorityPayload(BaseModel):
    """Priority config payload."""

    methods: list[PriorityEntryPayload]

    def to_config(self) -> PriorityConfig:
        return PriorityConfig(
            entries=tuple(
                PriorityEntry(method=item.method, enabled=item.enabled)
                for item in self.methods
            )
        )

    @classmethod
    def from_config(cls, config: PriorityConfig) -> "PriorityPayload":
        return cls(
            methods=[
                PriorityEntryPayload(method=entry.method, enabled=entry.enabled)
                for entry in config.entries
            ]
        )


class MethodTogglePayload(BaseModel):
    """Enable or disable one method."""

    enabled: bool


class MethodOrderPayload(BaseModel):
    """New method order; enabled flags are kept."""

    methods: list[RecognitionMethod]


class ThresholdPayload(BaseModel):
    """Local classifier confidence threshold."""

    confidence_threshold: float = Field(ge=0.0, le=1.0)


class TierAttemptPayload(BaseModel):
    """Why a tier declined."""

    method: RecognitionMethod
    reason: str

    @classmethod
    def from_attempt(cls, attempt: TierAttempt) -> "TierAttemptPayload":
        return cls(method=attempt.method, reason=attempt.reason)


class QuotaPayload(BaseModel):
    """Quota snapshot of one provider."""

    provider: str
    daily_used: int
    daily_limit: int
    monthly_used: int
    monthly_limit: int
    last_daily_reset: datetime | None
    last_monthly_reset: datetime | None
    is_available: bool

    @classmethod
    def from_state(cls, quota: QuotaState) -> "QuotaPayload":
        return cls(
            provider=quota.provider,
            daily_used=quota.daily_used,
            daily_limit=quota.daily_limit,
            monthly_used=quota.monthly_used,
            monthly_limit=quota.monthly_limit,
            last_daily_reset=quota.last_daily_reset,
            last_monthly_reset=quota.last_monthly_reset,
            is_available=quota.is_available,
        )


class ApiStatusPayload(BaseModel):
    """Provider availability for display."""

    name: str
    remaining_quota: int
    last_reset: datetime | None
    is_available: bool

    @classmethod
    def from_status(cls, status: ApiStatus) -> "ApiStatusPayload":
        return cls(
            name=status.name,
            remaining_quota=status.remaining_quota,
            last_reset=status.last_reset,
            is_available=status.is_available,
        )


class UserAiConfigPayload(BaseModel):
    """User AI config as submitted by an admin."""

    api_type: AiApiType
    api_key: str
    model_name: str
    api_url: str = ""
    name: str = ""

    def to_config(self, config_id: str | None = None) -> UserAiConfig:
        """Build a config, defaulting the URL to the api type's public endpoint."""
        default_url = (
            GEMINI_BASE_URL
            if self.api_type is AiApiType.GOOGLE_GEMINI
            else OPENAI_BASE_URL
        )
        config = UserAiConfig(
            api_type=self.api_type,
            api_url=self.api_url.strip() or default_url,
            api_key=self.api_key.strip(),
            model_name=self.model_name.strip(),
            name=self.name.strip(),
        )
        if config_id is None:
            return config
        return replace(config, id=config_id)


class UserAiConfigView(BaseModel):
    """User AI config with the key masked."""

    id: str
    name: str
    api_type: AiApiType
    api_url: str
    model_name: str
    api_key_hint: str
    is_active: bool

    @classmethod
    def from_config(
        cls, config: UserAiConfig, active_config_id: str | None
    ) -> "UserAiConfigView":
        return cls(
            id=config.id,
            name=config.name,
            api_type=config.api_type,
            api_url=config.api_url,
            model_name=config.model_name,
            api_key_hint=mask_key(config.api_key),
            is_active=config.id == active_config_id,
        )


class UserAiConfigListPayload(BaseModel):
    """Every saved user AI config."""

    configs: list[UserAiConfigView]
    active_config_id: str | None

    @classmethod
    def from_list(cls, configs: UserAiConfigList) -> "UserAiConfigListPayload":
        return cls(
            configs=[
                UserAiConfigView.from_config(config, configs.active_config_id)
                for config in configs.configs
            ],
            active_config_id=configs.active_config_id,
        )


def mask_key(api_key: str) -> str:
    """Keep only the last four characters of a secret."""
    if len(api_key) <= 4:  # noqa: PLR2004
        return "****"
    return f"****{api_key[-4:]}"


def state_to_payload(state: RecognitionState) -> dict[str, object]:
    """Serialize a recognition state."""
    payload: dict[str, object] = {"state": state_name(state)}
    if isinstance(state, Succeeded):
        payload["result"] = state.result.model_dump(mode="json")
    if isinstance(state, Failed):
        payload["reason"] = state.reason
        payload["attempts"] = [
            TierAttemptPayload.from_attempt(attempt).model_dump(mode="json")
            for attempt in state.attempts
        ]
    return payload
