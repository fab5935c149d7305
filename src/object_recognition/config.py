"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from object_recognition.domain.quota import ProviderConfig

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")
BAIDU_PROVIDER = "BAIDU_API"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    baidu_api_key: str = ""
    baidu_secret_key: str = ""
    baidu_daily_limit: int = 500
    baidu_monthly_limit: int = 15000
    extra_baidu_accounts: str | None = None
    provider_timeout_seconds: float = 5.0
    provider_max_attempts: int = 3
    user_ai_timeout_seconds: float = 20.0
    knowledge_enabled: bool = True
    knowledge_timeout_seconds: float = 3.0
    confidence_threshold: float = 0.5
    quota_timezone: str = "Asia/Shanghai"
    local_classifier_url: str | None = None
    log_level: str = "INFO"
    result_cache_ttl_seconds: int = 600
    result_cache_size: int = 20
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def provider_configs(self) -> list[ProviderConfig]:
        """Return configured providers in priority order."""
        providers = [
            ProviderConfig(
                name=BAIDU_PROVIDER,
                daily_limit=self.baidu_daily_limit,
                monthly_limit=self.baidu_monthly_limit,
                params={
                    "api_key": self.baidu_api_key,
                    "secret_key": self.baidu_secret_key,
                },
            )
        ]
        providers.extend(
            account
            for account in parse_baidu_accounts(self.extra_baidu_accounts)
            if account.name != BAIDU_PROVIDER
        )
        return providers


def parse_baidu_accounts(raw: str | None) -> list[ProviderConfig]:
    """Parse extra Baidu-compatible accounts.

    Entries are ``NAME:daily:monthly:api_key:secret_key`` separated by commas;
    malformed or duplicate entries are skipped.
    """
    if raw is None:
        return []
    providers: list[ProviderConfig] = []
    seen: set[str] = set()
    for chunk in raw.split(","):
        parts = [part.strip() for part in chunk.split(":")]
        if len(parts) != 5 or not parts[0]:  # noqa: PLR2004
            continue
        name, daily, monthly, api_key, secret_key = parts
        if name in seen or not daily.isdigit() or not monthly.isdigit():
            continue
        seen.add(name)
        providers.append(
            ProviderConfig(
                name=name,
                daily_limit=int(daily),
                monthly_limit=int(monthly),
                params={"api_key": api_key, "secret_key": secret_key},
            )
        )
    return providers
