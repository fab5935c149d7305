"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

import pytest

from object_recognition.config import Settings
from object_recognition.containers import AppContainer
from object_recognition.domain.objects import (
    AiResult,
    ApiResult,
    LocalResult,
    ObjectDetails,
)
from object_recognition.domain.priority import PriorityConfig
from object_recognition.domain.quota import ProviderConfig, QuotaState
from object_recognition.domain.user_ai import AiApiType, UserAiConfig, UserAiConfigList
from object_recognition.services.normalizer import DetailsLookup, ResultNormalizer
from object_recognition.services.priority import PriorityManager, PriorityStore
from object_recognition.services.providers import ProviderClient, ProviderSelector
from object_recognition.services.quota import QuotaLedger, QuotaTracker
from object_recognition.services.recognition import (
    LocalClassifier,
    RecognitionOrchestrator,
    UserAiClient,
)
from object_recognition.services.user_ai import (
    AiVisionClient,
    UserAiConfigStore,
    UserAiService,
)

FIXED_NOW = datetime(2026, 3, 15, 10, 30, tzinfo=UTC)


@dataclass
class InMemoryPriorityStore(PriorityStore):
    """In-memory priority store for tests."""

    config: PriorityConfig | None = None
    fail_on_load: bool = False
    fail_on_save: bool = False
    saves: int = 0

    def load(self) -> PriorityConfig | None:
        if self.fail_on_load:
            raise RuntimeError("storage unavailable")
        return self.config

    def save(self, config: PriorityConfig) -> None:
        if self.fail_on_save:
            raise RuntimeError("storage unavailable")
        self.config = config
        self.saves += 1

    def clear(self) -> None:
        self.config = None


@dataclass
class InMemoryQuotaLedger(QuotaLedger):
    """In-memory quota ledger for tests."""

    rows: dict[str, QuotaState] = field(default_factory=dict)
    increments: list[str] = field(default_factory=list)

    def get_quota(self, provider: str) -> QuotaState | None:
        return self.rows.get(provider)

    def list_quotas(self) -> list[QuotaState]:
        return list(self.rows.values())

    def upsert_provider(self, config: ProviderConfig) -> None:
        current = self.rows.get(config.name)
        if current is None:
            self.rows[config.name] = QuotaState(
                provider=config.name,
                daily_used=0,
                daily_limit=config.daily_limit,
                monthly_used=0,
                monthly_limit=config.monthly_limit,
            )
            return
        self.rows[config.name] = replace(
            current,
            daily_limit=config.daily_limit,
            monthly_limit=config.monthly_limit,
        )

    def increment_usage(self, provider: str) -> None:
        current = self.rows[provider]
        self.rows[provider] = replace(
            current,
            daily_used=current.daily_used + 1,
            monthly_used=current.monthly_used + 1,
        )
        self.increments.append(provider)

    def reset_daily(self, provider: str, reset_at: datetime) -> None:
        self.rows[provider] = replace(
            self.rows[provider], daily_used=0, last_daily_reset=reset_at
        )

    def reset_monthly(self, provider: str, reset_at: datetime) -> None:
        self.rows[provider] = replace(
            self.rows[provider], monthly_used=0, last_monthly_reset=reset_at
        )


@dataclass
class InMemoryCatalog(DetailsLookup):
    """In-memory object catalog for tests."""

    details: dict[str, ObjectDetails] = field(default_factory=dict)
    lookups: list[str] = field(default_factory=list)

    def get_object_details(self, label: str) -> ObjectDetails | None:
        self.lookups.append(label)
        return self.details.get(label)


@dataclass
class FakeLocalClassifier(LocalClassifier):
    """Fake local classifier returning a fixed result."""

    result: LocalResult | None = None
    ready: bool = True
    error: Exception | None = None
    init_calls: int = 0
    calls: int = 0

    async def initialize(self) -> bool:
        self.init_calls += 1
        return self.ready

    async def recognize(self, image: bytes) -> LocalResult | None:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


@dataclass
class FakeProviderClient(ProviderClient):
    """Fake provider client returning queued outcomes."""

    outcomes: list[ApiResult | Exception] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)

    async def recognize(self, image: bytes, provider: ProviderConfig) -> ApiResult:
        self.calls.append(provider.name)
        outcome = self.outcomes.pop(0) if self.outcomes else _api_result(provider)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _api_result(provider: ProviderConfig) -> ApiResult:
    return ApiResult(
        name="键盘",
        description="分类: 商品-数码产品",
        confidence=0.91,
        provider=provider.name,
        raw={"root": "商品-数码产品", "keyword": "键盘"},
    )


@dataclass
class FakeUserAiClient(UserAiClient):
    """Fake user AI client."""

    configured: bool = False
    result: AiResult | None = None
    calls: int = 0

    async def is_configured(self) -> bool:
        return self.configured

    async def recognize(self, image: bytes) -> AiResult | None:
        self.calls += 1
        return self.result


@dataclass
class FakeVisionClient(AiVisionClient):
    """Fake user AI backend."""

    answer: AiResult | None = None
    valid: bool = True
    seen: list[str] = field(default_factory=list)

    async def recognize(self, image: bytes, config: UserAiConfig) -> AiResult | None:
        self.seen.append(config.model_name)
        return self.answer

    async def validate(self, config: UserAiConfig) -> bool:
        return self.valid


@dataclass
class InMemoryUserAiConfigStore(UserAiConfigStore):
    """In-memory user AI config store for tests."""

    configs: UserAiConfigList = field(default_factory=UserAiConfigList)

    def load(self) -> UserAiConfigList:
        return self.configs

    def save(self, configs: UserAiConfigList) -> None:
        self.configs = configs


def make_tracker(
    ledger: InMemoryQuotaLedger,
    providers: list[ProviderConfig],
    now: datetime = FIXED_NOW,
) -> QuotaTracker:
    return QuotaTracker(ledger=ledger, providers=providers, clock=lambda: now)


@dataclass
class OrchestratorKit:
    """An orchestrator together with the fakes behind it."""

    orchestrator: RecognitionOrchestrator
    local: FakeLocalClassifier
    provider_client: FakeProviderClient
    user_ai: FakeUserAiClient
    ledger: InMemoryQuotaLedger
    priority_store: InMemoryPriorityStore


def make_kit(  # noqa: PLR0913
    *,
    local: FakeLocalClassifier | None = None,
    provider_client: FakeProviderClient | None = None,
    user_ai: FakeUserAiClient | None = None,
    providers: list[ProviderConfig] | None = None,
    ledger: InMemoryQuotaLedger | None = None,
    priority_store: InMemoryPriorityStore | None = None,
    threshold: float = 0.5,
) -> OrchestratorKit:
    local = local or FakeLocalClassifier()
    provider_client = provider_client or FakeProviderClient()
    user_ai = user_ai or FakeUserAiClient()
    ledger = ledger or InMemoryQuotaLedger()
    priority_store = priority_store or InMemoryPriorityStore()
    providers = providers or [
        ProviderConfig(name="BAIDU_API", daily_limit=10, monthly_limit=100)
    ]
    tracker = make_tracker(ledger, providers)
    selector = ProviderSelector(
        quota_tracker=tracker,
        clients={provider.name: provider_client for provider in providers},
        timeout_seconds=1.0,
    )
    orchestrator = RecognitionOrchestrator(
        priority_manager=PriorityManager(priority_store),
        local_classifier=local,
        provider_selector=selector,
        user_ai_client=user_ai,
        normalizer=ResultNormalizer(details_lookup=InMemoryCatalog()),
        confidence_threshold=threshold,
        user_ai_timeout_seconds=1.0,
    )
    return OrchestratorKit(
        orchestrator=orchestrator,
        local=local,
        provider_client=provider_client,
        user_ai=user_ai,
        ledger=ledger,
        priority_store=priority_store,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
        baidu_api_key="baidu-key",
        baidu_secret_key="baidu-secret",
    )


@pytest.fixture
def kit() -> OrchestratorKit:
    return make_kit()


@pytest.fixture
def container(settings: Settings, kit: OrchestratorKit) -> AppContainer:
    orchestrator = kit.orchestrator
    user_ai_service = UserAiService(
        store=InMemoryUserAiConfigStore(),
        clients={AiApiType.OPENAI_COMPATIBLE: FakeVisionClient()},
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        priority_manager=orchestrator.priority_manager,
        quota_tracker=orchestrator.provider_selector.quota_tracker,
        provider_selector=orchestrator.provider_selector,
        user_ai_service=user_ai_service,
        orchestrator=orchestrator,
        close_resources=close_resources,
    )
