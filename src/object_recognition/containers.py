"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from supabase import create_client

from object_recognition.adapters.baidu_client import HttpxBaiduClient
from object_recognition.adapters.baike_client import HttpxBaikeClient
from object_recognition.adapters.gemini_client import HttpxGeminiClient
from object_recognition.adapters.local_classifier import (
    HttpxLocalClassifier,
    UnavailableLocalClassifier,
)
from object_recognition.adapters.openai_user_ai_client import (
    OpenAICompatibleVisionClient,
)
from object_recognition.adapters.supabase_catalog_repository import (
    SupabaseCatalogRepository,
)
from object_recognition.adapters.supabase_priority_store import SupabasePriorityStore
from object_recognition.adapters.supabase_quota_ledger import SupabaseQuotaLedger
from object_recognition.adapters.supabase_user_ai_config_store import (
    SupabaseUserAiConfigStore,
)
from object_recognition.config import Settings
from object_recognition.domain.user_ai import AiApiType
from object_recognition.services.cache import InMemoryCache
from object_recognition.services.knowledge import EncyclopediaKnowledgeEnhancer
from object_recognition.services.normalizer import ResultNormalizer
from object_recognition.services.priority import PriorityManager
from object_recognition.services.providers import ProviderSelector
from object_recognition.services.quota import QuotaTracker
from object_recognition.services.recognition import (
    LocalClassifier,
    RecognitionOrchestrator,
)
from object_recognition.services.user_ai import UserAiService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    priority_manager: PriorityManager
    quota_tracker: QuotaTracker
    provider_selector: ProviderSelector
    user_ai_service: UserAiService
    orchestrator: RecognitionOrchestrator
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    catalog = SupabaseCatalogRepository(supabase_client)
    priority_manager = PriorityManager(SupabasePriorityStore(supabase_client))
    providers = resolved_settings.provider_configs()
    quota_tracker = QuotaTracker(
        ledger=SupabaseQuotaLedger(supabase_client),
        providers=providers,
        timezone=ZoneInfo(resolved_settings.quota_timezone),
    )
    baidu_client = HttpxBaiduClient.create()
    provider_selector = ProviderSelector(
        quota_tracker=quota_tracker,
        clients={provider.name: baidu_client for provider in providers},
        timeout_seconds=resolved_settings.provider_timeout_seconds,
        max_attempts=resolved_settings.provider_max_attempts,
    )
    gemini_client = HttpxGeminiClient.create()
    openai_client = OpenAICompatibleVisionClient()
    user_ai_service = UserAiService(
        store=SupabaseUserAiConfigStore(supabase_client),
        clients={
            AiApiType.GOOGLE_GEMINI: gemini_client,
            AiApiType.OPENAI_COMPATIBLE: openai_client,
        },
    )
    local_classifier: LocalClassifier
    http_classifier: HttpxLocalClassifier | None = None
    if resolved_settings.local_classifier_url:
        http_classifier = HttpxLocalClassifier.create(
            resolved_settings.local_classifier_url, details_lookup=catalog
        )
        local_classifier = http_classifier
    else:
        local_classifier = UnavailableLocalClassifier()
    baike_client: HttpxBaikeClient | None = None
    knowledge_enhancer: EncyclopediaKnowledgeEnhancer | None = None
    if resolved_settings.knowledge_enabled:
        baike_client = HttpxBaikeClient.create()
        knowledge_enhancer = EncyclopediaKnowledgeEnhancer(source=baike_client)
    orchestrator = RecognitionOrchestrator(
        priority_manager=priority_manager,
        local_classifier=local_classifier,
        provider_selector=provider_selector,
        user_ai_client=user_ai_service,
        normalizer=ResultNormalizer(details_lookup=catalog),
        confidence_threshold=resolved_settings.confidence_threshold,
        user_ai_timeout_seconds=resolved_settings.user_ai_timeout_seconds,
        cache=InMemoryCache(max_entries=resolved_settings.result_cache_size),
        cache_ttl_seconds=resolved_settings.result_cache_ttl_seconds,
        knowledge_enhancer=knowledge_enhancer,
        knowledge_timeout_seconds=resolved_settings.knowledge_timeout_seconds,
    )

    async def close_resources() -> None:
        await baidu_client.close()
        await gemini_client.close()
        await openai_client.close()
        if http_classifier is not None:
            await http_classifier.close()
        if baike_client is not None:
            await baike_client.close()

    return AppContainer(
        settings=resolved_settings,
        priority_manager=priority_manager,
        quota_tracker=quota_tracker,
        provider_selector=provider_selector,
        user_ai_service=user_ai_service,
        orchestrator=orchestrator,
        close_resources=close_resources,
    )
