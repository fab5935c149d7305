"""Recognition orchestrator walking the configured tier priority."""

import asyncio
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Protocol

from object_recognition.domain.objects import (
    AiResult,
    LocalResult,
    ObjectInfo,
    clamp_confidence,
)
from object_recognition.domain.priority import RecognitionMethod
from object_recognition.domain.recognition import (
    Failed,
    Idle,
    InProgress,
    RecognitionState,
    Succeeded,
    TierAttempt,
    state_name,
)
from object_recognition.errors import (
    BusyError,
    ExhaustedError,
    ProviderUnavailableError,
    describe_attempts,
)
from object_recognition.services.cache import Cache
from object_recognition.services.normalizer import ResultNormalizer
from object_recognition.services.priority import PriorityManager
from object_recognition.services.providers import ProviderSelector
from object_recognition.services.streams import StateStream

DEFAULT_CONFIDENCE_THRESHOLD = 0.5

_logger = logging.getLogger(__name__)


class LocalClassifier(Protocol):
    """Interface for the on-device classifier."""

    async def initialize(self) -> bool:
        """Prepare the classifier; return False if it cannot be used."""

    async def recognize(self, image: bytes) -> LocalResult | None:
        """Return the top prediction, or None."""


class UserAiClient(Protocol):
    """Interface for the user-configured AI backend."""

    async def is_configured(self) -> bool:
        """Return True when an AI backend is configured."""

    async def recognize(self, image: bytes) -> AiResult | None:
        """Return the backend's answer, or None."""


class KnowledgeEnhancer(Protocol):
    """Interface for enriching an accepted result with encyclopedia facts."""

    async def enhance(self, info: ObjectInfo) -> ObjectInfo:
        """Return an enriched copy of the result, or the result itself."""


@dataclass
class RecognitionOrchestrator:
    """Single-flight state machine over the recognition tiers.

    States go Idle -> InProgress -> Succeeded | Failed and return to Idle
    only through ``reset_state``. A call made while another one is in
    flight raises BusyError. A new call may start from Succeeded or Failed.
    """

    priority_manager: PriorityManager
    local_classifier: LocalClassifier
    provider_selector: ProviderSelector
    user_ai_client: UserAiClient
    normalizer: ResultNormalizer
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    user_ai_timeout_seconds: float = 20.0
    cache: Cache | None = None
    cache_ttl_seconds: int = 600
    knowledge_enhancer: KnowledgeEnhancer | None = None
    knowledge_timeout_seconds: float = 3.0
    state: StateStream[RecognitionState] = field(
        default_factory=lambda: StateStream(Idle())
    )
    _in_flight: bool = field(default=False, init=False)
    _generation: int = field(default=0, init=False)
    _local_ready: bool | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.confidence_threshold = clamp_confidence(self.confidence_threshold)

    async def recognize(self, image: bytes) -> ObjectInfo:
        """Recognize an image, trying each enabled tier in priority order.

        Raises BusyError when a call is already running and ExhaustedError
        when every enabled tier declined. A call overtaken by ``reset_state``
        still answers its caller but no longer publishes state.
        """
        if self._in_flight:
            raise BusyError("A recognition is already in progress")
        self._in_flight = True
        generation = self._generation
        self.state.publish(InProgress())
        try:
            result, attempts = await self._recognize(image)
        except asyncio.CancelledError:
            _logger.info("Recognition cancelled")
            self._publish_if_current(generation, Idle())
            raise
        except Exception as exc:
            _logger.exception("Recognition failed unexpectedly")
            self._publish_if_current(
                generation, Failed(reason=str(exc) or type(exc).__name__)
            )
            raise
        finally:
            if generation == self._generation:
                self._in_flight = False

        if result is None:
            self._publish_if_current(
                generation,
                Failed(reason=describe_attempts(attempts), attempts=tuple(attempts)),
            )
            raise ExhaustedError(attempts)
        self._publish_if_current(generation, Succeeded(result))
        return result

    def _publish_if_current(self, generation: int, state: RecognitionState) -> None:
        if generation != self._generation:
            _logger.info(
                "Dropping %s from a call overtaken by reset", state_name(state)
            )
            return
        self.state.publish(state)

    async def _recognize(
        self, image: bytes
    ) -> tuple[ObjectInfo | None, list[TierAttempt]]:
        cache_key = f"recognition:{hashlib.sha256(image).hexdigest()}"
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if isinstance(cached, ObjectInfo):
                _logger.info("Recognition cache hit: name=%s", cached.name)
                return cached, []

        result, attempts = await self._run_tiers(image)
        if result is not None:
            result = await self._enhance(result)
        if result is not None and self.cache is not None:
            self.cache.set(cache_key, result, ttl_seconds=self.cache_ttl_seconds)
        return result, attempts

    async def _enhance(self, info: ObjectInfo) -> ObjectInfo:
        if self.knowledge_enhancer is None:
            return info
        try:
            return await asyncio.wait_for(
                self.knowledge_enhancer.enhance(info),
                timeout=self.knowledge_timeout_seconds,
            )
        except TimeoutError:
            _logger.warning(
                "Knowledge enhancement timed out after %ss: name=%s",
                self.knowledge_timeout_seconds,
                info.name,
            )
        except Exception as exc:
            _logger.warning("Knowledge enhancement failed: %s", exc, exc_info=True)
        return info

    async def _run_tiers(
        self, image: bytes
    ) -> tuple[ObjectInfo | None, list[TierAttempt]]:
        methods = self.priority_manager.get_enabled_methods_in_order()
        _logger.info("Recognition order: %s", [method.value for method in methods])
        attempts: list[TierAttempt] = []
        for method in methods:
            try:
                outcome = await self._try_tier(method, image)
            except ProviderUnavailableError as exc:
                outcome = str(exc)
            except Exception as exc:
                _logger.warning("Tier %s raised: %s", method.value, exc, exc_info=True)
                outcome = f"error: {exc}"
            if isinstance(outcome, ObjectInfo):
                _logger.info(
                    "Tier %s accepted: name=%s confidence=%.2f",
                    method.value,
                    outcome.name,
                    outcome.confidence,
                )
                return outcome, attempts
            _logger.info("Tier %s declined: %s", method.value, outcome)
            attempts.append(TierAttempt(method=method, reason=outcome))
        return None, attempts

    async def _try_tier(
        self, method: RecognitionMethod, image: bytes
    ) -> ObjectInfo | str:
        match method:
            case RecognitionMethod.LOCAL_CLASSIFIER:
                return await self._try_local(image)
            case RecognitionMethod.FREE_API:
                return await self._try_api(image)
            case RecognitionMethod.USER_AI:
                return await self._try_user_ai(image)

    async def _try_local(self, image: bytes) -> ObjectInfo | str:
        if not await self._ensure_local_ready():
            return "classifier unavailable"
        result = await self.local_classifier.recognize(image)
        if result is None:
            return "no prediction"
        if result.confidence < self.confidence_threshold:
            return (
                f"confidence {result.confidence:.2f} below threshold "
                f"{self.confidence_threshold:.2f}"
            )
        return self.normalizer.from_local(result)

    async def _ensure_local_ready(self) -> bool:
        if self._local_ready is None:
            try:
                self._local_ready = await self.local_classifier.initialize()
            except Exception:
                _logger.exception("Local classifier initialization failed")
                self._local_ready = False
            if not self._local_ready:
                _logger.warning("Local classifier disabled for this session")
        return self._local_ready

    async def _try_api(self, image: bytes) -> ObjectInfo | str:
        if not await self.provider_selector.has_available_api():
            raise ProviderUnavailableError("no provider has quota left")
        result = await self.provider_selector.recognize(image)
        if result is None:
            return "all providers failed"
        return self.normalizer.from_api(result)

    async def _try_user_ai(self, image: bytes) -> ObjectInfo | str:
        if not await self.user_ai_client.is_configured():
            return "not configured"
        try:
            result = await asyncio.wait_for(
                self.user_ai_client.recognize(image),
                timeout=self.user_ai_timeout_seconds,
            )
        except TimeoutError:
            return f"timed out after {self.user_ai_timeout_seconds}s"
        if result is None:
            return "no answer"
        return self.normalizer.from_user_ai(result)

    def get_recognition_state(self) -> StateStream[RecognitionState]:
        return self.state

    def reset_state(self) -> None:
        self._generation += 1
        self._in_flight = False
        self.state.publish(Idle())

    def get_confidence_threshold(self) -> float:
        return self.confidence_threshold

    def set_confidence_threshold(self, threshold: float) -> None:
        self.confidence_threshold = clamp_confidence(threshold)

    def clear_cache(self) -> None:
        if self.cache is not None:
            self.cache.clear()
