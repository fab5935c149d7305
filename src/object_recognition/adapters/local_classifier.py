"""Local classifier adapters."""

import logging
from dataclasses import dataclass

import httpx

from object_recognition.domain.objects import LocalResult
from object_recognition.services.normalizer import DetailsLookup
from object_recognition.services.recognition import LocalClassifier

_logger = logging.getLogger(__name__)


@dataclass
class HttpxLocalClassifier(LocalClassifier):
    """Classifier backed by an on-device inference sidecar.

    The sidecar answers ``GET /health`` and ``POST /classify`` with a JSON
    body ``{"predictions": [{"label": ..., "confidence": ...}]}`` sorted by
    confidence.
    """

    base_url: str
    http_client: httpx.AsyncClient
    details_lookup: DetailsLookup | None = None
    min_confidence: float = 0.1

    @classmethod
    def create(
        cls, base_url: str, details_lookup: DetailsLookup | None = None
    ) -> "HttpxLocalClassifier":
        """Create a classifier client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            details_lookup=details_lookup,
        )

    async def initialize(self) -> bool:
        """Return True when the sidecar reports healthy."""
        try:
            response = await self.http_client.get(f"{self.base_url}/health", timeout=2)
        except httpx.HTTPError as exc:
            _logger.warning("Local classifier unreachable: %s", exc)
            return False
        return response.is_success

    async def recognize(self, image: bytes) -> LocalResult | None:
        """Return the top prediction with catalogued details, if any."""
        response = await self.http_client.post(
            f"{self.base_url}/classify",
            content=image,
            headers={"Content-Type": "application/octet-stream"},
            timeout=5,
        )
        response.raise_for_status()
        predictions = response.json().get("predictions") or []
        if not predictions:
            return None
        top = max(predictions, key=lambda item: float(item.get("confidence", 0.0)))
        label = str(top.get("label") or "")
        confidence = float(top.get("confidence", 0.0))
        if not label or confidence < self.min_confidence:
            return None
        details = None
        if self.details_lookup is not None:
            details = self.details_lookup.get_object_details(label)
        return LocalResult(label=label, confidence=confidence, details=details)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


@dataclass
class UnavailableLocalClassifier(LocalClassifier):
    """Stand-in used when no local classifier is configured."""

    async def initialize(self) -> bool:
        return False

    async def recognize(self, image: bytes) -> LocalResult | None:
        return None
