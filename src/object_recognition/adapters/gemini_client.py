"""Google Gemini REST client for the user AI tier."""

import base64
from dataclasses import dataclass

import httpx

from object_recognition.domain.objects import AiResult
from object_recognition.domain.user_ai import UserAiConfig
from object_recognition.services.user_ai import (
    USER_AI_PROMPT,
    AiVisionClient,
    detect_mime_type,
    parse_ai_answer,
)


@dataclass
class HttpxGeminiClient(AiVisionClient):
    """Gemini generateContent client implemented with httpx."""

    http_client: httpx.AsyncClient

    @classmethod
    def create(cls) -> "HttpxGeminiClient":
        """Create a Gemini client with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient())

    async def recognize(self, image: bytes, config: UserAiConfig) -> AiResult | None:
        """Call generateContent with inline image data."""
        url = f"{config.api_url.rstrip('/')}/models/{config.model_name}:generateContent"
        payload = {
            "contents": [
                {
                    "parts": [
                        {"text": USER_AI_PROMPT},
                        {
                            "inline_data": {
                                "mime_type": detect_mime_type(image),
                                "data": base64.b64encode(image).decode("utf-8"),
                            }
                        },
                    ]
                }
            ],
            "generationConfig": {"temperature": 0.1, "maxOutputTokens": 2048},
        }
        response = await self.http_client.post(
            url, params={"key": config.api_key}, json=payload, timeout=30
        )
        response.raise_for_status()
        text = _candidate_text(response.json())
        if not text:
            return None
        return parse_ai_answer(text)

    async def validate(self, config: UserAiConfig) -> bool:
        """Return True when the key can list models."""
        try:
            response = await self.http_client.get(
                f"{config.api_url.rstrip('/')}/models",
                params={"key": config.api_key},
                timeout=10,
            )
        except httpx.HTTPError:
            return False
        return response.is_success

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _candidate_text(payload: dict[str, object]) -> str:
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(str(part.get("text", "")) for part in parts)
