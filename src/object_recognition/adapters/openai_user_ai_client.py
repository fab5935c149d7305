"""OpenAI-compatible chat completions client for the user AI tier."""

from collections.abc import Callable
from dataclasses import dataclass, field

import openai
from openai import AsyncOpenAI

from object_recognition.domain.objects import AiResult
from object_recognition.domain.user_ai import UserAiConfig
from object_recognition.services.user_ai import (
    USER_AI_PROMPT,
    AiVisionClient,
    parse_ai_answer,
    to_data_url,
)


def _default_factory(config: UserAiConfig) -> AsyncOpenAI:
    return AsyncOpenAI(api_key=config.api_key, base_url=config.api_url)


@dataclass
class OpenAICompatibleVisionClient(AiVisionClient):
    """Vision client for any endpoint speaking the OpenAI chat API."""

    client_factory: Callable[[UserAiConfig], AsyncOpenAI] = _default_factory
    _clients: dict[tuple[str, str], AsyncOpenAI] = field(
        default_factory=dict, init=False
    )

    def _client_for(self, config: UserAiConfig) -> AsyncOpenAI:
        key = (config.api_url, config.api_key)
        client = self._clients.get(key)
        if client is None:
            client = self.client_factory(config)
            self._clients[key] = client
        return client

    async def recognize(self, image: bytes, config: UserAiConfig) -> AiResult | None:
        """Send the image with the recognition prompt and parse the answer."""
        response = await self._client_for(config).chat.completions.create(
            model=config.model_name,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": USER_AI_PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {"url": to_data_url(image)},
                        },
                    ],
                }
            ],
            temperature=0.1,
            max_tokens=2048,
        )
        if not response.choices:
            return None
        content = response.choices[0].message.content
        if not content:
            return None
        return parse_ai_answer(content)

    async def validate(self, config: UserAiConfig) -> bool:
        """Return True when the endpoint lists models for the key."""
        try:
            await self._client_for(config).models.list()
        except openai.OpenAIError:
            return False
        return True

    async def close(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
