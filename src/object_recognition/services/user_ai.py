"""User-configured AI backend service."""

import base64
import json
import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError as PydanticValidationError

from object_recognition.domain.objects import AiResult
from object_recognition.domain.user_ai import AiApiType, UserAiConfig, UserAiConfigList

_logger = logging.getLogger(__name__)

USER_AI_PROMPT = (
    "你是一个专业的物品识别专家。请仔细分析这张图片，识别其中的主要物品，"
    "并提供尽可能详细和具体的信息。电子产品请给出品牌和型号，动植物请给出具体物种，"
    "并根据外观估算价格区间、材质、颜色和尺寸。\n"
    "只返回一个JSON对象，字段如下：name, brand, model, species, aliases (数组), "
    "origin (100字以内), usage (100字以内), category, priceRange, material, color, "
    "size, manufacturer, features (数组), description。无法确定的字段返回null。"
)


class UserAiConfigStore(Protocol):
    """Persistence interface for user AI configs."""

    def load(self) -> UserAiConfigList:
        """Return every saved config and the active config id."""

    def save(self, configs: UserAiConfigList) -> None:
        """Replace the saved configs."""


class AiVisionClient(Protocol):
    """Interface for one user AI request format."""

    async def recognize(self, image: bytes, config: UserAiConfig) -> AiResult | None:
        """Ask the backend to describe the main object in the image."""

    async def validate(self, config: UserAiConfig) -> bool:
        """Return True when the backend accepts the config's credentials."""


@dataclass
class UserAiService:
    """Routes recognition to the active user AI config."""

    store: UserAiConfigStore
    clients: dict[AiApiType, AiVisionClient]

    async def is_configured(self) -> bool:
        config = self.get_config()
        return config is not None and config.is_complete

    async def recognize(self, image: bytes) -> AiResult | None:
        """Recognize with the active config, or return None if there is none."""
        config = self.get_config()
        if config is None or not config.is_complete:
            return None
        client = self.clients.get(config.api_type)
        if client is None:
            _logger.warning("No user AI client for %s", config.api_type.value)
            return None
        return await client.recognize(image, config)

    async def validate_config(self, config: UserAiConfig) -> bool:
        client = self.clients.get(config.api_type)
        if client is None or not config.is_complete:
            return False
        return await client.validate(config)

    def get_config(self) -> UserAiConfig | None:
        return self.store.load().active_config()

    def list_configs(self) -> UserAiConfigList:
        return self.store.load()

    def add_config(self, config: UserAiConfig) -> None:
        self.store.save(self.store.load().add(config))

    def update_config(self, config: UserAiConfig) -> None:
        self.store.save(self.store.load().update(config))

    def delete_config(self, config_id: str) -> None:
        self.store.save(self.store.load().delete(config_id))

    def set_active_config(self, config_id: str) -> None:
        self.store.save(self.store.load().set_active(config_id))

    def clear_config(self) -> None:
        self.store.save(UserAiConfigList())


def parse_ai_answer(text: str) -> AiResult | None:
    """Extract the JSON object from a model answer and validate it."""
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        return None
    try:
        payload = json.loads(text[start:end])
        result = AiResult.model_validate(payload)
    except (json.JSONDecodeError, PydanticValidationError) as exc:
        _logger.warning("Unparseable user AI answer: %s", exc)
        return None
    if not result.name.strip():
        return None
    return result


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
