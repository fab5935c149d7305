"""Object descriptions, tier result variants and the canonical object record."""

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from object_recognition.domain.priority import RecognitionMethod

UNKNOWN_NAME = "未知物品"
DEFAULT_PLACEHOLDER = "暂无信息"
DEFAULT_ORIGIN = "暂无来历信息"
DEFAULT_USAGE = "暂无用途信息"
DEFAULT_CATEGORY = "未分类"


class RecognitionSource(Enum):
    """Which tier produced a canonical result."""

    LOCAL_CLASSIFIER = "LOCAL_CLASSIFIER"
    FREE_API = "FREE_API"
    USER_AI = "USER_AI"

    @classmethod
    def parse(cls, value: str) -> "RecognitionSource":
        """Map stored text to a source, falling back to the local classifier."""
        normalized = value.strip().upper()
        for source in cls:
            if source.value == normalized:
                return source
        return cls.LOCAL_CLASSIFIER

    @classmethod
    def from_method(cls, method: RecognitionMethod) -> "RecognitionSource":
        return cls(method.value)


class ObjectType(Enum):
    """Broad object type used to pick which extended fields to show."""

    GENERAL = "GENERAL"
    ELECTRONICS = "ELECTRONICS"
    ANIMAL = "ANIMAL"
    PLANT = "PLANT"
    FOOD = "FOOD"
    DAILY_USE = "DAILY_USE"
    ARTWORK = "ARTWORK"
    LANDMARK = "LANDMARK"
    VEHICLE = "VEHICLE"
    CLOTHING = "CLOTHING"
    BOOK = "BOOK"

    @classmethod
    def from_category(cls, category: str) -> "ObjectType":
        """Infer a type from keywords in a category label."""
        lowered = category.lower()
        for object_type, keywords in _TYPE_KEYWORDS:
            if any(keyword in lowered for keyword in keywords):
                return object_type
        return cls.GENERAL


# First match wins.
_TYPE_KEYWORDS: tuple[tuple[ObjectType, tuple[str, ...]], ...] = (
    (ObjectType.ELECTRONICS, ("电", "手机", "数码", "electronic")),
    (ObjectType.ANIMAL, ("动物", "宠物", "鸟", "鱼", "animal")),
    (ObjectType.PLANT, ("植物", "花", "树", "草", "plant")),
    (ObjectType.FOOD, ("食", "饮", "水果", "蔬菜", "food")),
    (ObjectType.DAILY_USE, ("日用", "家居", "厨房", "卫浴")),
    (ObjectType.ARTWORK, ("艺术", "画", "雕", "工艺", "art")),
    (ObjectType.LANDMARK, ("建筑", "景点", "地标", "landmark")),
    (ObjectType.VEHICLE, ("车", "交通", "飞机", "船", "vehicle")),
    (ObjectType.CLOTHING, ("服", "鞋", "帽", "包", "cloth")),
    (ObjectType.BOOK, ("书", "杂志", "book")),
)


@dataclass(frozen=True)
class ObjectDetails:
    """Catalogued description of an object."""

    name: str
    name_en: str
    aliases: tuple[str, ...]
    origin: str
    usage: str
    category: str

    @classmethod
    def empty(cls, name: str = UNKNOWN_NAME) -> "ObjectDetails":
        """Return details whose text fields hold non-blank placeholders."""
        resolved = name.strip() or UNKNOWN_NAME
        return cls(
            name=resolved,
            name_en=resolved,
            aliases=(),
            origin=DEFAULT_ORIGIN,
            usage=DEFAULT_USAGE,
            category=DEFAULT_CATEGORY,
        )


@dataclass(frozen=True)
class LocalResult:
    """Top prediction of the on-device classifier."""

    label: str
    confidence: float
    details: ObjectDetails | None = None


@dataclass(frozen=True)
class ApiResult:
    """Top prediction of an external recognition provider."""

    name: str
    description: str
    confidence: float
    provider: str
    raw: dict[str, object] = field(default_factory=dict)


class AiResult(BaseModel):
    """Structured answer of a user-configured AI backend."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    name: str = ""
    description: str = ""
    aliases: list[str] = Field(default_factory=list)
    origin: str = ""
    usage: str = ""
    category: str = ""
    confidence: float = 0.8
    brand: str | None = None
    model: str | None = None
    species: str | None = None
    price_range: str | None = Field(default=None, alias="priceRange")
    material: str | None = None
    color: str | None = None
    size: str | None = None
    manufacturer: str | None = None
    features: list[str] = Field(default_factory=list)

    @field_validator("aliases", "features", mode="before")
    @classmethod
    def _none_to_empty_list(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator(
        "name", "description", "origin", "usage", "category", mode="before"
    )
    @classmethod
    def _none_to_empty_text(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator(
        "brand",
        "model",
        "species",
        "price_range",
        "material",
        "color",
        "size",
        "manufacturer",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and value.strip().lower() in {"", "null"}:
            return None
        return value


def clamp_confidence(value: float) -> float:
    """Clamp a confidence score into [0, 1]; NaN becomes 0."""
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, value))


class ObjectInfo(BaseModel):
    """Canonical recognition result shared by every tier."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    name_en: str = ""
    aliases: list[str] = Field(default_factory=list)
    origin: str
    usage: str
    category: str
    confidence: float
    source: RecognitionSource
    image_url: str | None = None
    brand: str | None = None
    model: str | None = None
    species: str | None = None
    price_range: str | None = None
    material: str | None = None
    color: str | None = None
    size: str | None = None
    manufacturer: str | None = None
    features: list[str] = Field(default_factory=list)
    summary: str | None = None
    description: str | None = None
    fun_facts: list[str] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)
    object_type: ObjectType = ObjectType.GENERAL
    additional_info: dict[str, str] = Field(default_factory=dict)
    type_specific_info: dict[str, str] = Field(default_factory=dict)
    recognized_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: object) -> float:
        return clamp_confidence(float(value))  # type: ignore[arg-type]

    @field_validator("source", mode="before")
    @classmethod
    def _parse_source(cls, value: object) -> object:
        if isinstance(value, str):
            return RecognitionSource.parse(value)
        return value

    @field_validator("name", "origin", "usage", "category")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value
