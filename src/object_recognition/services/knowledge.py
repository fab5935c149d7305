"""Knowledge enrichment of recognized objects."""

import logging
import re
from dataclasses import dataclass
from typing import Protocol

from object_recognition.domain.knowledge import KnowledgeEntry
from object_recognition.domain.objects import ObjectInfo, ObjectType
from object_recognition.services.recognition import KnowledgeEnhancer

_logger = logging.getLogger(__name__)

_SENTENCE_SPLIT = re.compile(r"[。！？]")
_MIN_FACT_SUMMARY_CHARS = 50
_MIN_FACT_CHARS = 10
_MAX_GENERAL_VALUE_CHARS = 100

_TAXONOMY_KEYS = ("界", "门", "纲", "目", "科", "属", "种")

# Card keys copied into type_specific_info; other types keep every short value.
_TYPE_SPECIFIC_KEYS: dict[ObjectType, tuple[tuple[str, ...], ...]] = {
    ObjectType.ELECTRONICS: (
        ("屏幕尺寸", "屏幕"),
        ("处理器", "CPU"),
        ("内存", "RAM"),
        ("存储", "容量"),
        ("电池", "续航"),
    ),
    ObjectType.ANIMAL: (
        _TAXONOMY_KEYS,
        ("分布区域", "栖息地"),
        ("保护级别", "保护等级"),
        ("寿命", "生命周期"),
    ),
    ObjectType.PLANT: (
        _TAXONOMY_KEYS,
        ("花期", "开花时间"),
        ("分布区域", "产地"),
        ("习性", "生长习性"),
    ),
    ObjectType.FOOD: (
        ("热量", "卡路里"),
        ("营养成分", "营养"),
        ("产地", "原产地"),
        ("口味", "风味"),
    ),
}

_TIPS: dict[ObjectType, list[str]] = {
    ObjectType.ELECTRONICS: [
        "使用前请阅读说明书",
        "避免在潮湿环境中使用",
        "定期清洁保养延长使用寿命",
    ],
    ObjectType.PLANT: ["注意光照和浇水频率", "定期施肥促进生长", "注意病虫害防治"],
    ObjectType.ANIMAL: [
        "了解其习性有助于更好地观察",
        "保持安全距离，不要惊扰",
        "保护野生动物，人人有责",
    ],
    ObjectType.FOOD: ["注意保质期和储存条件", "适量食用，均衡营养", "了解过敏原信息"],
}

_ORIGIN_KEYS = ("产地", "原产地", "起源", "发源地")
_MANUFACTURER_KEYS = ("生产商", "制造商", "厂商", "品牌")
_MATERIAL_KEYS = ("材质", "材料", "成分")


class KnowledgeSource(Protocol):
    """Encyclopedia lookup by keyword."""

    async def get_knowledge(self, keyword: str) -> KnowledgeEntry | None:
        """Return the entry for a keyword, or None when there is none."""


@dataclass
class EncyclopediaKnowledgeEnhancer(KnowledgeEnhancer):
    """Fills summary, tips and type-specific facts from an encyclopedia."""

    source: KnowledgeSource

    async def enhance(self, info: ObjectInfo) -> ObjectInfo:
        entry = await self.source.get_knowledge(info.name)
        if entry is None:
            _logger.info("No knowledge entry for %s", info.name)
            return info
        _logger.info(
            "Knowledge entry found: name=%s title=%s", info.name, entry.title
        )
        return enrich(info, entry)


def enrich(info: ObjectInfo, entry: KnowledgeEntry) -> ObjectInfo:
    """Merge an encyclopedia entry into a recognition result."""
    card = entry.basic_info
    object_type = ObjectType.from_category(info.category)
    return info.model_copy(
        update={
            "object_type": object_type,
            "summary": entry.summary or info.summary,
            "description": entry.description or info.description,
            "image_url": entry.image_url or info.image_url,
            "type_specific_info": type_specific_info(card, object_type)
            or info.type_specific_info,
            "fun_facts": fun_facts(entry.summary) or info.fun_facts,
            "tips": list(_TIPS.get(object_type, info.tips)),
            "origin": _card_value(card, _ORIGIN_KEYS) or info.origin,
            "manufacturer": _card_value(card, _MANUFACTURER_KEYS)
            or info.manufacturer,
            "material": _card_value(card, _MATERIAL_KEYS) or info.material,
        }
    )


def type_specific_info(
    card: dict[str, str], object_type: ObjectType
) -> dict[str, str]:
    groups = _TYPE_SPECIFIC_KEYS.get(object_type)
    if groups is None:
        return {
            key: value
            for key, value in card.items()
            if value.strip() and len(value) < _MAX_GENERAL_VALUE_CHARS
        }
    result: dict[str, str] = {}
    for keys in groups:
        for wanted in keys:
            for key, value in card.items():
                if wanted in key and value.strip():
                    result[key] = value
                    break
    return result


def fun_facts(summary: str) -> list[str]:
    """Use the first sentence of a long summary as a fact."""
    if len(summary) <= _MIN_FACT_SUMMARY_CHARS:
        return []
    first = _SENTENCE_SPLIT.split(summary, maxsplit=1)[0].strip()
    if len(first) <= _MIN_FACT_CHARS:
        return []
    return [first]


def _card_value(card: dict[str, str], keys: tuple[str, ...]) -> str | None:
    for wanted in keys:
        for key, value in card.items():
            if wanted in key and value.strip():
                return value.strip()
    return None
