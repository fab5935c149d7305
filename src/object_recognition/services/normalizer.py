"""Normalization of tier-specific results into ObjectInfo."""

import logging
import re
from dataclasses import dataclass, field
from typing import Protocol

from object_recognition.domain.objects import (
    DEFAULT_CATEGORY,
    DEFAULT_ORIGIN,
    DEFAULT_USAGE,
    UNKNOWN_NAME,
    AiResult,
    ApiResult,
    LocalResult,
    ObjectDetails,
    ObjectInfo,
    ObjectType,
    RecognitionSource,
)

_logger = logging.getLogger(__name__)

# Classifier labels such as "n01_xxx", "m25_nameC" or "12-foo" carry no
# display value.
_TECHNICAL_LABEL = re.compile(r"^[a-z]\d+[_-]|^\d+[_-]|[A-Z]$")
_DESCRIPTION_SPLIT = re.compile(r"[\n。；]")
_ALIAS_SPLIT = re.compile(r"[、,，]")
_MAX_USAGE_CHARS = 200


class DetailsLookup(Protocol):
    """Catalog of previously learned or built-in object details."""

    def get_object_details(self, label: str) -> ObjectDetails | None:
        """Return catalogued details for a label, if known."""


@dataclass
class _ParsedDescription:
    aliases: list[str] = field(default_factory=list)
    origin: str | None = None
    usage: str | None = None
    category: str | None = None


@dataclass
class ResultNormalizer:
    """Maps each tier's result shape onto the canonical ObjectInfo."""

    details_lookup: DetailsLookup | None = None

    def from_local(self, result: LocalResult) -> ObjectInfo:
        details = result.details or self._lookup(result.label)
        name = _first_text(
            details.name if details else None, format_label(result.label)
        )
        return _build(
            name=name,
            name_en=_first_text(details.name_en if details else None, result.label),
            aliases=list(details.aliases) if details else [],
            origin=details.origin if details else None,
            usage=details.usage if details else None,
            category=details.category if details else None,
            confidence=result.confidence,
            source=RecognitionSource.LOCAL_CLASSIFIER,
        )

    def from_api(self, result: ApiResult) -> ObjectInfo:
        parsed = parse_description(result.description)
        details = self._lookup(result.name)
        root = result.raw.get("root")
        category = root if isinstance(root, str) and root.strip() else None
        return _build(
            name=_first_text(result.name, details.name if details else None),
            name_en=details.name_en if details else "",
            aliases=parsed.aliases or (list(details.aliases) if details else []),
            origin=_first_text(parsed.origin, details.origin if details else None),
            usage=_first_text(parsed.usage, details.usage if details else None),
            category=_first_text(
                category, parsed.category, details.category if details else None
            ),
            confidence=result.confidence,
            source=RecognitionSource.FREE_API,
        )

    def from_user_ai(self, result: AiResult) -> ObjectInfo:
        details = None
        if not (result.origin.strip() and result.usage.strip()):
            details = self._lookup(result.name)
        return _build(
            name=result.name,
            name_en=details.name_en if details else "",
            aliases=result.aliases or (list(details.aliases) if details else []),
            origin=_first_text(result.origin, details.origin if details else None),
            usage=_first_text(result.usage, details.usage if details else None),
            category=_first_text(
                result.category, details.category if details else None
            ),
            confidence=result.confidence,
            source=RecognitionSource.USER_AI,
            description=result.description or None,
            brand=result.brand,
            model=result.model,
            species=result.species,
            price_range=result.price_range,
            material=result.material,
            color=result.color,
            size=result.size,
            manufacturer=result.manufacturer,
            features=list(result.features),
        )

    def _lookup(self, label: str) -> ObjectDetails | None:
        if self.details_lookup is None or not label.strip():
            return None
        try:
            return self.details_lookup.get_object_details(label)
        except Exception:
            _logger.exception("Details lookup failed for label=%s", label)
            return None


def _build(  # noqa: PLR0913
    *,
    name: str | None,
    name_en: str | None,
    aliases: list[str],
    origin: str | None,
    usage: str | None,
    category: str | None,
    confidence: float,
    source: RecognitionSource,
    **extra: object,
) -> ObjectInfo:
    resolved_category = _first_text(category, DEFAULT_CATEGORY)
    resolved_name = _first_text(name, UNKNOWN_NAME)
    return ObjectInfo(
        name=resolved_name,
        name_en=_first_text(name_en, resolved_name),
        aliases=[alias.strip() for alias in aliases if alias.strip()],
        origin=_first_text(origin, DEFAULT_ORIGIN),
        usage=_first_text(usage, DEFAULT_USAGE),
        category=resolved_category,
        confidence=confidence,
        source=source,
        object_type=ObjectType.from_category(resolved_category),
        **extra,
    )


def _first_text(*values: str | None) -> str:
    """Return the first non-blank value, or an empty string."""
    for value in values:
        if value is not None and value.strip():
            return value.strip()
    return ""


def format_label(label: str) -> str:
    """Turn a classifier label into a display name."""
    if not label.strip() or _TECHNICAL_LABEL.search(label):
        return UNKNOWN_NAME
    words = label.replace("_", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def parse_description(description: str) -> _ParsedDescription:
    """Pick alias, origin, usage and category hints out of free text."""
    parsed = _ParsedDescription()
    for line in _DESCRIPTION_SPLIT.split(description):
        text = line.strip()
        if not text:
            continue
        if any(marker in text for marker in ("别名", "又称", "也叫")):
            cleaned = _strip_markers(text, ("别名", "又称", "也叫"))
            parsed.aliases.extend(
                alias.strip() for alias in _ALIAS_SPLIT.split(cleaned) if alias.strip()
            )
        elif any(marker in text for marker in ("起源", "来历", "历史")):
            parsed.origin = text
        elif any(marker in text for marker in ("用途", "用于", "作用")):
            parsed.usage = text
        elif any(marker in text for marker in ("类别", "分类", "属于")):
            parsed.category = _strip_markers(text, ("类别", "分类", "属于")) or None
    if parsed.usage is None and description.strip():
        parsed.usage = description.strip()[:_MAX_USAGE_CHARS]
    return parsed


def _strip_markers(text: str, markers: tuple[str, ...]) -> str:
    for marker in (*markers, "：", ":"):
        text = text.replace(marker, "")
    return text.strip()
