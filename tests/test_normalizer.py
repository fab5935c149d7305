"""Tests for result normalization."""

import math

import pytest
from pydantic import ValidationError

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
from object_recognition.services.normalizer import (
    DetailsLookup,
    ResultNormalizer,
    format_label,
    parse_description,
)
from tests.conftest import InMemoryCatalog

MUG = ObjectDetails(
    name="马克杯",
    name_en="Mug",
    aliases=("杯子",),
    origin="起源于欧洲",
    usage="用于盛装饮品",
    category="日用品",
)


def test_local_result_uses_catalog_details() -> None:
    catalog = InMemoryCatalog(details={"mug": MUG})
    normalizer = ResultNormalizer(details_lookup=catalog)

    info = normalizer.from_local(LocalResult(label="mug", confidence=0.82))

    assert info.name == "马克杯"
    assert info.name_en == "Mug"
    assert info.aliases == ["杯子"]
    assert info.category == "日用品"
    assert info.object_type is ObjectType.DAILY_USE
    assert info.source is RecognitionSource.LOCAL_CLASSIFIER
    assert catalog.lookups == ["mug"]


def test_local_result_without_details_gets_placeholders() -> None:
    info = ResultNormalizer().from_local(
        LocalResult(label="coffee_mug", confidence=0.7)
    )

    assert info.name == "Coffee Mug"
    assert info.name_en == "coffee_mug"
    assert info.origin == DEFAULT_ORIGIN
    assert info.usage == DEFAULT_USAGE
    assert info.category == DEFAULT_CATEGORY
    assert info.object_type is ObjectType.GENERAL


@pytest.mark.parametrize("label", ["n01_keyboard", "m25_nameC", "12-foo", "  "])
def test_technical_labels_become_unknown(label: str) -> None:
    assert format_label(label) == UNKNOWN_NAME


def test_api_result_category_comes_from_root() -> None:
    result = ApiResult(
        name="键盘",
        description="分类: 商品-数码产品",
        confidence=0.91,
        provider="BAIDU_API",
        raw={"root": "商品-数码产品", "keyword": "键盘"},
    )

    info = ResultNormalizer().from_api(result)

    assert info.name == "键盘"
    assert info.category == "商品-数码产品"
    assert info.object_type is ObjectType.ELECTRONICS
    assert info.source is RecognitionSource.FREE_API
    assert info.usage == "分类: 商品-数码产品"


def test_parse_description_picks_markers() -> None:
    parsed = parse_description(
        "别名：茶杯、水杯\n起源于中国古代。主要用于喝茶；类别：餐具"
    )

    assert parsed.aliases == ["茶杯", "水杯"]
    assert parsed.origin == "起源于中国古代"
    assert parsed.usage == "主要用于喝茶"
    assert parsed.category == "餐具"


def test_parse_description_uses_free_text_as_usage() -> None:
    text = "一种常见的器物" * 40

    parsed = parse_description(text)

    assert parsed.usage == text[:200]
    assert parsed.origin is None


def test_category_line_still_falls_back_to_usage() -> None:
    parsed = parse_description("属于家具")

    assert parsed.category == "家具"
    assert parsed.usage == "属于家具"


def test_user_ai_result_keeps_extended_fields() -> None:
    result = AiResult.model_validate(
        {
            "name": "机械键盘",
            "description": "一种输入设备",
            "aliases": ["键盘"],
            "origin": "起源于打字机",
            "usage": "用于输入文字",
            "category": "电子产品",
            "confidence": 1.7,
            "brand": "Cherry",
            "priceRange": "300-800元",
            "species": "null",
            "features": None,
        }
    )

    info = ResultNormalizer().from_user_ai(result)

    assert info.confidence == 1.0
    assert info.brand == "Cherry"
    assert info.price_range == "300-800元"
    assert info.species is None
    assert info.features == []
    assert info.description == "一种输入设备"
    assert info.source is RecognitionSource.USER_AI
    assert info.object_type is ObjectType.ELECTRONICS


def test_user_ai_lookup_only_when_fields_missing() -> None:
    catalog = InMemoryCatalog(details={"马克杯": MUG})
    normalizer = ResultNormalizer(details_lookup=catalog)

    complete = normalizer.from_user_ai(
        AiResult(name="马克杯", origin="来历", usage="用途", category="日用品")
    )
    partial = normalizer.from_user_ai(AiResult(name="马克杯"))

    assert complete.origin == "来历"
    assert partial.origin == MUG.origin
    assert partial.category == MUG.category
    assert catalog.lookups == ["马克杯"]


def test_lookup_errors_are_ignored() -> None:
    class BrokenCatalog(DetailsLookup):
        def get_object_details(self, label: str) -> ObjectDetails | None:
            raise RuntimeError("catalog offline")

    info = ResultNormalizer(details_lookup=BrokenCatalog()).from_local(
        LocalResult(label="mug", confidence=0.6)
    )

    assert info.name == "Mug"
    assert info.origin == DEFAULT_ORIGIN


@pytest.mark.parametrize(
    ("raw", "expected"), [(-0.4, 0.0), (1.3, 1.0), (math.nan, 0.0), (0.42, 0.42)]
)
def test_confidence_is_clamped(raw: float, expected: float) -> None:
    info = ResultNormalizer().from_local(LocalResult(label="cup", confidence=raw))

    assert info.confidence == expected


def test_object_info_rejects_blank_name() -> None:
    with pytest.raises(ValidationError):
        ObjectInfo(
            name=" ",
            origin="o",
            usage="u",
            category="c",
            confidence=0.5,
            source=RecognitionSource.FREE_API,
        )


def test_source_parses_unknown_text_as_local() -> None:
    info = ObjectInfo(
        name="杯子",
        origin="o",
        usage="u",
        category="c",
        confidence=0.5,
        source="something-else",
    )

    assert info.source is RecognitionSource.LOCAL_CLASSIFIER
    assert RecognitionSource.parse(" user_ai ") is RecognitionSource.USER_AI
