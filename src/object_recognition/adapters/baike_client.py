"""Baidu Baike lemma card client."""

from dataclasses import dataclass

import httpx

from object_recognition.domain.knowledge import KnowledgeEntry
from object_recognition.services.knowledge import KnowledgeSource

BAIKE_URL = "https://baike.baidu.com/api/openapi/BaikeLemmaCardApi"
_BAIKE_APP_ID = "379020"
_SUMMARY_LENGTH = 600


@dataclass
class HttpxBaikeClient(KnowledgeSource):
    """Knowledge source backed by the public Baike lemma card API."""

    http_client: httpx.AsyncClient

    @classmethod
    def create(cls) -> "HttpxBaikeClient":
        """Create a Baike client with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient())

    async def get_knowledge(self, keyword: str) -> KnowledgeEntry | None:
        """Fetch the lemma card for a keyword."""
        if not keyword.strip():
            return None
        response = await self.http_client.get(
            BAIKE_URL,
            params={
                "scope": "103",
                "format": "json",
                "appid": _BAIKE_APP_ID,
                "bk_key": keyword.strip(),
                "bk_length": str(_SUMMARY_LENGTH),
            },
            headers={"User-Agent": "Mozilla/5.0"},
            timeout=5,
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            return None
        return parse_lemma_card(payload)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def parse_lemma_card(payload: dict[str, object]) -> KnowledgeEntry | None:
    """Map a lemma card payload to an entry; cards without a title are misses."""
    title = str(payload.get("title") or "").strip()
    if not title:
        return None
    summary = str(payload.get("abstract") or "")
    description = str(payload.get("desc") or "")
    basic_info: dict[str, str] = {}
    card = payload.get("card")
    if isinstance(card, list):
        for item in card:
            if not isinstance(item, dict):
                continue
            key = str(item.get("key") or "").strip()
            value = _card_text(item.get("value"))
            if key and value:
                basic_info[key] = value
    return KnowledgeEntry(
        title=title,
        summary=summary or description,
        description=description,
        image_url=str(payload.get("image") or "") or None,
        page_url=str(payload.get("url") or "") or None,
        basic_info=basic_info,
    )


def _card_text(raw: object) -> str:
    # Card values arrive either as text or as a list of text fragments.
    if isinstance(raw, list):
        return "、".join(str(part).strip() for part in raw if str(part).strip())
    return str(raw or "").strip()
