"""Encyclopedia entries used to enrich recognition results."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class KnowledgeEntry:
    """Summary card of one encyclopedia lemma."""

    title: str
    summary: str = ""
    description: str = ""
    image_url: str | None = None
    page_url: str | None = None
    basic_info: dict[str, str] = field(default_factory=dict)
