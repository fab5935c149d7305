"""Supabase-backed object catalog lookup."""

import json
from dataclasses import dataclass

from supabase import Client

from object_recognition.domain.objects import ObjectDetails
from object_recognition.services.normalizer import DetailsLookup

_COLUMNS = "label, name_cn, name_en, aliases, origin, usage, category"


@dataclass
class SupabaseCatalogRepository(DetailsLookup):
    """Looks up learned objects first, then the built-in catalog."""

    client: Client

    def get_object_details(self, label: str) -> ObjectDetails | None:
        """Return details for a label from either catalog table."""
        for table in ("learned_objects", "catalog_objects"):
            response = (
                self.client.table(table)
                .select(_COLUMNS)
                .eq("label", label)
                .limit(1)
                .execute()
            )
            if response.data:
                return _to_details(response.data[0], label)
        return None


def _to_details(row: dict[str, object], label: str) -> ObjectDetails:
    return ObjectDetails(
        name=str(row.get("name_cn") or label),
        name_en=str(row.get("name_en") or label),
        aliases=parse_aliases(row.get("aliases")),
        origin=str(row.get("origin") or ""),
        usage=str(row.get("usage") or ""),
        category=str(row.get("category") or ""),
    )


def parse_aliases(raw: object) -> tuple[str, ...]:
    """Accept a list or a JSON-encoded list of aliases."""
    if isinstance(raw, list):
        values = raw
    elif isinstance(raw, str) and raw.strip():
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            decoded = raw.split(",")
        values = decoded if isinstance(decoded, list) else [decoded]
    else:
        return ()
    return tuple(str(value).strip() for value in values if str(value).strip())
