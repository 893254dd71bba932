"""Entity GUID recovery from NRQL condition queries.

Grammar of a GUID clause (keywords and IN are case-insensitive):

    clause   := keyword ws* operator ws* quote value quote
    keyword  := "entity.guid" | "entity guid" | "entityGuid" | "guid"
    operator := "=" | "IN" ws* "("
    quote    := "'" | '"'
    value    := one or more characters other than quotes

Only the first value of an IN (...) list is taken; one clause yields one GUID.
"""

from __future__ import annotations

import re
from typing import List, Optional

_GUID_CLAUSE = re.compile(
    r"\b(?:entity\.guid|entity\s+guid|entityguid|guid)\s*(?:IN\s*\(|=)\s*['\"]([^'\"]+)['\"]",
    re.IGNORECASE,
)


# PUBLIC_INTERFACE
def extract_entity_guids(nrql: Optional[str]) -> List[str]:
    """Return every GUID referenced by a GUID clause, in source order (duplicates kept)."""
    if not nrql or not isinstance(nrql, str):
        return []
    return [m.group(1) for m in _GUID_CLAUSE.finditer(nrql)]


def condition_query(condition: dict) -> str:
    """NRQL text of a raw condition document ('' when absent)."""
    nrql = condition.get("nrql") or {}
    query = nrql.get("query") if isinstance(nrql, dict) else None
    return query if isinstance(query, str) else ""


def declared_guid(condition: dict) -> Optional[str]:
    entity = condition.get("entity")
    if isinstance(entity, dict) and entity.get("guid"):
        return str(entity["guid"])
    return None


# PUBLIC_INTERFACE
def effective_entity_guids(condition: dict) -> List[str]:
    """GUIDs extracted from the condition's NRQL, else its declared entity GUID, else []."""
    extracted = extract_entity_guids(condition_query(condition))
    if extracted:
        return extracted
    declared = declared_guid(condition)
    return [declared] if declared else []


def primary_entity_guid(condition: dict) -> Optional[str]:
    """The GUID a condition is resolved against: its first effective GUID."""
    guids = effective_entity_guids(condition)
    return guids[0] if guids else None


# PUBLIC_INTERFACE
def matchable_guids(condition: dict) -> List[str]:
    """Union of extracted GUIDs and the declared GUID, de-duplicated, first-seen order."""
    out: List[str] = []
    declared = declared_guid(condition)
    for guid in extract_entity_guids(condition_query(condition)) + ([declared] if declared else []):
        if guid not in out:
            out.append(guid)
    return out
