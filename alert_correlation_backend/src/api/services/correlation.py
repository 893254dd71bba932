from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from src.api.schemas.entities import EntityCorrelationOut
from src.api.services.entity_types import EntityTypeLabels
from src.api.services.nrql import condition_query, matchable_guids

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def build_guid_index(conditions: Sequence[dict]) -> Dict[str, List[dict]]:
    """Map every GUID a condition references (extracted or declared) to the conditions using it."""
    index: Dict[str, List[dict]] = {}
    for cond in conditions:
        if not cond.get("name"):
            continue
        # matchable_guids is already deduplicated per condition.
        for guid in matchable_guids(cond):
            index.setdefault(guid, []).append(cond)
    return index


def _name_matches(entity_name: str, conditions: Sequence[dict]) -> List[dict]:
    """Conditions whose NRQL or name contains the entity name; lowercase comparison only."""
    needle = entity_name.lower()
    if not needle:
        return []
    out: List[dict] = []
    for cond in conditions:
        name = cond.get("name") or ""
        if not name:
            continue
        if needle in condition_query(cond).lower() or needle in name.lower():
            out.append(cond)
    return out


# PUBLIC_INTERFACE
def condition_names(conditions: Sequence[dict]) -> List[str]:
    """Distinct condition names in first-seen order."""
    names: List[str] = []
    for cond in conditions:
        name = cond.get("name")
        if name and name not in names:
            names.append(name)
    return names


# PUBLIC_INTERFACE
def match_entity(
    entity: dict,
    conditions: Sequence[dict],
    guid_index: Dict[str, List[dict]],
) -> Tuple[List[dict], Optional[str]]:
    """
    Return (matched condition documents, strategy) for one entity.

    GUID lookup first; only when it finds nothing, fall back to the name-substring scan.
    Recreated entities keep their name but get a new GUID, which is what the fallback catches.
    """
    guid = entity.get("guid")
    by_guid = list(guid_index.get(guid, [])) if guid else []
    if by_guid:
        return by_guid, "guid"

    by_name = _name_matches(entity.get("name") or "", conditions)
    if by_name:
        return by_name, "name"
    return [], None


# PUBLIC_INTERFACE
def correlate(
    entities: Sequence[dict],
    conditions: Sequence[dict],
    type_labels: EntityTypeLabels,
) -> List[EntityCorrelationOut]:
    """Build one correlation record per entity, in entity order."""
    guid_index = build_guid_index(conditions)
    results: List[EntityCorrelationOut] = []
    name_matched = 0

    for entity in entities:
        matched, strategy = match_entity(entity, conditions, guid_index)
        names = condition_names(matched)
        if strategy == "name":
            name_matched += 1
        results.append(
            EntityCorrelationOut(
                guid=entity.get("guid"),
                name=entity.get("name"),
                type=entity.get("type"),
                domain=entity.get("domain"),
                friendlyType=type_labels.friendly(entity.get("type"), entity.get("domain")),
                hasAlerts=bool(names),
                alerts=names,
                alertCount=len(names),
                matchStrategy=strategy,
            )
        )

    logger.info(
        "Correlated %s entities with %s conditions (%s matched by name fallback)",
        len(results),
        len(conditions),
        name_matched,
    )
    return results
