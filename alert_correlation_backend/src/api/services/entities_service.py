from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from fastapi import Request

from src.api.clients.nerdgraph import NerdGraphUnavailableError, dig
from src.api.schemas.alerts import NrqlConditionOut
from src.api.schemas.entities import EntityCorrelationOut
from src.api.services.alerts_service import (
    doc_to_condition_out,
    enrich_conditions,
    fetch_conditions,
    fetch_policies,
    policy_name_lookup,
)
from src.api.services.correlation import build_guid_index, correlate, match_entity
from src.api.services.pagination import Page, collect_all
from src.api.services.queries import ENTITY_BY_GUID_QUERY, ENTITY_SEARCH_QUERY, entity_search_filter
from src.api.state import AppState, get_state

logger = logging.getLogger(__name__)


async def fetch_entities(state: AppState, name: Optional[str] = None) -> List[dict]:
    """Collect monitored entities matching the configured search (optionally one exact name)."""
    cfg = state.config
    search = entity_search_filter(cfg.entity_search_query, name)

    async def _fetch_page(cursor: Optional[str]) -> Optional[Page]:
        body = await state.nerdgraph.execute(ENTITY_SEARCH_QUERY, {"query": search, "cursor": cursor})
        result = dig(body, "data", "actor", "entitySearch", "results")
        if not isinstance(result, dict):
            return None
        entities = result.get("entities")
        items = [e for e in entities if isinstance(e, dict)] if isinstance(entities, list) else []
        return Page(items=items, next_cursor=result.get("nextCursor"))

    return await collect_all(_fetch_page, cfg.pagination_max_pages, label="entitySearch")


# PUBLIC_INTERFACE
async def list_entities(request: Request, name: Optional[str] = None) -> List[EntityCorrelationOut]:
    """Return entities cross-referenced with the alert conditions that apply to them."""
    state = get_state(request.app)
    entities, conditions = await asyncio.gather(fetch_entities(state, name), fetch_conditions(state))
    return correlate(entities, conditions, state.type_labels)


async def lookup_entity(state: AppState, guid: str) -> Optional[dict]:
    """
    Look up one entity by GUID.

    Returns None when NerdGraph answered without an entity; raises NerdGraphUnavailableError
    when it did not answer at all.
    """
    body = await state.nerdgraph.execute(ENTITY_BY_GUID_QUERY, {"guid": guid})
    if body is None:
        logger.warning("Entity lookup for %s got no answer from NerdGraph", guid)
        raise NerdGraphUnavailableError(f"entity lookup for {guid} failed")
    entity = dig(body, "data", "actor", "entity")
    return entity if isinstance(entity, dict) else None


# PUBLIC_INTERFACE
async def list_entity_conditions(request: Request, guid: str) -> Optional[List[NrqlConditionOut]]:
    """
    Return the enriched conditions matched to one entity.

    Returns None when the GUID does not resolve to an entity.
    """
    state = get_state(request.app)
    entity = await lookup_entity(state, guid)
    if entity is None:
        return None

    conditions, policies = await asyncio.gather(fetch_conditions(state), fetch_policies(state))

    # Match on the GUID that was asked for.
    entity = {**entity, "guid": guid}
    matched, strategy = match_entity(entity, conditions, build_guid_index(conditions))
    logger.info("Entity %s matched %s conditions (strategy=%s)", guid, len(matched), strategy)

    enriched = await enrich_conditions(state, matched)
    names_by_policy = policy_name_lookup(policies)
    return [doc_to_condition_out(doc, names_by_policy) for doc in enriched]
