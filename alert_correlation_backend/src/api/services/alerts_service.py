from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import Request

from src.api.clients.nerdgraph import dig
from src.api.schemas.alerts import EntityRef, NrqlConditionOut, NrqlQuery, PolicyOut, ThresholdTerm
from src.api.services.enrichment import enrich, merge_real_entity
from src.api.services.nrql import condition_query, extract_entity_guids, primary_entity_guid
from src.api.services.pagination import Page, collect_all
from src.api.services.queries import (
    CONDITIONS_BY_POLICY_QUERY,
    CONDITIONS_QUERY,
    ENTITY_BY_GUID_QUERY,
    POLICIES_QUERY,
    conditions_variables,
)
from src.api.services.terms import format_terms
from src.api.state import AppState, get_state

logger = logging.getLogger(__name__)


def _as_list(v: Any) -> list:
    return v if isinstance(v, list) else []


async def fetch_conditions(state: AppState, policy_id: Optional[str] = None) -> List[dict]:
    """Collect every NRQL condition of the account (optionally of one policy) as raw documents."""
    cfg = state.config
    query = CONDITIONS_BY_POLICY_QUERY if policy_id is not None else CONDITIONS_QUERY
    reported_total: List[int] = []

    async def _fetch_page(cursor: Optional[str]) -> Optional[Page]:
        body = await state.nerdgraph.execute(query, conditions_variables(cfg.account_id, cursor, policy_id))
        result = dig(body, "data", "actor", "account", "alerts", "nrqlConditionsSearch")
        if not isinstance(result, dict):
            return None
        if isinstance(result.get("totalCount"), int) and not reported_total:
            reported_total.append(result["totalCount"])
        items = [c for c in _as_list(result.get("nrqlConditions")) if isinstance(c, dict)]
        return Page(items=items, next_cursor=result.get("nextCursor"))

    conditions = await collect_all(_fetch_page, cfg.pagination_max_pages, label="nrqlConditionsSearch")
    if reported_total and len(conditions) < reported_total[0]:
        logger.warning(
            "Collected %s of %s reported NRQL conditions (policyId=%s)", len(conditions), reported_total[0], policy_id
        )
    return conditions


async def fetch_policies(state: AppState) -> List[dict]:
    """Collect every alert policy of the account as raw {id, name} documents."""
    cfg = state.config

    async def _fetch_page(cursor: Optional[str]) -> Optional[Page]:
        body = await state.nerdgraph.execute(POLICIES_QUERY, {"accountId": cfg.account_id, "cursor": cursor})
        result = dig(body, "data", "actor", "account", "alerts", "policiesSearch")
        if not isinstance(result, dict):
            return None
        items = [p for p in _as_list(result.get("policies")) if isinstance(p, dict) and p.get("id") is not None]
        return Page(items=items, next_cursor=result.get("nextCursor"))

    return await collect_all(_fetch_page, cfg.pagination_max_pages, label="policiesSearch")


async def resolve_entity(state: AppState, guid: Optional[str]) -> Optional[dict]:
    """Look up an entity by GUID; None when there is no GUID or nothing came back."""
    if not guid:
        return None
    body = await state.nerdgraph.execute(ENTITY_BY_GUID_QUERY, {"guid": guid})
    entity = dig(body, "data", "actor", "entity")
    return entity if isinstance(entity, dict) else None


async def enrich_conditions(state: AppState, conditions: List[dict]) -> List[dict]:
    """Attach `realEntity` to every condition, resolving at most enrich_concurrency GUIDs at once."""

    async def _resolve(condition: dict) -> Optional[dict]:
        return await resolve_entity(state, primary_entity_guid(condition))

    return await enrich(conditions, _resolve, merge_real_entity, limit=state.config.enrich_concurrency)


def policy_name_lookup(policies: List[dict]) -> Dict[str, str]:
    return {str(p["id"]): str(p.get("name") or "") for p in policies}


def _entity_ref(v: Any) -> Optional[EntityRef]:
    return EntityRef.model_validate(v) if isinstance(v, dict) else None


def doc_to_condition_out(doc: dict, policy_names: Optional[Dict[str, str]] = None) -> NrqlConditionOut:
    policy_id = doc.get("policyId")
    policy_id = str(policy_id) if policy_id is not None else None
    terms = [t for t in _as_list(doc.get("terms")) if isinstance(t, dict)]
    query = condition_query(doc)
    return NrqlConditionOut(
        id=str(doc.get("id", "")),
        name=doc.get("name") or "",
        description=doc.get("description"),
        enabled=bool(doc.get("enabled", True)),
        type=doc.get("type"),
        runbookUrl=doc.get("runbookUrl"),
        policyId=policy_id,
        policyName=(policy_names or {}).get(policy_id) if policy_id else None,
        nrql=NrqlQuery(query=query or None),
        terms=[ThresholdTerm.model_validate(t) for t in terms],
        entity=_entity_ref(doc.get("entity")),
        realEntity=_entity_ref(doc.get("realEntity")) or EntityRef(),
        entityGuids=extract_entity_guids(query),
        formattedTerms=format_terms(terms),
    )


# PUBLIC_INTERFACE
async def list_policies(request: Request) -> List[PolicyOut]:
    """Return all alert policies."""
    policies = await fetch_policies(get_state(request.app))
    return [PolicyOut(id=str(p["id"]), name=str(p.get("name") or "")) for p in policies]


# PUBLIC_INTERFACE
async def list_conditions(request: Request, policy_id: Optional[str] = None) -> List[NrqlConditionOut]:
    """
    Return NRQL conditions enriched with their resolved entity, policy name and formatted terms.

    Conditions and policies are collected concurrently; both tolerate remote failures
    (an unavailable collection is simply empty).
    """
    state = get_state(request.app)
    conditions, policies = await asyncio.gather(fetch_conditions(state, policy_id), fetch_policies(state))
    enriched = await enrich_conditions(state, conditions)
    names = policy_name_lookup(policies)
    return [doc_to_condition_out(doc, names) for doc in enriched]
