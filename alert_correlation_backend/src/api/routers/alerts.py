from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Body, HTTPException, Query, Request

from src.api.schemas.alerts import ConditionSearchRequest, NrqlConditionOut, PolicyOut
from src.api.schemas.common import ErrorResponse
from src.api.services import alerts_service

router = APIRouter(prefix="/api/alerts", tags=["Alerts"])


@router.get(
    "/conditions",
    response_model=List[NrqlConditionOut],
    summary="List NRQL alert conditions",
    description=(
        "All NRQL conditions of the account with the entity each one really targets (resolved from the NRQL query), "
        "policy names and formatted threshold terms. Optionally filter by policyId."
    ),
    operation_id="list_alert_conditions",
)
async def list_conditions(
    request: Request,
    policy_id: Optional[str] = Query(default=None, alias="policyId", description="Optional policy filter."),
) -> List[NrqlConditionOut]:
    """List enriched alert conditions."""
    if policy_id is not None and not policy_id.strip():
        raise HTTPException(status_code=400, detail="policyId must not be empty")
    return await alerts_service.list_conditions(request, policy_id=policy_id.strip() if policy_id else None)


@router.post(
    "/conditions/search",
    response_model=List[NrqlConditionOut],
    responses={400: {"model": ErrorResponse}},
    summary="List alert conditions of a policy",
    description="Enriched NRQL conditions belonging to the policy given in the request body.",
    operation_id="search_alert_conditions_by_policy",
)
async def search_conditions(
    request: Request,
    payload: Optional[ConditionSearchRequest] = Body(default=None),
) -> List[NrqlConditionOut]:
    """List enriched alert conditions of one policy."""
    raw = payload.policy_id if payload else None
    policy_id = str(raw).strip() if raw is not None else ""
    if not policy_id:
        raise HTTPException(status_code=400, detail="policyId is required")
    return await alerts_service.list_conditions(request, policy_id=policy_id)


@router.get(
    "/policies",
    response_model=List[PolicyOut],
    summary="List alert policies",
    description="All alert policies of the account (id and name).",
    operation_id="list_alert_policies",
)
async def list_policies(request: Request) -> List[PolicyOut]:
    """List alert policies."""
    return await alerts_service.list_policies(request)
