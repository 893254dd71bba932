from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Path, Query, Request

from src.api.clients.nerdgraph import NerdGraphUnavailableError
from src.api.schemas.alerts import NrqlConditionOut
from src.api.schemas.common import ErrorResponse
from src.api.schemas.entities import EntityCorrelationOut
from src.api.services import entities_service

router = APIRouter(prefix="/api/entities", tags=["Entities"])


@router.get(
    "",
    response_model=List[EntityCorrelationOut],
    summary="List entities with their alert coverage",
    description=(
        "Monitored entities cross-referenced with NRQL conditions: matched by GUID first, "
        "then by entity name appearing in a condition's query or name."
    ),
    operation_id="list_entities",
)
async def list_entities(
    request: Request,
    name: Optional[str] = Query(default=None, description="Optional exact entity name filter."),
) -> List[EntityCorrelationOut]:
    """List entities with correlated conditions."""
    return await entities_service.list_entities(request, name=(name or "").strip() or None)


@router.get(
    "/{guid}/conditions",
    response_model=List[NrqlConditionOut],
    responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="List conditions for an entity",
    description="Enriched NRQL conditions matched to a single entity.",
    operation_id="list_entity_conditions",
)
async def list_entity_conditions(
    request: Request,
    guid: str = Path(..., description="Entity GUID."),
) -> List[NrqlConditionOut]:
    """List conditions matched to one entity."""
    try:
        items = await entities_service.list_entity_conditions(request, guid)
    except NerdGraphUnavailableError:
        raise HTTPException(status_code=502, detail="NerdGraph unavailable") from None
    if items is None:
        raise HTTPException(status_code=404, detail="entity not found")
    return items
