from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from src.api.config import mask_api_key
from src.api.schemas.common import HealthResponse, utc_now
from src.api.state import get_state

router = APIRouter(tags=["Health"])


class NerdGraphConnectivityResponse(BaseModel):
    """Response model for backend↔NerdGraph connectivity diagnostics."""

    ok: bool = Field(..., description="Whether a trivial NerdGraph query succeeded.")
    nerdgraph_url: str = Field(..., description="Configured NerdGraph endpoint.")
    account_id: int = Field(..., description="Configured account id.")
    api_key_masked: str = Field(..., description="API key with all but a short prefix masked.")
    timeout_sec: float = Field(..., description="Per-call timeout (seconds).")
    enrich_concurrency: int = Field(..., description="Max simultaneous entity resolutions per request.")
    entity_type_labels_version: int = Field(..., description="Version of the entity type label table in use.")
    timestamp: str = Field(..., description="UTC timestamp when the check was performed (ISO string).")
    meta: Dict[str, Any] = Field(default_factory=dict, description="Optional debug metadata.")


@router.get(
    "/",
    response_model=HealthResponse,
    summary="Health check",
    description="Basic service liveness check used by deployment and the frontend.",
    operation_id="health_check",
)
def health_check() -> HealthResponse:
    """Return service liveness status."""
    return HealthResponse(status="ok", message="Healthy", timestamp=utc_now())


@router.get(
    "/api/health/nerdgraph",
    response_model=NerdGraphConnectivityResponse,
    summary="NerdGraph connectivity check",
    description="Runs a trivial NerdGraph query and reports the effective client configuration. The API key is masked.",
    operation_id="nerdgraph_connectivity_check",
)
async def nerdgraph_connectivity_check(request: Request) -> NerdGraphConnectivityResponse:
    """Connectivity check endpoint to validate backend↔NerdGraph credentials and reachability."""
    state = get_state(request.app)
    cfg = state.config
    ok = await state.nerdgraph.ping()

    return NerdGraphConnectivityResponse(
        ok=ok,
        nerdgraph_url=cfg.nerdgraph_url,
        account_id=cfg.account_id,
        api_key_masked=mask_api_key(cfg.api_key),
        timeout_sec=cfg.nerdgraph_timeout_sec,
        enrich_concurrency=cfg.enrich_concurrency,
        entity_type_labels_version=state.type_labels.version,
        timestamp=utc_now().isoformat(),
        meta={},
    )
