from __future__ import annotations

import logging
import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.config import load_config
from src.api.routers import alerts, entities, health
from src.api.state import get_state, init_state

openapi_tags = [
    {"name": "Health", "description": "Service health and NerdGraph connectivity."},
    {"name": "Alerts", "description": "NRQL alert conditions enriched with the entity they really target."},
    {"name": "Entities", "description": "Monitored entities cross-referenced with alert conditions."},
]

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Alert Entity Correlation API",
    description=(
        "Backend API that pulls alert conditions, policies and monitored entities from NerdGraph "
        "and correlates them. Nothing is stored: every request re-derives the view from the remote API."
    ),
    version="1.0.0",
    openapi_tags=openapi_tags,
)

# Initialize typed app state (config + NerdGraph client + entity type labels)
init_state(app, load_config())


@app.on_event("shutdown")
async def _on_shutdown() -> None:
    """Shutdown hook: close pooled NerdGraph connections."""
    await get_state(app).nerdgraph.close()


def _env_frontend_url() -> str | None:
    return os.getenv("FRONTEND_URL")


def _env_cors_extra_origins() -> List[str]:
    # Comma-separated list for preview deployments, etc.
    raw = os.getenv("CORS_ALLOW_ORIGINS") or ""
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    return parts


def cors_allowed_origins() -> List[str]:
    """Local frontend by default, plus FRONTEND_URL and CORS_ALLOW_ORIGINS; de-duplicated in order."""
    origins: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    frontend_url = _env_frontend_url()
    if frontend_url:
        origins.append(frontend_url)
    origins.extend(_env_cors_extra_origins())

    seen = set()
    return [o for o in origins if not (o in seen or seen.add(o))]


allowed_origins = cors_allowed_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(alerts.router)
app.include_router(entities.router)
