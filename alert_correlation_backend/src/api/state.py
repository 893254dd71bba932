from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import FastAPI

from src.api.clients.nerdgraph import NerdGraphClient
from src.api.config import BackendConfig
from src.api.services.entity_types import EntityTypeLabels, load_entity_type_labels


@dataclass
class AppState:
    """Typed app.state container for shared singletons."""

    config: BackendConfig
    nerdgraph: NerdGraphClient
    type_labels: EntityTypeLabels


# PUBLIC_INTERFACE
def init_state(app: FastAPI, config: BackendConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
    """Initialize app.state with the NerdGraph client, entity type labels and config."""
    client = NerdGraphClient(
        config.nerdgraph_url,
        config.api_key,
        timeout_sec=config.nerdgraph_timeout_sec,
        transport=transport,
    )
    app.state.state = AppState(
        config=config,
        nerdgraph=client,
        type_labels=load_entity_type_labels(config.entity_type_labels_path),
    )


# PUBLIC_INTERFACE
def get_state(app: FastAPI) -> AppState:
    """Fetch typed AppState from a FastAPI app."""
    return app.state.state  # type: ignore[attr-defined]
