from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


DEFAULT_NERDGRAPH_URL = "https://api.newrelic.com/graphql"
DEFAULT_ENTITY_SEARCH_QUERY = "domain IN ('APM', 'INFRA', 'SYNTH', 'BROWSER', 'MOBILE')"


def _env_int(name: str, default: int) -> int:
    """Parse an int env var with a default."""
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return int(default)


def _env_float(name: str, default: float) -> float:
    """Parse a float env var with a default."""
    try:
        return float(os.getenv(name, str(default)))
    except Exception:
        return float(default)


def _clamp_int(v: int, lo: int, hi: int) -> int:
    """Clamp integer to [lo, hi]."""
    return max(lo, min(hi, int(v)))


def _clamp_float(v: float, lo: float, hi: float) -> float:
    """Clamp float to [lo, hi]."""
    return max(lo, min(hi, float(v)))


@dataclass(frozen=True)
class BackendConfig:
    """Runtime configuration loaded from env once at process start."""

    api_key: str
    account_id: int
    nerdgraph_url: str

    # Upper bound for a single NerdGraph call (seconds).
    nerdgraph_timeout_sec: float

    # Max simultaneous entity resolutions per request.
    enrich_concurrency: int

    # Safety cap against a remote that keeps returning cursors.
    pagination_max_pages: int

    entity_search_query: str
    entity_type_labels_path: Optional[str] = None


# PUBLIC_INTERFACE
def mask_api_key(key: str) -> str:
    """Mask an API key so only a short prefix is visible (safe for logs and responses)."""
    if not key:
        return ""
    if len(key) <= 8:
        return "***"
    return f"{key[:4]}***{key[-2:]}"


# PUBLIC_INTERFACE
def load_config() -> BackendConfig:
    """Load BackendConfig from env vars; raises RuntimeError on missing credentials."""
    api_key = (os.getenv("NEW_RELIC_API_KEY") or "").strip()
    if not api_key:
        raise RuntimeError("NerdGraph API key not configured. Provide NEW_RELIC_API_KEY.")

    # ACCOUNT_ID is what existing deployments use; NEW_RELIC_ACCOUNT_ID is accepted as well.
    raw_account = (os.getenv("ACCOUNT_ID") or os.getenv("NEW_RELIC_ACCOUNT_ID") or "").strip()
    if not raw_account:
        raise RuntimeError("Account id not configured. Provide ACCOUNT_ID.")
    try:
        account_id = int(raw_account)
    except ValueError:
        raise RuntimeError(f"ACCOUNT_ID must be an integer, got {raw_account!r}") from None

    nerdgraph_url = (os.getenv("NERDGRAPH_URL") or DEFAULT_NERDGRAPH_URL).strip()

    timeout_sec = _clamp_float(_env_float("NERDGRAPH_TIMEOUT_SEC", 12.0), 1.0, 60.0)
    enrich_concurrency = _clamp_int(_env_int("ENRICH_CONCURRENCY", 5), 1, 50)
    max_pages = _clamp_int(_env_int("PAGINATION_MAX_PAGES", 50), 1, 1000)

    entity_search_query = (os.getenv("ENTITY_SEARCH_QUERY") or DEFAULT_ENTITY_SEARCH_QUERY).strip()
    labels_path = (os.getenv("ENTITY_TYPE_LABELS_PATH") or "").strip() or None

    logger.info(
        "Resolved NerdGraph config url=%s account=%s key=%s timeout=%ss concurrency=%s maxPages=%s",
        nerdgraph_url,
        account_id,
        mask_api_key(api_key),
        timeout_sec,
        enrich_concurrency,
        max_pages,
    )

    return BackendConfig(
        api_key=api_key,
        account_id=account_id,
        nerdgraph_url=nerdgraph_url,
        nerdgraph_timeout_sec=timeout_sec,
        enrich_concurrency=enrich_concurrency,
        pagination_max_pages=max_pages,
        entity_search_query=entity_search_query,
        entity_type_labels_path=labels_path,
    )
