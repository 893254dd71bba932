from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
from nerdgraph_fakes import TEST_ACCOUNT_ID, TEST_API_KEY, FakeNerdGraph

from src.api.config import BackendConfig


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def backend_config() -> BackendConfig:
    """Config built directly (no env) for unit tests."""
    return BackendConfig(
        api_key=TEST_API_KEY,
        account_id=TEST_ACCOUNT_ID,
        nerdgraph_url="https://nerdgraph.test/graphql",
        nerdgraph_timeout_sec=2.0,
        enrich_concurrency=5,
        pagination_max_pages=50,
        entity_search_query="domain IN ('APM', 'INFRA')",
    )


@pytest.fixture
def fake_nerdgraph() -> FakeNerdGraph:
    return FakeNerdGraph()


@pytest.fixture
def app(monkeypatch: pytest.MonkeyPatch, fake_nerdgraph: FakeNerdGraph):
    """
    FastAPI app fixture wired to the fake NerdGraph.

    Env vars are set before the app module is first imported (it loads config at import);
    state is re-initialized per test so every test gets a fresh client bound to its own fake.
    """
    monkeypatch.setenv("NEW_RELIC_API_KEY", TEST_API_KEY)
    monkeypatch.setenv("ACCOUNT_ID", str(TEST_ACCOUNT_ID))
    monkeypatch.setenv("NERDGRAPH_URL", "https://nerdgraph.test/graphql")
    for name in ("NERDGRAPH_TIMEOUT_SEC", "ENRICH_CONCURRENCY", "PAGINATION_MAX_PAGES", "ENTITY_SEARCH_QUERY", "ENTITY_TYPE_LABELS_PATH"):
        monkeypatch.delenv(name, raising=False)

    from src.api.config import load_config
    from src.api.main import app as fastapi_app
    from src.api.state import init_state

    init_state(fastapi_app, load_config(), transport=httpx.MockTransport(fake_nerdgraph.handler))
    return fastapi_app


@pytest.fixture
async def async_client(app) -> AsyncIterator[httpx.AsyncClient]:
    """Async HTTP client bound to the FastAPI ASGI app."""
    from src.api.state import get_state

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await get_state(app).nerdgraph.close()
