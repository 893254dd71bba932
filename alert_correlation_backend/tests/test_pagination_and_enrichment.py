from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

import httpx
import pytest
from nerdgraph_fakes import FakeNerdGraph, make_condition

from src.api.clients.nerdgraph import NerdGraphClient
from src.api.services.alerts_service import enrich_conditions
from src.api.services.enrichment import bounded_map, enrich, merge_real_entity
from src.api.services.entity_types import EntityTypeLabels
from src.api.services.pagination import Page, collect_all
from src.api.state import AppState


def _chain(pages: Dict[Optional[str], Optional[Page]], calls: Optional[List[Optional[str]]] = None):
    async def fetch(cursor: Optional[str]) -> Optional[Page]:
        if calls is not None:
            calls.append(cursor)
        return pages.get(cursor)

    return fetch


@pytest.mark.anyio
async def test_two_pages_yield_all_items_in_arrival_order():
    calls: List[Optional[str]] = []
    pages = {
        None: Page(items=[f"a{i}" for i in range(50)], next_cursor="abc"),
        "abc": Page(items=[f"b{i}" for i in range(20)], next_cursor=None),
    }
    items = await collect_all(_chain(pages, calls))
    assert len(items) == 70
    assert items[0] == "a0" and items[49] == "a49" and items[50] == "b0"
    assert calls == [None, "abc"]

    # Same cursor chain, same result.
    assert await collect_all(_chain(pages)) == items


@pytest.mark.anyio
async def test_missing_page_returns_partial_results():
    pages = {None: Page(items=[1, 2], next_cursor="next")}  # "next" -> None
    assert await collect_all(_chain(pages)) == [1, 2]
    assert await collect_all(_chain({})) == []


@pytest.mark.anyio
async def test_repeated_cursor_stops_collection():
    calls: List[Optional[str]] = []
    pages = {
        None: Page(items=[1], next_cursor="loop"),
        "loop": Page(items=[2], next_cursor="loop"),
    }
    assert await collect_all(_chain(pages, calls)) == [1, 2]
    assert calls == [None, "loop"]


@pytest.mark.anyio
async def test_page_cap_limits_iterations():
    calls: List[Optional[str]] = []

    async def endless(cursor: Optional[str]) -> Page:
        calls.append(cursor)
        n = int(cursor or 0)
        return Page(items=[n], next_cursor=str(n + 1))

    assert await collect_all(endless, max_pages=3) == [0, 1, 2]
    assert len(calls) == 3


@pytest.mark.anyio
async def test_bounded_map_respects_ceiling_and_order():
    in_flight = 0
    peak = 0

    async def slow_double(x: int) -> int:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        # Later items finish first.
        await asyncio.sleep(0.001 * (30 - x))
        in_flight -= 1
        return x * 2

    out = await bounded_map(list(range(30)), slow_double, limit=5)
    assert out == [x * 2 for x in range(30)]
    assert peak <= 5
    assert peak == 5


@pytest.mark.anyio
async def test_bounded_map_isolates_failures():
    async def flaky(x: int) -> int:
        if x % 2:
            raise RuntimeError("boom")
        return x

    assert await bounded_map([0, 1, 2, 3], flaky, limit=2) == [0, None, 2, None]

    async def always_fails(x: int) -> int:
        raise ValueError(x)

    assert await bounded_map(list(range(7)), always_fails, limit=3) == [None] * 7


@pytest.mark.anyio
async def test_enrich_merges_and_keeps_cardinality():
    items = [{"id": 1}, {"id": 2}, {"id": 3}]

    async def resolve(item: dict) -> Optional[dict]:
        return {"label": f"x{item['id']}"} if item["id"] != 2 else None

    def merge(item: dict, res: Optional[dict]) -> dict:
        return {**item, "label": (res or {}).get("label", "unknown")}

    out = await enrich(items, resolve, merge, limit=2)
    assert out == [{"id": 1, "label": "x1"}, {"id": 2, "label": "unknown"}, {"id": 3, "label": "x3"}]


def test_merge_real_entity_prefers_resolved_values():
    cond = {
        "name": "CPU high",
        "nrql": {"query": "FROM SystemSample WHERE entityGuid = 'g-new'"},
        "entity": {"guid": "g-old", "name": "old-name", "type": "HOST", "domain": "INFRA"},
    }
    merged = merge_real_entity(cond, {"guid": "g-new", "name": "new-name", "type": "APPLICATION", "domain": "APM"})
    assert merged["realEntity"] == {"guid": "g-new", "name": "new-name", "type": "APPLICATION", "domain": "APM"}
    assert "realEntity" not in cond


def test_merge_real_entity_falls_back_to_declared_values():
    cond = {"nrql": {"query": "FROM X"}, "entity": {"guid": "g1", "name": "declared", "type": "HOST", "domain": "INFRA"}}
    assert merge_real_entity(cond, None)["realEntity"] == {
        "guid": "g1",
        "name": "declared",
        "type": "HOST",
        "domain": "INFRA",
    }
    partial = merge_real_entity(cond, {"name": "resolved", "type": None})
    assert partial["realEntity"]["name"] == "resolved"
    assert partial["realEntity"]["type"] == "HOST"


def test_merge_real_entity_without_guid_is_empty():
    cond = {"nrql": {"query": "FROM X"}, "entity": None}
    assert merge_real_entity(cond, None)["realEntity"] == {"guid": None, "name": None, "type": None, "domain": None}


@pytest.mark.anyio
async def test_slow_lookup_times_out_without_cancelling_siblings(backend_config):
    fake = FakeNerdGraph()
    fake.set_entities(
        [
            {"guid": "g1", "name": "api-1", "type": "APPLICATION", "domain": "APM"},
            {"guid": "g2", "name": "api-2", "type": "APPLICATION", "domain": "APM"},
            {"guid": "g3", "name": "api-3", "type": "APPLICATION", "domain": "APM"},
        ]
    )
    fake.slow_guids.add("g2")
    state = AppState(
        config=backend_config,
        nerdgraph=NerdGraphClient(
            backend_config.nerdgraph_url,
            backend_config.api_key,
            timeout_sec=0.05,
            transport=httpx.MockTransport(fake.handler),
        ),
        type_labels=EntityTypeLabels(),
    )
    conditions = [
        make_condition("1", "A", "FROM X WHERE entityGuid = 'g1'"),
        make_condition("2", "B", "FROM X", entity={"guid": "g2", "name": "api-2 (declared)", "type": "APPLICATION"}),
        make_condition("3", "C", "FROM X WHERE entityGuid = 'g3'"),
    ]

    out = await enrich_conditions(state, conditions)
    await state.nerdgraph.close()

    assert [c["realEntity"]["name"] for c in out] == ["api-1", "api-2 (declared)", "api-3"]
    assert out[1]["realEntity"] == {"guid": "g2", "name": "api-2 (declared)", "type": "APPLICATION", "domain": None}
    assert sorted(c["variables"]["guid"] for c in fake.calls_for("entity(guid")) == ["g1", "g2", "g3"]
