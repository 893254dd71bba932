from __future__ import annotations

import httpx
import pytest
from nerdgraph_fakes import FakeNerdGraph, make_condition

CPU_TERMS = [
    {
        "operator": "ABOVE",
        "threshold": 90,
        "priority": "critical",
        "thresholdDuration": 300,
        "thresholdOccurrences": "ALL",
    },
    {
        "operator": "ABOVE",
        "threshold": 75,
        "priority": "warning",
        "thresholdDuration": 600,
        "thresholdOccurrences": "ALL",
    },
]


def _seed(fake: FakeNerdGraph) -> None:
    fake.set_policies([{"id": "p1", "name": "Production"}], [{"id": "p2", "name": "Staging"}])
    fake.set_entities(
        [
            {"guid": "g-host", "name": "appwvcms01", "type": "HOST", "domain": "INFRA"},
            {"guid": "g-app", "name": "checkout-svc", "type": "APPLICATION", "domain": "APM"},
        ]
    )
    fake.set_conditions(
        [
            make_condition(
                "101",
                "CPU high",
                "SELECT average(cpuPercent) FROM SystemSample WHERE entityGuid = 'g-host'",
                # Stale declaration: the NRQL targets g-host.
                entity={"guid": "g-old", "name": "old-host", "type": "HOST", "domain": "INFRA"},
                terms=CPU_TERMS,
            ),
            make_condition("102", "Checkout errors", "SELECT count(*) FROM TransactionError WHERE appName = 'checkout-svc'"),
        ],
        [
            make_condition(
                "201",
                "Declared only",
                "SELECT count(*) FROM Transaction",
                policy_id="p2",
                entity={"guid": "g-app", "name": "checkout (old name)", "type": "APPLICATION", "domain": "APM"},
            ),
        ],
    )


@pytest.mark.anyio
async def test_list_all_conditions_enriched(async_client: httpx.AsyncClient, fake_nerdgraph: FakeNerdGraph):
    _seed(fake_nerdgraph)

    res = await async_client.get("/api/alerts/conditions")
    assert res.status_code == 200
    items = res.json()
    assert isinstance(items, list)
    assert [c["id"] for c in items] == ["101", "102", "201"]

    cpu, checkout, declared = items

    # Resolved entity supersedes the stale declared one.
    assert cpu["realEntity"] == {"guid": "g-host", "name": "appwvcms01", "type": "HOST", "domain": "INFRA"}
    assert cpu["entity"]["name"] == "old-host"
    assert cpu["entityGuids"] == ["g-host"]
    assert cpu["policyName"] == "Production"
    assert cpu["formattedTerms"] == (
        "Critical: above 90 for at least 5 minutes (all occurrences) ; "
        "Warning: above 75 for at least 10 minutes (all occurrences)"
    )
    assert cpu["terms"][0]["thresholdDuration"] == 300

    # No GUID anywhere: nothing to resolve.
    assert checkout["realEntity"] == {"guid": None, "name": None, "type": None, "domain": None}
    assert checkout["formattedTerms"] == ""

    assert declared["realEntity"]["guid"] == "g-app"
    assert declared["realEntity"]["name"] == "checkout-svc"
    assert declared["policyName"] == "Staging"

    # One lookup per condition that has a GUID; none for the GUID-less one.
    lookups = [c["variables"]["guid"] for c in fake_nerdgraph.calls_for("entity(guid")]
    assert sorted(lookups) == ["g-app", "g-host"]
    # Both condition pages were followed.
    assert [c["variables"]["cursor"] for c in fake_nerdgraph.calls_for("nrqlConditionsSearch")] == [None, "c1"]


@pytest.mark.anyio
async def test_failed_lookup_falls_back_to_declared_entity(async_client: httpx.AsyncClient, fake_nerdgraph: FakeNerdGraph):
    _seed(fake_nerdgraph)
    fake_nerdgraph.failing_guids.add("g-app")

    res = await async_client.get("/api/alerts/conditions")
    assert res.status_code == 200
    declared = res.json()[2]
    assert declared["realEntity"]["guid"] == "g-app"
    assert declared["realEntity"]["name"] == "checkout (old name)"


@pytest.mark.anyio
async def test_conditions_by_policy(async_client: httpx.AsyncClient, fake_nerdgraph: FakeNerdGraph):
    _seed(fake_nerdgraph)

    res = await async_client.post("/api/alerts/conditions/search", json={"policyId": "p2"})
    assert res.status_code == 200
    items = res.json()
    assert [c["id"] for c in items] == ["201"]
    assert items[0]["policyName"] == "Staging"
    assert all(c["variables"].get("policyId") == "p2" for c in fake_nerdgraph.calls_for("nrqlConditionsSearch"))

    res = await async_client.get("/api/alerts/conditions", params={"policyId": "p1"})
    assert res.status_code == 200
    assert [c["id"] for c in res.json()] == ["101", "102"]


@pytest.mark.anyio
async def test_conditions_by_policy_requires_policy_id(async_client: httpx.AsyncClient, fake_nerdgraph: FakeNerdGraph):
    for body in ({}, {"policyId": ""}, {"policyId": "   "}):
        res = await async_client.post("/api/alerts/conditions/search", json=body)
        assert res.status_code == 400
        assert "policyId" in res.json()["detail"]

    res = await async_client.post("/api/alerts/conditions/search")
    assert res.status_code == 400

    # Validation failures never reach NerdGraph.
    assert fake_nerdgraph.calls == []


@pytest.mark.anyio
async def test_numeric_policy_id_is_accepted(async_client: httpx.AsyncClient, fake_nerdgraph: FakeNerdGraph):
    fake_nerdgraph.set_conditions([make_condition("1", "A", "FROM X", policy_id="42")])
    res = await async_client.post("/api/alerts/conditions/search", json={"policyId": 42})
    assert res.status_code == 200
    assert [c["id"] for c in res.json()] == ["1"]


@pytest.mark.anyio
async def test_list_policies(async_client: httpx.AsyncClient, fake_nerdgraph: FakeNerdGraph):
    _seed(fake_nerdgraph)
    res = await async_client.get("/api/alerts/policies")
    assert res.status_code == 200
    assert res.json() == [{"id": "p1", "name": "Production"}, {"id": "p2", "name": "Staging"}]


@pytest.mark.anyio
async def test_remote_outage_yields_empty_list(async_client: httpx.AsyncClient, fake_nerdgraph: FakeNerdGraph):
    _seed(fake_nerdgraph)
    fake_nerdgraph.outage = True

    res = await async_client.get("/api/alerts/conditions")
    assert res.status_code == 200
    assert res.json() == []
