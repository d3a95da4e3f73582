import pytest
from src.api.main import app, service
from src.graph.colors import BRANCH_COLORS
from src.graph.models import GraphSettings
from httpx import ASGITransport, AsyncClient

import pytest_asyncio

# Fixture for async client
@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

def commit_json(oid, parents=(), refs=(), message=""):
    return {
        "hash": oid,
        "parents": list(parents),
        "refs": list(refs),
        "author": {"name": "A", "email": "a@example.com"},
        "timestamp": 0,
        "message": message,
    }

# Point the global service at a fresh, known history for every test
@pytest.fixture
def loaded_repo():
    service.merger.settings = GraphSettings()
    service.reset()

    # C1 <- C2 <- C3 (main, HEAD)
    commits = [
        commit_json("c3", ["c2"], [{"name": "main", "type": "branch", "is_head": True}], "Third"),
        commit_json("c2", ["c1"], message="Second"),
        commit_json("c1", message="Initial\n\nLonger body"),
    ]
    return commits

@pytest.fixture
def empty_repo():
    service.merger.settings = GraphSettings()
    service.reset()

@pytest.mark.asyncio
async def test_health(client, empty_repo):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "commits": 0}

@pytest.mark.asyncio
async def test_load_and_get_graph(client, loaded_repo):
    response = await client.put("/api/commits", json={"commits": loaded_repo})
    assert response.status_code == 200
    data = response.json()
    assert data["loaded"] == 3
    assert data["complete"] is True
    assert data["algorithm"] == "layered"

    response = await client.get("/api/graph")
    assert response.status_code == 200
    data = response.json()
    assert [n["id"] for n in data["nodes"]] == ["c3", "c2", "c1"]
    assert {(e["source"], e["target"]) for e in data["edges"]} == {("c3", "c2"), ("c2", "c1")}
    assert {n["color"] for n in data["nodes"]} == {BRANCH_COLORS[0]}
    assert data["nodes"][2]["label"] == "c1 - Initial"

@pytest.mark.asyncio
async def test_highlight(client, loaded_repo):
    await client.put("/api/commits", json={"commits": loaded_repo})

    response = await client.get("/api/commits/c2/highlight")
    assert response.status_code == 200
    data = response.json()
    assert data["parents"] == ["c1"]
    assert data["children"] == ["c3"]
    assert data["highlight"] == ["c1", "c3"]

@pytest.mark.asyncio
async def test_highlight_unknown_commit(client, loaded_repo):
    await client.put("/api/commits", json={"commits": loaded_repo})
    response = await client.get("/api/commits/nope/highlight")
    assert response.status_code == 404

@pytest.mark.asyncio
async def test_visible_graph(client, loaded_repo):
    await client.put("/api/commits", json={"commits": loaded_repo})

    response = await client.post("/api/graph/visible", json={
        "pan_x": 0, "pan_y": 0, "zoom": 1,
        "screen_width": 1024, "screen_height": 768,
        "selected": "c2",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["total_nodes"] == 3
    assert data["highlight"] == ["c1", "c3"]
    by_id = {n["id"]: n for n in data["nodes"]}
    assert by_id["c2"]["selected"] is True
    assert by_id["c1"]["highlighted"] is True
    assert by_id["c2"]["highlighted"] is False

@pytest.mark.asyncio
async def test_visible_graph_far_away(client, loaded_repo):
    await client.put("/api/commits", json={"commits": loaded_repo})

    response = await client.post("/api/graph/visible", json={
        "pan_x": -100000, "pan_y": -100000, "zoom": 1,
        "screen_width": 800, "screen_height": 600,
    })
    assert response.status_code == 200
    assert response.json()["nodes"] == []
    assert response.json()["edges"] == []

@pytest.mark.asyncio
async def test_visible_graph_rejects_bad_zoom(client, empty_repo):
    response = await client.post("/api/graph/visible", json={
        "zoom": 0, "screen_width": 800, "screen_height": 600,
    })
    assert response.status_code == 422

@pytest.mark.asyncio
async def test_legend(client, loaded_repo):
    loaded_repo[1]["refs"] = [{"name": "origin/main", "type": "remote"}]
    await client.put("/api/commits", json={"commits": loaded_repo})

    response = await client.get("/api/legend")
    assert response.status_code == 200
    data = response.json()
    assert data[0] == {"name": "main", "color": BRANCH_COLORS[0]}
    assert {"name": "origin/main", "color": BRANCH_COLORS[0]} in data

@pytest.mark.asyncio
async def test_settings_roundtrip(client, loaded_repo):
    await client.put("/api/commits", json={"commits": loaded_repo})

    response = await client.put("/api/settings", json={"direction": "LR", "compact_mode": True})
    assert response.status_code == 200
    assert response.json()["direction"] == "LR"

    response = await client.get("/api/graph")
    node = response.json()["nodes"][0]
    assert (node["width"], node["height"]) == (200, 60)

    response = await client.put("/api/settings", json={"direction": "diagonal"})
    assert response.status_code == 422

@pytest.mark.asyncio
async def test_streamed_chunks(client, loaded_repo):
    response = await client.post("/api/commits/chunks", json={"commits": loaded_repo[:2], "total": 3})
    assert response.status_code == 200
    data = response.json()
    assert data["recomputed"] is True
    assert data["loaded"] == 2
    assert data["progress"] == 67

    response = await client.post("/api/commits/chunks", json={"commits": loaded_repo[2:], "total": 3, "done": True})
    data = response.json()
    assert data["recomputed"] is True
    assert data["complete"] is True

    response = await client.get("/api/graph")
    assert len(response.json()["edges"]) == 2

@pytest.mark.asyncio
async def test_reset(client, loaded_repo):
    await client.put("/api/commits", json={"commits": loaded_repo})
    response = await client.delete("/api/commits")
    assert response.status_code == 200
    assert response.json()["loaded"] == 0

    response = await client.get("/api/graph")
    assert response.json()["nodes"] == []

@pytest.mark.asyncio
async def test_search_setting_filters_graph(client, loaded_repo):
    await client.put("/api/commits", json={"commits": loaded_repo})

    response = await client.put("/api/settings", json={"search_query": "second"})
    assert response.status_code == 200
    assert response.json()["search_query"] == "second"

    response = await client.get("/api/graph")
    assert [n["id"] for n in response.json()["nodes"]] == ["c2"]

    response = await client.get("/health")
    assert response.json()["commits"] == 3

@pytest.mark.asyncio
async def test_focus_commit(client, loaded_repo):
    await client.put("/api/commits", json={"commits": loaded_repo})
    node = next(n for n in (await client.get("/api/graph")).json()["nodes"] if n["id"] == "c1")

    response = await client.post("/api/graph/focus", json={
        "oid": "c1", "zoom": 0.5, "screen_width": 800, "screen_height": 600,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["zoom"] == 1.2
    center_x = node["x"] + node["width"] / 2
    assert center_x * data["zoom"] + data["pan_x"] == pytest.approx(400)

    response = await client.post("/api/graph/focus", json={
        "oid": "nope", "screen_width": 800, "screen_height": 600,
    })
    assert response.status_code == 404
