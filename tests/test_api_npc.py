"""Tests for NPC API endpoints."""

from datetime import datetime, timedelta

from fastapi.testclient import TestClient

SIM_START = datetime(2024, 9, 1, 8, 0, 0)
TS = SIM_START.isoformat()


def _spawn(client: TestClient, npc_id: str, archetype: str = "guard", **extra):
    payload = {
        "npc_id": npc_id,
        "name": npc_id.title(),
        "archetype": archetype,
        "gold": 300,
        "current_location": "gate",
        "timestamp": TS,
    }
    payload.update(extra)
    return client.post("/npcs", json=payload)


class TestSpawn:
    """Tests for POST /npcs."""

    def test_spawn_npc(self, client: TestClient):
        response = _spawn(client, "guard-1")

        assert response.status_code == 201
        data = response.json()
        assert data["npc_id"] == "guard-1"
        assert data["archetype"] == "guard"
        assert data["state"] == "idle"
        assert data["personality"]["combat_style"] == "balanced"
        assert 0.0 <= data["personality"]["loyalty"] <= 1.0

    def test_spawn_duplicate_conflict(self, client: TestClient):
        assert _spawn(client, "dup").status_code == 201
        response = _spawn(client, "dup")
        assert response.status_code == 409

    def test_spawn_requires_timestamp(self, client: TestClient):
        response = client.post("/npcs", json={"npc_id": "no-time"})
        assert response.status_code == 422

    def test_list_npcs(self, client: TestClient):
        _spawn(client, "b-npc")
        _spawn(client, "a-npc", archetype="merchant")
        response = client.get("/npcs")
        assert response.status_code == 200
        assert [n["npc_id"] for n in response.json()] == ["a-npc", "b-npc"]


class TestTick:
    """Tests for POST /npcs/tick."""

    def test_tick_returns_action_per_npc(self, client: TestClient):
        _spawn(client, "guard-1")
        _spawn(client, "thug-1", archetype="thug")

        response = client.post(
            "/npcs/tick",
            json={
                "timestamp": TS,
                "characters": [
                    {"character_id": "peddler", "archetype": "merchant", "location": "gate"}
                ],
            },
        )

        assert response.status_code == 200
        actions = response.json()["actions"]
        assert set(actions) == {"guard-1", "thug-1"}
        assert all(a["action_type"] != "continue" for a in actions.values())

    def test_tick_in_cooldown(self, client: TestClient):
        _spawn(client, "guard-1")
        client.post("/npcs/tick", json={"timestamp": TS})
        later = (SIM_START + timedelta(minutes=3)).isoformat()
        response = client.post("/npcs/tick", json={"timestamp": later})
        assert response.json()["actions"]["guard-1"]["action_type"] == "continue"

    def test_tick_rejects_bad_hour(self, client: TestClient):
        response = client.post("/npcs/tick", json={"timestamp": TS, "current_hour": 30})
        assert response.status_code == 422


class TestInteractions:
    """Tests for POST /npcs/{npc_id}/interactions."""

    def test_record_attack(self, client: TestClient):
        _spawn(client, "guard-1")
        response = client.post(
            "/npcs/guard-1/interactions",
            json={
                "other_id": "thief",
                "other_name": "Thief",
                "interaction": "attacked",
                "timestamp": TS,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["memory_type"] == "was_attacked"
        assert data["importance"] == 0.9
        assert data["relationship_type"] == "enemy"

        npc = client.get("/npcs").json()[0]
        assert npc["known_characters"] == ["thief"]

    def test_unknown_npc_404(self, client: TestClient):
        response = client.post(
            "/npcs/ghost/interactions",
            json={"other_id": "x", "interaction": "helped", "timestamp": TS},
        )
        assert response.status_code == 404

    def test_unknown_interaction_422(self, client: TestClient):
        _spawn(client, "guard-1")
        response = client.post(
            "/npcs/guard-1/interactions",
            json={"other_id": "x", "interaction": "hugged", "timestamp": TS},
        )
        assert response.status_code == 422


class TestLevelUpAndSummary:
    def test_level_up(self, client: TestClient):
        _spawn(client, "guard-1")
        response = client.post("/npcs/guard-1/level-up", json={"new_level": 12, "timestamp": TS})
        assert response.status_code == 200
        assert response.json()["level"] == 12

    def test_level_up_unknown_404(self, client: TestClient):
        response = client.post("/npcs/ghost/level-up", json={"new_level": 2, "timestamp": TS})
        assert response.status_code == 404

    def test_summary(self, client: TestClient):
        _spawn(client, "guard-1")
        client.post(
            "/npcs/guard-1/interactions",
            json={"other_id": "pal", "interaction": "helped", "timestamp": TS},
        )

        response = client.get("/npcs/guard-1/summary", params={"timestamp": TS})

        assert response.status_code == 200
        data = response.json()
        assert data["brain"].startswith("=== Guard-1 AI Brain ===")
        assert "Maintain Order" in data["goals"]
        assert data["emotions"].startswith("Feeling: gratitude")
        assert data["relationships"] == "Relationships: 1 allies, 0 enemies, 0 others"
        assert data["memory"].startswith("Memories: 1/100")

    def test_summary_unknown_404(self, client: TestClient):
        response = client.get("/npcs/ghost/summary", params={"timestamp": TS})
        assert response.status_code == 404
