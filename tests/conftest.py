"""Shared test fixtures."""

import pytest
from fastapi.testclient import TestClient

from src.api.npc import get_npc_service
from src.core.event_bus import EventBus
from src.main import app
from src.services.npc_service import NPCService



@pytest.fixture()
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def npc_service(event_bus: EventBus) -> NPCService:
    """시드 고정 NPCService (워커 2개)"""
    service = NPCService(event_bus, seed=7, max_workers=2)
    yield service
    service.shutdown()


@pytest.fixture()
def client(npc_service: NPCService) -> TestClient:
    """NPCService를 주입한 TestClient (lifespan 미실행)"""
    app.dependency_overrides[get_npc_service] = lambda: npc_service
    app.state.npc_service = npc_service
    yield TestClient(app)
    app.dependency_overrides.clear()
    del app.state.npc_service
