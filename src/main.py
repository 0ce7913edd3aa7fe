"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from src.api.health import router as health_router
from src.api.npc import router as npc_router
from src.config import settings
from src.core.event_bus import EventBus
from src.core.logging import get_logger, setup_logging
from src.services.npc_service import NPCService

setup_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Initializing NPCService...")
    event_bus = EventBus()
    npc_service = NPCService(
        event_bus=event_bus,
        cooldown_minutes=settings.NPC_DECISION_COOLDOWN_MINUTES,
        memory_capacity=settings.NPC_MEMORY_CAPACITY,
        seed=settings.NPC_RNG_SEED,
        max_workers=settings.SIMULATION_WORKERS,
    )
    app.state.event_bus = event_bus
    app.state.npc_service = npc_service
    logger.info(
        f"NPCService initialized (workers={settings.SIMULATION_WORKERS}, "
        f"cooldown={settings.NPC_DECISION_COOLDOWN_MINUTES}m)."
    )

    yield

    # 종료 시 정리
    logger.info("Shutting down...")
    npc_service.shutdown()


app = FastAPI(title="NPC Decision Engine", lifespan=lifespan)

app.include_router(health_router)
app.include_router(npc_router)
