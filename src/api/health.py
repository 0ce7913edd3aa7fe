"""Health check endpoint."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """Return application and NPC service status."""
    service = getattr(request.app.state, "npc_service", None)
    if service is None:
        return {"status": "ok", "npc_service": "not_initialized"}
    return {"status": "ok", "npc_service": "ready", "npcs": str(len(service))}
