"""NPC API endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from src.api.schemas import (
    ActionInfo,
    InteractionRequest,
    InteractionResponse,
    LevelUpRequest,
    NPCInfo,
    PersonalityInfo,
    SpawnNPCRequest,
    SummaryResponse,
    TickRequest,
    TickResponse,
)
from src.core.logging import get_logger
from src.core.npc.brain import NPCBrain
from src.core.npc.models import CharacterSummary, NPCState
from src.services.npc_service import NPCService

logger = get_logger(__name__)

router = APIRouter(prefix="/npcs", tags=["npcs"])


def get_npc_service(request: Request) -> NPCService:
    """NPCService 인스턴스 반환 (의존성 주입)"""
    service: NPCService = request.app.state.npc_service
    return service


def _get_brain_or_404(service: NPCService, npc_id: str) -> NPCBrain:
    try:
        return service.get_brain(npc_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"NPC not found: {npc_id}")


def _build_npc_info(brain: NPCBrain) -> NPCInfo:
    """NPCBrain을 NPCInfo로 변환"""
    owner = brain.owner
    return NPCInfo(
        npc_id=owner.npc_id,
        name=owner.name,
        archetype=brain.personality.archetype,
        level=owner.level,
        gold=owner.gold,
        current_location=owner.current_location,
        state=brain.state.value,
        known_characters=list(owner.known_characters),
        personality=PersonalityInfo(**brain.personality.to_dict()),
    )


@router.post("", response_model=NPCInfo, status_code=status.HTTP_201_CREATED)
def spawn_npc(
    request: SpawnNPCRequest,
    service: NPCService = Depends(get_npc_service),
) -> NPCInfo:
    """
    NPC 등록

    원형에 맞는 성격을 생성하고 초기 목표를 부여합니다.
    """
    state = NPCState(
        npc_id=request.npc_id,
        name=request.name,
        archetype=request.archetype,
        level=request.level,
        gold=request.gold,
        current_hp=request.current_hp,
        max_hp=request.max_hp,
        current_location=request.current_location,
        is_ruler=request.is_ruler,
        gang_id=request.gang_id,
    )
    try:
        brain = service.spawn_npc(state, request.timestamp)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _build_npc_info(brain)


@router.get("", response_model=list[NPCInfo])
def list_npcs(service: NPCService = Depends(get_npc_service)) -> list[NPCInfo]:
    """등록된 NPC 목록"""
    return [_build_npc_info(brain) for brain in service.list_npcs()]


@router.post("/tick", response_model=TickResponse)
def run_tick(
    request: TickRequest,
    service: NPCService = Depends(get_npc_service),
) -> TickResponse:
    """
    시뮬레이션 틱 1회

    등록된 모든 NPC가 다음 행동을 결정합니다. 쿨다운 중인 NPC는 continue.
    """
    world = service.build_world_snapshot(
        timestamp=request.timestamp,
        current_hour=request.current_hour,
        current_location=request.current_location,
        in_combat=request.in_combat,
        extra_characters=[CharacterSummary(**c.model_dump()) for c in request.characters],
    )
    actions = service.run_tick(world)
    return TickResponse(
        timestamp=request.timestamp,
        actions={
            npc_id: ActionInfo(
                action_type=action.action_type.value,
                priority=action.priority,
                target_id=action.target_id,
            )
            for npc_id, action in actions.items()
        },
    )


@router.post("/{npc_id}/interactions", response_model=InteractionResponse)
def record_interaction(
    npc_id: str,
    request: InteractionRequest,
    service: NPCService = Depends(get_npc_service),
) -> InteractionResponse:
    """상호작용 기록 (기억/관계/감정 반영)"""
    brain = _get_brain_or_404(service, npc_id)
    event = service.record_interaction(
        npc_id,
        request.other_id,
        request.interaction,
        request.timestamp,
        details=request.details,
        other_name=request.other_name,
    )
    relationship = brain.relationships.get_relationship(request.other_id)
    return InteractionResponse(
        npc_id=npc_id,
        other_id=request.other_id,
        memory_type=event.event_type.value,
        importance=event.importance,
        relationship_type=relationship.relationship_type.value,
    )


@router.post("/{npc_id}/level-up", response_model=NPCInfo)
def level_up(
    npc_id: str,
    request: LevelUpRequest,
    service: NPCService = Depends(get_npc_service),
) -> NPCInfo:
    """레벨업 통보"""
    _get_brain_or_404(service, npc_id)
    brain = service.level_up(npc_id, request.new_level, request.timestamp)
    return _build_npc_info(brain)


@router.get("/{npc_id}/summary", response_model=SummaryResponse)
def get_summary(
    npc_id: str,
    timestamp: datetime = Query(..., description="시뮬레이션 시각"),
    service: NPCService = Depends(get_npc_service),
) -> SummaryResponse:
    """UI/로그용 요약 텍스트"""
    brain = _get_brain_or_404(service, npc_id)
    return SummaryResponse(
        npc_id=npc_id,
        brain=brain.get_brain_summary(timestamp),
        goals=brain.get_goals_summary(timestamp),
        emotions=brain.get_emotional_summary(timestamp),
        relationships=brain.get_relationship_summary(),
        memory=brain.memory.get_memory_summary(),
    )
