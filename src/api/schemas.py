"""API request/response schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.core.npc.models import InteractionType


# === Request Schemas ===


class SpawnNPCRequest(BaseModel):
    """NPC 등록 요청"""

    npc_id: str = Field(..., min_length=1, max_length=50, description="NPC ID")
    name: str = Field(default="", description="표시 이름")
    archetype: str = Field(default="commoner", description="성격 원형 (thug, merchant 등)")
    level: int = Field(default=1, ge=1)
    gold: int = Field(default=0, ge=0)
    current_hp: int = Field(default=100, ge=0)
    max_hp: int = Field(default=100, ge=1)
    current_location: str = Field(default="", description="현재 위치")
    is_ruler: bool = False
    gang_id: Optional[str] = None
    timestamp: datetime = Field(..., description="시뮬레이션 시각")


class CharacterInfo(BaseModel):
    """틱 스냅샷에 추가할 외부 캐릭터"""

    character_id: str
    name: str = ""
    archetype: str = "commoner"
    level: int = 1
    gold: int = 0
    location: str = ""
    is_alive: bool = True
    gang_id: Optional[str] = None
    gang_members: list[str] = []


class TickRequest(BaseModel):
    """시뮬레이션 틱 요청"""

    timestamp: datetime = Field(..., description="시뮬레이션 시각")
    current_hour: int = Field(default=12, ge=0, le=23)
    current_location: str = ""
    in_combat: bool = False
    characters: list[CharacterInfo] = Field(
        default_factory=list, description="등록 NPC 외 추가 캐릭터"
    )


class InteractionRequest(BaseModel):
    """상호작용 통보"""

    other_id: str = Field(..., min_length=1, description="상대 캐릭터 ID")
    other_name: str = ""
    interaction: InteractionType = Field(..., description="상호작용 유형")
    timestamp: datetime = Field(..., description="시뮬레이션 시각")
    details: dict[str, Any] = Field(default_factory=dict)


class LevelUpRequest(BaseModel):
    """레벨업 통보"""

    new_level: int = Field(..., ge=1)
    timestamp: datetime = Field(..., description="시뮬레이션 시각")


# === Response Schemas ===


class PersonalityInfo(BaseModel):
    """성격 프로필"""

    archetype: str
    aggression: float
    greed: float
    courage: float
    loyalty: float
    vengefulness: float
    impulsiveness: float
    sociability: float
    ambition: float
    combat_style: str
    fears: list[str] = []
    desires: list[str] = []


class NPCInfo(BaseModel):
    """NPC 상태"""

    npc_id: str
    name: str
    archetype: str
    level: int
    gold: int
    current_location: str
    state: str
    known_characters: list[str] = []
    personality: PersonalityInfo


class ActionInfo(BaseModel):
    """판단 결과 행동"""

    action_type: str
    priority: float
    target_id: Optional[str] = None


class TickResponse(BaseModel):
    """틱 결과"""

    timestamp: datetime
    actions: dict[str, ActionInfo]


class InteractionResponse(BaseModel):
    """상호작용 기록 결과"""

    npc_id: str
    other_id: str
    memory_type: str
    importance: float
    relationship_type: str


class SummaryResponse(BaseModel):
    """요약 텍스트 모음"""

    npc_id: str
    brain: str
    goals: str
    emotions: str
    relationships: str
    memory: str
