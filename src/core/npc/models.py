"""NPC AI 도메인 모델

판단 엔진 전반에서 공유하는 닫힌 열거형과 순수 데이터 클래스.
외부 시스템(전투/거래/진행)과 주고받는 값은 모두 여기 정의한다.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class MemoryEventType(str, Enum):
    """기억 이벤트 유형"""

    WAS_ATTACKED = "was_attacked"
    WAS_BETRAYED = "was_betrayed"
    WAS_HELPED = "was_helped"
    WAS_DEFENDED = "was_defended"
    WAS_SAVED = "was_saved"
    WAS_THREATENED = "was_threatened"
    WAS_INSULTED = "was_insulted"
    WAS_COMPLIMENTED = "was_complimented"
    WAS_DEFEATED = "was_defeated"
    WAS_ABANDONED = "was_abandoned"
    SHARED_DRINK = "shared_drink"
    SHARED_ITEM = "shared_item"
    TRADED = "traded"
    SAW_PERSON = "saw_person"
    SAW_DEATH = "saw_death"
    HEARD_RUMOR = "heard_rumor"
    VISITED_LOCATION = "visited_location"
    GAINED_GOLD = "gained_gold"
    LOST_GOLD = "lost_gold"
    PERSONAL_ACHIEVEMENT = "personal_achievement"
    PERSONAL_FAILURE = "personal_failure"
    MADE_FRIEND = "made_friend"
    MADE_ENEMY = "made_enemy"
    DECISION_MADE = "decision_made"
    MISCELLANEOUS = "miscellaneous"


class InteractionType(str, Enum):
    """외부 시스템이 통보하는 상호작용 유형"""

    ATTACKED = "attacked"
    BETRAYED = "betrayed"
    HELPED = "helped"
    DEFENDED = "defended"
    SAVED = "saved"
    TRADED = "traded"
    SHARED_DRINK = "shared_drink"
    SHARED_ITEM = "shared_item"
    DEFEATED = "defeated"
    THREATENED = "threatened"
    INSULTED = "insulted"
    COMPLIMENTED = "complimented"
    CHALLENGED = "challenged"
    INTIMIDATED = "intimidated"
    ABANDONED = "abandoned"


class ActionType(str, Enum):
    """NPC 행동 종류"""

    IDLE = "idle"
    CONTINUE = "continue"  # 쿨다운 중 no-op
    EXPLORE = "explore"
    TRADE = "trade"
    SOCIALIZE = "socialize"
    ATTACK = "attack"
    FLEE = "flee"
    REST = "rest"
    TRAIN = "train"
    STEAL = "steal"
    JOIN_GANG = "join_gang"
    LEAVE_GANG = "leave_gang"
    SEEK_REVENGE = "seek_revenge"
    HELP = "help"
    BETRAY = "betray"


class EmotionType(str, Enum):
    """감정 12종"""

    ANGER = "anger"
    FEAR = "fear"
    JOY = "joy"
    SADNESS = "sadness"
    CONFIDENCE = "confidence"
    GREED = "greed"
    GRATITUDE = "gratitude"
    LONELINESS = "loneliness"
    ENVY = "envy"
    PRIDE = "pride"
    HOPE = "hope"
    PEACE = "peace"


class GoalType(str, Enum):
    """목표 유형 5종"""

    PERSONAL = "personal"  # 생존, 성장, 건강
    SOCIAL = "social"  # 관계, 평판, 권력
    ECONOMIC = "economic"  # 재산, 거래
    COMBAT = "combat"  # 전투, 지배
    EXPLORATION = "exploration"  # 탐험, 지식


class CombatStyle(str, Enum):
    """선호 전투 방식"""

    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    TACTICAL = "tactical"
    BALANCED = "balanced"


class BrainState(str, Enum):
    """판단 루프 상태"""

    IDLE = "idle"
    DECIDING = "deciding"
    ACTING = "acting"


@dataclass
class NPCAction:
    """판단 결과 행동. 매 판단마다 새로 생성되어 외부 실행기로 넘어간다."""

    action_type: ActionType
    priority: float = 0.5
    target_id: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CharacterSummary:
    """주변 캐릭터 요약 (읽기 전용 뷰)"""

    character_id: str
    name: str = ""
    archetype: str = "commoner"
    level: int = 1
    gold: int = 0
    location: str = ""
    is_alive: bool = True
    gang_id: Optional[str] = None
    gang_members: List[str] = field(default_factory=list)


@dataclass
class NPCState:
    """판단 주체 NPC의 현재 상태

    소유권은 외부 시스템에 있다. 브레인은 읽기만 하고,
    record_interaction 시 known_characters, on_level_up 시 level만 갱신한다.
    """

    npc_id: str
    name: str = ""
    archetype: str = "commoner"
    level: int = 1
    gold: int = 0
    current_hp: int = 100
    max_hp: int = 100
    current_location: str = ""
    is_ruler: bool = False
    gang_id: Optional[str] = None
    known_characters: List[str] = field(default_factory=list)

    @property
    def hp_ratio(self) -> float:
        if self.max_hp <= 0:
            return 0.0
        return self.current_hp / self.max_hp


@dataclass(frozen=True)
class WorldSnapshot:
    """한 틱 동안 불변으로 취급되는 월드 뷰"""

    timestamp: datetime
    current_hour: int = 12
    current_location: str = ""
    in_combat: bool = False
    characters: Tuple[CharacterSummary, ...] = ()

    def __post_init__(self) -> None:
        # list로 넘겨도 튜플로 고정
        object.__setattr__(self, "characters", tuple(self.characters))

    @property
    def nearby_characters(self) -> List[CharacterSummary]:
        return self.get_characters_at(self.current_location)

    def get_character(self, character_id: str) -> Optional[CharacterSummary]:
        for character in self.characters:
            if character.character_id == character_id:
                return character
        return None

    def get_characters_at(self, location: str) -> List[CharacterSummary]:
        """해당 위치의 생존 캐릭터 목록"""
        return [c for c in self.characters if c.location == location and c.is_alive]
