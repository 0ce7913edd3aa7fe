"""관계 시스템 도메인 모델

캐릭터 id 하나당 Relationship 1건. 상호작용 이력의 영향값 합으로 분류한다.
순수 데이터 클래스.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List

from src.core.npc.models import MemoryEventType

ACTIVE_WINDOW = timedelta(days=30)
HISTORY_LIMIT = 50


class RelationshipType(str, Enum):
    """관계 분류 10단계"""

    STRANGER = "stranger"  # 만난 적 없음
    ACQUAINTANCE = "acquaintance"
    NEUTRAL = "neutral"
    DISLIKE = "dislike"  # 가벼운 반감
    FRIEND = "friend"
    CLOSE_FRIEND = "close_friend"
    BROTHER = "brother"  # 가장 가까운 동지
    ENEMY = "enemy"
    NEMESIS = "nemesis"
    FEARED = "feared"  # 두려움의 대상


@dataclass
class RelationshipEvent:
    """관계 이력 1건"""

    memory_type: MemoryEventType
    impact: float
    timestamp: datetime
    description: str = ""

    def is_recent(self, now: datetime, days: int = 7) -> bool:
        return now - self.timestamp <= timedelta(days=days)


@dataclass
class Relationship:
    """상대 1명에 대한 관계"""

    character_id: str
    first_met: datetime
    last_updated: datetime
    relationship_type: RelationshipType = RelationshipType.STRANGER
    history: List[RelationshipEvent] = field(default_factory=list)

    def add_interaction(self, event: RelationshipEvent) -> None:
        self.history.append(event)
        self.last_updated = event.timestamp
        if len(self.history) > HISTORY_LIMIT:
            # 최신 50건만 유지
            self.history = sorted(self.history, key=lambda e: e.timestamp, reverse=True)[
                :HISTORY_LIMIT
            ]

    def total_value(self, now: datetime) -> float:
        """최근 30일 영향값 합"""
        cutoff = now - ACTIVE_WINDOW
        return sum(e.impact for e in self.history if e.timestamp >= cutoff)

    def magnitude(self) -> float:
        """보존 중인 전체 영향값 합의 절댓값"""
        return abs(sum(e.impact for e in self.history))

    def is_positive(self, now: datetime) -> bool:
        return self.total_value(now) > 0.1

    def is_negative(self, now: datetime) -> bool:
        return self.total_value(now) < -0.1

    def age(self, now: datetime) -> timedelta:
        return now - self.first_met

    def describe(self, now: datetime) -> str:
        return (
            f"{self.character_id}: {self.relationship_type.value} "
            f"(Value: {self.total_value(now):.2f}, Age: {self.age(now).days}d)"
        )
