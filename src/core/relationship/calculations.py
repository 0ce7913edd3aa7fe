"""관계 영향값 계산

기억 유형별 영향값, 분류 사다리, 시간 감쇠.
전부 순수 함수, 외부 의존 없음.
"""

from typing import Dict, FrozenSet, List, Tuple

from src.core.npc.models import MemoryEventType
from src.core.relationship.models import RelationshipEvent, RelationshipType

# ── 기억 유형 → 관계 영향값 ──────────────────────────────────

IMPACT_TABLE: Dict[MemoryEventType, float] = {
    MemoryEventType.WAS_ATTACKED: -0.8,
    MemoryEventType.WAS_BETRAYED: -1.0,
    MemoryEventType.WAS_HELPED: 0.6,
    MemoryEventType.WAS_DEFENDED: 0.8,
    MemoryEventType.SHARED_DRINK: 0.2,
    MemoryEventType.SHARED_ITEM: 0.3,
    MemoryEventType.TRADED: 0.1,
    MemoryEventType.WAS_COMPLIMENTED: 0.2,
    MemoryEventType.WAS_INSULTED: -0.3,
    MemoryEventType.WAS_THREATENED: -0.5,
    MemoryEventType.WAS_SAVED: 1.0,
    MemoryEventType.WAS_ABANDONED: -0.6,
}

# ── 분류 사다리 (하한, 유형) 내림차순 ────────────────────────

RELATIONSHIP_LADDER: List[Tuple[float, RelationshipType]] = [
    (2.0, RelationshipType.BROTHER),
    (1.2, RelationshipType.CLOSE_FRIEND),
    (0.5, RelationshipType.FRIEND),
    (0.1, RelationshipType.ACQUAINTANCE),
    (-0.1, RelationshipType.NEUTRAL),
    (-0.5, RelationshipType.DISLIKE),
    (-1.0, RelationshipType.ENEMY),
    (-2.0, RelationshipType.NEMESIS),
]

POSITIVE_TYPES: FrozenSet[RelationshipType] = frozenset(
    {RelationshipType.BROTHER, RelationshipType.CLOSE_FRIEND, RelationshipType.FRIEND}
)
NEGATIVE_TYPES: FrozenSet[RelationshipType] = frozenset(
    {RelationshipType.ENEMY, RelationshipType.NEMESIS, RelationshipType.FEARED}
)
NEUTRAL_TYPES: FrozenSet[RelationshipType] = frozenset(
    {
        RelationshipType.NEUTRAL,
        RelationshipType.ACQUAINTANCE,
        RelationshipType.STRANGER,
        RelationshipType.DISLIKE,
    }
)

DECAY_AFTER_DAYS = 30
DECAY_RATE = 0.1
REMOVE_BELOW = 0.1


def calculate_impact(memory_type: MemoryEventType) -> float:
    """테이블에 없는 유형은 0.0"""
    return IMPACT_TABLE.get(memory_type, 0.0)


def classify_relationship(total_value: float) -> RelationshipType:
    """누적값 → 관계 유형. 최하단 미만은 FEARED."""
    for lower_bound, relationship_type in RELATIONSHIP_LADDER:
        if total_value >= lower_bound:
            return relationship_type
    return RelationshipType.FEARED


def apply_impact_decay(history: List[RelationshipEvent], rate: float = DECAY_RATE) -> None:
    """이력의 모든 영향값을 (1 - rate)배로 약화. 제자리 변경."""
    for event in history:
        event.impact *= 1.0 - rate
