"""관계 관리자

NPC 1명이 아는 캐릭터별 Relationship 맵. 기억 이벤트로 갱신되고,
오래 방치된 관계는 약해지다가 사라진다.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from src.core.logging import get_logger
from src.core.npc.memory import MemoryEvent
from src.core.relationship.calculations import (
    DECAY_AFTER_DAYS,
    NEGATIVE_TYPES,
    NEUTRAL_TYPES,
    POSITIVE_TYPES,
    REMOVE_BELOW,
    apply_impact_decay,
    calculate_impact,
    classify_relationship,
)
from src.core.relationship.models import Relationship, RelationshipEvent, RelationshipType

logger = get_logger(__name__)


class RelationshipManager:
    """캐릭터 id → Relationship"""

    def __init__(self) -> None:
        self._relationships: Dict[str, Relationship] = {}

    def __len__(self) -> int:
        return len(self._relationships)

    def has_relationship(self, character_id: str) -> bool:
        return character_id in self._relationships

    def get_relationship(self, character_id: str, now: Optional[datetime] = None) -> Relationship:
        """모르는 상대면 저장하지 않은 STRANGER 기본값 반환"""
        existing = self._relationships.get(character_id)
        if existing is not None:
            return existing
        stamp = now or datetime.min
        return Relationship(character_id=character_id, first_met=stamp, last_updated=stamp)

    def set_relationship(
        self, character_id: str, relationship_type: RelationshipType, now: datetime
    ) -> Relationship:
        relationship = self._relationships.get(character_id)
        if relationship is None:
            relationship = Relationship(character_id=character_id, first_met=now, last_updated=now)
            self._relationships[character_id] = relationship

        old_type = relationship.relationship_type
        relationship.relationship_type = relationship_type
        relationship.last_updated = now
        if old_type != relationship_type:
            logger.info(
                f"관계 변경: {character_id} {old_type.value} → {relationship_type.value}"
            )
        return relationship

    def update_relationship(self, character_id: str, memory_event: MemoryEvent) -> Relationship:
        """기억 이벤트 1건 반영 후 재분류. 이벤트 시각을 현재 시각으로 본다."""
        now = memory_event.timestamp
        relationship = self._relationships.get(character_id)
        if relationship is None:
            relationship = Relationship(character_id=character_id, first_met=now, last_updated=now)
            self._relationships[character_id] = relationship

        relationship.add_interaction(
            RelationshipEvent(
                memory_type=memory_event.event_type,
                impact=calculate_impact(memory_event.event_type),
                timestamp=now,
                description=memory_event.description,
            )
        )

        new_type = classify_relationship(relationship.total_value(now))
        if new_type != relationship.relationship_type:
            self.set_relationship(character_id, new_type, now)
        return relationship

    def decay_relationships(self, now: datetime) -> List[str]:
        """30일 이상 방치된 관계 약화 후 재분류. 30일 창 합이 0.1 미만이면 제거.

        제거된 id 반환. last_updated는 건드리지 않는다.
        """
        threshold = timedelta(days=DECAY_AFTER_DAYS)
        removed: List[str] = []
        for character_id, relationship in list(self._relationships.items()):
            if now - relationship.last_updated < threshold:
                continue
            apply_impact_decay(relationship.history)
            total = relationship.total_value(now)
            if abs(total) < REMOVE_BELOW:
                del self._relationships[character_id]
                removed.append(character_id)
                continue

            new_type = classify_relationship(total)
            if new_type != relationship.relationship_type:
                logger.debug(
                    f"관계 약화: {character_id} "
                    f"{relationship.relationship_type.value} → {new_type.value}"
                )
                relationship.relationship_type = new_type

        if removed:
            logger.debug(f"relationships forgotten: {removed}")
        return removed

    def _ids_with(self, types) -> List[str]:
        return [
            cid for cid, r in self._relationships.items() if r.relationship_type in types
        ]

    def get_allies(self) -> List[str]:
        return self._ids_with(POSITIVE_TYPES)

    def get_enemies(self) -> List[str]:
        return self._ids_with(NEGATIVE_TYPES)

    def get_neutrals(self) -> List[str]:
        return self._ids_with(NEUTRAL_TYPES)

    def is_ally(self, character_id: str) -> bool:
        rel = self._relationships.get(character_id)
        return rel is not None and rel.relationship_type in POSITIVE_TYPES

    def is_enemy(self, character_id: str) -> bool:
        rel = self._relationships.get(character_id)
        return rel is not None and rel.relationship_type in NEGATIVE_TYPES

    def get_strongest_relationships(self, count: int = 5, now: Optional[datetime] = None) -> List[Relationship]:
        """|영향값 합| 내림차순. now가 있으면 30일 창 기준."""
        if now is None:
            key = lambda r: r.magnitude()  # noqa: E731
        else:
            key = lambda r: abs(r.total_value(now))  # noqa: E731
        return sorted(self._relationships.values(), key=key, reverse=True)[:count]

    def get_relationship_summary(self) -> str:
        if not self._relationships:
            return "No known relationships"
        return (
            f"Relationships: {len(self.get_allies())} allies, "
            f"{len(self.get_enemies())} enemies, {len(self.get_neutrals())} others"
        )
