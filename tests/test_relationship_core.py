"""관계 시스템 Core 테스트"""

from datetime import datetime, timedelta

import pytest

from src.core.npc.memory import create_memory_event
from src.core.npc.models import MemoryEventType
from src.core.relationship.calculations import (
    IMPACT_TABLE,
    calculate_impact,
    classify_relationship,
)
from src.core.relationship.manager import RelationshipManager
from src.core.relationship.models import (
    HISTORY_LIMIT,
    Relationship,
    RelationshipEvent,
    RelationshipType,
)

T0 = datetime(2024, 6, 1, 18, 0, 0)


def _feed(manager: RelationshipManager, who: str, *types, start=T0):
    for i, event_type in enumerate(types):
        manager.update_relationship(
            who, create_memory_event(event_type, start + timedelta(minutes=i), who)
        )


# ── RelationshipType ──


class TestRelationshipTypeEnum:
    def test_relationship_type_enum(self):
        """10종 값 확인."""
        assert RelationshipType.STRANGER.value == "stranger"
        assert RelationshipType.CLOSE_FRIEND.value == "close_friend"
        assert RelationshipType.FEARED.value == "feared"
        assert len(RelationshipType) == 10


# ── 분류 사다리 ──


class TestLadder:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (2.0, RelationshipType.BROTHER),
            (1.5, RelationshipType.CLOSE_FRIEND),
            (0.5, RelationshipType.FRIEND),
            (0.2, RelationshipType.ACQUAINTANCE),
            (0.0, RelationshipType.NEUTRAL),
            (-0.1, RelationshipType.NEUTRAL),
            (-0.2, RelationshipType.DISLIKE),
            (-0.8, RelationshipType.ENEMY),
            (-1.5, RelationshipType.NEMESIS),
            (-2.5, RelationshipType.FEARED),
        ],
    )
    def test_bands(self, value, expected):
        assert classify_relationship(value) == expected

    def test_impacts(self):
        assert calculate_impact(MemoryEventType.WAS_BETRAYED) == -1.0
        assert calculate_impact(MemoryEventType.WAS_SAVED) == 1.0
        assert calculate_impact(MemoryEventType.HEARD_RUMOR) == 0.0
        assert all(-1.0 <= v <= 1.0 for v in IMPACT_TABLE.values())


# ── RelationshipManager ──


class TestManager:
    def test_drink_help_betrayal_is_dislike(self):
        """+0.2 +0.6 -1.0 = -0.2 → Dislike"""
        manager = RelationshipManager()
        _feed(
            manager,
            "turncoat",
            MemoryEventType.SHARED_DRINK,
            MemoryEventType.WAS_HELPED,
            MemoryEventType.WAS_BETRAYED,
        )
        rel = manager.get_relationship("turncoat")
        assert rel.total_value(T0 + timedelta(minutes=5)) == pytest.approx(-0.2)
        assert rel.relationship_type == RelationshipType.DISLIKE
        assert manager.get_neutrals() == ["turncoat"]

    def test_progression_to_friend(self):
        manager = RelationshipManager()
        _feed(manager, "pal", MemoryEventType.SHARED_DRINK)
        assert manager.get_relationship("pal").relationship_type == RelationshipType.ACQUAINTANCE
        _feed(manager, "pal", MemoryEventType.WAS_HELPED, start=T0 + timedelta(hours=1))
        assert manager.get_relationship("pal").relationship_type == RelationshipType.FRIEND
        assert manager.get_allies() == ["pal"]
        assert manager.is_ally("pal")

    def test_enemies(self):
        manager = RelationshipManager()
        _feed(manager, "brute", MemoryEventType.WAS_ATTACKED)
        assert manager.get_enemies() == ["brute"]
        assert manager.is_enemy("brute")

    def test_unknown_is_stranger_default_not_stored(self):
        manager = RelationshipManager()
        rel = manager.get_relationship("ghost", T0)
        assert rel.relationship_type == RelationshipType.STRANGER
        assert rel.history == []
        assert not manager.has_relationship("ghost")
        assert len(manager) == 0

    def test_window_excludes_old_impacts(self):
        manager = RelationshipManager()
        _feed(manager, "old", MemoryEventType.WAS_SAVED, start=T0 - timedelta(days=40))
        _feed(manager, "old", MemoryEventType.SHARED_DRINK)
        rel = manager.get_relationship("old")
        assert rel.total_value(T0) == pytest.approx(0.2)
        assert rel.relationship_type == RelationshipType.ACQUAINTANCE

    def test_history_limit(self):
        manager = RelationshipManager()
        _feed(manager, "regular", *([MemoryEventType.TRADED] * (HISTORY_LIMIT + 10)))
        rel = manager.get_relationship("regular")
        assert len(rel.history) == HISTORY_LIMIT
        assert rel.last_updated == T0 + timedelta(minutes=HISTORY_LIMIT + 9)

    def test_set_relationship(self):
        manager = RelationshipManager()
        manager.set_relationship("lord", RelationshipType.FEARED, T0)
        assert manager.get_enemies() == ["lord"]

    def test_summary_and_strongest(self):
        manager = RelationshipManager()
        assert manager.get_relationship_summary() == "No known relationships"
        _feed(manager, "friend", MemoryEventType.WAS_SAVED)
        _feed(manager, "foe", MemoryEventType.WAS_ATTACKED)
        _feed(manager, "clerk", MemoryEventType.TRADED)
        assert manager.get_relationship_summary() == "Relationships: 1 allies, 1 enemies, 1 others"
        strongest = manager.get_strongest_relationships(2, T0)
        assert [r.character_id for r in strongest] == ["friend", "foe"]


# ── 감쇠 ──


class TestDecay:
    def test_recent_relationship_untouched(self):
        manager = RelationshipManager()
        _feed(manager, "pal", MemoryEventType.WAS_HELPED)
        assert manager.decay_relationships(T0 + timedelta(days=10)) == []
        assert manager.get_relationship("pal").history[0].impact == pytest.approx(0.6)

    def test_stale_relationship_attenuated(self):
        manager = RelationshipManager()
        _feed(manager, "pal", MemoryEventType.WAS_HELPED)
        manager.decay_relationships(T0 + timedelta(days=30))
        assert manager.get_relationship("pal").history[0].impact == pytest.approx(0.54)
        assert manager.get_relationship("pal").relationship_type == RelationshipType.FRIEND

    def test_weak_relationship_removed(self):
        manager = RelationshipManager()
        _feed(manager, "clerk", MemoryEventType.TRADED)
        removed = manager.decay_relationships(T0 + timedelta(days=31))
        assert removed == ["clerk"]
        assert not manager.has_relationship("clerk")

    def test_stale_enemy_forgotten(self):
        """공격 1건 후 31일 방치 → 창 합 0, 적 목록에서 제거"""
        manager = RelationshipManager()
        _feed(manager, "x", MemoryEventType.WAS_ATTACKED)
        assert manager.decay_relationships(T0 + timedelta(days=31)) == ["x"]
        assert manager.get_enemies() == []
        assert not manager.is_enemy("x")

    def test_decay_reclassifies_by_window_total(self):
        manager = RelationshipManager()
        for event_type in (MemoryEventType.WAS_SAVED, MemoryEventType.SHARED_DRINK):
            manager.update_relationship("hero", create_memory_event(event_type, T0, "hero"))
        assert manager.get_relationship("hero").relationship_type == RelationshipType.CLOSE_FRIEND

        later = T0 + timedelta(days=30)
        manager.decay_relationships(later)
        rel = manager.get_relationship("hero")
        # (1.0 + 0.2) × 0.9 = 1.08
        assert rel.total_value(later) == pytest.approx(1.08)
        assert rel.relationship_type == RelationshipType.FRIEND
        assert rel.relationship_type == classify_relationship(rel.total_value(later))
        assert rel.last_updated == T0

    def test_magnitude(self):
        rel = Relationship(character_id="x", first_met=T0, last_updated=T0)
        rel.add_interaction(RelationshipEvent(MemoryEventType.WAS_HELPED, 0.6, T0))
        rel.add_interaction(RelationshipEvent(MemoryEventType.WAS_BETRAYED, -1.0, T0))
        assert rel.magnitude() == pytest.approx(0.4)
        assert rel.is_negative(T0)
