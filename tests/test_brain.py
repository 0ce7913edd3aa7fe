"""NPC 브레인 테스트"""

import random
import threading
from datetime import datetime, timedelta
from typing import List

import pytest

from src.core.event_bus import EventBus, GameEvent
from src.core.event_types import EventTypes
from src.core.npc.brain import NPCBrain
from src.core.npc.goals import Goal
from src.core.npc.models import (
    ActionType,
    BrainState,
    CharacterSummary,
    EmotionType,
    GoalType,
    InteractionType,
    MemoryEventType,
    NPCState,
    WorldSnapshot,
)
from src.core.npc.personality import PersonalityProfile
from src.core.relationship.models import RelationshipType

T0 = datetime(2024, 7, 1, 10, 0, 0)
CALM = dict(impulsiveness=0.1, sociability=0.3)


class _PickLast(random.Random):
    """항상 충동 발동 + 마지막 후보 선택"""

    def random(self) -> float:
        return 0.0

    def randrange(self, start, stop=None, step=1):
        return start - 1 if stop is None else stop - 1


def _owner(**kwargs) -> NPCState:
    defaults = {
        "npc_id": "npc-1",
        "name": "Tester",
        "gold": 500,
        "level": 5,
        "current_location": "market",
    }
    defaults.update(kwargs)
    return NPCState(**defaults)


def _brain(personality: PersonalityProfile, bus=None, rng=None, **owner_kwargs) -> NPCBrain:
    return NPCBrain.create(
        _owner(**owner_kwargs),
        personality,
        T0,
        rng=rng or random.Random(1),
        event_bus=bus,
    )


def _only_goal(brain: NPCBrain, goal: Goal) -> None:
    for existing in brain.goals.goals:
        brain.goals.remove_goal(existing.name)
    brain.goals.add_goal(goal)


def _world(at=T0, characters=()) -> WorldSnapshot:
    return WorldSnapshot(timestamp=at, current_location="market", characters=list(characters))


def _recorder(bus: EventBus, event_type: str) -> List[GameEvent]:
    received: List[GameEvent] = []
    bus.subscribe(event_type, received.append)
    return received


# ── 생명주기 ─────────────────────────────────────────────────


class TestLifecycle:
    def test_decide_before_initialize_raises(self):
        brain = NPCBrain(_owner(), PersonalityProfile())
        with pytest.raises(RuntimeError):
            brain.decide_next_action(_world())

    def test_create_seeds_archetype_goals(self):
        brain = _brain(PersonalityProfile(archetype="merchant", **CALM))
        names = {g.name for g in brain.goals.goals}
        assert "Accumulate Wealth" in names
        assert brain.is_initialized
        assert brain.state == BrainState.IDLE

    def test_initialize_is_idempotent(self):
        brain = _brain(PersonalityProfile(archetype="guard", **CALM))
        count = len(brain.goals.goals)
        brain.initialize(T0)
        assert len(brain.goals.goals) == count

    def test_state_transitions(self):
        brain = _brain(PersonalityProfile(**CALM))
        brain.decide_next_action(_world())
        assert brain.state == BrainState.ACTING
        brain.finish_action()
        assert brain.state == BrainState.IDLE


# ── 쿨다운 ───────────────────────────────────────────────────


class TestCooldown:
    def test_second_call_within_cooldown_is_continue(self):
        brain = _brain(PersonalityProfile(**CALM))
        first = brain.decide_next_action(_world())
        assert first.action_type != ActionType.CONTINUE

        memories_before = len(brain.memory)
        priorities_before = [(g.name, g.priority) for g in brain.goals.goals]
        emotions_before = dict(brain.emotions.get_active_emotions())

        second = brain.decide_next_action(_world(T0 + timedelta(minutes=5)))
        assert second.action_type == ActionType.CONTINUE
        assert len(brain.memory) == memories_before
        assert [(g.name, g.priority) for g in brain.goals.goals] == priorities_before
        assert brain.emotions.get_active_emotions() == emotions_before
        assert brain.last_decision_time == T0

    def test_decides_again_after_cooldown(self):
        brain = _brain(PersonalityProfile(**CALM))
        brain.decide_next_action(_world())
        again = brain.decide_next_action(_world(T0 + timedelta(minutes=15)))
        assert again.action_type != ActionType.CONTINUE
        assert brain.last_decision_time == T0 + timedelta(minutes=15)


# ── 판단 ─────────────────────────────────────────────────────


class TestDecision:
    def test_no_goal_returns_idle(self):
        brain = _brain(PersonalityProfile(**CALM))
        for goal in brain.goals.goals:
            brain.goals.remove_goal(goal.name)
        action = brain.decide_next_action(_world())
        assert action.action_type == ActionType.IDLE
        assert brain.state == BrainState.IDLE

    def test_decision_recorded_as_memory(self):
        brain = _brain(PersonalityProfile(**CALM))
        brain.decide_next_action(_world())
        decisions = brain.memory.get_memories_of_type(MemoryEventType.DECISION_MADE)
        assert len(decisions) == 1
        assert decisions[0].importance == pytest.approx(0.1)
        assert decisions[0].description.startswith("Decided to ")

    def test_combat_goal_attacks_weaker_target(self):
        brain = _brain(PersonalityProfile(aggression=0.9, greed=0.3, **CALM))
        _only_goal(brain, Goal("Find Enemies", GoalType.COMBAT, 0.6, T0))
        world = _world(
            characters=[
                CharacterSummary("veteran", level=9, location="market"),
                CharacterSummary("weakling", level=1, location="market"),
                CharacterSummary("faraway", level=1, location="docks"),
            ]
        )
        action = brain.decide_next_action(world)
        assert action.action_type == ActionType.ATTACK
        assert action.target_id == "weakling"
        assert action.priority == pytest.approx(0.9)

    def test_combat_goal_without_target_explores(self):
        brain = _brain(PersonalityProfile(aggression=0.7, **CALM))
        _only_goal(brain, Goal("Find Enemies", GoalType.COMBAT, 0.6, T0))
        action = brain.decide_next_action(_world())
        assert action.action_type == ActionType.EXPLORE

    def test_economic_goal_trades_with_merchant(self):
        brain = _brain(PersonalityProfile(greed=0.9, loyalty=0.9, **CALM))
        _only_goal(brain, Goal("Accumulate Wealth", GoalType.ECONOMIC, 0.9, T0))
        world = _world(
            characters=[
                CharacterSummary("guard-1", archetype="guard", location="market"),
                CharacterSummary("merchant-1", archetype="Trader", location="market"),
            ]
        )
        action = brain.decide_next_action(world)
        assert action.action_type == ActionType.TRADE
        assert action.target_id == "merchant-1"
        assert action.priority == pytest.approx(0.72)

    def test_emotion_modifier_scales_priority(self):
        brain = _brain(PersonalityProfile(greed=0.9, loyalty=0.9, **CALM))
        _only_goal(brain, Goal("Accumulate Wealth", GoalType.ECONOMIC, 0.9, T0))
        brain.emotions.add_emotion(EmotionType.GREED, 1.0, 120, T0)
        action = brain.decide_next_action(_world())
        assert action.action_type == ActionType.TRADE
        # update()에서 0.99 감쇠 후 1.4 + 0.4 × 0.99
        assert action.priority == pytest.approx(0.72 * (1.4 + 0.4 * 0.99))

    def test_steal_from_richest_non_ally(self):
        brain = _brain(PersonalityProfile(greed=1.0, loyalty=0.0, **CALM))
        _only_goal(brain, Goal("Accumulate Wealth", GoalType.ECONOMIC, 0.9, T0))
        world = _world(
            characters=[
                CharacterSummary("poor", gold=50, location="market"),
                CharacterSummary("rich", gold=900, location="market"),
                CharacterSummary("richer", gold=2000, location="docks"),
            ]
        )
        action = brain.decide_next_action(world)
        assert action.action_type == ActionType.STEAL
        assert action.target_id == "rich"

    def test_social_goal_seeks_revenge(self):
        personality = PersonalityProfile(vengefulness=0.9, aggression=0.5, **CALM)
        brain = _brain(personality)
        _only_goal(brain, Goal("Maintain Order", GoalType.SOCIAL, 0.8, T0))
        brain.record_interaction("brute", InteractionType.ATTACKED, T0)
        action = brain.decide_next_action(_world())
        assert action.action_type == ActionType.SEEK_REVENGE
        assert action.target_id == "brute"

    def test_impulsive_pick_uses_brain_rng(self):
        personality = PersonalityProfile(greed=0.9, loyalty=0.9, impulsiveness=0.9, sociability=0.3)
        brain = _brain(personality, rng=_PickLast())
        _only_goal(brain, Goal("Accumulate Wealth", GoalType.ECONOMIC, 0.9, T0))
        action = brain.decide_next_action(_world())
        # 후보 [trade, idle, explore] 중 마지막
        assert action.action_type == ActionType.EXPLORE

    def test_calm_npc_never_random(self):
        brain = _brain(PersonalityProfile(greed=0.9, loyalty=0.9, **CALM), rng=_PickLast())
        _only_goal(brain, Goal("Accumulate Wealth", GoalType.ECONOMIC, 0.9, T0))
        assert brain.decide_next_action(_world()).action_type == ActionType.TRADE

    def test_seeded_brains_are_reproducible(self):
        def run(seed: int) -> List[ActionType]:
            personality = PersonalityProfile(
                archetype="thug", aggression=0.9, impulsiveness=1.0, greed=0.8
            )
            brain = _brain(personality, rng=random.Random(seed))
            return [
                brain.decide_next_action(_world(T0 + timedelta(minutes=15 * i))).action_type
                for i in range(12)
            ]

        assert run(99) == run(99)


# ── 외부 통보 ────────────────────────────────────────────────


class TestRecordInteraction:
    def test_attack_updates_everything(self):
        bus = EventBus()
        recorded = _recorder(bus, EventTypes.NPC_INTERACTION_RECORDED)
        changed = _recorder(bus, EventTypes.RELATIONSHIP_CHANGED)
        brain = _brain(PersonalityProfile(**CALM), bus=bus)

        other = CharacterSummary("bandit", name="Bandit")
        event = brain.record_interaction(other, InteractionType.ATTACKED, T0)

        assert event.event_type == MemoryEventType.WAS_ATTACKED
        assert event.importance == pytest.approx(0.9)
        assert event.description == "attacked with Bandit"
        assert brain.memory.remembers_being_attacked_by("bandit", T0)
        assert brain.relationships.get_relationship("bandit").relationship_type == RelationshipType.ENEMY
        assert brain.emotions.get_emotion_intensity(EmotionType.ANGER, T0) == pytest.approx(0.8)
        assert "bandit" in brain.owner.known_characters

        assert recorded[0].data["other_id"] == "bandit"
        assert changed[0].data["old_type"] == "stranger"
        assert changed[0].data["new_type"] == "enemy"

    def test_betrayal_direct_anger(self):
        brain = _brain(PersonalityProfile(**CALM))
        brain.record_interaction("traitor", InteractionType.BETRAYED, T0)
        anger = brain.emotions.get_active_emotions()[EmotionType.ANGER]
        assert anger.intensity == pytest.approx(0.8)
        assert anger.duration_minutes == 120
        assert brain.memory.get_relationship("traitor").trust == -100

    def test_help_direct_gratitude(self):
        brain = _brain(PersonalityProfile(**CALM))
        brain.record_interaction("healer", InteractionType.HELPED, T0)
        gratitude = brain.emotions.get_active_emotions()[EmotionType.GRATITUDE]
        assert gratitude.intensity == pytest.approx(0.6)
        assert gratitude.duration_minutes == 180

    def test_social_interaction_goes_through_emotions(self):
        brain = _brain(PersonalityProfile(**CALM))
        brain.record_interaction("pal", InteractionType.SHARED_DRINK, T0)
        assert brain.emotions.get_emotion_intensity(EmotionType.JOY, T0) == pytest.approx(0.2)

    def test_unmapped_interaction_is_miscellaneous(self):
        brain = _brain(PersonalityProfile(**CALM))
        event = brain.record_interaction("rival", InteractionType.CHALLENGED, T0)
        assert event.event_type == MemoryEventType.MISCELLANEOUS
        assert brain.emotions.get_active_emotions() == {}

    def test_known_characters_not_duplicated(self):
        brain = _brain(PersonalityProfile(**CALM))
        brain.record_interaction("pal", InteractionType.TRADED, T0)
        brain.record_interaction("pal", InteractionType.TRADED, T0 + timedelta(minutes=1))
        assert brain.owner.known_characters == ["pal"]

    def test_concurrent_interactions_and_decisions(self):
        brain = _brain(PersonalityProfile(**CALM))
        errors = []

        def recorder(n: int) -> None:
            try:
                for i in range(40):
                    brain.record_interaction(
                        f"c{n}", InteractionType.SHARED_DRINK, T0 + timedelta(minutes=i)
                    )
            except Exception as exc:  # pragma: no cover
                errors.append(exc)

        def decider() -> None:
            try:
                for i in range(40):
                    brain.decide_next_action(_world(T0 + timedelta(minutes=15 * i)))
            except Exception as exc:  # pragma: no cover
                errors.append(exc)

        threads = [threading.Thread(target=recorder, args=(n,)) for n in range(4)]
        threads.append(threading.Thread(target=decider))
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert not errors
        assert len(brain.memory) <= brain.memory.capacity


class TestLevelUp:
    def test_level_up(self):
        bus = EventBus()
        received = _recorder(bus, EventTypes.NPC_LEVEL_UP)
        brain = _brain(PersonalityProfile(ambition=0.8, **CALM), bus=bus)
        brain.on_level_up(15, T0)

        achievements = brain.memory.get_memories_of_type(MemoryEventType.PERSONAL_ACHIEVEMENT)
        assert achievements[0].description == "Reached level 15"
        assert brain.emotions.get_emotion_intensity(EmotionType.CONFIDENCE, T0) == pytest.approx(0.7)
        assert brain.goals.find_goal("Achieve Elite Status") is not None
        assert brain.owner.level == 15
        assert received[0].data == {"npc_id": "npc-1", "level": 15}


class TestRelationshipDecay:
    def test_decay_forgets_stale_enemy(self):
        brain = _brain(PersonalityProfile(**CALM))
        brain.record_interaction("bandit", InteractionType.ATTACKED, T0)
        assert brain.is_enemy_of("bandit")

        assert brain.decay_relationships(T0 + timedelta(days=31)) == ["bandit"]
        assert not brain.relationships.is_enemy("bandit")

    def test_decay_waits_for_brain_lock(self):
        brain = _brain(PersonalityProfile(**CALM))
        brain.record_interaction("clerk", InteractionType.TRADED, T0)
        result = []

        with brain._lock:
            worker = threading.Thread(
                target=lambda: result.append(brain.decay_relationships(T0 + timedelta(days=31)))
            )
            worker.start()
            worker.join(timeout=0.2)
            assert worker.is_alive()
            assert brain.relationships.has_relationship("clerk")

        worker.join(timeout=5)
        assert result == [["clerk"]]


class TestEventsAndSummaries:
    def test_action_decided_event(self):
        bus = EventBus()
        received = _recorder(bus, EventTypes.NPC_ACTION_DECIDED)
        brain = _brain(PersonalityProfile(**CALM), bus=bus)
        brain.decide_next_action(_world())
        brain.decide_next_action(_world(T0 + timedelta(minutes=15)))
        assert len(received) == 2
        assert received[0].source == "npc_brain:npc-1"

    def test_no_event_during_cooldown(self):
        bus = EventBus()
        received = _recorder(bus, EventTypes.NPC_ACTION_DECIDED)
        brain = _brain(PersonalityProfile(**CALM), bus=bus)
        brain.decide_next_action(_world())
        brain.decide_next_action(_world(T0 + timedelta(minutes=1)))
        assert len(received) == 1

    def test_brain_summary(self):
        brain = _brain(PersonalityProfile(archetype="priest", **CALM))
        summary = brain.get_brain_summary(T0)
        assert summary.startswith("=== Tester AI Brain ===")
        assert "Current Goal: Help Others" in summary
        assert "Memories: 0/100" in summary
        assert brain.get_relationship_summary() == "No known relationships"
        assert brain.get_emotional_summary(T0) == "Calm and composed"
        assert brain.get_goals_summary(T0).startswith("Active Goals:")
