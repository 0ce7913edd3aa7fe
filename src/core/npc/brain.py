"""NPC 브레인 - 판단 루프 오케스트레이터

NPC 1명이 소유하는 성격/기억/감정/목표/관계를 묶어 다음 행동을 고른다.

판단 1회 흐름:
    쿨다운 확인 → 감정 갱신 → 기억 감쇠 → 목표 갱신 → 최우선 목표
    → 목표 유형별 후보 생성 → 감정 보정 → 선택 (충동적이면 무작위)
    → 결정을 기억에 기록 → 행동 반환

시간은 전부 시뮬레이션 시각(world.timestamp, now 인자)을 쓴다.
"""

import random
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from src.core.event_bus import EventBus, GameEvent
from src.core.event_types import EventTypes
from src.core.logging import get_logger
from src.core.npc.emotions import EmotionalState
from src.core.npc.goals import Goal, GoalSystem
from src.core.npc.memory import MEMORY_CAPACITY, MemoryEvent, MemorySystem, create_memory_event
from src.core.npc.models import (
    ActionType,
    BrainState,
    CharacterSummary,
    EmotionType,
    GoalType,
    InteractionType,
    MemoryEventType,
    NPCAction,
    NPCState,
    WorldSnapshot,
)
from src.core.npc.personality import PersonalityProfile, normalize_archetype
from src.core.relationship.manager import RelationshipManager

logger = get_logger(__name__)

DECISION_COOLDOWN_MINUTES = 15

IDLE_BASELINE = 0.1
EXPLORE_BASELINE = 0.3
IMPULSIVE_THRESHOLD = 0.7
IMPULSIVE_CHANCE_FACTOR = 0.3

# ── 상호작용 → 기억 유형 ─────────────────────────────────────

INTERACTION_MEMORY_TYPES: Dict[InteractionType, MemoryEventType] = {
    InteractionType.ATTACKED: MemoryEventType.WAS_ATTACKED,
    InteractionType.BETRAYED: MemoryEventType.WAS_BETRAYED,
    InteractionType.HELPED: MemoryEventType.WAS_HELPED,
    InteractionType.DEFENDED: MemoryEventType.WAS_DEFENDED,
    InteractionType.SAVED: MemoryEventType.WAS_SAVED,
    InteractionType.TRADED: MemoryEventType.TRADED,
    InteractionType.SHARED_DRINK: MemoryEventType.SHARED_DRINK,
    InteractionType.SHARED_ITEM: MemoryEventType.SHARED_ITEM,
    InteractionType.DEFEATED: MemoryEventType.WAS_DEFEATED,
    InteractionType.THREATENED: MemoryEventType.WAS_THREATENED,
    InteractionType.INSULTED: MemoryEventType.WAS_INSULTED,
    InteractionType.COMPLIMENTED: MemoryEventType.WAS_COMPLIMENTED,
    InteractionType.ABANDONED: MemoryEventType.WAS_ABANDONED,
}

# 감정을 직접 주입하는 고현저성 상호작용 (감정, 강도, 지속분)
_DIRECT_EMOTIONS = {
    InteractionType.ATTACKED: (EmotionType.ANGER, 0.8, 120),
    InteractionType.BETRAYED: (EmotionType.ANGER, 0.8, 120),
    InteractionType.HELPED: (EmotionType.GRATITUDE, 0.6, 180),
    InteractionType.DEFENDED: (EmotionType.GRATITUDE, 0.6, 180),
}


class NPCBrain:
    """NPC 1명의 판단 엔진

    생성 후 initialize(now)를 호출해야 판단할 수 있다 (create()는 둘 다 수행).
    """

    def __init__(
        self,
        owner: NPCState,
        personality: PersonalityProfile,
        rng: Optional[random.Random] = None,
        event_bus: Optional[EventBus] = None,
        cooldown_minutes: int = DECISION_COOLDOWN_MINUTES,
        memory_capacity: int = MEMORY_CAPACITY,
    ) -> None:
        self._owner = owner
        self._personality = personality
        self._rng = rng or random.Random()
        self._event_bus = event_bus
        self._cooldown = timedelta(minutes=cooldown_minutes)

        self._memory = MemorySystem(capacity=memory_capacity)
        self._emotions = EmotionalState()
        self._goals = GoalSystem(personality)
        self._relationships = RelationshipManager()

        self._lock = threading.RLock()
        self._state = BrainState.IDLE
        self._initialized = False
        self._last_decision_time: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        owner: NPCState,
        personality: PersonalityProfile,
        now: datetime,
        **kwargs: Any,
    ) -> "NPCBrain":
        brain = cls(owner, personality, **kwargs)
        brain.initialize(now)
        return brain

    def initialize(self, now: datetime) -> None:
        """초기 목표 부여. 두 번째 호출은 무시."""
        with self._lock:
            if self._initialized:
                return
            self._goals.seed_initial_goals(now)
            self._initialized = True
        logger.info(
            f"브레인 생성: {self._owner.name or self._owner.npc_id} "
            f"({self._personality.archetype})"
        )

    # ── 구성요소 접근 ────────────────────────────────────────

    @property
    def owner(self) -> NPCState:
        return self._owner

    @property
    def npc_id(self) -> str:
        return self._owner.npc_id

    @property
    def personality(self) -> PersonalityProfile:
        return self._personality

    @property
    def memory(self) -> MemorySystem:
        return self._memory

    @property
    def emotions(self) -> EmotionalState:
        return self._emotions

    @property
    def goals(self) -> GoalSystem:
        return self._goals

    @property
    def relationships(self) -> RelationshipManager:
        return self._relationships

    @property
    def state(self) -> BrainState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def last_decision_time(self) -> Optional[datetime]:
        return self._last_decision_time

    # ── 판단 ─────────────────────────────────────────────────

    def decide_next_action(self, world: WorldSnapshot) -> NPCAction:
        with self._lock:
            if not self._initialized:
                raise RuntimeError(
                    f"NPCBrain for {self.npc_id} used before initialize()"
                )

            now = world.timestamp
            if (
                self._last_decision_time is not None
                and now - self._last_decision_time < self._cooldown
            ):
                return NPCAction(action_type=ActionType.CONTINUE)

            self._last_decision_time = now
            self._state = BrainState.DECIDING

            self._emotions.update(self._memory.get_recent_events(now), now)
            self._memory.decay_memories(now)
            self._goals.update_goals(
                self._owner, world, self._memory, self._emotions, now
            )

            goal = self._goals.get_priority_goal(now)
            if goal is None:
                self._state = BrainState.IDLE
                return NPCAction(action_type=ActionType.IDLE)

            candidates = self._generate_actions(goal, world)
            action = self._select_action(candidates)

            self._memory.record_event(
                create_memory_event(
                    MemoryEventType.DECISION_MADE,
                    now,
                    involved_character=action.target_id,
                    location=self._owner.current_location,
                    details={"goal": goal.name, "action": action.action_type.value},
                    description=f"Decided to {action.action_type.value} for goal: {goal.name}",
                )
            )
            self._state = BrainState.ACTING

        logger.debug(
            f"{self.npc_id} decided {action.action_type.value} "
            f"(priority={action.priority:.2f}, goal={goal.name})"
        )
        self._emit(
            EventTypes.NPC_ACTION_DECIDED,
            {
                "npc_id": self.npc_id,
                "action": action.action_type.value,
                "target_id": action.target_id,
                "goal": goal.name,
            },
        )
        return action

    def finish_action(self) -> None:
        """외부 실행기가 행동을 마쳤을 때 호출"""
        with self._lock:
            self._state = BrainState.IDLE

    def _generate_actions(self, goal: Goal, world: WorldSnapshot) -> List[NPCAction]:
        if goal.goal_type == GoalType.ECONOMIC:
            actions = self._economic_actions(world)
        elif goal.goal_type == GoalType.SOCIAL:
            actions = self._social_actions(world)
        elif goal.goal_type == GoalType.PERSONAL:
            actions = self._personal_actions()
        elif goal.goal_type == GoalType.COMBAT:
            actions = self._combat_actions(world)
        else:
            actions = []

        # 기본 후보
        actions.append(NPCAction(action_type=ActionType.IDLE, priority=IDLE_BASELINE))
        actions.append(NPCAction(action_type=ActionType.EXPLORE, priority=EXPLORE_BASELINE))
        return actions

    def _economic_actions(self, world: WorldSnapshot) -> List[NPCAction]:
        p = self._personality
        actions: List[NPCAction] = []
        if p.greed > 0.5:
            actions.append(
                NPCAction(
                    action_type=ActionType.TRADE,
                    priority=p.greed * 0.8,
                    target_id=self._find_trade_partner(world),
                )
            )
            steal_weight = p.decision_weight("steal")
            if steal_weight > 0.6:
                actions.append(
                    NPCAction(
                        action_type=ActionType.STEAL,
                        priority=steal_weight,
                        target_id=self._find_steal_target(world),
                    )
                )
        return actions

    def _social_actions(self, world: WorldSnapshot) -> List[NPCAction]:
        p = self._personality
        actions: List[NPCAction] = []
        if p.sociability > 0.6:
            actions.append(
                NPCAction(
                    action_type=ActionType.SOCIALIZE,
                    priority=p.sociability * 0.7,
                    target_id=self._find_social_target(world),
                )
            )
        if p.likely_to_join_gang and self._owner.gang_id is None:
            actions.append(
                NPCAction(
                    action_type=ActionType.JOIN_GANG,
                    priority=0.8,
                    target_id=self._find_gang_to_join(world),
                )
            )
        if p.likely_to_seek_revenge:
            enemy = self._find_revenge_target()
            if enemy is not None:
                actions.append(
                    NPCAction(
                        action_type=ActionType.SEEK_REVENGE,
                        priority=p.vengefulness,
                        target_id=enemy,
                    )
                )
        return actions

    def _personal_actions(self) -> List[NPCAction]:
        actions: List[NPCAction] = []
        if self._owner.hp_ratio < 0.5:
            actions.append(NPCAction(action_type=ActionType.REST, priority=0.9))
        if self._personality.ambition > 0.7:
            actions.append(
                NPCAction(
                    action_type=ActionType.TRAIN,
                    priority=self._personality.ambition * 0.6,
                )
            )
        return actions

    def _combat_actions(self, world: WorldSnapshot) -> List[NPCAction]:
        if self._personality.aggression <= 0.6:
            return []
        target = self._find_combat_target(world)
        if target is None:
            return []
        return [
            NPCAction(
                action_type=ActionType.ATTACK,
                priority=self._personality.aggression,
                target_id=target,
            )
        ]

    def _select_action(self, actions: List[NPCAction]) -> NPCAction:
        if not actions:
            return NPCAction(action_type=ActionType.IDLE)

        for action in actions:
            action.priority *= self._emotions.get_action_modifier(action.action_type)

        impulsiveness = self._personality.impulsiveness
        if impulsiveness > IMPULSIVE_THRESHOLD and len(actions) > 1:
            if self._rng.random() < impulsiveness * IMPULSIVE_CHANCE_FACTOR:
                return actions[self._rng.randrange(len(actions))]

        return max(actions, key=lambda a: a.priority)

    # ── 대상 탐색 ────────────────────────────────────────────

    def _others_here(self, world: WorldSnapshot) -> List[CharacterSummary]:
        return [
            c
            for c in world.get_characters_at(self._owner.current_location)
            if c.character_id != self._owner.npc_id
        ]

    def is_ally_of(self, character_id: str) -> bool:
        return (
            self._relationships.is_ally(character_id)
            or self._memory.get_relationship(character_id).is_ally
        )

    def is_enemy_of(self, character_id: str) -> bool:
        return (
            self._relationships.is_enemy(character_id)
            or self._memory.get_relationship(character_id).is_enemy
        )

    def _find_trade_partner(self, world: WorldSnapshot) -> Optional[str]:
        for c in self._others_here(world):
            if normalize_archetype(c.archetype) == "merchant":
                return c.character_id
        return None

    def _find_steal_target(self, world: WorldSnapshot) -> Optional[str]:
        wealthy = [
            c
            for c in self._others_here(world)
            if c.gold > 100 and not self.is_ally_of(c.character_id)
        ]
        if not wealthy:
            return None
        return max(wealthy, key=lambda c: c.gold).character_id

    def _find_social_target(self, world: WorldSnapshot) -> Optional[str]:
        for c in self._others_here(world):
            if not self.is_enemy_of(c.character_id):
                return c.character_id
        return None

    def _find_gang_to_join(self, world: WorldSnapshot) -> Optional[str]:
        for c in self._others_here(world):
            if c.gang_members:
                return c.character_id
        return None

    def _find_revenge_target(self) -> Optional[str]:
        attacks = [
            m
            for m in self._memory.get_memories_of_type(MemoryEventType.WAS_ATTACKED)
            if m.involved_character
        ]
        if not attacks:
            return None
        # 가장 최근 공격자
        return attacks[-1].involved_character

    def _find_combat_target(self, world: WorldSnapshot) -> Optional[str]:
        others = self._others_here(world)
        for c in others:
            if self.is_enemy_of(c.character_id):
                return c.character_id

        if self._personality.aggression > 0.8:
            for c in others:
                if c.level < self._owner.level:
                    return c.character_id
        return None

    # ── 외부 통보 ────────────────────────────────────────────

    def record_interaction(
        self,
        other: Union[CharacterSummary, str],
        interaction_type: InteractionType,
        now: datetime,
        details: Optional[Dict[str, Any]] = None,
    ) -> MemoryEvent:
        """누군가 이 NPC에게 한 일을 기억/관계/감정에 반영"""
        if isinstance(other, CharacterSummary):
            other_id, other_name = other.character_id, other.name or other.character_id
        else:
            other_id, other_name = other, other

        memory_type = INTERACTION_MEMORY_TYPES.get(
            interaction_type, MemoryEventType.MISCELLANEOUS
        )

        with self._lock:
            event = create_memory_event(
                memory_type,
                now,
                involved_character=other_id,
                location=self._owner.current_location,
                details=details,
                description=f"{interaction_type.value} with {other_name}",
            )
            self._memory.record_event(event)

            before = self._relationships.get_relationship(other_id).relationship_type
            relationship = self._relationships.update_relationship(other_id, event)
            after = relationship.relationship_type

            if other_id != self._owner.npc_id and other_id not in self._owner.known_characters:
                self._owner.known_characters.append(other_id)

            direct = _DIRECT_EMOTIONS.get(interaction_type)
            if direct is not None:
                emotion_type, intensity, duration = direct
                self._emotions.add_emotion(emotion_type, intensity, duration, now)
            else:
                self._emotions.process_interaction(
                    interaction_type, other_id, event.importance, now
                )

        self._emit(
            EventTypes.NPC_INTERACTION_RECORDED,
            {
                "npc_id": self.npc_id,
                "other_id": other_id,
                "interaction": interaction_type.value,
                "memory_type": memory_type.value,
            },
        )
        if before != after:
            self._emit(
                EventTypes.RELATIONSHIP_CHANGED,
                {
                    "npc_id": self.npc_id,
                    "other_id": other_id,
                    "old_type": before.value,
                    "new_type": after.value,
                },
            )
        return event

    def on_level_up(self, new_level: int, now: datetime) -> None:
        """외부 진행 시스템이 레벨업을 통보"""
        with self._lock:
            self._owner.level = new_level
            self._memory.record_event(
                create_memory_event(
                    MemoryEventType.PERSONAL_ACHIEVEMENT,
                    now,
                    location=self._owner.current_location,
                    details={"level": new_level},
                    description=f"Reached level {new_level}",
                )
            )
            self._goals.on_level_up(new_level, now)
            self._emotions.add_emotion(EmotionType.CONFIDENCE, 0.7, 300, now)

        logger.info(f"레벨업: {self.npc_id} → Lv.{new_level}")
        self._emit(
            EventTypes.NPC_LEVEL_UP,
            {"npc_id": self.npc_id, "level": new_level},
        )

    def decay_relationships(self, now: datetime) -> List[str]:
        """방치된 관계 약화. 잊힌 상대 id 반환."""
        with self._lock:
            return self._relationships.decay_relationships(now)

    def _emit(self, event_type: str, data: Dict[str, Any]) -> None:
        if self._event_bus is None:
            return
        self._event_bus.emit(
            GameEvent(event_type=event_type, data=data, source=f"npc_brain:{self.npc_id}")
        )

    # ── 요약 ─────────────────────────────────────────────────

    def get_goals_summary(self, now: datetime) -> str:
        with self._lock:
            return self._goals.get_goals_summary(now)

    def get_emotional_summary(self, now: datetime) -> str:
        with self._lock:
            return self._emotions.get_emotional_summary(now)

    def get_relationship_summary(self) -> str:
        with self._lock:
            return self._relationships.get_relationship_summary()

    def get_brain_summary(self, now: datetime) -> str:
        with self._lock:
            goal = self._goals.get_priority_goal(now)
            lines = [
                f"=== {self._owner.name or self._owner.npc_id} AI Brain ===",
                f"Personality: {self._personality}",
                f"State: {self._state.value}",
                f"Current Goal: {goal.name if goal else 'None'}",
                f"Active Emotions: {len(self._emotions.get_active_emotions())}",
                self._memory.get_memory_summary(),
            ]
        return "\n".join(lines)
