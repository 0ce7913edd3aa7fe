"""NPC Core 도메인 패키지

공개 API:
- 도메인 모델: MemoryEventType, InteractionType, ActionType, EmotionType, GoalType,
  NPCAction, CharacterSummary, NPCState, WorldSnapshot
- 성격: PersonalityProfile, generate_personality
- 기억: MemoryEvent, MemorySystem, create_memory_event
- 감정: Emotion, EmotionalState
- 목표: Goal, GoalSystem

NPCBrain은 관계 패키지에 의존하므로 src.core.npc.brain에서 직접 import한다.
"""

from src.core.npc.models import (
    ActionType,
    BrainState,
    CharacterSummary,
    CombatStyle,
    EmotionType,
    GoalType,
    InteractionType,
    MemoryEventType,
    NPCAction,
    NPCState,
    WorldSnapshot,
)
from src.core.npc.personality import (
    ARCHETYPE_TRAIT_RANGES,
    PersonalityProfile,
    generate_personality,
    normalize_archetype,
)
from src.core.npc.memory import (
    IMPORTANCE_TABLE,
    MEMORY_CAPACITY,
    PROTECTED_TYPES,
    MemoryEvent,
    MemorySystem,
    RelationshipSignal,
    create_memory_event,
)
from src.core.npc.emotions import (
    ACTION_MODIFIER_TABLE,
    EVENT_EMOTION_TABLE,
    Emotion,
    EmotionalState,
)
from src.core.npc.goals import (
    Goal,
    GoalSystem,
)

__all__ = [
    # models
    "ActionType",
    "BrainState",
    "CharacterSummary",
    "CombatStyle",
    "EmotionType",
    "GoalType",
    "InteractionType",
    "MemoryEventType",
    "NPCAction",
    "NPCState",
    "WorldSnapshot",
    # personality
    "ARCHETYPE_TRAIT_RANGES",
    "PersonalityProfile",
    "generate_personality",
    "normalize_archetype",
    # memory
    "IMPORTANCE_TABLE",
    "MEMORY_CAPACITY",
    "PROTECTED_TYPES",
    "MemoryEvent",
    "MemorySystem",
    "RelationshipSignal",
    "create_memory_event",
    # emotions
    "ACTION_MODIFIER_TABLE",
    "EVENT_EMOTION_TABLE",
    "Emotion",
    "EmotionalState",
    # goals
    "Goal",
    "GoalSystem",
]
