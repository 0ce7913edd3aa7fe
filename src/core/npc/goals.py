"""목표 시스템

NPC가 추구하는 목표 목록. 상황 트리거로 생성되고, 매 갱신마다 우선순위가
조금씩 감쇠하며, 완료 조건 충족 또는 우선순위 0.1 미만이면 비활성화된다.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from src.core.logging import get_logger
from src.core.npc.models import EmotionType, GoalType, MemoryEventType, NPCState, WorldSnapshot
from src.core.npc.personality import PersonalityProfile, normalize_archetype

if TYPE_CHECKING:
    from src.core.npc.emotions import EmotionalState
    from src.core.npc.memory import MemorySystem

logger = get_logger(__name__)

PRIORITY_DECAY = 0.995
DEACTIVATE_BELOW = 0.1
URGENT_ABOVE = 0.8
PERSONAL_URGENCY_PER_HOUR = 0.01

REVENGE_LOOKBACK = timedelta(hours=168)
MAX_REVENGE_PER_UPDATE = 2

WEALTHY_GOLD = 10000
EARN_MONEY_GOLD = 1000
POOR_GOLD = 100
HEALED_HP_RATIO = 0.8
WOUNDED_HP_RATIO = 0.3
FRIENDS_TARGET = 3
STRONG_LEVEL = 20
RULER_MIN_LEVEL = 10
ELITE_MIN_LEVEL = 15
LEVEL_UP_BOOST = 0.1

# ── 감정 × 목표 보정 (감정, 목표 유형, 이름 키워드) ──────────

EMOTION_GOAL_MODIFIERS: Tuple[Tuple[EmotionType, GoalType, Optional[str], float], ...] = (
    (EmotionType.ANGER, GoalType.SOCIAL, "Revenge", 1.5),
    (EmotionType.FEAR, GoalType.PERSONAL, None, 1.3),
    (EmotionType.GREED, GoalType.ECONOMIC, None, 1.4),
    (EmotionType.CONFIDENCE, GoalType.SOCIAL, "Power", 1.2),
    (EmotionType.LONELINESS, GoalType.SOCIAL, "Friends", 1.6),
)

# ── 아키타입 기본 목표 ───────────────────────────────────────

ARCHETYPE_GOALS: Dict[str, Tuple[Tuple[str, GoalType, float], ...]] = {
    "thug": (
        ("Dominate Others", GoalType.SOCIAL, 0.8),
        ("Gain Strength", GoalType.PERSONAL, 0.7),
        ("Find Enemies", GoalType.COMBAT, 0.6),
    ),
    "merchant": (
        ("Accumulate Wealth", GoalType.ECONOMIC, 0.9),
        ("Build Trade Network", GoalType.SOCIAL, 0.7),
        ("Secure Trade Routes", GoalType.ECONOMIC, 0.6),
    ),
    "guard": (
        ("Maintain Order", GoalType.SOCIAL, 0.8),
        ("Protect Citizens", GoalType.SOCIAL, 0.7),
        ("Improve Skills", GoalType.PERSONAL, 0.5),
    ),
    "priest": (
        ("Help Others", GoalType.SOCIAL, 0.8),
        ("Spread Faith", GoalType.SOCIAL, 0.7),
        ("Gain Wisdom", GoalType.PERSONAL, 0.6),
    ),
    "noble": (
        ("Gain Political Power", GoalType.SOCIAL, 0.9),
        ("Increase Influence", GoalType.SOCIAL, 0.8),
        ("Maintain Status", GoalType.PERSONAL, 0.7),
    ),
    "mystic": (
        ("Explore the Realm", GoalType.EXPLORATION, 0.7),
        ("Gain Wisdom", GoalType.PERSONAL, 0.6),
    ),
}

_DEFAULT_GOALS: Tuple[Tuple[str, GoalType, float], ...] = (
    ("Survive", GoalType.PERSONAL, 0.6),
    ("Improve Life", GoalType.PERSONAL, 0.5),
)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass
class Goal:
    """추구 중인 목표 1건. priority는 생성 시 0.0~1.0으로 클램프."""

    name: str
    goal_type: GoalType
    priority: float
    created_time: datetime
    emotion_modifier: float = 1.0
    is_active: bool = True
    is_completed: bool = False
    target_character: Optional[str] = None
    target_location: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.priority = _clamp01(self.priority)

    def effective_priority(self, now: datetime) -> float:
        """priority × emotion_modifier × time_factor (개인 목표는 시간이 갈수록 급해짐)"""
        time_factor = 1.0
        if self.goal_type == GoalType.PERSONAL:
            age_hours = max(0.0, (now - self.created_time).total_seconds() / 3600.0)
            time_factor = 1.0 + age_hours * PERSONAL_URGENCY_PER_HOUR
        return max(0.0, self.priority * self.emotion_modifier * time_factor)

    def complete(self) -> None:
        self.is_completed = True
        self.is_active = False

    def is_urgent(self, now: datetime) -> bool:
        return self.effective_priority(now) > URGENT_ABOVE

    def describe(self, now: datetime) -> str:
        if self.is_completed:
            status = "[DONE]"
        elif self.is_active:
            status = "[ACTIVE]"
        else:
            status = "[INACTIVE]"
        return (
            f"{status} {self.name} ({self.goal_type.value}) - "
            f"Priority: {self.effective_priority(now):.2f}"
        )


class GoalSystem:
    """NPC 1명의 목표 목록"""

    def __init__(self, personality: PersonalityProfile) -> None:
        self._personality = personality
        self._goals: List[Goal] = []

    @property
    def goals(self) -> List[Goal]:
        return list(self._goals)

    def add_goal(self, goal: Goal) -> None:
        self._goals.append(goal)
        logger.debug(f"goal added: {goal.name} (priority={goal.priority:.2f})")

    def remove_goal(self, name: str) -> None:
        self._goals = [g for g in self._goals if g.name != name]

    def find_goal(self, name: str) -> Optional[Goal]:
        for goal in self._goals:
            if goal.name == name:
                return goal
        return None

    def set_priority(self, name: str, value: float) -> None:
        """우선순위 직접 지정. 클램프하지 않으므로 범위 밖이면 ValueError."""
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"goal priority out of range [0, 1]: {value}")
        goal = self.find_goal(name)
        if goal is None:
            logger.warning(f"set_priority ignored, no goal named {name!r}")
            return
        goal.priority = value

    def get_active_goals(self) -> List[Goal]:
        active = [g for g in self._goals if g.is_active]
        return sorted(active, key=lambda g: g.priority, reverse=True)

    def get_priority_goal(self, now: datetime) -> Optional[Goal]:
        active = [g for g in self._goals if g.is_active]
        if not active:
            return None
        return max(active, key=lambda g: g.effective_priority(now))

    def _has_active(self, name: str) -> bool:
        return any(g.is_active and g.name == name for g in self._goals)

    def _add_if_absent(self, goal: Goal) -> bool:
        if self._has_active(goal.name):
            return False
        self.add_goal(goal)
        return True

    # ── 초기 목표 ────────────────────────────────────────────

    def seed_initial_goals(self, now: datetime) -> None:
        """아키타입 기본 목표 + 성격 기반 목표"""
        p = self._personality
        archetype = normalize_archetype(p.archetype)
        for name, goal_type, priority in ARCHETYPE_GOALS.get(archetype, _DEFAULT_GOALS):
            self.add_goal(Goal(name, goal_type, priority, now))

        if p.greed > 0.7:
            self.add_goal(Goal("Become Wealthy", GoalType.ECONOMIC, p.greed, now))
        if p.ambition > 0.8:
            self.add_goal(Goal("Gain Power", GoalType.SOCIAL, p.ambition, now))
        if p.vengefulness > 0.7:
            self.add_goal(Goal("Seek Revenge", GoalType.SOCIAL, p.vengefulness, now))

    # ── 갱신 ─────────────────────────────────────────────────

    def update_goals(
        self,
        owner: NPCState,
        world: WorldSnapshot,
        memory: "MemorySystem",
        emotions: "EmotionalState",
        now: datetime,
    ) -> None:
        """감쇠 → 완료/포기 판정 → 신규 목표 생성 → 감정 보정 재계산"""
        for goal in self._goals:
            if not goal.is_active:
                continue
            goal.priority *= PRIORITY_DECAY
            if self._is_completed(goal, owner):
                goal.complete()
                logger.debug(f"{owner.npc_id} completed goal: {goal.name}")
            elif goal.priority < DEACTIVATE_BELOW:
                goal.is_active = False
                logger.debug(f"{owner.npc_id} abandoned goal: {goal.name}")

        self._generate_new_goals(owner, memory, now)
        self._adjust_emotion_modifiers(emotions)

    @staticmethod
    def _is_completed(goal: Goal, owner: NPCState) -> bool:
        name = goal.name
        if goal.goal_type == GoalType.ECONOMIC:
            if "Wealthy" in name:
                return owner.gold >= WEALTHY_GOLD
            if "Earn Money" in name:
                return owner.gold >= EARN_MONEY_GOLD
        elif goal.goal_type == GoalType.SOCIAL:
            if "Power" in name or "Ruler" in name:
                return owner.is_ruler
            if "Gang" in name:
                return bool(owner.gang_id)
            if "Make Friends" in name:
                return len(owner.known_characters) >= FRIENDS_TARGET
        elif goal.goal_type == GoalType.PERSONAL:
            if "Strength" in name:
                return owner.level >= STRONG_LEVEL
            if "Heal" in name:
                return owner.hp_ratio >= HEALED_HP_RATIO
        return False

    def _generate_new_goals(
        self, owner: NPCState, memory: "MemorySystem", now: datetime
    ) -> None:
        p = self._personality

        attacks = [
            m
            for m in memory.get_memories_of_type(MemoryEventType.WAS_ATTACKED)
            if m.involved_character and m.is_recent(now, REVENGE_LOOKBACK)
        ]
        for attack in attacks[:MAX_REVENGE_PER_UPDATE]:
            self._add_if_absent(
                Goal(
                    f"Revenge against {attack.involved_character}",
                    GoalType.SOCIAL,
                    p.vengefulness,
                    now,
                    target_character=attack.involved_character,
                )
            )

        if p.sociability > 0.6 and len(owner.known_characters) < FRIENDS_TARGET:
            self._add_if_absent(
                Goal("Make Friends", GoalType.SOCIAL, p.sociability * 0.8, now)
            )

        if owner.gold < POOR_GOLD and p.greed > 0.5:
            self._add_if_absent(Goal("Earn Money", GoalType.ECONOMIC, p.greed, now))

        if owner.hp_ratio < WOUNDED_HP_RATIO:
            self._add_if_absent(Goal("Heal Wounds", GoalType.PERSONAL, 0.9, now))

        if p.ambition > 0.8 and owner.level >= RULER_MIN_LEVEL:
            self._add_if_absent(Goal("Become Ruler", GoalType.SOCIAL, p.ambition, now))

    def _adjust_emotion_modifiers(self, emotions: "EmotionalState") -> None:
        active_emotions = emotions.get_active_emotions()
        for goal in self._goals:
            if not goal.is_active:
                continue
            modifier = 1.0
            for emotion_type in active_emotions:
                for rule_emotion, rule_type, keyword, factor in EMOTION_GOAL_MODIFIERS:
                    if emotion_type != rule_emotion or goal.goal_type != rule_type:
                        continue
                    if keyword is None or keyword in goal.name:
                        modifier *= factor
            goal.emotion_modifier = modifier

    def on_level_up(self, new_level: int, now: datetime) -> None:
        """개인/사회 목표 우선순위 +0.1, 고레벨 야심가는 엘리트 목표 추가"""
        for goal in self._goals:
            if goal.goal_type in (GoalType.PERSONAL, GoalType.SOCIAL):
                goal.priority = _clamp01(goal.priority + LEVEL_UP_BOOST)

        if new_level >= ELITE_MIN_LEVEL and self._personality.ambition > 0.7:
            self._add_if_absent(
                Goal("Achieve Elite Status", GoalType.SOCIAL, 0.8, now)
            )

    def get_goals_summary(self, now: datetime) -> str:
        active = self.get_active_goals()
        if not active:
            return "No active goals"
        lines = ["Active Goals:"]
        for goal in active[:3]:
            lines.append(f"  - {goal.name} (Priority: {goal.effective_priority(now):.2f})")
        return "\n".join(lines)
