"""감정 상태

일시적인 기분 효과(최대 5개)를 관리한다. 각 감정은 강도와 지속시간을 갖고
매 갱신마다 서서히 약해지며, 행동 점수에 곱셈 보정을 준다.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple, Union

from src.core.logging import get_logger
from src.core.npc.memory import MemoryEvent
from src.core.npc.models import (
    ActionType,
    EmotionType,
    InteractionType,
    MemoryEventType,
)

logger = get_logger(__name__)

MAX_EMOTIONS = 5
MERGE_FACTOR = 0.5
DECAY_FACTOR = 0.99
STABILITY_THRESHOLD = 1.5

# 감정 생성 대상: 최근 2시간, 중요도 0.5 초과
EVENT_LOOKBACK = timedelta(hours=2)
EVENT_IMPORTANCE_THRESHOLD = 0.5

MODIFIER_MIN = 0.1
MODIFIER_MAX = 3.0
NEUTRAL_MOOD = 0.5

# ── 기억 → 감정 (유형, 강도, 지속분) ─────────────────────────

EVENT_EMOTION_TABLE: Dict[MemoryEventType, Tuple[EmotionType, float, int]] = {
    MemoryEventType.WAS_ATTACKED: (EmotionType.ANGER, 0.8, 120),
    MemoryEventType.WAS_BETRAYED: (EmotionType.ANGER, 1.0, 300),
    MemoryEventType.WAS_HELPED: (EmotionType.GRATITUDE, 0.6, 180),
    MemoryEventType.WAS_DEFENDED: (EmotionType.GRATITUDE, 0.8, 240),
    MemoryEventType.WAS_SAVED: (EmotionType.GRATITUDE, 1.0, 360),
    MemoryEventType.WAS_THREATENED: (EmotionType.FEAR, 0.6, 90),
    MemoryEventType.PERSONAL_ACHIEVEMENT: (EmotionType.CONFIDENCE, 0.7, 300),
    MemoryEventType.PERSONAL_FAILURE: (EmotionType.SADNESS, 0.5, 180),
    MemoryEventType.GAINED_GOLD: (EmotionType.GREED, 0.4, 60),
    MemoryEventType.LOST_GOLD: (EmotionType.ANGER, 0.5, 120),
    MemoryEventType.SAW_DEATH: (EmotionType.FEAR, 0.7, 240),
    MemoryEventType.MADE_FRIEND: (EmotionType.JOY, 0.6, 180),
    MemoryEventType.MADE_ENEMY: (EmotionType.ANGER, 0.5, 150),
}

# ── 감정 × 행동 보정 (base + slope * intensity) ──────────────

ACTION_MODIFIER_TABLE: Dict[Tuple[EmotionType, ActionType], Tuple[float, float]] = {
    (EmotionType.ANGER, ActionType.ATTACK): (1.5, 0.5),
    (EmotionType.ANGER, ActionType.SOCIALIZE): (0.5, -0.3),
    (EmotionType.ANGER, ActionType.TRADE): (0.8, -0.2),
    (EmotionType.FEAR, ActionType.ATTACK): (0.3, -0.2),
    (EmotionType.FEAR, ActionType.FLEE): (1.8, 0.7),
    (EmotionType.FEAR, ActionType.REST): (1.3, 0.3),
    (EmotionType.FEAR, ActionType.EXPLORE): (0.4, -0.3),
    (EmotionType.CONFIDENCE, ActionType.ATTACK): (1.3, 0.2),
    (EmotionType.CONFIDENCE, ActionType.SOCIALIZE): (1.2, 0.3),
    (EmotionType.CONFIDENCE, ActionType.TRAIN): (1.4, 0.3),
    (EmotionType.CONFIDENCE, ActionType.EXPLORE): (1.2, 0.2),
    (EmotionType.SADNESS, ActionType.REST): (1.5, 0.4),
    (EmotionType.SADNESS, ActionType.SOCIALIZE): (0.6, -0.4),
    (EmotionType.SADNESS, ActionType.ATTACK): (0.7, -0.3),
    (EmotionType.GREED, ActionType.TRADE): (1.4, 0.4),
    (EmotionType.GREED, ActionType.STEAL): (1.6, 0.5),
    (EmotionType.GREED, ActionType.HELP): (0.5, -0.3),
    (EmotionType.JOY, ActionType.SOCIALIZE): (1.3, 0.3),
    (EmotionType.JOY, ActionType.HELP): (1.2, 0.2),
    (EmotionType.JOY, ActionType.ATTACK): (0.8, -0.2),
    (EmotionType.GRATITUDE, ActionType.HELP): (1.5, 0.4),
    (EmotionType.GRATITUDE, ActionType.SOCIALIZE): (1.2, 0.2),
    (EmotionType.GRATITUDE, ActionType.ATTACK): (0.6, -0.3),
    (EmotionType.LONELINESS, ActionType.SOCIALIZE): (1.6, 0.5),
    (EmotionType.LONELINESS, ActionType.JOIN_GANG): (1.4, 0.4),
    (EmotionType.LONELINESS, ActionType.REST): (0.8, -0.2),
}

# ── 기분 부호 ────────────────────────────────────────────────

MOOD_SIGN: Dict[EmotionType, float] = {
    EmotionType.JOY: 1.0,
    EmotionType.CONFIDENCE: 1.0,
    EmotionType.GRATITUDE: 1.0,
    EmotionType.HOPE: 1.0,
    EmotionType.PEACE: 1.0,
    EmotionType.ANGER: -1.0,
    EmotionType.FEAR: -1.0,
    EmotionType.SADNESS: -1.0,
    EmotionType.GREED: -1.0,
    EmotionType.LONELINESS: -1.0,
    EmotionType.ENVY: -1.0,
}

# ── 상호작용 범주 → 감정 ─────────────────────────────────────

_HOSTILE_INTERACTIONS = frozenset(
    {
        InteractionType.ATTACKED,
        InteractionType.BETRAYED,
        InteractionType.INSULTED,
        InteractionType.THREATENED,
    }
)
_HELPFUL_INTERACTIONS = frozenset(
    {
        InteractionType.HELPED,
        InteractionType.DEFENDED,
        InteractionType.COMPLIMENTED,
        InteractionType.SAVED,
    }
)
_SOCIAL_INTERACTIONS = frozenset(
    {
        InteractionType.SHARED_DRINK,
        InteractionType.SHARED_ITEM,
        InteractionType.TRADED,
    }
)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass
class Emotion:
    """활성 감정 1건

    직접 생성 시 intensity가 0.0~1.0을 벗어나면 ValueError.
    """

    emotion_type: EmotionType
    intensity: float
    duration_minutes: int
    start_time: datetime

    def __post_init__(self) -> None:
        if not 0.0 <= self.intensity <= 1.0:
            raise ValueError(f"emotion intensity out of range [0, 1]: {self.intensity}")

    def elapsed_minutes(self, now: datetime) -> float:
        return (now - self.start_time).total_seconds() / 60.0

    def is_expired(self, now: datetime) -> bool:
        return self.elapsed_minutes(now) >= self.duration_minutes

    def remaining_minutes(self, now: datetime) -> int:
        return max(0, self.duration_minutes - int(self.elapsed_minutes(now)))

    def current_intensity(self, now: datetime) -> float:
        """경과 시간에 따라 선형으로 옅어지는 체감 강도"""
        if self.is_expired(now) or self.duration_minutes <= 0:
            return 0.0
        fade = 1.0 - self.elapsed_minutes(now) / self.duration_minutes
        return self.intensity * fade


class EmotionalState:
    """NPC 1명의 감정 상태"""

    def __init__(self) -> None:
        self._emotions: Dict[EmotionType, Emotion] = {}
        # 이미 감정을 만든 기억 (event_id → timestamp)
        self._processed_events: Dict[str, datetime] = {}

    def add_emotion(
        self,
        emotion_type: EmotionType,
        intensity: float,
        duration_minutes: int,
        now: datetime,
    ) -> Emotion:
        """감정 추가. 같은 유형이 활성 상태면 병합 후 타이머 재시작."""
        intensity = _clamp01(intensity)

        existing = self._emotions.get(emotion_type)
        if existing is not None:
            existing.intensity = min(1.0, existing.intensity + intensity * MERGE_FACTOR)
            existing.duration_minutes = max(existing.duration_minutes, duration_minutes)
            existing.start_time = now
            emotion = existing
        else:
            emotion = Emotion(
                emotion_type=emotion_type,
                intensity=intensity,
                duration_minutes=duration_minutes,
                start_time=now,
            )
            self._emotions[emotion_type] = emotion

        if len(self._emotions) > MAX_EMOTIONS:
            weakest = min(self._emotions.values(), key=lambda e: e.intensity)
            del self._emotions[weakest.emotion_type]
            logger.debug(f"emotion evicted: {weakest.emotion_type.value}")

        logger.debug(
            f"emotion added: {emotion_type.value} "
            f"(intensity={intensity:.2f}, duration={duration_minutes}m)"
        )
        return emotion

    def set_intensity(self, emotion_type: EmotionType, intensity: float) -> None:
        """활성 감정 강도 직접 지정 (클램프 없음, 범위 밖이면 ValueError)"""
        if not 0.0 <= intensity <= 1.0:
            raise ValueError(f"emotion intensity out of range [0, 1]: {intensity}")
        emotion = self._emotions.get(emotion_type)
        if emotion is not None:
            emotion.intensity = intensity

    def update(self, recent_events: Iterable[MemoryEvent], now: datetime) -> None:
        """만료 제거 → 최근 기억에서 감정 생성 → 전체 감쇠"""
        expired = [t for t, e in self._emotions.items() if e.is_expired(now)]
        for emotion_type in expired:
            del self._emotions[emotion_type]

        self._generate_from_events(recent_events, now)

        for emotion in self._emotions.values():
            emotion.intensity *= DECAY_FACTOR

    def _generate_from_events(self, events: Iterable[MemoryEvent], now: datetime) -> None:
        cutoff = now - EVENT_LOOKBACK
        self._processed_events = {
            eid: ts for eid, ts in self._processed_events.items() if ts >= cutoff
        }

        for event in events:
            if event.event_id in self._processed_events:
                continue
            if event.importance <= EVENT_IMPORTANCE_THRESHOLD:
                continue
            if not event.is_recent(now, EVENT_LOOKBACK):
                continue

            mapped = EVENT_EMOTION_TABLE.get(event.event_type)
            if mapped is None:
                continue

            emotion_type, intensity, duration = mapped
            self.add_emotion(emotion_type, intensity, duration, now)
            self._processed_events[event.event_id] = event.timestamp

    def process_interaction(
        self,
        interaction_type: InteractionType,
        other_id: Optional[str],
        importance: float,
        now: datetime,
    ) -> None:
        """상호작용 범주(적대/도움/사교)에 따른 감정 반응"""
        if interaction_type in _HOSTILE_INTERACTIONS:
            self.add_emotion(EmotionType.ANGER, min(1.0, importance), 120, now)
        elif interaction_type in _HELPFUL_INTERACTIONS:
            self.add_emotion(EmotionType.GRATITUDE, min(1.0, importance), 120, now)
        elif interaction_type in _SOCIAL_INTERACTIONS:
            self.add_emotion(EmotionType.JOY, min(0.5, importance), 60, now)
        else:
            logger.debug(
                f"no emotional reaction for {interaction_type.value} from {other_id}"
            )

    def adjust_mood(
        self,
        emotion: Union[EmotionType, str],
        intensity: float,
        now: datetime,
        duration_minutes: int = 60,
    ) -> None:
        """이름 또는 유형으로 감정 추가. 모르는 이름은 무시."""
        if not isinstance(emotion, EmotionType):
            try:
                emotion = EmotionType(str(emotion).strip().lower())
            except ValueError:
                logger.debug(f"unknown emotion ignored: {emotion}")
                return
        self.add_emotion(emotion, intensity, duration_minutes, now)

    # ── 파생 조회 ────────────────────────────────────────────

    def get_action_modifier(self, action_type: ActionType) -> float:
        modifier = 1.0
        for emotion in self._emotions.values():
            rule = ACTION_MODIFIER_TABLE.get((emotion.emotion_type, action_type))
            if rule is None:
                continue
            base, slope = rule
            modifier *= base + slope * emotion.intensity
        return max(MODIFIER_MIN, min(MODIFIER_MAX, modifier))

    def get_current_mood(self) -> float:
        """0.0(매우 부정) ~ 1.0(매우 긍정). 감정이 없으면 0.5"""
        if not self._emotions:
            return NEUTRAL_MOOD
        total = sum(
            e.intensity * MOOD_SIGN.get(t, 0.0) for t, e in self._emotions.items()
        )
        normalized = (total / len(self._emotions) + 1.0) / 2.0
        return _clamp01(normalized)

    def get_active_emotions(self) -> Dict[EmotionType, Emotion]:
        return dict(self._emotions)

    def has_emotion(self, emotion_type: EmotionType, now: datetime) -> bool:
        emotion = self._emotions.get(emotion_type)
        return emotion is not None and not emotion.is_expired(now)

    def get_emotion_intensity(self, emotion_type: EmotionType, now: datetime) -> float:
        if not self.has_emotion(emotion_type, now):
            return 0.0
        return self._emotions[emotion_type].intensity

    def get_dominant_emotion(self, now: datetime) -> Optional[EmotionType]:
        alive = [e for e in self._emotions.values() if not e.is_expired(now)]
        if not alive:
            return None
        return max(alive, key=lambda e: e.intensity).emotion_type

    def is_emotionally_stable(self) -> bool:
        return sum(e.intensity for e in self._emotions.values()) < STABILITY_THRESHOLD

    def clear_emotion(self, emotion_type: EmotionType) -> None:
        self._emotions.pop(emotion_type, None)

    def clear_all_emotions(self) -> None:
        self._emotions.clear()

    def get_emotional_summary(self, now: datetime) -> str:
        strongest: List[Emotion] = sorted(
            (e for e in self._emotions.values() if not e.is_expired(now)),
            key=lambda e: e.intensity,
            reverse=True,
        )[:3]
        if not strongest:
            return "Calm and composed"
        parts = [f"{e.emotion_type.value} ({e.intensity * 100:.0f}%)" for e in strongest]
        return "Feeling: " + ", ".join(parts)
