"""NPC 기억 시스템

중요도 기반 보존 정책을 가진 에피소드 로그.
- 용량 초과 시 중요도 낮은 기억부터 삭제 (보호 유형은 우선 보존)
- 감정적 회상은 최근 7일만, 이력 조회는 전체
- 특정 인물에 대한 관계 신호(우정/신뢰/적대/공포)를 기억에서 재계산
"""

import heapq
import itertools
import threading
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, NamedTuple, Optional, Tuple

from src.core.logging import get_logger
from src.core.npc.models import MemoryEventType

logger = get_logger(__name__)

# ── 중요도 테이블 ────────────────────────────────────────────

IMPORTANCE_TABLE: Dict[MemoryEventType, float] = {
    MemoryEventType.WAS_ATTACKED: 0.9,
    MemoryEventType.WAS_BETRAYED: 1.0,
    MemoryEventType.WAS_HELPED: 0.7,
    MemoryEventType.WAS_DEFENDED: 0.8,
    MemoryEventType.WAS_SAVED: 1.0,
    MemoryEventType.WAS_THREATENED: 0.6,
    MemoryEventType.WAS_INSULTED: 0.4,
    MemoryEventType.WAS_COMPLIMENTED: 0.2,
    MemoryEventType.WAS_DEFEATED: 0.8,
    MemoryEventType.WAS_ABANDONED: 0.7,
    MemoryEventType.SHARED_DRINK: 0.2,
    MemoryEventType.SHARED_ITEM: 0.4,
    MemoryEventType.TRADED: 0.3,
    MemoryEventType.SAW_PERSON: 0.1,
    MemoryEventType.SAW_DEATH: 0.7,
    MemoryEventType.HEARD_RUMOR: 0.1,
    MemoryEventType.VISITED_LOCATION: 0.1,
    MemoryEventType.GAINED_GOLD: 0.6,
    MemoryEventType.LOST_GOLD: 0.6,
    MemoryEventType.PERSONAL_ACHIEVEMENT: 0.8,
    MemoryEventType.PERSONAL_FAILURE: 0.6,
    MemoryEventType.MADE_FRIEND: 0.6,
    MemoryEventType.MADE_ENEMY: 0.6,
    MemoryEventType.DECISION_MADE: 0.1,
    MemoryEventType.MISCELLANEOUS: 0.3,
}

_DEFAULT_IMPORTANCE = 0.3

# 용량 초과 시에도 우선 보존되는 유형
PROTECTED_TYPES: FrozenSet[MemoryEventType] = frozenset(
    {
        MemoryEventType.WAS_ATTACKED,
        MemoryEventType.WAS_BETRAYED,
        MemoryEventType.WAS_HELPED,
        MemoryEventType.WAS_DEFENDED,
        MemoryEventType.WAS_SAVED,
    }
)

MEMORY_CAPACITY = 100
EMOTIONAL_RECALL_WINDOW = timedelta(days=7)
DEFAULT_RECENT_WINDOW = timedelta(hours=24)

# decay_memories: 오래되고 사소한 기억만 잊는다
FORGET_AFTER = timedelta(days=30)
FORGET_IMPORTANCE_THRESHOLD = 0.3

_HELP_TYPES: FrozenSet[MemoryEventType] = frozenset(
    {
        MemoryEventType.WAS_HELPED,
        MemoryEventType.WAS_DEFENDED,
        MemoryEventType.WAS_SAVED,
    }
)


@dataclass(frozen=True)
class MemoryEvent:
    """기억 1건 (생성 후 불변)

    importance는 event_type에서 결정적으로 도출된다.
    """

    event_type: MemoryEventType
    timestamp: datetime
    involved_character: Optional[str] = None
    location: Optional[str] = None
    details: Mapping[str, Any] = field(default_factory=dict)
    description: str = ""
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    @property
    def importance(self) -> float:
        return IMPORTANCE_TABLE.get(self.event_type, _DEFAULT_IMPORTANCE)

    @property
    def is_protected(self) -> bool:
        return self.event_type in PROTECTED_TYPES

    def age(self, now: datetime) -> timedelta:
        return now - self.timestamp

    def is_recent(self, now: datetime, window: timedelta) -> bool:
        return self.age(now) <= window


def create_memory_event(
    event_type: MemoryEventType,
    timestamp: datetime,
    involved_character: Optional[str] = None,
    location: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
    description: str = "",
) -> MemoryEvent:
    """기억 생성 헬퍼. description 미지정 시 유형/대상으로 자동 작성."""
    if not description:
        description = event_type.value
        if involved_character:
            description = f"{event_type.value} ({involved_character})"

    return MemoryEvent(
        event_type=event_type,
        timestamp=timestamp,
        involved_character=involved_character,
        location=location,
        details=details or {},
        description=description,
    )


# ── 관계 신호 ────────────────────────────────────────────────


class SignalImpact(NamedTuple):
    """기억 1건이 관계 신호에 주는 변화량"""

    friendship: float
    trust: float
    hostility: float
    fear: float


# WAS_BETRAYED의 trust는 별도 규칙(바닥값 고정)으로 처리
SIGNAL_IMPACT_TABLE: Dict[MemoryEventType, SignalImpact] = {
    MemoryEventType.WAS_ATTACKED: SignalImpact(-20.0, -30.0, 60.0, 35.0),
    MemoryEventType.WAS_BETRAYED: SignalImpact(-60.0, 0.0, 55.0, 0.0),
    MemoryEventType.WAS_HELPED: SignalImpact(35.0, 25.0, -10.0, 0.0),
    MemoryEventType.WAS_DEFENDED: SignalImpact(40.0, 35.0, -15.0, 0.0),
    MemoryEventType.WAS_SAVED: SignalImpact(50.0, 45.0, -20.0, -10.0),
    MemoryEventType.WAS_THREATENED: SignalImpact(-10.0, -15.0, 20.0, 30.0),
    MemoryEventType.WAS_INSULTED: SignalImpact(-10.0, -5.0, 20.0, 0.0),
    MemoryEventType.WAS_COMPLIMENTED: SignalImpact(10.0, 5.0, 0.0, 0.0),
    MemoryEventType.WAS_DEFEATED: SignalImpact(-10.0, -10.0, 30.0, 40.0),
    MemoryEventType.WAS_ABANDONED: SignalImpact(-30.0, -40.0, 15.0, 0.0),
    MemoryEventType.SHARED_DRINK: SignalImpact(15.0, 5.0, -5.0, 0.0),
    MemoryEventType.SHARED_ITEM: SignalImpact(20.0, 10.0, -5.0, 0.0),
    MemoryEventType.TRADED: SignalImpact(5.0, 10.0, 0.0, 0.0),
    MemoryEventType.MADE_FRIEND: SignalImpact(20.0, 10.0, 0.0, 0.0),
    MemoryEventType.MADE_ENEMY: SignalImpact(-20.0, -10.0, 30.0, 0.0),
}

TRUST_FLOOR = -100.0
# 배신 이후 이만큼의 긍정 신뢰가 누적되어야 바닥에서 회복 시작
TRUST_RECOVERY_THRESHOLD = 100.0

ENEMY_HOSTILITY_THRESHOLD = 50.0
ENEMY_TRUST_THRESHOLD = -75.0
ALLY_FRIENDSHIP_THRESHOLD = 30.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass
class RelationshipSignal:
    """기억에서 도출한 특정 인물에 대한 감정 신호

    friendship/trust: -100 ~ +100, hostility/fear: 0 ~ 100
    """

    character_id: str
    friendship: float = 0.0
    trust: float = 0.0
    hostility: float = 0.0
    fear: float = 0.0
    betrayed: bool = False
    event_count: int = 0

    @property
    def is_enemy(self) -> bool:
        return (
            self.hostility >= ENEMY_HOSTILITY_THRESHOLD
            or self.trust <= ENEMY_TRUST_THRESHOLD
        )

    @property
    def is_ally(self) -> bool:
        return (
            self.friendship >= ALLY_FRIENDSHIP_THRESHOLD
            and self.trust > 0
            and not self.is_enemy
        )


def compute_relationship_signal(
    character_id: str,
    events: Iterable[MemoryEvent],
) -> RelationshipSignal:
    """기억 목록을 시간순으로 접어 관계 신호 계산

    배신이 발생하면 trust는 바닥값으로 고정되고, 이후 긍정 신뢰는
    회복 풀에 쌓인다. 풀이 TRUST_RECOVERY_THRESHOLD를 넘어야 회복한다.
    """
    signal = RelationshipSignal(character_id=character_id)
    recovery = 0.0

    for event in sorted(events, key=lambda e: e.timestamp):
        signal.event_count += 1
        impact = SIGNAL_IMPACT_TABLE.get(event.event_type)
        if impact is None:
            continue

        signal.friendship = _clamp(signal.friendship + impact.friendship, -100.0, 100.0)
        signal.hostility = _clamp(signal.hostility + impact.hostility, 0.0, 100.0)
        signal.fear = _clamp(signal.fear + impact.fear, 0.0, 100.0)

        if event.event_type == MemoryEventType.WAS_BETRAYED:
            signal.betrayed = True
            signal.trust = TRUST_FLOOR
            recovery = 0.0
        elif signal.betrayed and impact.trust > 0:
            recovery += impact.trust
            if recovery > TRUST_RECOVERY_THRESHOLD:
                signal.trust = TRUST_FLOOR + (recovery - TRUST_RECOVERY_THRESHOLD)
                signal.betrayed = False
                recovery = 0.0
        else:
            signal.trust = _clamp(signal.trust + impact.trust, TRUST_FLOOR, 100.0)

    return signal


class MemorySystem:
    """NPC 1명의 기억 저장소

    인물별/유형별 인덱스를 유지하여 전체 로그 스캔 없이 조회한다.
    여러 스레드가 같은 인스턴스를 공유해도 내부 RLock으로 직렬화된다.
    """

    def __init__(self, capacity: int = MEMORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"memory capacity must be positive: {capacity}")
        self._capacity = capacity
        self._lock = threading.RLock()
        self._seq = itertools.count()
        self._events: Dict[int, MemoryEvent] = {}
        self._by_character: Dict[str, Dict[int, MemoryEvent]] = defaultdict(dict)
        self._by_type: Dict[MemoryEventType, Dict[int, MemoryEvent]] = defaultdict(dict)
        # (보호 여부, 중요도, 순번) 최소 힙. 삭제는 지연 처리.
        self._eviction_heap: List[Tuple[int, float, int]] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    # ── 기록 ─────────────────────────────────────────────────

    def record_event(self, event: MemoryEvent) -> None:
        """기억 추가. 용량 초과 시 보존 정책에 따라 정리."""
        with self._lock:
            seq = next(self._seq)
            self._events[seq] = event
            self._by_type[event.event_type][seq] = event
            if event.involved_character:
                self._by_character[event.involved_character][seq] = event
            heapq.heappush(
                self._eviction_heap,
                (1 if event.is_protected else 0, event.importance, seq),
            )

            while len(self._events) > self._capacity:
                self._evict_one()

    def _evict_one(self) -> None:
        while self._eviction_heap:
            _, _, seq = heapq.heappop(self._eviction_heap)
            if seq in self._events:
                evicted = self._remove(seq)
                logger.debug(
                    f"memory pruned: {evicted.event_type.value} "
                    f"(importance={evicted.importance:.2f})"
                )
                return

    def _remove(self, seq: int) -> MemoryEvent:
        event = self._events.pop(seq)
        self._by_type[event.event_type].pop(seq, None)
        if not self._by_type[event.event_type]:
            del self._by_type[event.event_type]
        if event.involved_character:
            bucket = self._by_character[event.involved_character]
            bucket.pop(seq, None)
            if not bucket:
                del self._by_character[event.involved_character]
        return event

    def decay_memories(self, now: datetime) -> int:
        """오래되고 사소한 비보호 기억 삭제. 삭제 건수 반환."""
        with self._lock:
            forgotten = [
                seq
                for seq, event in self._events.items()
                if not event.is_protected
                and event.importance < FORGET_IMPORTANCE_THRESHOLD
                and event.age(now) > FORGET_AFTER
            ]
            for seq in forgotten:
                self._remove(seq)

            # 지연 삭제 항목이 쌓이면 힙 재구성
            if len(self._eviction_heap) > 2 * max(len(self._events), 1):
                self._eviction_heap = [
                    (1 if e.is_protected else 0, e.importance, s)
                    for s, e in self._events.items()
                ]
                heapq.heapify(self._eviction_heap)

            if forgotten:
                logger.debug(f"memory decay: {len(forgotten)} forgotten")
            return len(forgotten)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
            self._by_character.clear()
            self._by_type.clear()
            self._eviction_heap.clear()

    # ── 조회 ─────────────────────────────────────────────────

    @staticmethod
    def _chronological(events: Iterable[MemoryEvent]) -> List[MemoryEvent]:
        return sorted(events, key=lambda e: e.timestamp)

    def get_all_memories(self) -> List[MemoryEvent]:
        with self._lock:
            return self._chronological(self._events.values())

    def get_memories_about(self, character_id: str) -> List[MemoryEvent]:
        """해당 인물 관련 기억 전체 (이력 조회, 기간 제한 없음)"""
        with self._lock:
            bucket = self._by_character.get(character_id, {})
            return self._chronological(bucket.values())

    def get_memories_of_type(self, event_type: MemoryEventType) -> List[MemoryEvent]:
        with self._lock:
            bucket = self._by_type.get(event_type, {})
            return self._chronological(bucket.values())

    def get_recent_events(
        self,
        now: datetime,
        window: timedelta = DEFAULT_RECENT_WINDOW,
    ) -> List[MemoryEvent]:
        with self._lock:
            return self._chronological(
                e for e in self._events.values() if e.is_recent(now, window)
            )

    def remembers_being_attacked_by(self, character_id: str, now: datetime) -> bool:
        """감정적 회상: 7일 이내 공격 기억만 인정"""
        return self._remembers(character_id, now, {MemoryEventType.WAS_ATTACKED})

    def remembers_being_helped_by(self, character_id: str, now: datetime) -> bool:
        return self._remembers(character_id, now, _HELP_TYPES)

    def _remembers(
        self,
        character_id: str,
        now: datetime,
        event_types: Iterable[MemoryEventType],
    ) -> bool:
        wanted = set(event_types)
        with self._lock:
            bucket = self._by_character.get(character_id, {})
            return any(
                e.event_type in wanted and e.is_recent(now, EMOTIONAL_RECALL_WINDOW)
                for e in bucket.values()
            )

    def get_relationship(self, character_id: str) -> RelationshipSignal:
        """기억 기반 관계 신호. 기억이 없으면 전부 0 (낯선 사람)."""
        with self._lock:
            events = list(self._by_character.get(character_id, {}).values())
        return compute_relationship_signal(character_id, events)

    def get_known_characters(self) -> List[str]:
        with self._lock:
            return list(self._by_character.keys())

    def get_enemies(self) -> List[str]:
        return [
            cid
            for cid in self.get_known_characters()
            if self.get_relationship(cid).is_enemy
        ]

    def get_allies(self) -> List[str]:
        return [
            cid
            for cid in self.get_known_characters()
            if self.get_relationship(cid).is_ally
        ]

    def get_memory_summary(self) -> str:
        with self._lock:
            total = len(self._events)
            protected = sum(1 for e in self._events.values() if e.is_protected)
            people = len(self._by_character)
        return (
            f"Memories: {total}/{self._capacity} "
            f"({protected} protected, about {people} characters)"
        )
