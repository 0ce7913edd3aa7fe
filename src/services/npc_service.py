"""NPC Service: 브레인 레지스트리와 시뮬레이션 틱

Service → Core 허용. 외부 시스템의 상호작용 통보는 EventBus 경유로도 받는다.
틱은 NPC별 판단을 워커 스레드에 나눠 병렬 실행한다 (NPC끼리 상태 공유 없음,
월드 스냅샷은 틱 동안 불변).
"""

import random
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from src.core.event_bus import EventBus, GameEvent
from src.core.event_types import EventTypes
from src.core.logging import get_logger
from src.core.npc.brain import DECISION_COOLDOWN_MINUTES, NPCBrain
from src.core.npc.memory import MEMORY_CAPACITY, MemoryEvent
from src.core.npc.models import (
    CharacterSummary,
    InteractionType,
    NPCAction,
    NPCState,
    WorldSnapshot,
)
from src.core.npc.personality import PersonalityProfile, generate_personality

logger = get_logger(__name__)

SERVICE_SOURCE = "npc_service"


class NPCService:
    """NPC 브레인 등록/조회, 병렬 틱, 상호작용/레벨업 전달"""

    def __init__(
        self,
        event_bus: EventBus,
        cooldown_minutes: int = DECISION_COOLDOWN_MINUTES,
        memory_capacity: int = MEMORY_CAPACITY,
        seed: Optional[int] = None,
        max_workers: int = 4,
    ) -> None:
        self._bus = event_bus
        self._cooldown_minutes = cooldown_minutes
        self._memory_capacity = memory_capacity
        self._seed = seed
        self._brains: Dict[str, NPCBrain] = {}
        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="npc-tick"
        )
        self._tick_count = 0
        self._register_event_handlers()

    def _register_event_handlers(self) -> None:
        """EventBus 구독"""
        self._bus.subscribe(EventTypes.INTERACTION_OCCURRED, self._on_interaction_occurred)

    def _rng_for(self, npc_id: str) -> random.Random:
        """서비스 시드에서 NPC별 RNG 파생. 등록 순서와 무관하게 재현된다."""
        if self._seed is None:
            return random.Random()
        return random.Random(f"{self._seed}:{npc_id}")

    # ── 등록/조회 ────────────────────────────────────────────

    def spawn_npc(
        self,
        state: NPCState,
        now: datetime,
        personality: Optional[PersonalityProfile] = None,
    ) -> NPCBrain:
        """NPC 등록 + 브레인 초기화. 이미 있는 id면 ValueError."""
        rng = self._rng_for(state.npc_id)
        if personality is None:
            personality = generate_personality(state.archetype, rng=rng)

        with self._lock:
            if state.npc_id in self._brains:
                raise ValueError(f"NPC already exists: {state.npc_id}")
            brain = NPCBrain.create(
                state,
                personality,
                now,
                rng=rng,
                event_bus=self._bus,
                cooldown_minutes=self._cooldown_minutes,
                memory_capacity=self._memory_capacity,
            )
            self._brains[state.npc_id] = brain

        logger.info(f"NPC 등록: {state.npc_id} ({personality.archetype})")
        self._bus.emit(
            GameEvent(
                event_type=EventTypes.NPC_SPAWNED,
                data={"npc_id": state.npc_id, "archetype": personality.archetype},
                source=SERVICE_SOURCE,
            )
        )
        return brain

    def get_brain(self, npc_id: str) -> NPCBrain:
        """없는 id면 KeyError"""
        with self._lock:
            brain = self._brains.get(npc_id)
        if brain is None:
            raise KeyError(npc_id)
        return brain

    def list_npcs(self) -> List[NPCBrain]:
        with self._lock:
            return [self._brains[npc_id] for npc_id in sorted(self._brains)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._brains)

    def build_world_snapshot(
        self,
        timestamp: datetime,
        current_hour: int = 12,
        current_location: str = "",
        in_combat: bool = False,
        extra_characters: Iterable[CharacterSummary] = (),
    ) -> WorldSnapshot:
        """등록된 NPC + 외부 캐릭터로 틱 스냅샷 구성"""
        characters: Dict[str, CharacterSummary] = {}
        for brain in self.list_npcs():
            s = brain.owner
            characters[s.npc_id] = CharacterSummary(
                character_id=s.npc_id,
                name=s.name,
                archetype=s.archetype,
                level=s.level,
                gold=s.gold,
                location=s.current_location,
                is_alive=s.current_hp > 0,
                gang_id=s.gang_id,
            )
        for extra in extra_characters:
            characters[extra.character_id] = extra

        return WorldSnapshot(
            timestamp=timestamp,
            current_hour=current_hour,
            current_location=current_location,
            in_combat=in_combat,
            characters=tuple(characters.values()),
        )

    # ── 틱 ───────────────────────────────────────────────────

    def run_tick(self, world: WorldSnapshot) -> Dict[str, NPCAction]:
        """전체 NPC 판단을 병렬 실행. 결과는 npc_id → 행동."""
        brains = self.list_npcs()
        futures = {
            brain.npc_id: self._executor.submit(brain.decide_next_action, world)
            for brain in brains
        }
        results = {npc_id: future.result() for npc_id, future in futures.items()}

        with self._lock:
            self._tick_count += 1
            tick = self._tick_count

        logger.debug(f"tick {tick} processed: {len(results)} NPCs")
        self._bus.emit(
            GameEvent(
                event_type=EventTypes.TICK_PROCESSED,
                data={
                    "tick": tick,
                    "timestamp": world.timestamp.isoformat(),
                    "npc_count": len(results),
                },
                source=SERVICE_SOURCE,
            )
        )
        return results

    # ── 외부 통보 전달 ───────────────────────────────────────

    def record_interaction(
        self,
        npc_id: str,
        other_id: str,
        interaction_type: InteractionType,
        now: datetime,
        details: Optional[Dict[str, Any]] = None,
        other_name: str = "",
    ) -> MemoryEvent:
        brain = self.get_brain(npc_id)
        other = CharacterSummary(character_id=other_id, name=other_name)
        return brain.record_interaction(other, interaction_type, now, details)

    def level_up(self, npc_id: str, new_level: int, now: datetime) -> NPCBrain:
        brain = self.get_brain(npc_id)
        brain.on_level_up(new_level, now)
        return brain

    def decay_relationships(self, now: datetime) -> Dict[str, List[str]]:
        """전체 NPC 관계 감쇠. npc_id → 잊힌 상대 id 목록 (없으면 생략)"""
        forgotten: Dict[str, List[str]] = {}
        for brain in self.list_npcs():
            removed = brain.decay_relationships(now)
            if removed:
                forgotten[brain.npc_id] = removed
        return forgotten

    def _on_interaction_occurred(self, event: GameEvent) -> None:
        """interaction_occurred 수신 → 대상 NPC에 기록

        data: npc_id, other_id, interaction, timestamp(datetime 또는 ISO 문자열), details?
        """
        data = event.data
        npc_id = data.get("npc_id")
        with self._lock:
            brain = self._brains.get(npc_id) if npc_id else None
        if brain is None:
            logger.warning(f"interaction for unknown NPC ignored: {npc_id}")
            return

        try:
            interaction_type = InteractionType(data["interaction"])
            timestamp = data["timestamp"]
            if isinstance(timestamp, str):
                timestamp = datetime.fromisoformat(timestamp)
            other_id = data["other_id"]
        except (KeyError, ValueError) as exc:
            logger.warning(f"malformed interaction event ignored: {exc!r}")
            return

        brain.record_interaction(
            CharacterSummary(character_id=other_id, name=data.get("other_name", "")),
            interaction_type,
            timestamp,
            data.get("details"),
        )

    def shutdown(self) -> None:
        self._bus.unsubscribe(EventTypes.INTERACTION_OCCURRED, self._on_interaction_occurred)
        self._executor.shutdown(wait=True)
        logger.info("NPCService shut down.")
