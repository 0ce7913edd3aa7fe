"""EventBus - NPC 판단 엔진의 이벤트 싱크

브레인/서비스가 로그 대신 발행하는 주입형 이벤트 통로.

규칙:
- 이벤트는 식별자(ID)와 작은 값만 전달한다
- 전파 깊이 최대 MAX_DEPTH 단계
- 한 전파 체인 안에서 동일 원인의 동일 이벤트 중복 발행 금지
- 틱이 워커 스레드에서 돌기 때문에 스레드 안전해야 한다
  (구독 목록은 RLock, 전파 체인 상태는 스레드별)
"""

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Set

from src.core.logging import get_logger

logger = get_logger(__name__)

MAX_DEPTH = 5  # 한 체인 내 이벤트 전파 최대 깊이


@dataclass
class GameEvent:
    """이벤트 데이터 컨테이너

    Args:
        event_type: 이벤트 유형 (예: "npc_action_decided")
        data: 이벤트 데이터 (ID 위주, 무거운 객체 금지)
        source: 발행 주체 (예: "npc_brain:npc_1")
    """

    event_type: str
    data: Dict[str, Any]
    source: str

    # 내부 추적용 (외부에서 설정하지 않음)
    _depth: int = field(default=0, repr=False)


# 핸들러 타입: GameEvent를 받는 callable
EventHandler = Callable[[GameEvent], None]


class _ChainState(threading.local):
    def __init__(self) -> None:
        self.depth = 0
        self.emitted: Set[str] = set()  # "source:event_type"


class EventBus:
    """동기식 이벤트 버스

    사용 패턴:
        bus = EventBus()
        bus.subscribe("npc_action_decided", recorder.append)
        bus.emit(GameEvent(event_type="npc_action_decided", data={"npc_id": "a"}, source="npc_brain:a"))
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._lock = threading.RLock()
        self._chain = _ChainState()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """이벤트 구독 등록"""
        with self._lock:
            self._handlers[event_type].append(handler)
        logger.debug(f"EventBus 구독: {event_type} → {handler.__qualname__}")

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        """이벤트 구독 해제"""
        with self._lock:
            handlers = self._handlers.get(event_type)
            if handlers is None:
                return
            try:
                handlers.remove(handler)
                logger.debug(
                    f"EventBus 구독 해제: {event_type} → {handler.__qualname__}"
                )
            except ValueError:
                logger.warning(f"핸들러 미등록: {event_type} → {handler.__qualname__}")

    def emit(self, event: GameEvent) -> None:
        """이벤트 발행. 등록된 핸들러를 호출 스레드에서 동기 호출.

        안전장치:
        1. 전파 깊이 MAX_DEPTH 초과 시 무시
        2. 같은 체인에서 동일 source의 동일 event_type 중복 발행 시 무시
        """
        chain = self._chain

        # 최상위 발행이면 새 체인 시작
        if chain.depth == 0:
            chain.emitted.clear()

        if chain.depth >= MAX_DEPTH:
            logger.warning(
                f"EventBus 전파 깊이 초과 ({MAX_DEPTH}): "
                f"{event.source}:{event.event_type} 무시됨"
            )
            return

        chain_key = f"{event.source}:{event.event_type}"
        if chain_key in chain.emitted:
            logger.warning(f"EventBus 중복 이벤트 차단: {chain_key}")
            return

        chain.emitted.add(chain_key)
        event._depth = chain.depth

        with self._lock:
            handlers = list(self._handlers.get(event.event_type, ()))
        if not handlers:
            logger.debug(f"EventBus: {event.event_type} 구독자 없음")
            return

        logger.debug(
            f"EventBus 전파: {event.event_type} (source={event.source}, "
            f"depth={chain.depth}, handlers={len(handlers)})"
        )

        chain.depth += 1
        try:
            for handler in handlers:
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        f"EventBus 핸들러 에러: {handler.__qualname__} "
                        f"(event={event.event_type})"
                    )
        finally:
            chain.depth -= 1

    def reset_chain(self) -> None:
        """현재 스레드의 중복 추적 초기화."""
        self._chain.emitted.clear()
        self._chain.depth = 0

    def clear(self) -> None:
        """모든 구독 해제 (테스트용)"""
        with self._lock:
            self._handlers.clear()
        self.reset_chain()

    @property
    def handler_count(self) -> int:
        """등록된 총 핸들러 수"""
        with self._lock:
            return sum(len(h) for h in self._handlers.values())
