"""이벤트 유형 상수

브레인/서비스가 EventBus로 발행하는 이벤트 이름.
"""


class EventTypes:
    """이벤트 유형 문자열 상수"""

    # npc lifecycle (service)
    NPC_SPAWNED = "npc_spawned"
    NPC_LEVEL_UP = "npc_level_up"

    # brain
    NPC_ACTION_DECIDED = "npc_action_decided"
    NPC_INTERACTION_RECORDED = "npc_interaction_recorded"

    # relationship
    RELATIONSHIP_CHANGED = "relationship_changed"

    # 외부 시스템(전투/거래) → 서비스
    INTERACTION_OCCURRED = "interaction_occurred"

    # simulation
    TICK_PROCESSED = "tick_processed"
