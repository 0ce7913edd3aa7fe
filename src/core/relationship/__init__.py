"""관계 시스템 Core 패키지 공개 API"""

from src.core.relationship.models import (
    Relationship,
    RelationshipEvent,
    RelationshipType,
)
from src.core.relationship.calculations import (
    IMPACT_TABLE,
    RELATIONSHIP_LADDER,
    apply_impact_decay,
    calculate_impact,
    classify_relationship,
)
from src.core.relationship.manager import RelationshipManager

__all__ = [
    "Relationship",
    "RelationshipEvent",
    "RelationshipType",
    "IMPACT_TABLE",
    "RELATIONSHIP_LADDER",
    "apply_impact_decay",
    "calculate_impact",
    "classify_relationship",
    "RelationshipManager",
]
