"""성격 프로필 생성 및 의사결정 가중치

8개 특성(0.0~1.0)으로 NPC의 고정 성향을 표현한다.
생성 시 원형(archetype)별 범위에서 추출하고 이후 변경하지 않는다.
"""

import random
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Tuple

from src.core.npc.models import CombatStyle

TRAIT_NAMES: Tuple[str, ...] = (
    "aggression",
    "greed",
    "courage",
    "loyalty",
    "vengefulness",
    "impulsiveness",
    "sociability",
    "ambition",
)

# ── 원형별 특성 범위 ─────────────────────────────────────────
# (low, high) 균등 분포. 명시되지 않은 특성은 기본 범위 사용.

_DEFAULT_RANGES: Dict[str, Tuple[float, float]] = {
    "aggression": (0.2, 0.8),
    "greed": (0.2, 0.8),
    "courage": (0.2, 0.8),
    "loyalty": (0.2, 0.8),
    "vengefulness": (0.2, 0.8),
    "impulsiveness": (0.1, 0.9),
    "sociability": (0.2, 0.8),
    "ambition": (0.2, 0.8),
}

ARCHETYPE_TRAIT_RANGES: Dict[str, Dict[str, Tuple[float, float]]] = {
    "thug": {
        "aggression": (0.7, 1.0),
        "courage": (0.6, 1.0),
        "greed": (0.3, 0.8),
        "loyalty": (0.2, 0.5),
        "vengefulness": (0.6, 0.9),
        "impulsiveness": (0.5, 0.9),
        "sociability": (0.3, 0.7),
        "ambition": (0.2, 0.7),
    },
    "merchant": {
        "aggression": (0.0, 0.3),
        "greed": (0.7, 1.0),
        "courage": (0.2, 0.6),
        "loyalty": (0.4, 0.8),
        "vengefulness": (0.2, 0.5),
        "impulsiveness": (0.1, 0.4),
        "sociability": (0.6, 0.9),
        "ambition": (0.5, 0.8),
    },
    "noble": {
        "ambition": (0.8, 1.0),
        "vengefulness": (0.5, 0.9),
        "loyalty": (0.4, 0.7),
        "courage": (0.5, 0.8),
        "sociability": (0.4, 0.7),
        "greed": (0.4, 0.8),
        "aggression": (0.3, 0.7),
        "impulsiveness": (0.2, 0.5),
    },
    "guard": {
        "loyalty": (0.7, 0.9),
        "courage": (0.6, 0.9),
        "aggression": (0.4, 0.7),
        "ambition": (0.3, 0.7),
        "vengefulness": (0.4, 0.7),
        "impulsiveness": (0.2, 0.5),
        "sociability": (0.3, 0.7),
        "greed": (0.2, 0.6),
    },
    "priest": {
        "loyalty": (0.6, 0.9),
        "courage": (0.4, 0.8),
        "aggression": (0.0, 0.2),
        "ambition": (0.3, 0.6),
        "vengefulness": (0.0, 0.2),
        "impulsiveness": (0.1, 0.4),
        "sociability": (0.6, 0.9),
        "greed": (0.0, 0.3),
    },
    "mystic": {
        "ambition": (0.6, 0.9),
        "courage": (0.3, 0.8),
        "aggression": (0.2, 0.6),
        "loyalty": (0.3, 0.7),
        "vengefulness": (0.4, 0.8),
        "impulsiveness": (0.2, 0.5),
        "sociability": (0.2, 0.7),
        "greed": (0.3, 0.7),
    },
    "craftsman": {
        "loyalty": (0.5, 0.8),
        "courage": (0.4, 0.8),
        "aggression": (0.2, 0.5),
        "ambition": (0.3, 0.7),
        "vengefulness": (0.3, 0.6),
        "impulsiveness": (0.2, 0.5),
        "sociability": (0.4, 0.8),
        "greed": (0.4, 0.8),
    },
}

# 동의어 → 대표 원형
ARCHETYPE_ALIASES: Dict[str, str] = {
    "brawler": "thug",
    "trader": "merchant",
    "aristocrat": "noble",
    "soldier": "guard",
    "cleric": "priest",
    "mage": "mystic",
    "artisan": "craftsman",
}

# 원형별 전투 방식 / 두려움 / 욕망. commoner는 전투 방식 랜덤.
ARCHETYPE_TRAITS_EXTRA: Dict[str, Dict[str, object]] = {
    "thug": {
        "combat_style": CombatStyle.AGGRESSIVE,
        "fears": ("stronger_opponents", "law_enforcement"),
        "desires": ("dominance", "respect"),
    },
    "merchant": {
        "combat_style": CombatStyle.DEFENSIVE,
        "fears": ("poverty", "violence", "theft"),
        "desires": ("wealth", "security", "reputation"),
    },
    "noble": {
        "combat_style": CombatStyle.TACTICAL,
        "fears": ("disgrace", "poverty"),
        "desires": ("power", "respect", "influence"),
    },
    "guard": {
        "combat_style": CombatStyle.BALANCED,
        "fears": ("dereliction", "dishonor"),
        "desires": ("order", "justice", "duty"),
    },
    "priest": {
        "combat_style": CombatStyle.DEFENSIVE,
        "fears": ("sin", "corruption"),
        "desires": ("peace", "salvation", "knowledge"),
    },
    "mystic": {
        "combat_style": CombatStyle.TACTICAL,
        "fears": ("ignorance", "powerlessness"),
        "desires": ("knowledge", "power", "secrets"),
    },
    "craftsman": {
        "combat_style": CombatStyle.BALANCED,
        "fears": ("mediocrity", "poverty"),
        "desires": ("mastery", "recognition", "quality"),
    },
}

_COMMONER_FEARS = ("death", "poverty")
_COMMONER_DESIRES = ("survival", "security")

# ── 원형 궁합표 ──────────────────────────────────────────────
# 없는 조합은 0.0

ARCHETYPE_COMPATIBILITY: Dict[str, Dict[str, float]] = {
    "thug": {
        "thug": 0.2,
        "merchant": -0.3,
        "guard": -0.5,
        "priest": -0.4,
        "noble": -0.2,
        "commoner": 0.1,
    },
    "merchant": {
        "merchant": 0.3,
        "thug": -0.3,
        "guard": 0.1,
        "priest": 0.1,
        "noble": 0.2,
        "craftsman": 0.3,
    },
    "guard": {
        "guard": 0.4,
        "thug": -0.5,
        "priest": 0.3,
        "noble": 0.2,
        "merchant": 0.1,
    },
    "priest": {
        "priest": 0.4,
        "thug": -0.4,
        "guard": 0.3,
        "noble": 0.1,
        "commoner": 0.2,
    },
}

NEUTRAL_WEIGHT = 0.5


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def normalize_archetype(archetype: str) -> str:
    """소문자화 + 동의어 해소. 미등록 원형은 그대로 반환."""
    key = (archetype or "commoner").strip().lower()
    return ARCHETYPE_ALIASES.get(key, key)


@dataclass(frozen=True)
class PersonalityProfile:
    """NPC 성격 프로필 (생성 후 불변)

    직접 생성은 클램프하지 않는 진입점이다. 범위 밖 특성은 ValueError.
    """

    archetype: str = "commoner"
    aggression: float = 0.5
    greed: float = 0.5
    courage: float = 0.5
    loyalty: float = 0.5
    vengefulness: float = 0.5
    impulsiveness: float = 0.5
    sociability: float = 0.5
    ambition: float = 0.5
    combat_style: CombatStyle = CombatStyle.BALANCED
    fears: Tuple[str, ...] = ()
    desires: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for name in TRAIT_NAMES:
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"trait {name} out of range [0, 1]: {value}")
        object.__setattr__(self, "fears", tuple(self.fears))
        object.__setattr__(self, "desires", tuple(self.desires))

    # ── 파생 수치 ──────────────────────────────────────────────

    @property
    def charisma(self) -> float:
        return self.sociability

    @property
    def fear(self) -> float:
        return min(1.0, len(self.fears) * 0.1)

    @property
    def likely_to_join_gang(self) -> bool:
        score = (
            self.loyalty * 0.3
            + self.sociability * 0.3
            + self.ambition * 0.2
            + self.courage * 0.2
        )
        return score > 0.6 and self.aggression > 0.3

    @property
    def likely_to_betray(self) -> bool:
        score = (
            (1.0 - self.loyalty) * 0.4
            + self.greed * 0.3
            + self.ambition * 0.2
            + self.impulsiveness * 0.1
        )
        return score > 0.7

    @property
    def likely_to_seek_revenge(self) -> bool:
        return self.vengefulness > 0.6 and (
            self.aggression > 0.4 or self.ambition > 0.5
        )

    # ── 점수 ──────────────────────────────────────────────────

    def decision_weight(self, action_kind: str) -> float:
        """행동 종류별 성격 가중치. 미등록 종류는 0.5."""
        kind = str(getattr(action_kind, "value", action_kind)).lower()

        if kind == "attack":
            return self.aggression * 0.7 + self.courage * 0.3
        if kind == "flee":
            return (1.0 - self.courage) * 0.6 + (1.0 - self.aggression) * 0.4
        if kind == "negotiate":
            return (
                self.sociability * 0.5
                + (1.0 - self.aggression) * 0.3
                + self.charisma * 0.2
            )
        if kind == "steal":
            return self.greed * 0.6 + (1.0 - self.loyalty) * 0.4
        if kind == "help":
            return (
                self.loyalty * 0.4 + self.sociability * 0.3 + (1.0 - self.greed) * 0.3
            )
        if kind == "betray":
            return 0.8 if self.likely_to_betray else 0.1
        if kind in ("revenge", "seek_revenge"):
            return 0.9 if self.likely_to_seek_revenge else 0.2
        if kind == "join_gang":
            return 0.7 if self.likely_to_join_gang else 0.2
        if kind == "trade":
            return (
                self.greed * 0.4 + self.sociability * 0.3 + (1.0 - self.aggression) * 0.3
            )
        if kind == "explore":
            return self.courage * 0.5 + self.ambition * 0.3 + (1.0 - self.fear) * 0.2
        return NEUTRAL_WEIGHT

    def compatibility(self, other: "PersonalityProfile") -> float:
        """두 성격의 궁합 (0.0~1.0)"""
        diff = (
            abs(self.aggression - other.aggression)
            + abs(self.loyalty - other.loyalty)
            + abs(self.sociability - other.sociability)
            + abs(self.ambition - other.ambition)
        )
        trait_score = 1.0 - diff / 4.0
        bonus = archetype_bonus(self.archetype, other.archetype)
        return _clamp01(trait_score + bonus)

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["combat_style"] = self.combat_style.value
        data["fears"] = list(self.fears)
        data["desires"] = list(self.desires)
        return data

    def __str__(self) -> str:
        return (
            f"{self.archetype}: Agg={self.aggression:.2f}, Greed={self.greed:.2f}, "
            f"Courage={self.courage:.2f}, Loyalty={self.loyalty:.2f}, "
            f"Vengeful={self.vengefulness:.2f}, Social={self.sociability:.2f}"
        )


def archetype_bonus(archetype: str, other_archetype: str) -> float:
    """원형 궁합 보정치. 표에 없는 조합은 0.0"""
    row = ARCHETYPE_COMPATIBILITY.get(normalize_archetype(archetype), {})
    return row.get(normalize_archetype(other_archetype), 0.0)


def generate_personality(
    archetype: str,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> PersonalityProfile:
    """원형 기반 성격 생성

    Args:
        archetype: 원형 태그 (e.g. "thug", "merchant"). 미등록이면 commoner 범위.
        seed: 재현성을 위한 RNG 시드. rng가 주어지면 무시.
        rng: 외부에서 주입하는 RNG 인스턴스.

    Returns:
        PersonalityProfile. 모든 특성 0.0~1.0 클램프.
    """
    if rng is None:
        rng = random.Random(seed)

    key = normalize_archetype(archetype)
    ranges = ARCHETYPE_TRAIT_RANGES.get(key, _DEFAULT_RANGES)

    traits: Dict[str, float] = {}
    for name in TRAIT_NAMES:
        low, high = ranges.get(name, _DEFAULT_RANGES[name])
        traits[name] = _clamp01(rng.uniform(low, high))

    extra = ARCHETYPE_TRAITS_EXTRA.get(key)
    if extra is None:
        combat_style = rng.choice(list(CombatStyle))
        fears: Tuple[str, ...] = _COMMONER_FEARS
        desires: Tuple[str, ...] = _COMMONER_DESIRES
    else:
        combat_style = extra["combat_style"]  # type: ignore[assignment]
        fears = extra["fears"]  # type: ignore[assignment]
        desires = extra["desires"]  # type: ignore[assignment]

    return PersonalityProfile(
        archetype=(archetype or "commoner").strip().lower(),
        combat_style=combat_style,
        fears=fears,
        desires=desires,
        **traits,
    )
