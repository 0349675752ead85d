"""
Shared risk vocabulary for the simulation engines.

Every engine reports advisory conditions as an ordered RiskLevel plus a
capped list of explanatory messages. Advisory findings never abort a
computation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from physiolab.physics.constants import (
    MAX_RISK_MESSAGES,
    RISK_HIGH_SCORE,
    RISK_MODERATE_SCORE,
)


class RiskLevel(str, Enum):
    """Ordered categorical risk level."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @property
    def band_floor(self) -> float:
        """Lowest score mapped to this level."""
        return _BAND_FLOORS[self]

    @classmethod
    def from_score(cls, score: float) -> RiskLevel:
        """Map a 0-100 score to a level (low < 25 <= moderate < 60 <= high)."""
        if score < RISK_MODERATE_SCORE:
            return cls.LOW
        if score < RISK_HIGH_SCORE:
            return cls.MODERATE
        return cls.HIGH

    @classmethod
    def highest(cls, *levels: RiskLevel) -> RiskLevel:
        return max(levels, key=lambda level: level.rank)


_RANKS = {RiskLevel.LOW: 0, RiskLevel.MODERATE: 1, RiskLevel.HIGH: 2}
_BAND_FLOORS = {
    RiskLevel.LOW: 0.0,
    RiskLevel.MODERATE: RISK_MODERATE_SCORE,
    RiskLevel.HIGH: RISK_HIGH_SCORE,
}


@dataclass(frozen=True)
class RiskAssessment:
    """
    Result of a risk evaluation.

    Attributes
    ----------
    score : float
        Risk score in [0, 100]. Engines without a numeric score report the
        level's band floor.
    level : RiskLevel
        Categorical level.
    messages : tuple[str, ...]
        Explanatory messages in priority order, at most MAX_RISK_MESSAGES.
    """

    score: float
    level: RiskLevel
    messages: tuple[str, ...] = ()


def cap_messages(messages: list[str], limit: int = MAX_RISK_MESSAGES) -> tuple[str, ...]:
    """Keep the first ``limit`` messages, preserving their order."""
    return tuple(messages[:limit])


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
