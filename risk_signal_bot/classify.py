"""Tier classification (pure logic).

Thresholds are assumed validated by config: 0 <= green_max <= amber_max <= 1,
and probability in [0, 1]. Nothing is checked here.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import IntEnum

BPS = 10_000


class Tier(IntEnum):
    GREEN = 0
    AMBER = 1
    RED = 2


TIER_LABELS: dict[Tier, str] = {
    Tier.GREEN: "Green",
    Tier.AMBER: "Amber",
    Tier.RED: "Red",
}


@dataclass(frozen=True)
class Classification:
    tier: Tier
    confidence: int  # basis points (0-10000)


def tier_label(tier: int) -> str:
    return TIER_LABELS[Tier(tier)]


def to_basis_points(probability: float) -> int:
    """probability * 10000, rounded half away from zero.

    Goes through Decimal(str(p)) so 0.29 gives 2900, not 2899.
    """
    bps = Decimal(str(probability)) * BPS
    return int(bps.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def classify(probability: float, green_max: float, amber_max: float) -> Classification:
    """Classify a probability into a risk tier.

    Boundaries are exclusive: probability == green_max is AMBER,
    probability == amber_max is RED.
    """
    confidence = to_basis_points(probability)
    if probability < green_max:
        return Classification(Tier.GREEN, confidence)
    if probability < amber_max:
        return Classification(Tier.AMBER, confidence)
    return Classification(Tier.RED, confidence)
