"""Per-cycle value types."""

from __future__ import annotations

from dataclasses import dataclass

from risk_signal_bot.classify import Tier


@dataclass(frozen=True)
class MarketData:
    probability: float  # 0.0 - 1.0, validated by the reader
    active: float  # 1.0 open, 0.0 closed/resolved; fractional after consensus
    condition_id: str = ""
    question: str = ""

    @property
    def is_active(self) -> bool:
        return self.active >= 0.5


@dataclass(frozen=True)
class PublishResult:
    tx_hash: str  # 0x-prefixed, 32 bytes
    gas_used: int


@dataclass(frozen=True)
class EffectiveTier:
    tier: Tier
    is_stale: bool


@dataclass(frozen=True)
class TierSnapshot:
    tier: Tier
    updated_at: int  # unix seconds
    confidence: int
