"""One poll -> classify -> publish cycle.

This is the containment boundary: whatever happens inside a cycle ends as
exactly one JSON record on the "risk_signal_bot.cycle" logger and never
raises to the caller.

    Idle -> Fetching -> Skipped
                     -> Classifying -> Publishing -> Reported
    (any non-idle state) -> Errored
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Protocol

from risk_signal_bot.classify import Tier, classify, tier_label
from risk_signal_bot.config import Config
from risk_signal_bot.models import MarketData, PublishResult

logger = logging.getLogger(__name__)


class CycleStatus(str, Enum):
    SKIPPED = "skipped"
    SUCCESS = "success"
    ERROR = "error"


class MarketSource(Protocol):
    def fetch(self) -> MarketData:
        ...


class TierSink(Protocol):
    def publish(self, tier: Tier, confidence: int) -> PublishResult:
        ...


@dataclass(frozen=True)
class CycleReport:
    status: CycleStatus
    record: Dict[str, Any] = field(default_factory=dict)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _emit(record: Dict[str, Any], level: int = logging.INFO) -> None:
    logger.log(level, json.dumps(record))


def run_cycle(
    config: Config,
    reader: MarketSource,
    publisher: TierSink,
    *,
    now: Callable[[], datetime] = _now,
) -> CycleReport:
    record: Dict[str, Any] = {
        "timestamp": now().isoformat(),
        "marketId": config.market_id,
    }

    try:
        market = reader.fetch()

        if not market.is_active:
            record.update(status=CycleStatus.SKIPPED.value, reason="Market is resolved or inactive")
            _emit(record)
            return CycleReport(CycleStatus.SKIPPED, record)

        c = classify(market.probability, config.threshold_green_max, config.threshold_amber_max)
        result = publisher.publish(c.tier, c.confidence)

        record.update(
            question=market.question,
            probability=market.probability,
            tier=int(c.tier),
            tierLabel=tier_label(c.tier),
            confidence=c.confidence,
            txHash=result.tx_hash,
            gasUsed=str(result.gas_used),
            status=CycleStatus.SUCCESS.value,
        )
        _emit(record)
        return CycleReport(CycleStatus.SUCCESS, record)

    except Exception as e:
        record.update(
            error=str(e) or type(e).__name__,
            errorType=type(e).__name__,
            status=CycleStatus.ERROR.value,
        )
        _emit(record, logging.ERROR)
        return CycleReport(CycleStatus.ERROR, record)
