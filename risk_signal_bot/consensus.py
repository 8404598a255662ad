"""Field-wise consensus over redundant market samples.

Each numeric field is reduced on its own (median), so one outlier fetch can
not pick the whole record. Results only depend on the multiset of samples,
never on arrival order.
"""

from __future__ import annotations

import statistics
from collections import Counter
from typing import Dict, Iterable, List, Mapping, Sequence

from risk_signal_bot.models import MarketData

MARKET_FIELDS = ("probability", "active")


def median(values: Iterable[float]) -> float:
    """Middle value; mean of the two middle values for even counts."""
    vals = sorted(float(v) for v in values)
    if not vals:
        raise ValueError("median of empty sample")
    return float(statistics.median(vals))


def aggregate_by_fields(samples: Sequence[Mapping[str, float]], fields: Sequence[str]) -> Dict[str, float]:
    return {f: median(s[f] for s in samples) for f in fields}


def _most_common(values: List[str]) -> str:
    # ties broken lexically so the pick is order-independent
    counts = Counter(values)
    best = max(counts.values())
    return min(v for v, n in counts.items() if n == best)


def aggregate_market_samples(samples: Sequence[MarketData]) -> MarketData:
    if not samples:
        raise ValueError("no market samples to aggregate")

    agg = aggregate_by_fields(
        [{"probability": s.probability, "active": s.active} for s in samples],
        MARKET_FIELDS,
    )
    return MarketData(
        probability=agg["probability"],
        active=agg["active"],
        condition_id=_most_common([s.condition_id for s in samples]),
        question=_most_common([s.question for s in samples]),
    )


def quorum(n: int) -> int:
    """Strict majority of n samples."""
    return n // 2 + 1
