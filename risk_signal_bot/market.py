"""Polymarket market reader (Gamma or CLOB).

Refs:
- Gamma API: https://gamma-api.polymarket.com/markets?condition_id=...
- CLOB API:  https://clob.polymarket.com/markets/{condition_id}

Security note:
- Upstream JSON is untrusted input. Every field used downstream is checked
  here once; anything off raises DataSourceError instead of flowing on.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, List, Optional

import requests

from risk_signal_bot.config import Config
from risk_signal_bot.consensus import aggregate_market_samples, quorum
from risk_signal_bot.errors import DataSourceError
from risk_signal_bot.models import MarketData

logger = logging.getLogger(__name__)


def _as_str(v: Any) -> str:
    if isinstance(v, (str, int)) and not isinstance(v, bool):
        return str(v)
    return ""


def _as_list(v: Any) -> List[Any]:
    # Gamma ships outcomes/outcomePrices as JSON-encoded strings
    if isinstance(v, str):
        try:
            v = json.loads(v)
        except ValueError:
            return []
    return v if isinstance(v, list) else []


def _question(market: Dict[str, Any]) -> str:
    q = market.get("question")
    return q.strip() if isinstance(q, str) else ""


def parse_probability(raw: Any) -> float:
    """Validate a price as a finite number within [0, 1] (never clamped)."""
    if isinstance(raw, bool) or raw is None:
        raise DataSourceError(f"Invalid probability value: {raw!r}")
    try:
        p = float(raw)
    except (TypeError, ValueError, OverflowError):
        raise DataSourceError(f"Invalid probability value: {raw!r}") from None
    if not math.isfinite(p) or p < 0 or p > 1:
        raise DataSourceError(f"Invalid probability value: {raw!r}")
    return p


def _get_json(session: requests.Session, url: str, *, params: Optional[Dict[str, Any]], timeout: float) -> Any:
    try:
        r = session.get(url, params=params, timeout=timeout)
    except requests.RequestException as e:
        raise DataSourceError(f"Polymarket API request failed: {e}") from e
    if not r.ok:
        raise DataSourceError(f"Polymarket API error: {r.status_code} {r.reason or ''}".rstrip())
    try:
        return r.json()
    except ValueError as e:
        raise DataSourceError("Polymarket API returned invalid JSON") from e


def parse_gamma_market(market: Dict[str, Any], outcome: str = "Yes") -> MarketData:
    """Gamma market record -> MarketData.

    The tracked outcome's price sits at the same index in outcomePrices as
    its name in outcomes; without outcome names, index 0 is used.
    """
    prices = _as_list(market.get("outcomePrices"))
    names = [str(n).strip().lower() for n in _as_list(market.get("outcomes"))]

    idx = 0
    if names:
        if outcome.strip().lower() not in names:
            raise DataSourceError(f"Outcome {outcome!r} not found (available={names})")
        idx = names.index(outcome.strip().lower())
    if idx >= len(prices):
        raise DataSourceError(f"Missing outcome price for {outcome!r}")

    probability = parse_probability(prices[idx])
    active = market.get("active") is not False and not market.get("closed")
    return MarketData(
        probability=probability,
        active=1.0 if active else 0.0,
        condition_id=_as_str(market.get("conditionId") or market.get("condition_id")),
        question=_question(market),
    )


def parse_clob_market(market: Dict[str, Any], outcome: str = "Yes") -> MarketData:
    """CLOB market record -> MarketData (price of the matching token)."""
    tokens = market.get("tokens") or []
    price = None
    found = False
    for t in tokens if isinstance(tokens, list) else []:
        if not isinstance(t, dict):
            continue
        name = t.get("outcome")
        if isinstance(name, str) and name.strip().lower() == outcome.strip().lower():
            price = t.get("price")
            found = True
            break
    if not found:
        raise DataSourceError(f"Outcome {outcome!r} token missing")

    probability = parse_probability(price)
    active = market.get("active") is True and market.get("closed") is False
    return MarketData(
        probability=probability,
        active=1.0 if active else 0.0,
        condition_id=_as_str(market.get("condition_id")),
        question=_question(market),
    )


def fetch_gamma_market(
    condition_id: str,
    *,
    session: requests.Session,
    base_url: str,
    outcome: str = "Yes",
    timeout: float = 20.0,
) -> MarketData:
    data = _get_json(session, f"{base_url}/markets", params={"condition_id": condition_id}, timeout=timeout)
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        raise DataSourceError(f"No market found for condition_id: {condition_id}")
    return parse_gamma_market(data[0], outcome)


def fetch_clob_market(
    condition_id: str,
    *,
    session: requests.Session,
    base_url: str,
    outcome: str = "Yes",
    timeout: float = 20.0,
) -> MarketData:
    data = _get_json(session, f"{base_url}/markets/{condition_id}", params=None, timeout=timeout)
    if not isinstance(data, dict) or not data.get("condition_id"):
        raise DataSourceError(f"No market found for condition_id: {condition_id}")
    return parse_clob_market(data, outcome)


def fetch_market(identifier: str, config: Config, session: Optional[requests.Session] = None) -> MarketData:
    """Single read of the configured upstream for one market."""
    s = session or requests.Session()
    if config.market_source == "clob":
        return fetch_clob_market(
            identifier,
            session=s,
            base_url=config.clob_base_url,
            outcome=config.tracked_outcome,
            timeout=config.request_timeout_seconds,
        )
    return fetch_gamma_market(
        identifier,
        session=s,
        base_url=config.gamma_base_url,
        outcome=config.tracked_outcome,
        timeout=config.request_timeout_seconds,
    )


class MarketReader:
    """Reads the configured market once per cycle.

    With consensus_samples > 1 the market is fetched that many times and the
    samples are reduced field by field (median). Failed samples are dropped;
    fewer than a strict majority of good samples fails the read.
    """

    def __init__(self, config: Config, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def fetch(self) -> MarketData:
        n = self.config.consensus_samples
        if n <= 1:
            return fetch_market(self.config.market_id, self.config, self.session)

        samples: List[MarketData] = []
        last_err: Optional[DataSourceError] = None
        for i in range(n):
            try:
                samples.append(fetch_market(self.config.market_id, self.config, self.session))
            except DataSourceError as e:
                logger.warning("market sample %d/%d failed: %s", i + 1, n, e)
                last_err = e

        need = quorum(n)
        if len(samples) < need:
            raise DataSourceError(
                f"Consensus not reached: {len(samples)}/{n} samples ok (need {need}); last error: {last_err}"
            )
        return aggregate_market_samples(samples)
