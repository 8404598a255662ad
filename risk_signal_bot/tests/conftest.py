from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest
import requests

from risk_signal_bot.config import Config

CONTRACT = "0x" + "11" * 20
CONDITION_ID = "0x" + "ab" * 32

ENV_KEYS = [
    "POLYMARKET_CONDITION_ID",
    "RISK_SIGNAL_ADDRESS",
    "RPC_URL",
    "ARBITRUM_SEPOLIA_RPC",
    "UPDATER_PRIVATE_KEY",
    "CHAIN_SELECTOR_NAME",
    "CHAIN_ID",
    "GAS_LIMIT",
    "THRESHOLD_GREEN_MAX",
    "THRESHOLD_AMBER_MAX",
    "POLL_INTERVAL_MS",
    "SCHEDULE",
    "MARKET_SOURCE",
    "TRACKED_OUTCOME",
    "CONSENSUS_SAMPLES",
    "GAMMA_BASE_URL",
    "CLOB_BASE_URL",
    "REQUEST_TIMEOUT_SECONDS",
    "RECEIPT_TIMEOUT_SECONDS",
    "DRY_RUN",
    "RETRY_MAX",
    "RETRY_BASE_SECONDS",
]


def make_config(**overrides: Any) -> Config:
    base: Dict[str, Any] = dict(
        market_id=CONDITION_ID,
        contract_address=CONTRACT,
        rpc_url="http://localhost:8545",
        private_key="0x" + "01" * 32,
    )
    base.update(overrides)
    return Config(**base)


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, text: Optional[str] = None):
        self.payload = payload
        self.status_code = status_code
        self.ok = 200 <= status_code < 400
        self.reason = "OK" if self.ok else "Error"
        self.text = text if text is not None else json.dumps(payload)

    def json(self) -> Any:
        return json.loads(self.text)


class FakeSession:
    """Returns queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses: Any):
        self.responses: List[Any] = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        r = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(r, Exception):
            raise r
        return r


def gamma_market(price_yes: Any = "0.3", *, active: Any = True, closed: Any = False, **extra: Any) -> Dict[str, Any]:
    m = {
        "conditionId": CONDITION_ID,
        "question": "Will ETH dip below $2,000 by March?",
        "outcomes": json.dumps(["Yes", "No"]),
        "outcomePrices": json.dumps([str(price_yes), "0.7"]),
        "active": active,
        "closed": closed,
    }
    m.update(extra)
    return m


def clob_market(price_yes: Any = 0.3, *, active: Any = True, closed: Any = False) -> Dict[str, Any]:
    return {
        "condition_id": CONDITION_ID,
        "question": "Will ETH dip below $2,000 by March?",
        "tokens": [
            {"outcome": "Yes", "price": price_yes, "token_id": "111"},
            {"outcome": "No", "price": 0.7, "token_id": "222"},
        ],
        "active": active,
        "closed": closed,
    }


@pytest.fixture
def clean_env(monkeypatch):
    for k in ENV_KEYS:
        # setenv first so anything set later (e.g. by load_dotenv) is undone too
        monkeypatch.setenv(k, "")
        monkeypatch.delenv(k)
    return monkeypatch


@pytest.fixture
def request_error():
    return requests.ConnectionError("connection refused")
