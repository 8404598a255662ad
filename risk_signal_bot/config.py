"""Runtime configuration, loaded once from the environment (.env supported).

Secrets (UPDATER_PRIVATE_KEY) come from env only; never hard-code them.
"""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv
from web3 import Web3

from risk_signal_bot.errors import ConfigError

GAMMA_BASE_URL = "https://gamma-api.polymarket.com"
CLOB_BASE_URL = "https://clob.polymarket.com"

MARKET_SOURCES = ("gamma", "clob")

# CRE chain selector names -> EVM chain ids
CHAIN_SELECTORS: dict[str, int] = {
    "ethereum-mainnet": 1,
    "ethereum-testnet-sepolia": 11155111,
    "ethereum-mainnet-arbitrum-1": 42161,
    "ethereum-testnet-sepolia-arbitrum-1": 421614,
    "ethereum-mainnet-base-1": 8453,
    "ethereum-testnet-sepolia-base-1": 84532,
    "polygon-mainnet": 137,
    "polygon-testnet-amoy": 80002,
}

DEFAULT_CHAIN_SELECTOR = "ethereum-testnet-sepolia-arbitrum-1"

_STEP = re.compile(r"^\*/([1-9][0-9]*)$")


@dataclass(frozen=True)
class Config:
    market_id: str
    contract_address: str
    rpc_url: str
    private_key: str = field(default="", repr=False)

    chain_selector_name: str = DEFAULT_CHAIN_SELECTOR
    chain_id: Optional[int] = None

    gas_limit: int = 100_000
    threshold_green_max: float = 0.10
    threshold_amber_max: float = 0.25

    poll_interval_ms: int = 60_000
    schedule: Optional[str] = None

    market_source: str = "gamma"
    tracked_outcome: str = "Yes"
    consensus_samples: int = 1
    gamma_base_url: str = GAMMA_BASE_URL
    clob_base_url: str = CLOB_BASE_URL

    request_timeout_seconds: float = 20.0
    receipt_timeout_seconds: float = 120.0
    dry_run: bool = False

    retry_max: int = 5
    retry_base_seconds: float = 1.0

    @property
    def interval_seconds(self) -> float:
        if self.schedule:
            return float(schedule_interval_seconds(self.schedule))
        return self.poll_interval_ms / 1000.0

    @property
    def expected_chain_id(self) -> int:
        if self.chain_id is not None:
            return self.chain_id
        return CHAIN_SELECTORS[self.chain_selector_name]

    def validate(self) -> "Config":
        """Raise ConfigError on any invalid field; returns self for chaining."""
        for name in ("market_id", "contract_address", "rpc_url"):
            if not getattr(self, name):
                raise ConfigError(f"{name} is required")

        g, a = self.threshold_green_max, self.threshold_amber_max
        for name, v in (("threshold_green_max", g), ("threshold_amber_max", a)):
            if not math.isfinite(v) or v < 0 or v > 1:
                raise ConfigError(f"{name} must be within [0, 1] (got {v})")
        if not g < a:
            raise ConfigError(f"threshold_green_max ({g}) must be below threshold_amber_max ({a})")

        if self.gas_limit <= 0:
            raise ConfigError("gas_limit must be positive")
        if self.poll_interval_ms <= 0:
            raise ConfigError("poll_interval_ms must be positive")
        if self.request_timeout_seconds <= 0 or self.receipt_timeout_seconds <= 0:
            raise ConfigError("timeouts must be positive")
        if self.consensus_samples < 1:
            raise ConfigError("consensus_samples must be >= 1")
        if self.retry_max < 1:
            raise ConfigError("retry_max must be >= 1")
        if self.market_source not in MARKET_SOURCES:
            raise ConfigError(f"market_source must be one of {MARKET_SOURCES} (got {self.market_source!r})")
        if self.chain_id is None and self.chain_selector_name not in CHAIN_SELECTORS:
            raise ConfigError(f"Network not found: {self.chain_selector_name} (set CHAIN_ID)")
        if not Web3.is_address(self.contract_address):
            raise ConfigError(f"contract_address is not a valid address: {self.contract_address}")
        if self.schedule:
            schedule_interval_seconds(self.schedule)
        return self


def schedule_interval_seconds(schedule: str) -> int:
    """Convert a fixed-step cron schedule into an interval in seconds.

    Supported shapes (everything else is a ConfigError):
    - 6 fields, seconds step:   "*/30 * * * * *"  -> 30
    - 6 fields, minutes step:   "0 */5 * * * *"   -> 300
    - 5 fields, minutes step:   "*/5 * * * *"     -> 300
    """
    fields = schedule.split()
    if len(fields) == 6:
        sec, minute, rest = fields[0], fields[1], fields[2:]
    elif len(fields) == 5:
        sec, minute, rest = "0", fields[0], fields[1:]
    else:
        raise ConfigError(f"Unsupported schedule: {schedule!r}")

    if any(f != "*" for f in rest):
        raise ConfigError(f"Unsupported schedule (only */N steps are supported): {schedule!r}")

    m_sec = _STEP.match(sec)
    if m_sec and minute == "*":
        return int(m_sec.group(1))
    m_min = _STEP.match(minute)
    if m_min and sec == "0":
        return int(m_min.group(1)) * 60
    raise ConfigError(f"Unsupported schedule (only */N steps are supported): {schedule!r}")


def _require_env(name: str, *fallbacks: str) -> str:
    for key in (name, *fallbacks):
        v = (os.getenv(key) or "").strip()
        if v:
            return v
    raise ConfigError(f"Missing required env var: {name}")


def _env_str(name: str, default: str) -> str:
    return (os.getenv(name) or "").strip() or default


def _env_int(name: str, default: int) -> int:
    v = (os.getenv(name) or "").strip()
    if not v:
        return default
    try:
        return int(v)
    except ValueError:
        raise ConfigError(f"Invalid integer for {name}: {v!r}") from None


def _env_float(name: str, default: float) -> float:
    v = (os.getenv(name) or "").strip()
    if not v:
        return default
    try:
        return float(v)
    except ValueError:
        raise ConfigError(f"Invalid float for {name}: {v!r}") from None


def _env_bool(name: str, default: bool = False) -> bool:
    v = (os.getenv(name) or "").strip().lower()
    if not v:
        return default
    return v in ("1", "true", "yes", "y", "on")


def load_config_from_env(env_file: Optional[str] = None) -> Config:
    """Load and validate config from environment (and .env if present)."""
    load_dotenv(env_file, override=False)

    chain_id_raw = (os.getenv("CHAIN_ID") or "").strip()

    cfg = Config(
        market_id=_require_env("POLYMARKET_CONDITION_ID"),
        contract_address=_require_env("RISK_SIGNAL_ADDRESS"),
        rpc_url=_require_env("RPC_URL", "ARBITRUM_SEPOLIA_RPC"),
        private_key=_require_env("UPDATER_PRIVATE_KEY"),
        chain_selector_name=_env_str("CHAIN_SELECTOR_NAME", DEFAULT_CHAIN_SELECTOR),
        chain_id=_env_int("CHAIN_ID", 0) if chain_id_raw else None,
        gas_limit=_env_int("GAS_LIMIT", 100_000),
        threshold_green_max=_env_float("THRESHOLD_GREEN_MAX", 0.10),
        threshold_amber_max=_env_float("THRESHOLD_AMBER_MAX", 0.25),
        poll_interval_ms=_env_int("POLL_INTERVAL_MS", 60_000),
        schedule=(os.getenv("SCHEDULE") or "").strip() or None,
        market_source=_env_str("MARKET_SOURCE", "gamma").lower(),
        tracked_outcome=_env_str("TRACKED_OUTCOME", "Yes"),
        consensus_samples=_env_int("CONSENSUS_SAMPLES", 1),
        gamma_base_url=_env_str("GAMMA_BASE_URL", GAMMA_BASE_URL).rstrip("/"),
        clob_base_url=_env_str("CLOB_BASE_URL", CLOB_BASE_URL).rstrip("/"),
        request_timeout_seconds=_env_float("REQUEST_TIMEOUT_SECONDS", 20.0),
        receipt_timeout_seconds=_env_float("RECEIPT_TIMEOUT_SECONDS", 120.0),
        dry_run=_env_bool("DRY_RUN", False),
        retry_max=_env_int("RETRY_MAX", 5),
        retry_base_seconds=_env_float("RETRY_BASE_SECONDS", 1.0),
    )
    return cfg.validate()
