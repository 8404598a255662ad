"""Generate .env template.

We never write secrets automatically; we generate a template file.
"""

from __future__ import annotations

from pathlib import Path

TEMPLATE = """# Market
POLYMARKET_CONDITION_ID=

# Chain
RISK_SIGNAL_ADDRESS=
RPC_URL=
UPDATER_PRIVATE_KEY=

# Optional
CHAIN_SELECTOR_NAME=ethereum-testnet-sepolia-arbitrum-1
CHAIN_ID=
GAS_LIMIT=100000
THRESHOLD_GREEN_MAX=0.10
THRESHOLD_AMBER_MAX=0.25
POLL_INTERVAL_MS=60000
# cron-style fixed step, overrides POLL_INTERVAL_MS (e.g. */30 * * * * *)
SCHEDULE=
MARKET_SOURCE=gamma
TRACKED_OUTCOME=Yes
CONSENSUS_SAMPLES=1
REQUEST_TIMEOUT_SECONDS=20
RECEIPT_TIMEOUT_SECONDS=120
DRY_RUN=false
RETRY_MAX=5
RETRY_BASE_SECONDS=1.0
"""


def write_env_template(path: str | Path = ".env.template") -> Path:
    p = Path(path)
    p.write_text(TEMPLATE, encoding="utf-8")
    return p
