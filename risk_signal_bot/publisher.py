"""RiskSignal contract writer.

One publish() == one setTier transaction. No dedup of identical consecutive
tiers and no retry: a failed publish surfaces as PublishError and the next
scheduled cycle is the only retry.

dry_run=True logs the call instead of sending (no gas, no nonce use).
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

from risk_signal_bot.classify import Tier, tier_label
from risk_signal_bot.errors import PublishError
from risk_signal_bot.models import EffectiveTier, PublishResult, TierSnapshot

logger = logging.getLogger(__name__)

RISK_SIGNAL_ABI = [
    {
        "type": "function",
        "name": "setTier",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "tier", "type": "uint8"},
            {"name": "confidence", "type": "uint16"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "getEffectiveTier",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "tier", "type": "uint8"},
            {"name": "isStale", "type": "bool"},
        ],
    },
    {
        "type": "function",
        "name": "getTier",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "tier", "type": "uint8"},
            {"name": "updatedAt", "type": "uint64"},
            {"name": "confidence", "type": "uint16"},
        ],
    },
]

DRY_RUN_TX_HASH = "0x" + "00" * 32


def _is_tx_hash(v: Any) -> bool:
    if isinstance(v, str):
        return v.startswith("0x") and len(v) == 66
    return isinstance(v, (bytes, bytearray)) and len(v) == 32


def _receipt_result(receipt: Mapping[str, Any]) -> PublishResult:
    if receipt is None:
        raise PublishError("setTier receipt missing")

    status = receipt.get("status")
    tx_hash = receipt.get("transactionHash")
    gas_used = receipt.get("gasUsed")

    if not _is_tx_hash(tx_hash):
        raise PublishError(f"setTier receipt has malformed transactionHash: {tx_hash!r}")
    if status != 1:
        raise PublishError(f"setTier failed: tx {Web3.to_hex(tx_hash)} status={status}")
    if not isinstance(gas_used, int):
        raise PublishError(f"setTier receipt has malformed gasUsed: {gas_used!r}")

    return PublishResult(tx_hash=Web3.to_hex(tx_hash), gas_used=gas_used)


class Publisher:
    """Long-lived writer bound to one contract and one signing account."""

    def __init__(
        self,
        infra,
        contract_address: str,
        *,
        gas_limit: int = 100_000,
        receipt_timeout: float = 120.0,
        dry_run: bool = False,
    ):
        self.infra = infra
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.gas_limit = gas_limit
        self.receipt_timeout = receipt_timeout
        self.dry_run = dry_run
        self._contract = None

    @property
    def address(self) -> str:
        return self.infra.address

    @property
    def contract(self):
        if self._contract is None:
            if self.infra.w3 is None:
                raise PublishError("chain not connected")
            self._contract = self.infra.w3.eth.contract(address=self.contract_address, abi=RISK_SIGNAL_ABI)
        return self._contract

    def publish(self, tier: Tier, confidence: int) -> PublishResult:
        """Send setTier(tier, confidence) and wait for a successful receipt."""
        if self.dry_run:
            logger.info("DRY_RUN setTier: tier=%s confidence=%s", tier_label(tier), confidence)
            return PublishResult(tx_hash=DRY_RUN_TX_HASH, gas_used=0)

        w3 = self.infra.w3
        account = self.infra.account
        if w3 is None or account is None:
            raise PublishError("chain not connected")

        try:
            tx = self.contract.functions.setTier(int(tier), int(confidence)).build_transaction(
                {
                    "from": account.address,
                    "nonce": w3.eth.get_transaction_count(account.address, "pending"),
                    "gas": self.gas_limit,
                    "chainId": w3.eth.chain_id,
                }
            )
            signed = account.sign_transaction(tx)
            tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        except (Web3Exception, ValueError, OSError) as e:
            raise PublishError(f"setTier submission failed: {e}") from e

        logger.debug("setTier sent: %s", Web3.to_hex(tx_hash))
        try:
            receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except TimeExhausted as e:
            raise PublishError(f"setTier receipt not received within {self.receipt_timeout}s") from e
        except (Web3Exception, OSError) as e:
            raise PublishError(f"setTier receipt lookup failed: {e}") from e

        return _receipt_result(receipt)

    def read_effective_tier(self) -> EffectiveTier:
        try:
            tier, is_stale = self.contract.functions.getEffectiveTier().call()
        except (Web3Exception, ValueError, OSError) as e:
            raise PublishError(f"getEffectiveTier failed: {e}") from e
        return EffectiveTier(tier=Tier(int(tier)), is_stale=bool(is_stale))

    def read_tier(self) -> TierSnapshot:
        try:
            tier, updated_at, confidence = self.contract.functions.getTier().call()
        except (Web3Exception, ValueError, OSError) as e:
            raise PublishError(f"getTier failed: {e}") from e
        return TierSnapshot(tier=Tier(int(tier)), updated_at=int(updated_at), confidence=int(confidence))
