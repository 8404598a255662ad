from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from risk_signal_bot.config import Config
from risk_signal_bot.errors import ConfigError

logger = logging.getLogger(__name__)


class Infra:
    """Holds Web3 + the updater account with retryable connection init.

    Connected once at startup and reused by every cycle; never reconfigured.
    """

    def __init__(self, cfg: Config, *, sleep: Callable[[float], None] = time.sleep):
        self.cfg = cfg
        self.w3: Optional[Web3] = None
        self.account: Optional[LocalAccount] = None
        self._sleep = sleep

    @property
    def address(self) -> Optional[str]:
        return self.account.address if self.account else None

    def _sleep_backoff(self, attempt: int) -> None:
        base = self.cfg.retry_base_seconds * (2 ** attempt)
        jitter = random.uniform(0, 0.25 * base)
        self._sleep(base + jitter)

    def _make_web3(self) -> Web3:
        timeout = self.cfg.request_timeout_seconds
        return Web3(Web3.HTTPProvider(self.cfg.rpc_url, request_kwargs={"timeout": timeout}))

    def connect_chain(self) -> None:
        w3 = self._make_web3()
        if not w3.is_connected():
            raise RuntimeError("Web3 could not connect to RPC_URL")

        chain_id = w3.eth.chain_id
        if chain_id != self.cfg.expected_chain_id:
            raise ConfigError(
                f"RPC chain id {chain_id} does not match {self.cfg.chain_selector_name} "
                f"(expected {self.cfg.expected_chain_id})"
            )
        self.w3 = w3

    def load_account(self) -> None:
        try:
            self.account = Account.from_key(self.cfg.private_key)
        except Exception as e:
            raise ConfigError("UPDATER_PRIVATE_KEY is not a valid private key") from e

    def connect(self) -> None:
        self.load_account()
        last_err: Optional[Exception] = None
        for attempt in range(self.cfg.retry_max):
            try:
                self.connect_chain()
                return
            except ConfigError:
                raise
            except Exception as e:
                last_err = e
                logger.warning("connect attempt %d/%d failed: %s", attempt + 1, self.cfg.retry_max, e)
                if attempt < self.cfg.retry_max - 1:
                    self._sleep_backoff(attempt)
        raise RuntimeError(f"Infra.connect failed after {self.cfg.retry_max} attempts: {last_err}")
