from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from web3.exceptions import TimeExhausted, Web3Exception

from risk_signal_bot.classify import Tier
from risk_signal_bot.errors import PublishError
from risk_signal_bot.publisher import DRY_RUN_TX_HASH, Publisher

from .conftest import CONTRACT

TX_HASH = b"\x01" * 32
UPDATER = "0x" + "22" * 20


def make_infra(receipt=None):
    w3 = MagicMock()
    w3.eth.chain_id = 421614
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.send_raw_transaction.return_value = TX_HASH
    w3.eth.wait_for_transaction_receipt.return_value = (
        receipt if receipt is not None else {"status": 1, "transactionHash": TX_HASH, "gasUsed": 43_210}
    )

    account = MagicMock()
    account.address = UPDATER
    account.sign_transaction.return_value = SimpleNamespace(raw_transaction=b"signed")
    return SimpleNamespace(w3=w3, account=account, address=UPDATER)


def set_tier_fn(infra):
    return infra.w3.eth.contract.return_value.functions.setTier


def test_publish_sends_one_set_tier_tx():
    infra = make_infra()
    pub = Publisher(infra, CONTRACT, gas_limit=100_000)

    result = pub.publish(Tier.RED, 3000)

    assert result.tx_hash == "0x" + "01" * 32
    assert result.gas_used == 43_210
    set_tier_fn(infra).assert_called_once_with(2, 3000)
    tx_params = set_tier_fn(infra).return_value.build_transaction.call_args[0][0]
    assert tx_params["gas"] == 100_000
    assert tx_params["nonce"] == 7
    assert tx_params["from"] == UPDATER
    assert tx_params["chainId"] == 421614
    infra.w3.eth.send_raw_transaction.assert_called_once_with(b"signed")


def test_publish_does_not_dedupe_identical_calls():
    infra = make_infra()
    pub = Publisher(infra, CONTRACT)
    pub.publish(Tier.GREEN, 500)
    pub.publish(Tier.GREEN, 500)
    assert infra.w3.eth.send_raw_transaction.call_count == 2


def test_publish_reverted_status_raises():
    infra = make_infra({"status": 0, "transactionHash": TX_HASH, "gasUsed": 21_000})
    with pytest.raises(PublishError, match="status=0"):
        Publisher(infra, CONTRACT).publish(Tier.AMBER, 1500)


@pytest.mark.parametrize(
    "receipt",
    [
        {"status": 1, "gasUsed": 21_000},
        {"status": 1, "transactionHash": b"\x01" * 4, "gasUsed": 21_000},
        {"status": 1, "transactionHash": TX_HASH},
    ],
)
def test_publish_malformed_receipt_raises(receipt):
    with pytest.raises(PublishError, match="malformed"):
        Publisher(make_infra(receipt), CONTRACT).publish(Tier.AMBER, 1500)


def test_publish_receipt_timeout_raises():
    infra = make_infra()
    infra.w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("slow")
    with pytest.raises(PublishError, match="not received"):
        Publisher(infra, CONTRACT, receipt_timeout=5).publish(Tier.AMBER, 1500)


def test_publish_submission_failure_raises():
    infra = make_infra()
    infra.w3.eth.send_raw_transaction.side_effect = Web3Exception("nonce too low")
    with pytest.raises(PublishError, match="nonce too low"):
        Publisher(infra, CONTRACT).publish(Tier.AMBER, 1500)


def test_publish_without_connection_raises():
    infra = SimpleNamespace(w3=None, account=None, address=None)
    with pytest.raises(PublishError, match="not connected"):
        Publisher(infra, CONTRACT).publish(Tier.GREEN, 0)


def test_dry_run_sends_nothing():
    infra = make_infra()
    result = Publisher(infra, CONTRACT, dry_run=True).publish(Tier.RED, 9000)
    assert result.tx_hash == DRY_RUN_TX_HASH
    assert result.gas_used == 0
    infra.w3.eth.send_raw_transaction.assert_not_called()


def test_read_effective_tier():
    infra = make_infra()
    contract = infra.w3.eth.contract.return_value
    contract.functions.getEffectiveTier.return_value.call.return_value = (1, True)

    eff = Publisher(infra, CONTRACT).read_effective_tier()
    assert eff.tier == Tier.AMBER
    assert eff.is_stale is True


def test_read_tier():
    infra = make_infra()
    contract = infra.w3.eth.contract.return_value
    contract.functions.getTier.return_value.call.return_value = (2, 1_700_000_000, 3100)

    snap = Publisher(infra, CONTRACT).read_tier()
    assert snap.tier == Tier.RED
    assert snap.updated_at == 1_700_000_000
    assert snap.confidence == 3100


def test_contract_bound_to_checksummed_address():
    infra = make_infra()
    pub = Publisher(infra, CONTRACT)
    _ = pub.contract
    kwargs = infra.w3.eth.contract.call_args.kwargs
    assert kwargs["address"] == pub.contract_address
    assert kwargs["address"].lower() == CONTRACT
