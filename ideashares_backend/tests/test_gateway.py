from decimal import Decimal

import pytest
from web3 import Web3
from web3.exceptions import Web3Exception

from blockchain.exceptions import ConfirmationTimeout, SigningRefused, TransactionFailed
from blockchain.gateway import LedgerGateway
from blockchain.session import LocalAccountSigner, WalletSession, session_from_key
from ideas.models import Idea, Investment
from ideas.funding import FundingEngine
from tests.conftest import INVESTOR, OWNER, fake_signer

PRIVATE_KEY = "0x" + "4c" * 32
MEMO = "Investment in: Solar kiosks"


def test_scales_to_base_units(ledger):
    assert ledger.to_base_units(Decimal("1.5")) == 1_500_000
    assert ledger.to_base_units(Decimal("0.0000019")) == 1
    assert ledger.to_base_units("400") == 400_000_000


def test_build_payment(ledger):
    params = ledger.get_network_parameters(INVESTOR)
    txn = ledger.build_payment(INVESTOR, OWNER, Decimal("2.25"), MEMO, params)
    assert txn["from"] == Web3.to_checksum_address(INVESTOR)
    assert txn["to"] == Web3.to_checksum_address(OWNER)
    assert txn["value"] == 2_250_000
    assert txn["data"] == Web3.to_hex(text=MEMO)
    assert txn["chainId"] == 1337
    assert txn["nonce"] == 7
    assert txn["gas"] > 21_000


def test_build_payment_below_base_unit(ledger):
    params = ledger.get_network_parameters(INVESTOR)
    with pytest.raises(ValueError):
        ledger.build_payment(INVESTOR, OWNER, Decimal("0.0000001"), MEMO, params)


def test_submit_payment_with_local_signer(ledger, fake_w3):
    session = session_from_key(PRIVATE_KEY)
    tx_id = ledger.submit_payment(session, OWNER, Decimal("3"), MEMO)
    assert tx_id.startswith("0x") and len(tx_id) == 66
    assert len(fake_w3.eth.sent) == 1
    assert fake_w3.eth.estimated[0]["value"] == 3_000_000
    assert fake_w3.eth.estimated[0]["from"] == session.address


def test_signing_refused(ledger, fake_w3):
    def refuse(txn):
        raise SigningRefused("user rejected the request")

    with pytest.raises(TransactionFailed) as excinfo:
        ledger.submit_payment(WalletSession(INVESTOR, refuse), OWNER, Decimal("1"), MEMO)
    assert isinstance(excinfo.value.__cause__, SigningRefused)
    assert fake_w3.eth.sent == []


@pytest.mark.parametrize("error", [KeyError("gas"), TypeError("unexpected txn field"), RuntimeError("hw wallet")])
def test_broken_signer_is_a_failed_payment(ledger, fake_w3, error):
    def broken(txn):
        raise error

    with pytest.raises(TransactionFailed) as excinfo:
        ledger.submit_payment(WalletSession(INVESTOR, broken), OWNER, Decimal("1"), MEMO)
    refused = excinfo.value.__cause__
    assert isinstance(refused, SigningRefused)
    assert refused.__cause__ is error
    assert excinfo.value.transaction_id is None
    assert fake_w3.eth.sent == []


def test_local_signer_refuses_foreign_sender(ledger):
    signer = LocalAccountSigner(PRIVATE_KEY)
    with pytest.raises(TransactionFailed):
        ledger.submit_payment(WalletSession(INVESTOR, signer), OWNER, Decimal("1"), MEMO)


def test_submission_error(ledger, fake_w3):
    fake_w3.eth.send_error = Web3Exception("nonce too low")
    with pytest.raises(TransactionFailed) as excinfo:
        ledger.submit_payment(WalletSession(INVESTOR, fake_signer), OWNER, Decimal("1"), MEMO)
    assert isinstance(excinfo.value.__cause__, Web3Exception)
    assert excinfo.value.transaction_id is None


def test_reverted_payment(ledger, fake_w3):
    fake_w3.eth.revert_on_send = True
    with pytest.raises(TransactionFailed, match="reverted"):
        ledger.submit_payment(WalletSession(INVESTOR, fake_signer), OWNER, Decimal("1"), MEMO)


def test_confirmation_timeout_after_max_rounds(ledger, fake_w3):
    fake_w3.eth.confirm_on_send = False
    with pytest.raises(ConfirmationTimeout) as excinfo:
        ledger.submit_payment(WalletSession(INVESTOR, fake_signer), OWNER, Decimal("1"), MEMO)
    assert excinfo.value.max_rounds == 4
    assert excinfo.value.transaction_id.startswith("0x")
    assert len(fake_w3.eth.sent) == 1


def test_confirmation_timeout_wall_clock(fake_w3):
    fake_w3.eth.confirm_on_send = False
    ledger = LedgerGateway(fake_w3, max_rounds=1000, confirmation_timeout=0, poll_interval=0)
    with pytest.raises(ConfirmationTimeout):
        ledger.await_confirmation("0x" + "ab" * 32)


def test_get_confirmed_payment(ledger, fake_w3):
    fake_w3.eth.add_receipt("0x01")
    fake_w3.eth.add_receipt("0x02", status=0)
    assert ledger.get_confirmed_payment("0x01")["status"] == 1
    with pytest.raises(TransactionFailed, match="reverted"):
        ledger.get_confirmed_payment("0x02")
    with pytest.raises(TransactionFailed, match="not on the ledger"):
        ledger.get_confirmed_payment("0x03")


@pytest.mark.django_db
def test_timeout_leaves_no_investment(ledger, fake_w3, store, clock, session):
    engine = FundingEngine(store, gateway=ledger, clock=clock)
    idea = engine.create_idea(OWNER, "Solar kiosks", "desc", "1000", "10%", 30)
    fake_w3.eth.confirm_on_send = False

    with pytest.raises(ConfirmationTimeout):
        engine.invest(session, idea.pk, "400")
    assert Investment.objects.count() == 0
    assert Idea.objects.get(pk=idea.pk).status == Idea.OPEN


@pytest.mark.django_db
def test_invest_through_ledger(ledger, fake_w3, store, clock):
    engine = FundingEngine(store, gateway=ledger, clock=clock)
    idea = engine.create_idea(OWNER, "Solar kiosks", "desc", "10", "10%", 30)
    session = session_from_key(PRIVATE_KEY)

    outcome = engine.invest(session, idea.pk, "10")
    assert outcome.status == Idea.FUNDED
    assert outcome.investment.investor_address == session.address
    assert outcome.investment.transaction_id in fake_w3.eth.receipts
    assert fake_w3.eth.estimated[0]["data"] == Web3.to_hex(text="Investment in: Solar kiosks")
