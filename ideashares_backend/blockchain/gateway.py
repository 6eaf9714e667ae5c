# blockchain/gateway.py
"""Single-payment gateway onto the ledger.

One call to ``submit_payment`` moves value exactly once: fetch network
parameters, build the unsigned payment, hand it to the session's signer,
submit, then wait a bounded number of rounds for the receipt. Nothing here is
retried; an ambiguous failure has to be re-initiated by the user.
"""
import logging
import time
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN

from django.conf import settings
from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import TransactionNotFound, Web3Exception

from .exceptions import ConfirmationTimeout, SigningRefused, TransactionFailed

logger = logging.getLogger(__name__)

# errors a web3 provider or a signer can surface while paying
LEDGER_ERRORS = (Web3Exception, SigningRefused, RequestException, OSError, ValueError)


@dataclass(frozen=True)
class NetworkParameters:
    chain_id: int
    gas_price: int
    nonce: int
    current_round: int


def connect(rpc_url=None, timeout=None):
    rpc_url = (rpc_url or settings.LEDGER_RPC_URL).rstrip("/")
    timeout = timeout or settings.LEDGER_RPC_TIMEOUT
    return Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))


class LedgerGateway:

    def __init__(self, w3, base_unit_decimals=6, max_rounds=4,
                 confirmation_timeout=120.0, poll_interval=1.0):
        self.w3 = w3
        self.scale = Decimal(10) ** base_unit_decimals
        self.max_rounds = max_rounds
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval

    @classmethod
    def from_settings(cls, w3=None):
        return cls(
            w3 or connect(),
            base_unit_decimals=settings.LEDGER_BASE_UNIT_DECIMALS,
            max_rounds=settings.LEDGER_CONFIRMATION_ROUNDS,
            confirmation_timeout=settings.LEDGER_CONFIRMATION_TIMEOUT,
            poll_interval=settings.LEDGER_POLL_INTERVAL,
        )

    def to_base_units(self, amount):
        return int((Decimal(amount) * self.scale).to_integral_value(rounding=ROUND_DOWN))

    def get_network_parameters(self, sender):
        eth = self.w3.eth
        return NetworkParameters(
            chain_id=eth.chain_id,
            gas_price=eth.gas_price,
            nonce=eth.get_transaction_count(Web3.to_checksum_address(sender), "pending"),
            current_round=eth.block_number,
        )

    def build_payment(self, sender, receiver, amount, memo, params):
        value = self.to_base_units(amount)
        if value <= 0:
            raise ValueError(f"Payment of {amount} is below the ledger's base unit")
        txn = {
            "from": Web3.to_checksum_address(sender),
            "to": Web3.to_checksum_address(receiver),
            "value": value,
            "data": Web3.to_hex(text=memo),
            "chainId": params.chain_id,
            "gasPrice": params.gas_price,
            "nonce": params.nonce,
        }
        txn["gas"] = self.w3.eth.estimate_gas(txn)
        return txn

    def sign_and_submit(self, session, unsigned_txn):
        try:
            raw = session.signer(unsigned_txn)
        except SigningRefused:
            raise
        except Exception as exc:
            # signers are pluggable and may fail with anything
            raise SigningRefused(f"Signer failed: {exc}") from exc
        tx_hash = self.w3.eth.send_raw_transaction(raw)
        return Web3.to_hex(tx_hash)

    def await_confirmation(self, transaction_id, max_rounds=None):
        """Poll for the receipt until it lands or ``max_rounds`` blocks pass.

        Also bounded by ``confirmation_timeout`` seconds in case the chain
        stalls. Raises ``ConfirmationTimeout`` when either ceiling is hit and
        ``TransactionFailed`` for a reverted receipt.
        """
        max_rounds = max_rounds or self.max_rounds
        start_round = self.w3.eth.block_number
        last_round = start_round + max_rounds
        deadline = time.monotonic() + self.confirmation_timeout

        current_round = start_round
        while current_round <= last_round and time.monotonic() < deadline:
            receipt = self._receipt_or_none(transaction_id)
            if receipt is not None:
                if receipt["status"] != 1:
                    raise TransactionFailed(
                        f"Transaction {transaction_id} reverted in block {receipt['blockNumber']}",
                        transaction_id=transaction_id,
                    )
                logger.info("Transaction %s confirmed in block %s", transaction_id, receipt["blockNumber"])
                return receipt
            time.sleep(self.poll_interval)
            current_round = self.w3.eth.block_number

        raise ConfirmationTimeout(transaction_id, max_rounds)

    def submit_payment(self, session, receiver_address, amount, memo):
        """Pay ``amount`` display units from ``session.address`` to the receiver.

        Returns the confirmed transaction id. Any failure raises
        ``TransactionFailed`` chained to its cause.
        """
        transaction_id = None
        try:
            params = self.get_network_parameters(session.address)
            unsigned = self.build_payment(session.address, receiver_address, amount, memo, params)
            transaction_id = self.sign_and_submit(session, unsigned)
            logger.info("Submitted payment %s: %s -> %s (%s)",
                        transaction_id, session.address, receiver_address, amount)
            self.await_confirmation(transaction_id)
        except TransactionFailed:
            raise
        except LEDGER_ERRORS as exc:
            logger.warning("Payment from %s failed: %s", session.address, exc)
            raise TransactionFailed(f"Payment failed: {exc}", transaction_id=transaction_id) from exc
        return transaction_id

    def get_confirmed_payment(self, transaction_id):
        """Return the receipt of an already confirmed, successful payment."""
        try:
            receipt = self._receipt_or_none(transaction_id)
        except LEDGER_ERRORS as exc:
            raise TransactionFailed(f"Receipt lookup failed: {exc}", transaction_id=transaction_id) from exc
        if receipt is None:
            raise TransactionFailed(f"Transaction {transaction_id} is not on the ledger",
                                    transaction_id=transaction_id)
        if receipt["status"] != 1:
            raise TransactionFailed(f"Transaction {transaction_id} reverted", transaction_id=transaction_id)
        return receipt

    def _receipt_or_none(self, transaction_id):
        try:
            return self.w3.eth.get_transaction_receipt(transaction_id)
        except TransactionNotFound:
            return None
