# blockchain/session.py
"""Explicit wallet context handed to every payment call.

A ``WalletSession`` pairs the active address with a signing capability. The
signer is any callable taking an unsigned transaction dict and returning the
raw signed bytes; it may raise ``SigningRefused``. The gateway never sees key
material.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict

from eth_account import Account
from web3 import Web3

from .exceptions import SigningRefused

Signer = Callable[[Dict[str, Any]], bytes]


@dataclass(frozen=True)
class WalletSession:
    address: str
    signer: Signer


class LocalAccountSigner:
    """Signs with a key held in this process (operator commands only)."""

    def __init__(self, private_key):
        self._account = Account.from_key(private_key)

    @property
    def address(self):
        return self._account.address

    def __call__(self, unsigned_txn):
        if Web3.to_checksum_address(unsigned_txn["from"]) != self._account.address:
            raise SigningRefused(f"Signer {self._account.address} cannot sign for {unsigned_txn['from']}")
        tx = {k: v for k, v in unsigned_txn.items() if k != "from"}
        return self._account.sign_transaction(tx).raw_transaction


def session_from_key(private_key):
    signer = LocalAccountSigner(private_key)
    return WalletSession(address=signer.address, signer=signer)
