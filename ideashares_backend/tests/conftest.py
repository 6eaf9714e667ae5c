from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest

from blockchain.gateway import LedgerGateway
from blockchain.session import WalletSession
from ideas.funding import FundingEngine
from ideas.store import RecordStore
from tests.fake_chain import FakeWeb3

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=dt_timezone.utc)

OWNER = "0x1111111111111111111111111111111111111111"
INVESTOR = "0x2222222222222222222222222222222222222222"
OTHER_INVESTOR = "0x3333333333333333333333333333333333333333"


class Clock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)

    def set(self, when):
        self.now = when


class FakeGateway:
    """Records payment calls; succeeds unless ``error`` is set."""

    def __init__(self):
        self.calls = []
        self.error = None
        self._count = 0

    def submit_payment(self, session, receiver_address, amount, memo):
        self.calls.append((session.address, receiver_address, amount, memo))
        if self.error is not None:
            raise self.error
        self._count += 1
        return f"0x{self._count:064x}"


def fake_signer(txn):
    return repr(sorted(txn.items())).encode()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store():
    return RecordStore()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def engine(store, gateway, clock):
    return FundingEngine(store, gateway=gateway, clock=clock)


@pytest.fixture
def session():
    return WalletSession(address=INVESTOR, signer=fake_signer)


@pytest.fixture
def other_session():
    return WalletSession(address=OTHER_INVESTOR, signer=fake_signer)


@pytest.fixture
def fake_w3():
    return FakeWeb3()


@pytest.fixture
def ledger(fake_w3):
    return LedgerGateway(fake_w3, base_unit_decimals=6, max_rounds=4, poll_interval=0)


@pytest.fixture
def make_idea(engine):
    def _make(money_needed="1000", duration_days=30, **overrides):
        fields = {
            "owner_address": OWNER,
            "title": "Solar kiosks",
            "description": "Pay-as-you-go solar charging for markets",
            "money_needed": Decimal(money_needed),
            "share_offered": "10% equity for the full goal",
            "duration_days": duration_days,
        }
        fields.update(overrides)
        return engine.create_idea(**fields)
    return _make
