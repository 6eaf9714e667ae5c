# ideas/funding.py
"""Idea lifecycle and the investment commit protocol.

States are ``open``, ``funded`` and ``expired``; the last two are terminal.
Every status write is a conditional update guarded by ``status=open``, so a
concurrent writer can never move an idea out of a terminal state.

An investment is a dual write: value moves on the ledger first, then the
record is inserted here. The two cannot be made atomic. When the insert (or
the follow-up status write) fails after a confirmed payment the engine raises
``PersistenceError`` with a ``PendingInvestment`` attached, and ``repair``
finishes the job keyed by the transaction id without touching the ledger.

Aggregate consistency across concurrent investors is not guaranteed: two
sessions can both validate against the same total and over-fund an idea.
``FUNDING_SERIALIZE_COMMITS`` serializes the record-and-transition step per
idea with a row lock; it never covers the ledger wait.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import (
    FetchError,
    IdeaNotFound,
    IdeaNotOpen,
    InvalidAmount,
    InvalidIdea,
    PersistenceError,
    StoreUnavailable,
)
from .models import Idea
from .store import IDEAS, INVESTMENTS, RecordStore

logger = logging.getLogger(__name__)

AMOUNT_QUANTUM = Decimal("0.000001")
SHARE_QUANTUM = Decimal("0.000001")


def compute_share_percentage(amount, money_needed):
    return (Decimal(amount) / Decimal(money_needed) * 100).quantize(SHARE_QUANTUM, rounding=ROUND_HALF_EVEN)


def parse_amount(value, field="amount"):
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"{field} must be a number, got {value!r}") from None
    if not amount.is_finite():
        raise InvalidAmount(f"{field} must be finite")
    if amount <= 0:
        raise InvalidAmount(f"{field} must be positive")
    if amount != amount.quantize(AMOUNT_QUANTUM):
        raise InvalidAmount(f"{field} has more than 6 decimal places")
    return amount


@dataclass(frozen=True)
class PendingInvestment:
    """A confirmed payment that still has to be recorded."""
    idea_id: int
    investor_address: str
    amount: Decimal
    share_percentage: Decimal
    transaction_id: str
    invested_at: datetime

    def as_record(self):
        return {
            "idea_id": self.idea_id,
            "investor_address": self.investor_address,
            "amount": self.amount,
            "share_percentage": self.share_percentage,
            "transaction_id": self.transaction_id,
            "invested_at": self.invested_at,
        }


@dataclass(frozen=True)
class InvestmentOutcome:
    investment: object
    share_percentage: Decimal
    status: str
    total_invested: Decimal


class FundingEngine:

    def __init__(self, store, gateway=None, clock=timezone.now,
                 serialize_commits=False, cap_at_remaining=False):
        self.store = store
        self.gateway = gateway
        self.clock = clock
        self.serialize_commits = serialize_commits
        self.cap_at_remaining = cap_at_remaining

    @classmethod
    def from_settings(cls, store=None, gateway=None, clock=timezone.now):
        return cls(
            store or RecordStore(),
            gateway=gateway,
            clock=clock,
            serialize_commits=settings.FUNDING_SERIALIZE_COMMITS,
            cap_at_remaining=settings.FUNDING_CAP_AT_REMAINING,
        )

    # -- ideas -------------------------------------------------------------

    def create_idea(self, owner_address, title, description, money_needed,
                    share_offered, duration_days, image_url=None):
        try:
            money_needed = parse_amount(money_needed, field="money_needed")
        except InvalidAmount as exc:
            raise InvalidIdea(str(exc)) from None
        if isinstance(duration_days, bool) or not isinstance(duration_days, int) or duration_days < 1:
            raise InvalidIdea("duration_days must be a whole number of days, at least 1")
        for name, value in (("owner_address", owner_address), ("title", title),
                            ("description", description), ("share_offered", share_offered)):
            if not value or not str(value).strip():
                raise InvalidIdea(f"{name} is required")

        created_at = self.clock()
        idea = self.store.insert(IDEAS, {
            "owner_address": owner_address,
            "title": title,
            "description": description,
            "image_url": image_url or None,
            "money_needed": money_needed,
            "share_offered": share_offered,
            "end_date": created_at + timedelta(days=duration_days),
            "status": Idea.OPEN,
            "created_at": created_at,
        })
        logger.info("Idea %s posted by %s: goal %s for %s days", idea.pk, owner_address, money_needed, duration_days)
        return idea

    def get_idea(self, idea_id):
        idea = self.store.get(IDEAS, idea_id)
        if idea is None:
            raise IdeaNotFound(idea_id)
        return self.reconcile_expiry(idea)

    def reconcile_expiry(self, idea):
        """Write through ``open -> expired`` if the deadline has passed."""
        if idea.status != Idea.OPEN or self.clock() <= idea.end_date:
            return idea
        if self.store.update(IDEAS, idea.pk, {"status": Idea.EXPIRED}, expect={"status": Idea.OPEN}):
            logger.info("Idea %s expired at %s", idea.pk, idea.end_date)
            idea.status = Idea.EXPIRED
        else:
            # someone else moved it first
            idea.status = self._current_status(idea.pk)
        return idea

    def total_invested(self, idea_id):
        total = self.store.aggregate_sum(INVESTMENTS, "amount", {"idea_id": idea_id})
        return total if total is not None else Decimal("0")

    def validate_investment(self, idea, amount):
        if not idea.is_open:
            raise IdeaNotOpen(idea.pk, idea.status)
        if amount <= 0:
            raise InvalidAmount("amount must be positive")
        if self.cap_at_remaining:
            remaining = idea.money_needed - self.total_invested(idea.pk)
            if amount > remaining:
                raise InvalidAmount(f"amount {amount} exceeds remaining need {max(remaining, Decimal('0'))}")
        elif amount > idea.money_needed:
            raise InvalidAmount(f"amount {amount} exceeds money needed {idea.money_needed}")

    # -- investments -------------------------------------------------------

    def invest(self, session, idea_id, amount):
        """Pay into an open idea and record the investment.

        Raises ``ValidationError`` subclasses before the ledger is touched,
        ``TransactionFailed`` when the payment does not confirm, and
        ``PersistenceError`` when the payment confirmed but recording failed.
        Store failures before the payment raise ``StoreUnavailable``.
        """
        amount = parse_amount(amount)
        try:
            idea = self.get_idea(idea_id)
            self.validate_investment(idea, amount)
        except (FetchError, PersistenceError) as exc:
            logger.warning("Investment into idea %s aborted before payment: %s", idea_id, exc)
            raise StoreUnavailable(f"Idea {idea_id} could not be checked, no payment was made: {exc}") from exc
        share = compute_share_percentage(amount, idea.money_needed)

        # no lock is held while the ledger confirms
        transaction_id = self.gateway.submit_payment(
            session, idea.owner_address, amount, f"Investment in: {idea.title}"
        )
        pending = PendingInvestment(
            idea_id=idea.pk,
            investor_address=session.address,
            amount=amount,
            share_percentage=share,
            transaction_id=transaction_id,
            invested_at=self.clock(),
        )
        outcome = self._settle(pending, reuse_existing=False)
        logger.info("Investment %s recorded: %s into idea %s (%s%%), idea now %s",
                    transaction_id, amount, idea.pk, share, outcome.status)
        return outcome

    def repair(self, pending):
        """Record a confirmed payment that ``invest`` failed to persist.

        Idempotent on ``transaction_id``; never submits a payment.
        """
        if self.store.get(IDEAS, pending.idea_id) is None:
            raise IdeaNotFound(pending.idea_id)
        outcome = self._settle(pending, reuse_existing=True)
        logger.info("Repaired investment %s for idea %s", pending.transaction_id, pending.idea_id)
        return outcome

    def _settle(self, pending, reuse_existing):
        if not self.serialize_commits:
            return self._record_and_transition(pending, reuse_existing)
        try:
            with transaction.atomic():
                self.store.get(IDEAS, pending.idea_id, for_update=True)
                return self._record_and_transition(pending, reuse_existing)
        except PersistenceError as exc:
            if exc.stage != PersistenceError.STATUS:
                raise
            # the rollback took the investment insert with it
            logger.error("Payment %s confirmed but nothing recorded: %s", pending.transaction_id, exc.__cause__)
            raise PersistenceError(
                f"Payment {pending.transaction_id} confirmed but the investment was not recorded: "
                f"the idea status update failed and the insert was rolled back ({exc.__cause__})",
                pending=pending, stage=PersistenceError.INVESTMENT,
            ) from exc.__cause__
        except FetchError as exc:
            raise PersistenceError(str(exc), pending=pending, stage=PersistenceError.INVESTMENT) from exc
        except DatabaseError as exc:
            raise PersistenceError(f"Commit failed: {exc}", pending=pending,
                                   stage=PersistenceError.INVESTMENT) from exc

    def _record_and_transition(self, pending, reuse_existing):
        investment = None
        try:
            if reuse_existing:
                found = self.store.query(INVESTMENTS, {"transaction_id": pending.transaction_id})
                investment = found[0] if found else None
            if investment is None:
                investment = self.store.insert(INVESTMENTS, pending.as_record())
        except (PersistenceError, FetchError) as exc:
            logger.error("Payment %s confirmed but not recorded: %s", pending.transaction_id, exc)
            raise PersistenceError(
                f"Payment {pending.transaction_id} confirmed but the investment was not recorded: {exc}",
                pending=pending, stage=PersistenceError.INVESTMENT,
            ) from exc

        try:
            status, total = self._apply_funding(pending.idea_id)
        except (PersistenceError, FetchError) as exc:
            logger.error("Investment %s recorded but idea %s status not updated: %s",
                         pending.transaction_id, pending.idea_id, exc)
            raise PersistenceError(
                f"Investment {pending.transaction_id} recorded but the idea status was not updated: {exc}",
                pending=pending, stage=PersistenceError.STATUS,
            ) from exc

        return InvestmentOutcome(
            investment=investment,
            share_percentage=investment.share_percentage,
            status=status,
            total_invested=total,
        )

    def _apply_funding(self, idea_id):
        idea = self.store.get(IDEAS, idea_id)
        total = self.total_invested(idea_id)
        if idea.status == Idea.OPEN and total >= idea.money_needed:
            if self.store.update(IDEAS, idea_id, {"status": Idea.FUNDED}, expect={"status": Idea.OPEN}):
                logger.info("Idea %s funded: %s of %s", idea_id, total, idea.money_needed)
                return Idea.FUNDED, total
            return self._current_status(idea_id), total
        return idea.status, total

    def _current_status(self, idea_id):
        return self.store.get(IDEAS, idea_id).status
