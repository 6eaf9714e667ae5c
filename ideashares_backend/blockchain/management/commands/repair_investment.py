# ideashares_backend/blockchain/management/commands/repair_investment.py
from datetime import datetime, timezone as dt_timezone

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from blockchain.exceptions import TransactionFailed
from blockchain.gateway import LedgerGateway, connect
from ideas.exceptions import IdeaNotFound, InvalidAmount, PersistenceError
from ideas.funding import FundingEngine, PendingInvestment, compute_share_percentage, parse_amount
from ideas.store import IDEAS


class Command(BaseCommand):
    help = "Record an investment whose payment confirmed but was never saved (no payment is made)"

    def add_arguments(self, parser):
        parser.add_argument("idea_id", type=int)
        parser.add_argument("transaction_id")
        parser.add_argument("investor_address")
        parser.add_argument("amount")
        parser.add_argument("--invested-at", help="ISO timestamp of the original attempt")
        parser.add_argument("--skip-ledger-check", action="store_true",
                            help="do not look the transaction up on the ledger first")

    def handle(self, *args, **options):
        tx_id = options["transaction_id"]
        try:
            amount = parse_amount(options["amount"])
        except InvalidAmount as e:
            raise CommandError(str(e))

        invested_at = timezone.now()
        if options["invested_at"]:
            invested_at = datetime.fromisoformat(options["invested_at"])
            if timezone.is_naive(invested_at):
                invested_at = timezone.make_aware(invested_at, dt_timezone.utc)

        gateway = None
        if not options["skip_ledger_check"]:
            gateway = LedgerGateway.from_settings(connect())
            try:
                receipt = gateway.get_confirmed_payment(tx_id)
            except TransactionFailed as e:
                raise CommandError(f"Refusing to record {tx_id}: {e}")
            self.stdout.write(f"🔍 {tx_id} confirmed in block {receipt['blockNumber']}")

        engine = FundingEngine.from_settings(gateway=gateway)
        idea = engine.store.get(IDEAS, options["idea_id"])
        if idea is None:
            raise CommandError(f"Idea {options['idea_id']} does not exist")

        pending = PendingInvestment(
            idea_id=idea.pk,
            investor_address=options["investor_address"],
            amount=amount,
            share_percentage=compute_share_percentage(amount, idea.money_needed),
            transaction_id=tx_id,
            invested_at=invested_at,
        )
        try:
            outcome = engine.repair(pending)
        except (IdeaNotFound, PersistenceError) as e:
            raise CommandError(str(e))

        self.stdout.write(
            f"✅ Investment {tx_id} recorded: {outcome.share_percentage}% of {idea.title}, idea is {outcome.status}"
        )
