# ideashares_backend/blockchain/management/commands/invest.py
import os

from django.core.management.base import BaseCommand

from blockchain.exceptions import TransactionFailed
from blockchain.gateway import LedgerGateway, connect
from blockchain.session import session_from_key
from ideas.exceptions import FetchError, IdeaNotFound, PersistenceError, StoreUnavailable, ValidationError
from ideas.funding import FundingEngine


class Command(BaseCommand):
    help = "Pay into an idea from the wallet in INVESTOR_PRIVATE_KEY and record the investment"

    def add_arguments(self, parser):
        parser.add_argument("idea_id", type=int)
        parser.add_argument("amount", help="amount in display units, e.g. 12.5")

    def handle(self, *args, **options):
        key = os.getenv("INVESTOR_PRIVATE_KEY")
        if not key:
            return self.stderr.write("❌ INVESTOR_PRIVATE_KEY not set")

        w3 = connect()
        if not w3.is_connected():
            return self.stderr.write("❌ Could not connect to the ledger RPC")

        session = session_from_key(key)
        engine = FundingEngine.from_settings(gateway=LedgerGateway.from_settings(w3))
        self.stdout.write(f"🔗 Investing {options['amount']} into idea {options['idea_id']} from {session.address}")

        try:
            outcome = engine.invest(session, options["idea_id"], options["amount"])
        except (ValidationError, IdeaNotFound) as e:
            return self.stderr.write(f"❌ {e}")
        except (StoreUnavailable, FetchError) as e:
            return self.stderr.write(f"❌ No payment was made: {e}")
        except TransactionFailed as e:
            return self.stderr.write(f"❌ Payment failed, nothing was recorded: {e}")
        except PersistenceError as e:
            p = e.pending
            self.stderr.write(f"❌ {e}")
            if p is None:
                return self.stderr.write("   No payment was made.")
            self.stderr.write("   The payment went through. Do NOT pay again; record it with:")
            return self.stderr.write(
                f"   manage.py repair_investment {p.idea_id} {p.transaction_id} "
                f"{p.investor_address} {p.amount} --invested-at {p.invested_at.isoformat()}"
            )

        self.stdout.write(
            f"✅ Invested {outcome.investment.amount} (tx {outcome.investment.transaction_id}); "
            f"you now own {outcome.share_percentage:.2f}% share. Idea is {outcome.status}."
        )
