# ideashares_backend/blockchain/management/commands/watch_ideas.py
import time

from django.conf import settings
from django.core.management.base import BaseCommand

from ideas.exceptions import FundingError
from ideas.feed import IdeaFeed
from ideas.funding import FundingEngine
from ideas.store import RecordStore


class Command(BaseCommand):
    help = "Keep the idea feed reconciled: expire overdue ideas and report status changes"

    def add_arguments(self, parser):
        parser.add_argument("--interval", type=int, default=None,
                            help="seconds between refreshes (default POLL_INTERVAL)")
        parser.add_argument("--once", action="store_true", help="refresh once and exit")

    def handle(self, *args, **options):
        interval = options["interval"] or settings.POLL_INTERVAL

        store = RecordStore()
        feed = IdeaFeed(store, FundingEngine.from_settings(store))
        last_status = {}

        def report(ideas):
            for idea in ideas:
                previous = last_status.get(idea.pk)
                if previous is not None and previous != idea.status:
                    self.stdout.write(f"🔄 {idea.title}: {previous} → {idea.status}")
                last_status[idea.pk] = idea.status

        feed.add_listener(report)

        try:
            feed.start()
        except FundingError as e:
            return self.stderr.write(f"❌ Initial refresh failed: {e}")

        counts = {}
        for idea in feed.ideas:
            counts[idea.status] = counts.get(idea.status, 0) + 1
        summary = ", ".join(f"{n} {s}" for s, n in sorted(counts.items())) or "no ideas"
        self.stdout.write(f"📦 {len(feed.ideas)} ideas ({summary})")

        if options["once"]:
            feed.stop()
            return

        self.stdout.write(f"▶️ Refreshing every {interval}s")
        try:
            while True:
                time.sleep(interval)
                try:
                    feed.refresh()
                except FundingError as e:
                    # keep the last view and retry next loop
                    self.stderr.write(f"⚠️ Refresh failed: {e}")
        finally:
            feed.stop()
