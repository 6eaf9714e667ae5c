# ideas/feed.py
import logging
import threading

from .exceptions import FundingError
from .store import IDEAS, INVESTMENTS

logger = logging.getLogger(__name__)


class IdeaFeed:
    """Read-through cache of every idea, newest first.

    Each refresh re-reads the whole collection and reconciles expiry through
    the funding engine, so it is safe to run on any notification in any
    order. The store stays the only source of truth.
    """

    def __init__(self, store, engine):
        self.store = store
        self.engine = engine
        self.ideas = []
        self._listeners = []
        self._error_listeners = []
        self._unsubscribers = []
        self._lock = threading.Lock()
        self._refreshing = False
        self._stale = False

    def add_listener(self, callback, on_error=None):
        self._listeners.append(callback)
        if on_error is not None:
            self._error_listeners.append(on_error)

    def refresh(self):
        with self._lock:
            if self._refreshing:
                # a change landed mid-refresh, re-entrant or from another thread
                self._stale = True
                return self.ideas
            self._refreshing = True
        try:
            while True:
                with self._lock:
                    self._stale = False
                ideas = self.store.query(IDEAS, order=["-created_at"])
                ideas = [self.engine.reconcile_expiry(idea) for idea in ideas]
                with self._lock:
                    if not self._stale:
                        self._refreshing = False
                        break
        except BaseException:
            with self._lock:
                self._refreshing = False
            raise

        self.ideas = ideas
        logger.debug("Feed refreshed: %d ideas", len(ideas))
        for callback in self._listeners:
            callback(ideas)
        return ideas

    def start(self):
        if self._unsubscribers:
            return
        for collection in (IDEAS, INVESTMENTS):
            self._unsubscribers.append(self.store.subscribe(collection, self._on_change))
        self.refresh()

    def stop(self):
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _on_change(self):
        # a failed refresh must not fail the write that notified us
        try:
            self.refresh()
        except FundingError as exc:
            logger.warning("Feed refresh failed, keeping %d cached ideas: %s", len(self.ideas), exc)
            for callback in self._error_listeners:
                callback(exc)
