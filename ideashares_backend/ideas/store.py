# ideas/store.py
"""Record store over the ``ideas`` and ``investments`` collections.

A thin collection-oriented facade over the ORM so the funding engine and the
feed never touch querysets directly. Every write emits ``record_changed``;
``subscribe`` hooks a zero-argument callback onto that signal for one
collection.
"""
import itertools
import logging

from django.db import DatabaseError, transaction
from django.db.models import Sum
from django.db.models.signals import post_save
from django.dispatch import Signal, receiver

from .exceptions import FetchError, PersistenceError
from .models import Idea, Investment

logger = logging.getLogger(__name__)

IDEAS = "ideas"
INVESTMENTS = "investments"

COLLECTIONS = {
    IDEAS: Idea,
    INVESTMENTS: Investment,
}

# kwargs: collection, record_id
record_changed = Signal()

_subscription_ids = itertools.count(1)


@receiver(post_save, sender=Idea, dispatch_uid="ideas.store.idea_saved")
@receiver(post_save, sender=Investment, dispatch_uid="ideas.store.investment_saved")
def _emit_on_save(sender, instance, **kwargs):
    # covers ORM saves made outside the store (admin, shell)
    collection = IDEAS if sender is Idea else INVESTMENTS
    record_changed.send(sender=RecordStore, collection=collection, record_id=instance.pk)


class RecordStore:

    def model_for(self, collection):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection {collection!r}") from None

    def insert(self, collection, record):
        model = self.model_for(collection)
        try:
            with transaction.atomic():
                return model.objects.create(**record)
        except DatabaseError as exc:
            raise PersistenceError(f"Insert into {collection} failed: {exc}") from exc

    def get(self, collection, record_id, for_update=False):
        """Return one record or ``None``.

        ``for_update`` takes a row lock and must be called inside
        ``transaction.atomic()``.
        """
        model = self.model_for(collection)
        qs = model.objects.filter(pk=record_id)
        if for_update:
            qs = qs.select_for_update()
        try:
            return qs.first()
        except DatabaseError as exc:
            raise FetchError(f"Read from {collection} failed: {exc}") from exc

    def query(self, collection, filter=None, order=None):
        model = self.model_for(collection)
        qs = model.objects.filter(**(filter or {}))
        if order:
            qs = qs.order_by(*order)
        try:
            return list(qs)
        except DatabaseError as exc:
            raise FetchError(f"Query on {collection} failed: {exc}") from exc

    def aggregate_sum(self, collection, field, filter=None):
        model = self.model_for(collection)
        try:
            total = model.objects.filter(**(filter or {})).aggregate(total=Sum(field))["total"]
        except DatabaseError as exc:
            raise FetchError(f"Sum over {collection}.{field} failed: {exc}") from exc
        return total

    def update(self, collection, record_id, patch, expect=None):
        """Apply ``patch`` to one record.

        ``expect`` is a field filter the row must still match; the check and
        the write are a single UPDATE statement. Returns whether a row changed.
        """
        model = self.model_for(collection)
        try:
            with transaction.atomic():
                changed = model.objects.filter(pk=record_id, **(expect or {})).update(**patch)
        except DatabaseError as exc:
            raise PersistenceError(f"Update of {collection} {record_id} failed: {exc}") from exc
        if changed:
            record_changed.send(sender=RecordStore, collection=collection, record_id=record_id)
        return bool(changed)

    def subscribe(self, collection, on_change):
        self.model_for(collection)
        uid = f"ideas.store.subscription.{next(_subscription_ids)}"

        wanted = collection

        def handler(sender, collection=None, **kwargs):
            if collection == wanted:
                on_change()

        record_changed.connect(handler, weak=False, dispatch_uid=uid)
        logger.debug("Subscribed %s to %s changes", uid, collection)

        def unsubscribe():
            record_changed.disconnect(dispatch_uid=uid)

        return unsubscribe
