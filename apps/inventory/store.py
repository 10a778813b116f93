"""Inventory store — index lifecycle, resource persistence and purge.

An index is opened with ``begin_index()``, receives resources through
``store_resource()`` while it is ``RUNNING``, and is closed exactly once
with ``complete_index()``. Completed indexes are immutable; they leave the
database only as a whole, through ``purge()`` or ``delete_index()``.

Each ``store_resource()`` call is its own (savepoint-wrapped) write, so a
failed insert never poisons the rows stored before it. Index ids come from
the database sequence and are therefore unique and increasing across
processes.
"""
from __future__ import annotations

import json
import logging
from datetime import timedelta
from typing import Iterable, Iterator

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError, transaction
from django.utils import timezone

from inventory_crawler import CrawlStats, Resource

from .exceptions import (
    AlreadyCompleted,
    IndexInUse,
    IndexNotFound,
    PurgeError,
    StorageWriteError,
)
from .models import DataModel, InventoryIndex, InventoryResource, ModelResourceRow

logger = logging.getLogger("apps.inventory.store")


def json_safe(data) -> dict:
    """
    A plain-JSON copy of a payload. Dates, decimals and UUIDs become strings;
    anything else the encoder does not know raises ``TypeError``.
    """
    return json.loads(json.dumps(dict(data), cls=DjangoJSONEncoder))


def root_record(resource: Resource) -> dict:
    """The JSON form a crawl root is recorded in on its index."""
    return {
        "type": resource.type,
        "key": resource.key,
        "display_name": resource.display_name,
        "data": json_safe(resource.data),
    }


class InventoryStore:
    def __init__(self, max_recorded_errors: int | None = None):
        if max_recorded_errors is None:
            max_recorded_errors = getattr(settings, "INVENTORY_MAX_RECORDED_ERRORS", 100)
        self.max_recorded_errors = max_recorded_errors

    # ── Index lifecycle ───────────────────────────────────────────────

    def begin_index(self, root_ids: Iterable[str] = ()) -> InventoryIndex:
        index = InventoryIndex.objects.create(
            status=InventoryIndex.Status.RUNNING,
            root_ids=list(root_ids),
        )
        logger.info("Opened inventory index %s for %s", index.pk, ", ".join(index.root_ids) or "(no roots)")
        return index

    def store_resource(self, index_id: int, resource: Resource) -> InventoryResource:
        """
        Append one resource to a running index.

        The index row is locked for the insert, so nothing is added once
        ``complete_index()`` has counted the rows.

        Raises:
            StorageWriteError: If the row cannot be written (database error,
                duplicate identity, a payload that is not JSON-serializable,
                or an index that is missing or no longer running).
        """
        try:
            with transaction.atomic():
                status = (
                    InventoryIndex.objects.select_for_update()
                    .filter(pk=index_id)
                    .values_list("status", flat=True)
                    .first()
                )
                if status != InventoryIndex.Status.RUNNING:
                    raise StorageWriteError(
                        index_id,
                        resource.ref,
                        f"Cannot store {resource.ref}: index {index_id} is "
                        f"{status or 'missing'}, not RUNNING",
                    )
                return InventoryResource.objects.create(
                    index_id=index_id,
                    key=resource.key,
                    resource_type=resource.type,
                    parent_type=resource.parent_type,
                    parent_key=resource.parent_key,
                    display_name=resource.display_name[:512],
                    data=json_safe(resource.data),
                )
        except (DatabaseError, TypeError, ValueError) as exc:
            raise StorageWriteError(
                index_id,
                resource.ref,
                f"Failed to store {resource.ref} in index {index_id}: {exc}",
            ) from exc

    def complete_index(
        self,
        index_id: int,
        status: str,
        *,
        stats: CrawlStats | None = None,
        roots: Iterable[Resource] | None = None,
        error_message: str = "",
        result_traceback: str = "",
    ) -> InventoryIndex:
        """
        Close a running index with its final status and counters.

        ``resource_count`` is always the number of rows actually stored.

        Raises:
            IndexNotFound: If the index does not exist.
            AlreadyCompleted: If the index was already completed.
        """
        if status == InventoryIndex.Status.RUNNING:
            raise ValueError("An index cannot be completed as RUNNING")

        with transaction.atomic():
            index = self._lock(index_id)
            if index.is_terminal:
                raise AlreadyCompleted(index_id, index.status)

            index.status = status
            index.completed_at = timezone.now()
            index.resource_count = index.resources.count()
            if stats is not None:
                index.error_count = stats.error_count
                index.errors = [e.as_dict() for e in stats.errors[: self.max_recorded_errors]]
            if roots is not None:
                index.roots = [root_record(root) for root in roots]
            index.error_message = error_message[:2000]
            index.result_traceback = result_traceback[:8000]
            index.save()

        logger.info(
            "Completed inventory index %s: status=%s resources=%d errors=%d",
            index.pk,
            index.status,
            index.resource_count,
            index.error_count,
        )
        return index

    # ── Reads ─────────────────────────────────────────────────────────

    def get_index(self, index_id: int) -> InventoryIndex:
        try:
            return InventoryIndex.objects.get(pk=index_id)
        except InventoryIndex.DoesNotExist:
            raise IndexNotFound(index_id) from None

    def list_indexes(self, status: str | None = None):
        queryset = InventoryIndex.objects.all()
        if status:
            queryset = queryset.filter(status=status)
        return queryset

    def iter_resources(
        self, index_id: int, resource_type: str | None = None, chunk_size: int = 2000
    ) -> Iterator[InventoryResource]:
        """Stream the resources of one index, optionally of one type, in storage order."""
        if not InventoryIndex.objects.filter(pk=index_id).exists():
            raise IndexNotFound(index_id)
        queryset = InventoryResource.objects.filter(index_id=index_id)
        if resource_type:
            queryset = queryset.filter(resource_type=resource_type)
        return queryset.order_by("id").iterator(chunk_size=chunk_size)

    # ── Removal ───────────────────────────────────────────────────────

    def purge(self, retention_days: float = 0, now=None) -> int:
        """
        Remove every completed index whose completion is at least
        ``retention_days`` old, with its resources and every model built
        from it. Returns the number of indexes purged.

        Each index goes in its own transaction. Running indexes, indexes
        with a model import in flight and indexes whose models are leased
        are left alone.

        Raises:
            PurgeError: On a database error. Indexes purged before the error
                stay purged; ``purged``/``attempted`` report how far it got.
        """
        now = now or timezone.now()
        cutoff = now - timedelta(days=retention_days)
        candidates = list(
            InventoryIndex.objects.exclude(status=InventoryIndex.Status.RUNNING)
            .filter(completed_at__isnull=False, completed_at__lte=cutoff)
            .order_by("id")
            .values_list("id", flat=True)
        )

        purged = 0
        for attempted, index_id in enumerate(candidates, start=1):
            try:
                if self._purge_one(index_id, cutoff):
                    purged += 1
            except DatabaseError as exc:
                logger.exception("Purge aborted at inventory index %s", index_id)
                raise PurgeError(
                    purged,
                    attempted,
                    f"Purge aborted at index {index_id} after removing {purged} of "
                    f"{attempted} indexes: {exc}",
                ) from exc

        logger.info(
            "Purged %d of %d inventory indexes completed on or before %s",
            purged,
            len(candidates),
            cutoff.isoformat(),
        )
        return purged

    def _purge_one(self, index_id: int, cutoff) -> bool:
        from .manager import model_manager

        with transaction.atomic():
            index = InventoryIndex.objects.select_for_update().filter(pk=index_id).first()
            if index is None:
                return False
            # Re-checked under the row lock.
            if not index.is_terminal or index.completed_at is None or index.completed_at > cutoff:
                return False

            dependents = list(index.data_models.values_list("name", "status"))
            if any(status == DataModel.Status.BUILDING for _, status in dependents):
                logger.info("Skipping index %s: a model import from it is in flight", index_id)
                return False
            names = [name for name, _ in dependents]
            leased = model_manager.leased(names)
            if leased:
                logger.info("Skipping index %s: models in use: %s", index_id, ", ".join(leased))
                return False

            rows = ModelResourceRow.objects.filter(model__source_index_id=index_id).delete()[0]
            DataModel.objects.filter(source_index_id=index_id).delete()
            resources = InventoryResource.objects.filter(index_id=index_id).delete()[0]
            index.delete()

        model_manager.forget(names)
        logger.info(
            "Purged inventory index %s (%d resources, %d models, %d model rows)",
            index_id,
            resources,
            len(names),
            rows,
        )
        return True

    def delete_index(self, index_id: int) -> int:
        """
        Delete one completed index and its resources. Returns the number of
        resources removed. Models built from it survive, detached.

        Raises:
            IndexNotFound: If the index does not exist.
            IndexInUse: While the crawl is running or a model import from it
                is in flight.
        """
        with transaction.atomic():
            index = self._lock(index_id)
            if not index.is_terminal:
                raise IndexInUse(index_id, "crawl is still running")
            if index.data_models.filter(status=DataModel.Status.BUILDING).exists():
                raise IndexInUse(index_id, "a model import from it is in flight")
            removed = InventoryResource.objects.filter(index_id=index_id).delete()[0]
            index.delete()

        logger.info("Deleted inventory index %s (%d resources)", index_id, removed)
        return removed

    @staticmethod
    def _lock(index_id: int) -> InventoryIndex:
        try:
            return InventoryIndex.objects.select_for_update().get(pk=index_id)
        except InventoryIndex.DoesNotExist:
            raise IndexNotFound(index_id) from None
