"""Model manager — lifecycle of named data models and the active-model pointer.

The process-wide *active model* is owned here: absent at startup, set by
``use_model()``, cleared when the active model is deleted or purged.
Operations that read a model for a while take a lease with
``using()``; a leased model cannot be deleted.

    with model_manager.using() as model:       # the active model
        for row in model_manager.rows(model.name, prefix="organization/1"):
            ...

All state is guarded by one re-entrant lock. Imports themselves run
outside the lock; the set of names being imported in this process keeps
two local imports into one name from racing, and the database's unique
constraint on the model name catches the rest.
"""
from __future__ import annotations

import logging
import threading
from collections import Counter
from contextlib import contextmanager
from typing import Iterable, Iterator

from django.db import transaction
from django.db.models import Q, QuerySet

from .exceptions import ModelInUse, ModelNotFound, ModelNotReady, NameAlreadyInUse
from .importer import ModelImporter
from .models import DataModel, ModelResourceRow

logger = logging.getLogger("apps.inventory.manager")


class ModelManager:
    def __init__(self, importer: ModelImporter | None = None):
        self._importer = importer
        self._lock = threading.RLock()
        self._active: str | None = None
        self._leases: Counter[str] = Counter()
        self._importing: set[str] = set()

    @property
    def importer(self) -> ModelImporter:
        if self._importer is None:
            self._importer = ModelImporter()
        return self._importer

    # ── Lifecycle ─────────────────────────────────────────────────────

    def create_model(self, name: str, index_id: int, description: str = "") -> DataModel:
        """
        Import ``index_id`` into a new model called ``name``.

        Raises:
            ValueError: If ``name`` is empty or contains ``/``.
            NameAlreadyInUse: If the name exists or is being imported.
            and whatever ``ModelImporter.import_model`` raises.
        """
        name = (name or "").strip()
        if not name or "/" in name:
            raise ValueError(f"Invalid model name {name!r}")

        with self._lock:
            if name in self._importing or DataModel.objects.filter(name=name).exists():
                raise NameAlreadyInUse(name)
            self._importing.add(name)

        try:
            return self.importer.import_model(index_id, name, description=description)
        finally:
            with self._lock:
                self._importing.discard(name)

    def use_model(self, name: str) -> DataModel:
        """
        Make ``name`` the active model.

        Raises:
            ModelNotFound: If it does not exist.
            ModelNotReady: If it is still being built.
        """
        with self._lock:
            model = self.get_model(name)
            if not model.is_ready:
                raise ModelNotReady(name)
            previous, self._active = self._active, model.name
        logger.info("Active model is now %r (was %r)", model.name, previous)
        return model

    def delete_model(self, name: str) -> int:
        """
        Delete a model and all its rows atomically. Returns the number of rows removed.

        Deleting the active model clears the active pointer.

        Raises:
            ModelNotFound: If it does not exist.
            ModelInUse: While it is leased through ``using()`` or still being built.
        """
        with self._lock:
            if self._leases[name]:
                raise ModelInUse(name, f"{self._leases[name]} operation(s) in flight")
            if name in self._importing:
                raise ModelInUse(name, "import in progress")

            with transaction.atomic():
                model = DataModel.objects.select_for_update().filter(name=name).first()
                if model is None:
                    raise ModelNotFound(name)
                if model.status == DataModel.Status.BUILDING:
                    raise ModelInUse(name, "still building")
                rows = ModelResourceRow.objects.filter(model=model).delete()[0]
                model.delete()

            if self._active == name:
                self._active = None
                logger.info("Active model %r deleted; no model is active", name)

        logger.info("Deleted model %r (%d rows)", name, rows)
        return rows

    # ── Active model & leases ─────────────────────────────────────────

    def active_model(self) -> DataModel | None:
        with self._lock:
            if self._active is None:
                return None
            model = DataModel.objects.filter(name=self._active).first()
            if model is None:
                # Removed by another process.
                self._active = None
            return model

    @contextmanager
    def using(self, name: str | None = None) -> Iterator[DataModel]:
        """Lease a model (the active one by default) for the duration of the block."""
        with self._lock:
            model = self._resolve(name)
            if not model.is_ready:
                raise ModelNotReady(model.name)
            self._leases[model.name] += 1
        try:
            yield model
        finally:
            with self._lock:
                self._leases[model.name] -= 1
                if self._leases[model.name] <= 0:
                    del self._leases[model.name]

    def leased(self, names: Iterable[str]) -> list[str]:
        """Which of ``names`` are leased or being imported in this process."""
        with self._lock:
            return sorted(n for n in names if self._leases[n] or n in self._importing)

    def forget(self, names: Iterable[str]) -> None:
        """Drop process state for models removed elsewhere (e.g. by a purge)."""
        with self._lock:
            if self._active in set(names):
                logger.info("Active model %r was purged; no model is active", self._active)
                self._active = None

    # ── Queries ───────────────────────────────────────────────────────

    def get_model(self, name: str) -> DataModel:
        try:
            return DataModel.objects.get(name=name)
        except DataModel.DoesNotExist:
            raise ModelNotFound(name) from None

    def list_models(self) -> QuerySet:
        return DataModel.objects.all()

    def rows(
        self,
        name: str | None = None,
        prefix: str | None = None,
        resource_type: str | None = None,
    ) -> QuerySet:
        """
        Rows of a model (the active one by default), ordered by full name.

        ``prefix`` selects a subtree: the row named ``prefix`` and every row
        beneath it. ``organization/1/project/p1`` matches
        ``organization/1/project/p1/image/img1`` but not
        ``organization/1/project/p10``.
        """
        model = self._resolve(name)
        queryset = ModelResourceRow.objects.filter(model=model)
        if prefix:
            prefix = prefix.strip("/")
            queryset = queryset.filter(Q(full_name=prefix) | Q(full_name__startswith=f"{prefix}/"))
        if resource_type:
            queryset = queryset.filter(resource_type=resource_type)
        return queryset.order_by("full_name")

    def children(self, full_name: str, name: str | None = None) -> QuerySet:
        model = self._resolve(name)
        return ModelResourceRow.objects.filter(
            model=model, parent_full_name=full_name.strip("/")
        ).order_by("full_name")

    def _resolve(self, name: str | None) -> DataModel:
        if name:
            return self.get_model(name)
        model = self.active_model()
        if model is None:
            raise ModelNotFound(None, "No data model is active")
        return model

    def reset(self) -> None:
        """Clear all process state. Primarily for testing."""
        with self._lock:
            self._active = None
            self._leases.clear()
            self._importing.clear()


# Module-level singleton
model_manager = ModelManager()
