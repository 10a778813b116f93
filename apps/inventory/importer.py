"""Model importer — materialize one inventory index as a named data model.

Import runs in two phases:

1. Under a row lock on the index: check the index is importable, check
   every resource type in it (roots included) has a converter, and create
   the ``DataModel`` record as ``BUILDING``. The unique model name is what
   serializes concurrent imports into the same name.
2. In one transaction: write the root rows, then the resources type by
   type in the registry's dependency order. Each row's full name is its
   parent's full name plus ``/<type>/<key>``; parents are always written
   before their children.

If phase 2 fails, its rows roll back and the ``BUILDING`` record is
deleted before the error is re-raised, so a failed import leaves nothing
behind.
"""
from __future__ import annotations

import logging
from typing import Iterable, Iterator

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from inventory_crawler import ResourceTypeDescriptor, ResourceTypeRegistry

from .exceptions import (
    IndexNotComplete,
    IndexNotFound,
    NameAlreadyInUse,
    OrphanResource,
    UnknownResourceType,
)
from .models import DataModel, InventoryIndex, InventoryResource, ModelResourceRow

logger = logging.getLogger("apps.inventory.importer")


class ModelImporter:
    def __init__(self, registry: ResourceTypeRegistry | None = None, batch_size: int | None = None):
        self._registry = registry
        if batch_size is None:
            batch_size = getattr(settings, "INVENTORY_IMPORT_BATCH_SIZE", 500)
        self.batch_size = max(1, int(batch_size))

    @property
    def registry(self) -> ResourceTypeRegistry:
        if self._registry is None:
            from .collector import get_registry

            self._registry = get_registry()
        return self._registry

    def import_model(self, index_id: int, name: str, description: str = "") -> DataModel:
        """
        Import ``index_id`` as a model called ``name`` and return it.

        Raises:
            IndexNotFound: If the index does not exist.
            IndexNotComplete: Unless the index is SUCCESS or PARTIAL_SUCCESS.
            NameAlreadyInUse: If a model called ``name`` exists.
            UnknownResourceType: If the index holds a type without a converter.
            OrphanResource: If a resource's parent is missing from the index.
        """
        model, index = self._begin(index_id, name, description)

        try:
            with transaction.atomic():
                row_count = self._write_rows(model, index)
                model.status = DataModel.Status.SUCCESS
                model.row_count = row_count
                model.completed_at = timezone.now()
                model.save(update_fields=["status", "row_count", "completed_at"])
        except Exception:
            logger.warning("Import of index %s into model %r failed; discarding it", index_id, name)
            DataModel.objects.filter(pk=model.pk).delete()
            raise

        logger.info("Imported index %s into model %r: %d rows", index_id, name, row_count)
        return model

    # ── Phase 1 ───────────────────────────────────────────────────────

    def _begin(self, index_id: int, name: str, description: str) -> tuple[DataModel, InventoryIndex]:
        with transaction.atomic():
            index = InventoryIndex.objects.select_for_update().filter(pk=index_id).first()
            if index is None:
                raise IndexNotFound(index_id)
            if not index.is_importable:
                raise IndexNotComplete(index_id, index.status)

            self._check_types(index)

            try:
                with transaction.atomic():
                    model = DataModel.objects.create(
                        name=name,
                        source_index=index,
                        status=DataModel.Status.BUILDING,
                        description=description,
                    )
            except IntegrityError:
                raise NameAlreadyInUse(name) from None

        logger.debug("Building model %r from index %s", name, index_id)
        return model, index

    def _check_types(self, index: InventoryIndex) -> None:
        present = set(
            InventoryResource.objects.filter(index=index)
            .order_by()
            .values_list("resource_type", flat=True)
            .distinct()
        )
        present.update(root["type"] for root in index.roots or [])

        unknown = sorted(present - self.registry.model_eligible_types())
        if unknown:
            raise UnknownResourceType(
                unknown[0],
                f"Index {index.pk} holds resource types that cannot be imported: {', '.join(unknown)}",
            )

    # ── Phase 2 ───────────────────────────────────────────────────────

    def _write_rows(self, model: DataModel, index: InventoryIndex) -> int:
        full_names: dict[str, str] = {}
        batch: list[ModelResourceRow] = []
        written = 0

        def add(row: ModelResourceRow) -> None:
            nonlocal written
            batch.append(row)
            if len(batch) >= self.batch_size:
                ModelResourceRow.objects.bulk_create(batch)
                written += len(batch)
                batch.clear()

        for root in index.roots or []:
            descriptor = self.registry.describe(root["type"])
            full_name = f"{root['type']}/{root['key']}"
            full_names[full_name] = full_name
            add(
                ModelResourceRow(
                    model=model,
                    full_name=full_name,
                    resource_type=root["type"],
                    key=root["key"],
                    parent_full_name=None,
                    display_name=root.get("display_name", ""),
                    display_fields=descriptor.display_fields(root.get("data", {})),
                    data=root.get("data", {}),
                )
            )

        for type_name in self.registry.dependency_order():
            descriptor = self.registry.describe(type_name)
            resources = InventoryResource.objects.filter(
                index=index, resource_type=type_name
            ).order_by("id")
            for resource, parent_full_name in self._resolve(descriptor, resources.iterator(), full_names):
                full_name = f"{parent_full_name}/{resource.ref}"
                full_names[resource.ref] = full_name
                add(
                    ModelResourceRow(
                        model=model,
                        full_name=full_name,
                        resource_type=type_name,
                        key=resource.key,
                        parent_full_name=parent_full_name,
                        display_name=resource.display_name,
                        display_fields=descriptor.display_fields(resource.data),
                        data=resource.data,
                        source_resource_id=resource.pk,
                    )
                )

        if batch:
            ModelResourceRow.objects.bulk_create(batch)
            written += len(batch)
        return written

    @staticmethod
    def _resolve(
        descriptor: ResourceTypeDescriptor,
        resources: Iterable[InventoryResource],
        full_names: dict[str, str],
    ) -> Iterator[tuple[InventoryResource, str]]:
        """
        Pair each resource with its parent's full name, parents first.

        The caller records each yielded resource's full name before
        resuming. A type nested in itself (folders in folders) is resolved
        in passes until no resource is left waiting on a sibling.
        """
        pending = resources
        while True:
            waiting = []
            for resource in pending:
                parent_full_name = full_names.get(resource.parent_ref)
                if parent_full_name is None:
                    waiting.append(resource)
                    continue
                yield resource, parent_full_name

            if not waiting:
                return
            nested = descriptor.name in descriptor.parent_types
            if not nested or (isinstance(pending, list) and len(waiting) == len(pending)):
                orphan = waiting[0]
                raise OrphanResource(orphan.ref, orphan.parent_ref)
            pending = waiting
