"""Errors raised by the inventory store, the model importer and the model manager.

The REST API maps ``NotFound`` subclasses to 404 and ``Conflict``
subclasses to 409; anything else surfaces as a server error.
"""
from __future__ import annotations

from inventory_crawler.errors import UnknownType


class InventoryError(Exception):
    """Base class for inventory service errors."""


class NotFound(InventoryError):
    """The addressed index or model does not exist."""


class Conflict(InventoryError):
    """The operation conflicts with the current state of an index or model."""


# ── Inventory store ──────────────────────────────────────────────────


class StorageWriteError(InventoryError):
    """A resource could not be written to its index."""

    def __init__(self, index_id: int, resource_ref: str, message: str = ""):
        self.index_id = index_id
        self.resource_ref = resource_ref
        super().__init__(message or f"Failed to store {resource_ref} in index {index_id}")


class IndexNotFound(NotFound):
    def __init__(self, index_id):
        self.index_id = index_id
        super().__init__(f"Inventory index {index_id} does not exist")


class AlreadyCompleted(Conflict):
    def __init__(self, index_id, status: str = ""):
        self.index_id = index_id
        self.status = status
        super().__init__(f"Inventory index {index_id} is already completed ({status})")


class IndexNotComplete(Conflict):
    def __init__(self, index_id, status: str = ""):
        self.index_id = index_id
        self.status = status
        super().__init__(f"Inventory index {index_id} cannot be imported while {status}")


class IndexInUse(Conflict):
    def __init__(self, index_id, reason: str = ""):
        self.index_id = index_id
        super().__init__(f"Inventory index {index_id} is in use" + (f": {reason}" if reason else ""))


class PurgeError(InventoryError):
    """A purge was aborted by a database error; earlier indexes stay purged."""

    def __init__(self, purged: int, attempted: int, message: str = ""):
        self.purged = purged
        self.attempted = attempted
        super().__init__(
            message or f"Purge aborted after removing {purged} of {attempted} indexes"
        )


# ── Data models ──────────────────────────────────────────────────────


class NameAlreadyInUse(Conflict):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"A data model named {name!r} already exists")


class UnknownResourceType(InventoryError, UnknownType):
    """An index holds a resource type that cannot be imported into a model."""

    def __init__(self, type_name: str, message: str | None = None):
        UnknownType.__init__(
            self,
            type_name,
            message or f"Resource type {type_name!r} is not registered for model import",
        )


class OrphanResource(InventoryError):
    """A stored resource's parent is neither a crawl root nor another resource of the index."""

    def __init__(self, resource_ref: str, parent_ref: str | None):
        self.resource_ref = resource_ref
        self.parent_ref = parent_ref
        super().__init__(f"{resource_ref} references missing parent {parent_ref}")


class ModelNotFound(NotFound):
    def __init__(self, name: str | None, message: str | None = None):
        self.name = name
        super().__init__(message or f"Data model {name!r} does not exist")


class ModelNotReady(Conflict):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Data model {name!r} is still being built")


class ModelInUse(Conflict):
    def __init__(self, name: str, reason: str = ""):
        self.name = name
        super().__init__(f"Data model {name!r} is in use" + (f": {reason}" if reason else ""))
