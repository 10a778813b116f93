"""Exceptions raised by the resource type registry, API clients and the crawler.

Recoverable errors (``ApiEnumerationError``, ``MalformedPayload``) are
caught by the crawler, counted and logged; they never abort a crawl.
Everything else is fatal to the operation that raised it.
"""
from __future__ import annotations


class InventoryCrawlerError(Exception):
    """Base class for all crawler package errors."""


class RegistryIntegrityError(InventoryCrawlerError):
    """The resource type registry references unknown types or contains a cycle."""


class UnknownType(InventoryCrawlerError, LookupError):
    """A resource type name is not registered."""

    def __init__(self, type_name: str, message: str | None = None):
        self.type_name = type_name
        super().__init__(message or f"Unknown resource type: {type_name!r}")


class ApiEnumerationError(InventoryCrawlerError):
    """Listing one resource type under one parent failed (API error, permission denied, ...)."""

    def __init__(self, resource_type: str, parent_ref: str | None, message: str = ""):
        self.resource_type = resource_type
        self.parent_ref = parent_ref
        super().__init__(
            message or f"Failed to enumerate {resource_type} under {parent_ref or '(root)'}"
        )


class MalformedPayload(InventoryCrawlerError, ValueError):
    """A raw API payload could not be turned into a Resource."""

    def __init__(self, resource_type: str, message: str):
        self.resource_type = resource_type
        super().__init__(f"{resource_type}: {message}")


class RootUnreachableError(InventoryCrawlerError):
    """A configured crawl root could not be fetched. Fatal to the crawl."""

    def __init__(self, root_id: str, message: str = ""):
        self.root_id = root_id
        super().__init__(message or f"Cannot reach crawl root {root_id!r}")
