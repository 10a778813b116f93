"""Data contracts for resource types, discovered resources and crawl results.

This module is intentionally free of Django dependencies so that authors
of new resource types and API clients can develop and test them without
installing the inventory service.

A resource type is declared once, as a ``ResourceTypeDescriptor``:

    - ``parent_types``  types it may be discovered under
    - ``child_types``   types enumerated beneath it, in crawl order
    - ``construct``     turns a raw API payload into a ``Resource``
    - ``convert``       maps a raw payload onto display columns of a model
                        row (a type without a converter cannot be imported)

The inventory service's Django layer handles persistence; nothing here
touches a database.
"""
from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .errors import MalformedPayload

logger = logging.getLogger("inventory_crawler")

SYNTHETIC_KEY_LENGTH = 32


# ── Discovered resources ─────────────────────────────────────────────


@dataclass(frozen=True)
class Resource:
    """
    One discovered cloud entity.

    ``parent_type``/``parent_key`` are a back-reference used to rebuild the
    hierarchy, not ownership. Resources are immutable once constructed.
    """

    type: str
    key: str
    data: Mapping[str, Any] = field(default_factory=dict, compare=False)
    parent_type: str | None = None
    parent_key: str | None = None
    display_name: str = ""
    enabled_apis: frozenset[str] = frozenset()

    @property
    def ref(self) -> str:
        return f"{self.type}/{self.key}"

    @property
    def parent_ref(self) -> str | None:
        if self.parent_type is None:
            return None
        return f"{self.parent_type}/{self.parent_key}"

    def is_enabled(self, api: str) -> bool:
        """Whether ``api`` is enabled on this resource (gates child enumeration)."""
        return api in self.enabled_apis

    @classmethod
    def from_payload(
        cls,
        type_name: str,
        payload: Mapping[str, Any],
        parent: "Resource | None",
        *,
        key: Any,
        display_name: str = "",
        enabled_apis: Any = (),
    ) -> "Resource":
        if key is None or str(key) == "":
            raise MalformedPayload(type_name, "payload has no usable key")
        return cls(
            type=type_name,
            key=str(key),
            data=dict(payload),
            parent_type=parent.type if parent else None,
            parent_key=parent.key if parent else None,
            display_name=display_name or "",
            enabled_apis=frozenset(enabled_apis or ()),
        )


def synthetic_key(
    type_name: str,
    payload: Mapping[str, Any],
    fields: tuple[str, ...],
    parent: Resource | None = None,
) -> str:
    """
    Derive a deterministic key for a resource the provider assigns no id to.

    The key hashes the type, the parent reference and the listed payload
    fields, so re-crawling an unchanged resource yields the same key.
    """
    material = {
        "type": type_name,
        "parent": parent.ref if parent else None,
        "fields": {name: payload.get(name) for name in fields},
    }
    encoded = json.dumps(material, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()[:SYNTHETIC_KEY_LENGTH]


# ── Resource type descriptors ────────────────────────────────────────


Constructor = Callable[[Mapping[str, Any], Optional[Resource]], Resource]
Converter = Callable[[Mapping[str, Any]], dict]


@dataclass(frozen=True)
class ResourceTypeDescriptor:
    """
    Static declaration of a resource kind.

    Example::

        IMAGE = ResourceTypeDescriptor(
            name="image",
            collection="images",
            parent_types=("project",),
            construct=_construct_image,
            convert=_convert_image,
            requires_api="compute.googleapis.com",
        )
    """

    name: str
    collection: str
    construct: Constructor
    parent_types: tuple[str, ...] = ()
    child_types: tuple[str, ...] = ()
    convert: Converter | None = None
    requires_api: str | None = None
    key_fields: tuple[str, ...] = ()
    description: str = ""

    @property
    def model_eligible(self) -> bool:
        return self.convert is not None

    def build(self, payload: Any, parent: Resource | None) -> Resource:
        """Construct a Resource, normalizing every construction failure to ``MalformedPayload``."""
        if not isinstance(payload, Mapping):
            raise MalformedPayload(self.name, f"expected a mapping, got {type(payload).__name__}")
        try:
            resource = self.construct(payload, parent)
        except MalformedPayload:
            raise
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
            raise MalformedPayload(self.name, f"{type(exc).__name__}: {exc}") from exc
        if resource.type != self.name:
            raise MalformedPayload(
                self.name, f"constructor produced a {resource.type!r} resource"
            )
        return resource

    def display_fields(self, payload: Mapping[str, Any]) -> dict:
        if self.convert is None:
            return {}
        return self.convert(payload)

    def metadata(self) -> dict[str, Any]:
        """Return a metadata dict describing this resource type."""
        return {
            "name": self.name,
            "collection": self.collection,
            "parent_types": list(self.parent_types),
            "child_types": list(self.child_types),
            "requires_api": self.requires_api,
            "model_eligible": self.model_eligible,
            "synthetic_key_fields": list(self.key_fields),
            "description": self.description,
        }


# ── Crawl results ────────────────────────────────────────────────────


@dataclass
class CrawlError:
    """A recoverable error attributed to one (parent, resource type) pair."""

    resource_type: str
    parent: str | None
    kind: str
    error: str

    def as_dict(self) -> dict:
        return {
            "resource_type": self.resource_type,
            "parent": self.parent,
            "kind": self.kind,
            "error": self.error,
        }


@dataclass
class CrawlStats:
    """Summary statistics accumulated while a crawl runs."""

    discovered: int = 0
    skipped: int = 0
    cancelled: bool = False
    errors: list[CrawlError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def record_error(
        self, resource_type: str, parent: str | None, kind: str, exc: BaseException | str
    ) -> CrawlError:
        error = CrawlError(resource_type=resource_type, parent=parent, kind=kind, error=str(exc))
        self.errors.append(error)
        return error

    def as_dict(self, max_errors: int | None = None) -> dict:
        errors = self.errors if max_errors is None else self.errors[:max_errors]
        return {
            "discovered": self.discovered,
            "skipped": self.skipped,
            "cancelled": self.cancelled,
            "error_count": self.error_count,
            "errors": [e.as_dict() for e in errors],
        }
