"""Resource type registry — discovery, validation and dependency ordering.

The registry supports three loading mechanisms:

1. **Builtin types** — the GCP-shaped hierarchy in ``inventory_crawler.gcp``,
   loaded on first access.

2. **Entry-point types** (for pip-installed packages)::

       # In a partner's pyproject.toml:
       [project.entry-points."inventory_crawler.resource_types"]
       my_types = "my_package.types"

   An entry point may resolve to a descriptor, an iterable of descriptors,
   or a module that is scanned for descriptors.

3. **Runtime registration** — programmatic via ``registry.register()``.

Once loaded, the registry is validated as a whole: every parent/child
reference must resolve and the type graph must be acyclic (a type may
contain itself, e.g. folders nested in folders). Any violation raises
``RegistryIntegrityError``; the inventory service validates at startup so
that a broken registry fails the process immediately.

This module has no Django dependency. The inventory service app layer
calls ``registry.apply_filter()`` at startup to enforce settings-based
disabling of types.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from typing import Any

from .base import ResourceTypeDescriptor
from .errors import RegistryIntegrityError, UnknownType

logger = logging.getLogger("inventory_crawler.registry")

# Entry point group name — external packages register under this group
ENTRY_POINT_GROUP = "inventory_crawler.resource_types"


class ResourceTypeRegistry:
    """
    Registry of resource type descriptors keyed by type name.

    Lookups trigger discovery and validation on first use.
    """

    def __init__(self, load_builtins: bool = True):
        self._types: dict[str, ResourceTypeDescriptor] = {}
        self._load_builtins = load_builtins
        self._discovered = False
        self._order: list[str] | None = None

    @property
    def types(self) -> dict[str, ResourceTypeDescriptor]:
        if not self._discovered:
            self.discover()
        return dict(self._types)

    # ── Registration ──────────────────────────────────────────────────

    def register(self, descriptor: ResourceTypeDescriptor) -> None:
        """
        Register a resource type descriptor.

        Raises:
            TypeError: If not a ResourceTypeDescriptor.
            ValueError: If the name or collection is missing.
        """
        if not isinstance(descriptor, ResourceTypeDescriptor):
            raise TypeError(f"{descriptor!r} is not a ResourceTypeDescriptor")
        if not descriptor.name or not descriptor.collection:
            raise ValueError("Resource types must set both 'name' and 'collection'")

        existing = self._types.get(descriptor.name)
        if existing is not None and existing is not descriptor:
            logger.warning("Replacing resource type %s", descriptor.name)

        self._types[descriptor.name] = descriptor
        self._order = None
        logger.debug("Registered resource type: %s", descriptor.name)

    def unregister(self, name: str) -> bool:
        """Remove a type from the registry. Returns True if it existed."""
        if name in self._types:
            del self._types[name]
            self._order = None
            logger.info("Unregistered resource type: %s", name)
            return True
        return False

    def load_module(self, module) -> int:
        """
        Scan a module for ResourceTypeDescriptor instances and register them.

        Returns:
            Number of descriptors registered from this module.
        """
        count = 0
        for attr_name in dir(module):
            obj = getattr(module, attr_name)
            if isinstance(obj, ResourceTypeDescriptor):
                self.register(obj)
                count += 1
        return count

    # ── Discovery ─────────────────────────────────────────────────────

    def discover(self) -> None:
        """
        Load builtin and entry-point types, then validate the whole registry.

        Called automatically on first lookup. Safe to call multiple times.
        """
        if self._discovered:
            return

        if self._load_builtins:
            from . import gcp

            self.load_module(gcp)
        self._discover_entrypoints()
        self.validate()
        self._discovered = True

        logger.info(
            "Resource type discovery complete: %d types — %s",
            len(self._types),
            ", ".join(sorted(self._types)) or "(none)",
        )

    def _discover_entrypoints(self) -> None:
        """Load types from the ``inventory_crawler.resource_types`` entry point group."""
        from importlib.metadata import entry_points

        for ep in entry_points(group=ENTRY_POINT_GROUP):
            try:
                obj = ep.load()
            except Exception:
                logger.exception("Failed to load entry-point resource types: %s", ep.name)
                continue

            if isinstance(obj, ResourceTypeDescriptor):
                self.register(obj)
            elif hasattr(obj, "__path__") or hasattr(obj, "__file__"):
                self.load_module(obj)
            elif isinstance(obj, Iterable):
                for descriptor in obj:
                    self.register(descriptor)
            else:
                logger.warning(
                    "Entry point %s resolved to %r which declares no resource types",
                    ep.name,
                    obj,
                )

    # ── Filtering (called by app layer with Django settings) ──────────

    def apply_filter(self, disabled: list[str] | None = None) -> None:
        """
        Remove disabled types and prune every reference to them.

        Types only reachable through a disabled type stay registered but
        are never enumerated.
        """
        _ = self.types
        if not disabled:
            return

        removed = {name for name in disabled if name in self._types}
        for name in removed:
            del self._types[name]
            logger.info("Resource type %s disabled via settings", name)

        for name, descriptor in list(self._types.items()):
            parents = tuple(p for p in descriptor.parent_types if p not in removed)
            children = tuple(c for c in descriptor.child_types if c not in removed)
            if parents != descriptor.parent_types or children != descriptor.child_types:
                self._types[name] = replace(descriptor, parent_types=parents, child_types=children)

        self._order = None
        self.validate()

    # ── Validation ────────────────────────────────────────────────────

    def validate(self) -> None:
        """
        Check referential integrity and acyclicity of the type graph.

        Raises:
            RegistryIntegrityError: On the first problem found.
        """
        for name, descriptor in self._types.items():
            for parent in descriptor.parent_types:
                if parent not in self._types:
                    raise RegistryIntegrityError(
                        f"{name} declares unknown parent type {parent!r}"
                    )
            for child in descriptor.child_types:
                if child not in self._types:
                    raise RegistryIntegrityError(
                        f"{name} declares unknown child type {child!r}"
                    )
                if name not in self._types[child].parent_types:
                    raise RegistryIntegrityError(
                        f"{name} contains {child!r} but {child!r} does not list {name!r} as a parent"
                    )
        self._order = self._topological_order()

    def _topological_order(self) -> list[str]:
        # Kahn's algorithm over parent -> child edges; self-containment is
        # the only cycle allowed and is ignored here.
        indegree = {
            name: len({p for p in d.parent_types if p != name})
            for name, d in self._types.items()
        }
        dependents: dict[str, set[str]] = {name: set() for name in self._types}
        for name, descriptor in self._types.items():
            for parent in descriptor.parent_types:
                if parent != name:
                    dependents[parent].add(name)

        ready = sorted(name for name, degree in indegree.items() if degree == 0)
        order: list[str] = []
        while ready:
            name = ready.pop(0)
            order.append(name)
            for dependent in sorted(dependents[name]):
                indegree[dependent] -= 1
                if indegree[dependent] == 0:
                    ready.append(dependent)
            ready.sort()

        if len(order) != len(self._types):
            cyclic = sorted(set(self._types) - set(order))
            raise RegistryIntegrityError(
                f"Dependency cycle between resource types: {', '.join(cyclic)}"
            )
        return order

    # ── Lookup ────────────────────────────────────────────────────────

    def describe(self, name: str) -> ResourceTypeDescriptor:
        """Return the descriptor for ``name`` or raise ``UnknownType``."""
        try:
            return self.types[name]
        except KeyError:
            raise UnknownType(name) from None

    def get(self, name: str) -> ResourceTypeDescriptor | None:
        return self.types.get(name)

    def children_of(self, name: str) -> list[ResourceTypeDescriptor]:
        """Descriptors enumerated beneath ``name``, in declared crawl order."""
        types = self.types
        return [types[child] for child in self.describe(name).child_types]

    def dependency_order(self) -> list[str]:
        """All type names ordered so that every parent type precedes its children."""
        _ = self.types
        if self._order is None:
            self._order = self._topological_order()
        return list(self._order)

    def model_eligible_types(self) -> frozenset[str]:
        return frozenset(name for name, d in self.types.items() if d.model_eligible)

    def parse_ref(self, ref: str) -> tuple[str, str]:
        """
        Split a resource reference into ``(type_name, key)``.

        Accepts either the collection or the type name as the first
        segment: ``organizations/123`` and ``organization/123`` both parse
        to ``("organization", "123")``.
        """
        prefix, sep, key = ref.strip().partition("/")
        if not sep or not key:
            raise ValueError(f"Invalid resource reference {ref!r}; expected '<type>/<id>'")
        types = self.types
        if prefix in types:
            return prefix, key
        for descriptor in types.values():
            if descriptor.collection == prefix:
                return descriptor.name, key
        raise UnknownType(prefix)

    def list_types(self) -> list[dict[str, Any]]:
        """Return metadata about all registered types, in dependency order."""
        types = self.types
        return [types[name].metadata() for name in self.dependency_order()]

    # ── Utility ───────────────────────────────────────────────────────

    def reset(self) -> None:
        """Clear the registry. Primarily for testing."""
        self._types.clear()
        self._discovered = False
        self._order = None


# Module-level singleton
registry = ResourceTypeRegistry()
