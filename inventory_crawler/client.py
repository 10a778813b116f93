"""API client adapter contract and an in-memory fixture implementation.

The crawler talks to cloud APIs only through ``BaseApiClient``:

    - ``get(resource_type, key)``         fetch one root resource payload
    - ``enumerate(resource_type, parent)`` lazily yield raw payloads of one
                                           type beneath ``parent``

Concrete clients implement one ``iter_<type>`` method per resource kind;
``enumerate`` dispatches to it. Backing API services are initialized lazily
and at most once per client through ``service()``, so a crawl that never
touches, say, BigQuery never builds a BigQuery client.

Authentication, quota handling and pagination belong to the concrete
client. Failures must surface as ``ApiEnumerationError``.
"""
from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

import yaml

from .base import Resource
from .errors import ApiEnumerationError

logger = logging.getLogger("inventory_crawler.client")


class BaseApiClient(ABC):
    """
    Abstract adapter over the cloud provider's APIs.

    Example::

        class ComputeClient(BaseApiClient):
            def build_service(self, name):
                return googleapiclient.discovery.build(name, "v1")

            def get(self, resource_type, key):
                ...

            def iter_image(self, parent):
                images = self.service("compute").images()
                request = images.list(project=parent.key)
                while request is not None:
                    response = request.execute()
                    yield from response.get("items", [])
                    request = images.list_next(request, response)
    """

    def __init__(self, **options: Any):
        self.options = options
        self._services: dict[str, Any] = {}
        self._services_lock = threading.Lock()

    # ── Abstract interface ────────────────────────────────────────────

    @abstractmethod
    def get(self, resource_type: str, key: str) -> Mapping[str, Any]:
        """Return the raw payload of a single resource. Used for crawl roots."""
        ...

    @abstractmethod
    def build_service(self, name: str) -> Any:
        """Create the backing client for one API service."""
        ...

    # ── Framework methods ─────────────────────────────────────────────

    def service(self, name: str) -> Any:
        """Return the lazily-initialized backing client for ``name``."""
        with self._services_lock:
            if name not in self._services:
                logger.debug("Initializing API service %s", name)
                self._services[name] = self.build_service(name)
            return self._services[name]

    def enumerate(self, resource_type: str, parent: Resource | None) -> Iterator[Mapping[str, Any]]:
        """
        Yield raw payloads of ``resource_type`` beneath ``parent``.

        Raises:
            ApiEnumerationError: If this client cannot list the type, or the
                underlying call fails.
        """
        method = getattr(self, f"iter_{resource_type}", None)
        if method is None:
            raise ApiEnumerationError(
                resource_type,
                parent.ref if parent else None,
                f"{type(self).__name__} has no enumeration for {resource_type}",
            )
        return iter(method(parent))

    def close(self) -> None:
        """Release any backing services. Must not raise."""
        with self._services_lock:
            self._services.clear()


class FixtureApiClient(BaseApiClient):
    """
    Serves a static resource hierarchy from memory.

    Each resource entry is ``{"type", "parent", "data"}`` where ``parent`` is
    a ``type/key`` reference (``None`` for roots) and ``data`` is the raw
    payload the real API would return. Error entries ``{"type", "parent",
    "message"}`` make the matching enumeration raise ``ApiEnumerationError``.

    Fixture files are YAML or JSON::

        resources:
          - type: organization
            data: {name: organizations/1, displayName: example.com}
          - type: project
            parent: organization/1
            data: {projectId: p1, enabledApis: [compute.googleapis.com]}
        errors:
          - type: image
            parent: project/p2
            message: permission denied
    """

    def __init__(
        self,
        resources: Iterable[Mapping[str, Any]] = (),
        errors: Iterable[Mapping[str, Any]] = (),
        **options: Any,
    ):
        super().__init__(**options)
        self._entries = [dict(entry) for entry in resources]
        self._errors = {
            (entry["type"], entry.get("parent")): entry.get("message", "")
            for entry in errors
        }

    @classmethod
    def from_file(cls, path: str | Path, **options: Any) -> "FixtureApiClient":
        """Load a fixture from a YAML (``.yml``/``.yaml``) or JSON file."""
        path = Path(path)
        with open(path, "r") as f:
            if path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}
        return cls(
            resources=data.get("resources", []),
            errors=data.get("errors", []),
            **options,
        )

    @classmethod
    def from_settings(cls, path: str = "", **options: Any) -> "FixtureApiClient":
        if path:
            return cls.from_file(path, **options)
        return cls(**options)

    def build_service(self, name: str) -> dict[str | None, list[Mapping[str, Any]]]:
        # One service per resource kind: payloads of that kind indexed by parent.
        index: dict[str | None, list[Mapping[str, Any]]] = defaultdict(list)
        for entry in self._entries:
            if entry["type"] == name:
                index[entry.get("parent")].append(entry.get("data", {}))
        return dict(index)

    def get(self, resource_type: str, key: str) -> Mapping[str, Any]:
        ref = f"{resource_type}/{key}"
        for entry in self._entries:
            if entry["type"] != resource_type:
                continue
            if self._root_key(entry) == key:
                return entry.get("data", {})
        raise ApiEnumerationError(resource_type, None, f"{ref} not found")

    def enumerate(self, resource_type: str, parent: Resource | None) -> Iterator[Mapping[str, Any]]:
        parent_ref = parent.ref if parent else None
        if (resource_type, parent_ref) in self._errors:
            raise ApiEnumerationError(
                resource_type, parent_ref, self._errors[(resource_type, parent_ref)]
            )
        return iter(self.service(resource_type).get(parent_ref, []))

    @staticmethod
    def _root_key(entry: Mapping[str, Any]) -> str:
        data = entry.get("data", {})
        if "key" in entry:
            return str(entry["key"])
        if "projectId" in data:
            return str(data["projectId"])
        name = str(data.get("name", ""))
        return name.rsplit("/", 1)[-1] if name else str(data.get("id", ""))
