"""Inventory Crawler — resource type registry, API client contract and crawler.

This package has no Django dependency. It defines how cloud resource kinds
are declared, how an API client adapter lists them, and how a crawl walks
the hierarchy beneath a set of roots.

For resource type authors:

    from inventory_crawler import Resource, ResourceTypeDescriptor

    def _construct_topic(payload, parent):
        return Resource.from_payload("topic", payload, parent, key=payload["name"])

    TOPIC = ResourceTypeDescriptor(
        name="topic",
        collection="topics",
        construct=_construct_topic,
        parent_types=("project",),
    )

Register via entry point in your package's pyproject.toml::

    [project.entry-points."inventory_crawler.resource_types"]
    pubsub = "my_package.types"

For the inventory service (consumer):

    from inventory_crawler import Crawler, registry

    crawler = Crawler(registry, client, max_workers=4)
    for resource in crawler.crawl(["organizations/1234"]):
        ...
"""

from .base import CrawlError, CrawlStats, Resource, ResourceTypeDescriptor, synthetic_key
from .client import BaseApiClient, FixtureApiClient
from .crawler import DEFAULT_MAX_PENDING, Crawler, WorkItem
from .errors import (
    ApiEnumerationError,
    InventoryCrawlerError,
    MalformedPayload,
    RegistryIntegrityError,
    RootUnreachableError,
    UnknownType,
)
from .registry import ResourceTypeRegistry, registry

__all__ = [
    "DEFAULT_MAX_PENDING",
    "ApiEnumerationError",
    "BaseApiClient",
    "CrawlError",
    "CrawlStats",
    "Crawler",
    "FixtureApiClient",
    "InventoryCrawlerError",
    "MalformedPayload",
    "RegistryIntegrityError",
    "Resource",
    "ResourceTypeDescriptor",
    "ResourceTypeRegistry",
    "RootUnreachableError",
    "UnknownType",
    "WorkItem",
    "registry",
    "synthetic_key",
]

__version__ = "0.1.0"
