"""Collector — Django integration layer for the inventory crawler.

This module bridges the external ``inventory_crawler`` package (which has
no Django dependency) with the inventory service's ORM models.

It handles:
    - Registry initialization with Django settings filters
    - Building the configured API client adapter
    - Driving a crawl into a new inventory index
    - Deciding the index's final status

The crawler never touches the database: it yields ``Resource`` objects and
this module stores each one on the calling thread before asking for the
next, which is what lets the crawler enqueue children only beneath
resources that were durably stored.
"""
from __future__ import annotations

import importlib
import logging
import threading
import traceback
from typing import Iterable

from django.conf import settings

from inventory_crawler import (
    DEFAULT_MAX_PENDING,
    BaseApiClient,
    Crawler,
    CrawlStats,
    ResourceTypeRegistry,
    registry,
)

from .exceptions import StorageWriteError
from .models import InventoryIndex
from .store import InventoryStore

logger = logging.getLogger("apps.inventory.collector")

_registry_initialized = False


# ── Registry setup ────────────────────────────────────────────────────


def get_registry() -> ResourceTypeRegistry:
    """
    Return the resource type registry, applying Django settings filters on first call.

    Settings:
        INVENTORY_RESOURCE_TYPES_DISABLED: list of type names never enumerated

    Raises:
        RegistryIntegrityError: If the registry (after filtering) is invalid.
    """
    global _registry_initialized
    if not _registry_initialized:
        registry.discover()
        registry.apply_filter(
            disabled=list(getattr(settings, "INVENTORY_RESOURCE_TYPES_DISABLED", None) or []),
        )
        _registry_initialized = True
    return registry


# ── API client ────────────────────────────────────────────────────────


def load_client_class(dotted_path: str) -> type[BaseApiClient]:
    """
    Import an API client adapter class from a dotted Python path.

    Example::

        load_client_class("my_package.clients.GcpApiClient")

    Raises:
        ImportError: If the module cannot be imported.
        AttributeError: If the class doesn't exist in the module.
        TypeError: If the class is not a BaseApiClient subclass.
    """
    module_path, _, class_name = dotted_path.rpartition(".")
    if not module_path:
        raise ImportError(f"Invalid dotted path: {dotted_path}")

    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    if not isinstance(cls, type) or not issubclass(cls, BaseApiClient):
        raise TypeError(f"{dotted_path} is not a BaseApiClient subclass")
    return cls


def get_api_client(dotted_path: str | None = None, options: dict | None = None) -> BaseApiClient:
    """Build the configured API client (``INVENTORY_API_CLIENT`` + ``INVENTORY_API_CLIENT_OPTIONS``)."""
    cls = load_client_class(dotted_path or settings.INVENTORY_API_CLIENT)
    if options is None:
        options = dict(getattr(settings, "INVENTORY_API_CLIENT_OPTIONS", None) or {})
    factory = getattr(cls, "from_settings", None)
    client = factory(**options) if factory is not None else cls(**options)
    logger.debug("Using API client %s", type(client).__name__)
    return client


# ── Crawl execution ───────────────────────────────────────────────────


def run_crawl(
    root_ids: Iterable[str] | None = None,
    *,
    client: BaseApiClient | None = None,
    registry: ResourceTypeRegistry | None = None,
    max_workers: int | None = None,
    max_pending: int | None = None,
    cancel_event: threading.Event | None = None,
    store: InventoryStore | None = None,
) -> InventoryIndex:
    """
    Crawl beneath ``root_ids`` into a new inventory index and return it, completed.

    This is the main entry point called by the ``inventory create``
    command and the scheduler. It:
    1. Opens a RUNNING index
    2. Streams the crawl, storing each resource before the next is produced
    3. Records storage failures as recoverable errors
    4. Completes the index with its final status, counters and errors

    Fatal errors (unreachable root, broken client) are recorded on the index
    rather than raised. An interrupt (``KeyboardInterrupt``, ``SystemExit``)
    completes the index before it propagates. The index is never left
    RUNNING unless the database refuses to complete it at all.

    Args:
        root_ids: Crawl roots; ``INVENTORY_ROOT_RESOURCE_IDS`` when omitted.
            Repeated roots are crawled once.
        client: API client adapter; built from settings (and closed) when omitted.
        registry: Resource type registry; the settings-filtered global one when omitted.
        max_workers: Concurrent enumerations; ``INVENTORY_CRAWL_MAX_WORKERS`` when omitted.
        max_pending: Work queue bound; ``INVENTORY_CRAWL_MAX_PENDING`` when omitted.
        cancel_event: Set it to stop the crawl early.
    """
    reg = registry or get_registry()
    roots = list(dict.fromkeys(root_ids if root_ids is not None else settings.INVENTORY_ROOT_RESOURCE_IDS))
    if not roots:
        raise ValueError("No crawl roots given and INVENTORY_ROOT_RESOURCE_IDS is empty")
    if max_workers is None:
        max_workers = getattr(settings, "INVENTORY_CRAWL_MAX_WORKERS", 1)
    if max_pending is None:
        max_pending = getattr(settings, "INVENTORY_CRAWL_MAX_PENDING", DEFAULT_MAX_PENDING)
    store = store or InventoryStore()

    index = store.begin_index(roots)
    logger.info(
        "Crawling %s into index %s (workers=%s)", ", ".join(roots), index.pk, max_workers
    )

    owns_client = client is None
    crawler: Crawler | None = None
    stored = 0
    fatal = False
    interrupted: BaseException | None = None
    error_message = ""
    result_traceback = ""

    try:
        if client is None:
            client = get_api_client()
        crawler = Crawler(
            reg, client, max_workers=max_workers, max_pending=max_pending, cancel_event=cancel_event
        )

        for resource in crawler.crawl(roots):
            try:
                store.store_resource(index.pk, resource)
            except StorageWriteError as exc:
                crawler.discard(resource)
                crawler.stats.record_error(resource.type, resource.parent_ref, "storage", exc)
                logger.warning("%s", exc)
                continue
            stored += 1

    except Exception as exc:
        fatal = True
        error_message = str(exc)
        result_traceback = traceback.format_exc()
        logger.exception("Crawl into index %s failed", index.pk)

    except BaseException as exc:
        fatal = True
        interrupted = exc
        error_message = f"Crawl interrupted ({type(exc).__name__})"
        result_traceback = traceback.format_exc()
        logger.warning("Crawl into index %s interrupted by %s", index.pk, type(exc).__name__)

    finally:
        if owns_client and client is not None:
            try:
                client.close()
            except Exception:
                logger.exception("Error closing API client %s", type(client).__name__)

    stats = crawler.stats if crawler is not None else CrawlStats()
    cancelled = stats.cancelled or bool(cancel_event and cancel_event.is_set())
    if cancelled and not error_message:
        error_message = "Crawl cancelled"
    status = final_status(stored, stats.error_count, fatal=fatal, cancelled=cancelled)

    try:
        index = store.complete_index(
            index.pk,
            status,
            stats=stats,
            roots=crawler.roots if crawler is not None else (),
            error_message=error_message,
            result_traceback=result_traceback,
        )
    except Exception as exc:
        logger.exception("Could not complete inventory index %s as %s", index.pk, status)
        index = _complete_without_details(store, index.pk, stored, exc)

    if interrupted is not None:
        raise interrupted
    return index


def _complete_without_details(
    store: InventoryStore, index_id: int, stored: int, exc: Exception
) -> InventoryIndex:
    """Close an index whose full record could not be written, keeping only the outcome."""
    status = final_status(stored, 0, fatal=True)
    index = store.complete_index(
        index_id,
        status,
        error_message=f"Could not record crawl results: {exc}",
        result_traceback=traceback.format_exc(),
    )
    logger.warning("Inventory index %s completed as %s without its crawl details", index_id, status)
    return index


def final_status(stored: int, error_count: int, *, fatal: bool = False, cancelled: bool = False) -> str:
    """
    Status of a finished crawl.

    A fatal error or cancellation keeps what was stored: PARTIAL_SUCCESS if
    anything was, FAILED otherwise. Recoverable errors alone only ever
    downgrade SUCCESS to PARTIAL_SUCCESS.
    """
    if fatal or cancelled:
        return InventoryIndex.Status.PARTIAL_SUCCESS if stored else InventoryIndex.Status.FAILED
    if error_count:
        return InventoryIndex.Status.PARTIAL_SUCCESS
    return InventoryIndex.Status.SUCCESS
