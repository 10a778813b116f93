"""Crawler — breadth-first discovery of the resource hierarchy.

``Crawler.crawl()`` is a lazy, finite, single-pass generator of
``Resource``. It keeps a FIFO work queue of ``(parent, resource type)``
pairs seeded from the crawl roots' child types; each pair is enumerated
through the API client and every constructed resource is yielded.

Children of a resource are enqueued only when the consumer resumes the
generator, i.e. after it has finished with (typically: stored) that
resource. A consumer that could not persist a resource calls
``discard(resource)`` before resuming, and nothing beneath it is ever
enumerated. This is what keeps stored children from referencing a parent
that was never committed.

Enumeration runs inline when ``max_workers`` is 1, keeping the whole crawl
lazy. With more workers, up to ``max_workers`` enumerations run on a
thread pool at once; each worker streams one ``(parent, type)`` listing
into a bounded buffer that the consuming thread drains in submission order.

The work queue holds at most ``max_pending`` items. When the children of a
resource do not fit, the resource waits in a list of deferred parents and
is expanded, in order, as the queue drains.

Typical use::

    crawler = Crawler(registry, client, max_workers=4)
    for resource in crawler.crawl(["organizations/1234"]):
        try:
            store(resource)
        except StorageError:
            crawler.discard(resource)
    print(crawler.stats.as_dict())
"""
from __future__ import annotations

import logging
import queue
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping

from .base import CrawlStats, Resource, ResourceTypeDescriptor
from .client import BaseApiClient
from .errors import ApiEnumerationError, MalformedPayload, RootUnreachableError, UnknownType
from .registry import ResourceTypeRegistry

logger = logging.getLogger("inventory_crawler.crawler")

DEFAULT_MAX_PENDING = 10_000
DEFAULT_BUFFER_SIZE = 500

_POLL_SECONDS = 0.1
_DONE = object()


@dataclass(frozen=True)
class WorkItem:
    """Enumerate ``descriptor`` resources beneath ``parent``."""

    parent: Resource
    descriptor: ResourceTypeDescriptor

    def __str__(self) -> str:
        return f"{self.descriptor.name} under {self.parent.ref}"


class Crawler:
    def __init__(
        self,
        registry: ResourceTypeRegistry,
        client: BaseApiClient,
        max_workers: int = 1,
        cancel_event: threading.Event | None = None,
        max_pending: int | None = DEFAULT_MAX_PENDING,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        self.registry = registry
        self.client = client
        self.max_workers = max(1, int(max_workers or 1))
        self.cancel_event = cancel_event or threading.Event()
        self.stats = CrawlStats()
        self.max_pending = max(1, int(max_pending)) if max_pending else None
        self.buffer_size = max(1, int(buffer_size))
        self.roots: list[Resource] = []
        self._pending: deque[WorkItem] = deque()
        self._deferred: deque[Resource] = deque()
        self.peak_pending = 0
        self._discarded: set[tuple[str, str, str | None]] = set()
        self._started = False

    # ── Control ───────────────────────────────────────────────────────

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        """Stop enqueueing work. In-flight enumerations are allowed to finish."""
        if not self.cancelled:
            logger.info("Crawl cancellation requested")
        self.cancel_event.set()

    def discard(self, resource: Resource) -> None:
        """Mark a yielded resource as not persisted; its children are never enumerated."""
        self._discarded.add(_identity(resource))

    # ── Traversal ─────────────────────────────────────────────────────

    def crawl(self, root_ids: Iterable[str]) -> Iterator[Resource]:
        """
        Yield every resource beneath ``root_ids``.

        Roots themselves are resolved (and exposed as ``self.roots``) but
        not yielded.

        Raises:
            RootUnreachableError: If a root cannot be resolved or fetched.
        """
        if self._started:
            raise RuntimeError("Crawler instances are single-pass; create a new one to crawl again")
        self._started = True

        for root_id in root_ids:
            root = self._resolve_root(root_id)
            self.roots.append(root)
            self._expand(root)

        if self.max_workers == 1:
            yield from self._crawl_inline()
        else:
            yield from self._crawl_parallel()

        self.stats.cancelled = self.cancelled
        logger.info(
            "Crawl of %s finished: discovered=%d errors=%d skipped=%d cancelled=%s",
            ", ".join(root.ref for root in self.roots),
            self.stats.discovered,
            self.stats.error_count,
            self.stats.skipped,
            self.stats.cancelled,
        )

    def _resolve_root(self, root_id: str) -> Resource:
        try:
            type_name, key = self.registry.parse_ref(root_id)
            descriptor = self.registry.describe(type_name)
        except (ValueError, UnknownType) as exc:
            raise RootUnreachableError(root_id, f"Invalid crawl root {root_id!r}: {exc}") from exc

        try:
            payload = self.client.get(type_name, key)
            root = descriptor.build(payload, None)
        except Exception as exc:
            raise RootUnreachableError(root_id, f"Cannot reach crawl root {root_id!r}: {exc}") from exc

        logger.info("Crawling from root %s (%s)", root.ref, root.display_name or "unnamed")
        return root

    # ── Work queue ────────────────────────────────────────────────────

    def _expand(self, resource: Resource) -> None:
        if self.cancelled:
            return
        # Parents already waiting go first, so levels stay in order.
        if self._deferred or not self._enqueue_children(resource):
            self._deferred.append(resource)

    def _enqueue_children(self, resource: Resource) -> bool:
        """Queue the work items beneath ``resource``; False if they do not fit yet."""
        children = self.registry.children_of(resource.type)
        wanted = [c for c in children if not c.requires_api or resource.is_enabled(c.requires_api)]
        if (
            self.max_pending is not None
            and self._pending
            and len(self._pending) + len(wanted) > self.max_pending
        ):
            return False

        for child in children:
            if child.requires_api and not resource.is_enabled(child.requires_api):
                logger.debug(
                    "Skipping %s under %s: %s not enabled",
                    child.name,
                    resource.ref,
                    child.requires_api,
                )
                self.stats.skipped += 1
        self._pending.extend(WorkItem(resource, child) for child in wanted)
        self.peak_pending = max(self.peak_pending, len(self._pending))
        return True

    def _next_item(self) -> WorkItem | None:
        while self._deferred and not self.cancelled:
            if not self._enqueue_children(self._deferred[0]):
                break
            self._deferred.popleft()
        if self._pending and not self.cancelled:
            return self._pending.popleft()
        return None

    # ── Enumeration ───────────────────────────────────────────────────

    def _crawl_inline(self) -> Iterator[Resource]:
        while True:
            item = self._next_item()
            if item is None:
                return
            yield from self._emit(item, self._iter_payloads(item))

    def _crawl_parallel(self) -> Iterator[Resource]:
        listings: deque[_Listing] = deque()

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="inventory-crawler"
        ) as executor:
            try:
                while True:
                    while len(listings) < self.max_workers:
                        item = self._next_item()
                        if item is None:
                            break
                        listing = _Listing(item, self.buffer_size)
                        listing.future = executor.submit(listing.pump, self.client)
                        listings.append(listing)
                    if not listings:
                        return

                    # Listings are emitted in submission order; later ones
                    # block once their buffer is full.
                    listing = listings.popleft()
                    try:
                        yield from self._emit(listing.item, self._drain(listing))
                    finally:
                        listing.close()
            finally:
                for listing in listings:
                    listing.close()

    def _iter_payloads(self, item: WorkItem) -> Iterator[Mapping[str, Any]]:
        try:
            yield from self.client.enumerate(item.descriptor.name, item.parent)
        except Exception as exc:
            self._enumeration_failed(item, exc)

    def _drain(self, listing: "_Listing") -> Iterator[Mapping[str, Any]]:
        try:
            yield from listing
        except Exception as exc:
            self._enumeration_failed(listing.item, exc)

    def _emit(self, item: WorkItem, payloads: Iterable[Any]) -> Iterator[Resource]:
        for payload in payloads:
            try:
                resource = item.descriptor.build(payload, item.parent)
            except MalformedPayload as exc:
                self.stats.record_error(item.descriptor.name, item.parent.ref, "payload", exc)
                logger.warning("Skipping malformed %s payload: %s", item, exc)
                continue

            self.stats.discovered += 1
            yield resource

            # The consumer has handled the resource by the time we resume.
            if _identity(resource) in self._discarded:
                logger.debug("Not crawling beneath discarded %s", resource.ref)
                continue
            self._expand(resource)

    def _enumeration_failed(self, item: WorkItem, exc: Exception) -> None:
        self.stats.record_error(item.descriptor.name, item.parent.ref, "enumeration", exc)
        if isinstance(exc, ApiEnumerationError):
            logger.warning("Failed to enumerate %s: %s", item, exc)
        else:
            logger.warning("Unexpected error enumerating %s", item, exc_info=exc)


def _identity(resource: Resource) -> tuple[str, str, str | None]:
    return resource.type, resource.key, resource.parent_ref


class _Listing:
    """
    One enumeration running on a worker thread.

    Payloads pass to the consuming thread through a buffer of at most
    ``size`` entries; the worker blocks while it is full and gives up once
    the listing is closed.
    """

    def __init__(self, item: WorkItem, size: int):
        self.item = item
        self.future: Future | None = None
        self._buffer: queue.Queue = queue.Queue(maxsize=size)
        self._closed = threading.Event()

    def pump(self, client: BaseApiClient) -> None:
        try:
            for payload in client.enumerate(self.item.descriptor.name, self.item.parent):
                if not self._put(payload):
                    return
        except Exception as exc:
            self._put(_Failure(exc))
            return
        self._put(_DONE)

    def close(self) -> None:
        self._closed.set()

    def _put(self, value: Any) -> bool:
        while not self._closed.is_set():
            try:
                self._buffer.put(value, timeout=_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    def __iter__(self) -> Iterator[Mapping[str, Any]]:
        while True:
            try:
                value = self._buffer.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                if self.future is not None and self.future.done() and self._buffer.empty():
                    self.future.result()
                    return
                continue
            if value is _DONE:
                return
            if isinstance(value, _Failure):
                raise value.exc
            yield value


@dataclass(frozen=True)
class _Failure:
    exc: Exception
