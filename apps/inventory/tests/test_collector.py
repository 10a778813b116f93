import threading
from datetime import datetime
from unittest import mock

import pytest
from django.test import TestCase

from apps.inventory import collector
from apps.inventory.collector import final_status, get_api_client, load_client_class, run_crawl
from apps.inventory.exceptions import StorageWriteError
from apps.inventory.models import InventoryIndex, InventoryResource
from apps.inventory.store import InventoryStore
from inventory_crawler import FixtureApiClient

from .helpers import SMALL_ORG, small_org_client


class TestRunCrawl(TestCase):
    def test_small_org_succeeds(self):
        index = run_crawl(["organizations/1"], client=small_org_client(), max_workers=1)

        self.assertEqual(index.status, InventoryIndex.Status.SUCCESS)
        self.assertEqual(index.resource_count, 3)
        self.assertEqual(index.error_count, 0)
        self.assertIsNotNone(index.completed_at)
        self.assertEqual(index.root_ids, ["organizations/1"])
        self.assertEqual(index.root_refs, {"organization/1"})
        refs = {r.ref for r in InventoryResource.objects.filter(index=index)}
        self.assertEqual(refs, {"project/p1", "image/img1", "image/img2"})

    def test_parallel_crawl_stores_the_same(self):
        index = run_crawl(["organizations/1"], client=small_org_client(), max_workers=4)
        self.assertEqual(index.status, InventoryIndex.Status.SUCCESS)
        self.assertEqual(index.resource_count, 3)

    def test_every_stored_parent_is_a_root_or_stored(self):
        index = run_crawl(["organizations/1"], client=small_org_client(), max_workers=1)
        refs = {r.ref for r in index.resources.all()} | index.root_refs
        for resource in index.resources.all():
            self.assertIn(resource.parent_ref, refs)

    def test_enumeration_error_gives_partial_success(self):
        client = small_org_client(
            errors=[{"type": "image", "parent": "project/p1", "message": "permission denied"}]
        )
        index = run_crawl(["organizations/1"], client=client, max_workers=1)

        self.assertEqual(index.status, InventoryIndex.Status.PARTIAL_SUCCESS)
        self.assertEqual(index.error_count, 1)
        self.assertEqual(index.resource_count, 1)
        self.assertEqual(index.errors[0]["resource_type"], "image")
        self.assertEqual(index.errors[0]["parent"], "project/p1")

    def test_unreachable_root_fails(self):
        index = run_crawl(["organizations/404"], client=small_org_client())

        self.assertEqual(index.status, InventoryIndex.Status.FAILED)
        self.assertEqual(index.resource_count, 0)
        self.assertIn("organizations/404", index.error_message)
        self.assertIn("RootUnreachableError", index.result_traceback)
        self.assertEqual(index.roots, [])

    def test_storage_failure_discards_the_subtree(self):
        store = InventoryStore()
        real = store.store_resource

        def failing(index_id, resource):
            if resource.type == "project":
                raise StorageWriteError(index_id, resource.ref, "disk full")
            return real(index_id, resource)

        with mock.patch.object(store, "store_resource", side_effect=failing):
            index = run_crawl(["organizations/1"], client=small_org_client(), store=store)

        self.assertEqual(index.status, InventoryIndex.Status.PARTIAL_SUCCESS)
        self.assertEqual(index.resource_count, 0)
        self.assertEqual(index.error_count, 1)
        self.assertEqual(index.errors[0]["kind"], "storage")

    def test_cancelled_before_start_fails_with_nothing_stored(self):
        event = threading.Event()
        event.set()
        index = run_crawl(["organizations/1"], client=small_org_client(), cancel_event=event)
        self.assertEqual(index.status, InventoryIndex.Status.FAILED)
        self.assertEqual(index.error_message, "Crawl cancelled")

    def test_cancelled_mid_crawl_keeps_what_was_stored(self):
        event = threading.Event()
        store = InventoryStore()
        real = store.store_resource

        def store_then_cancel(index_id, resource):
            row = real(index_id, resource)
            event.set()
            return row

        with mock.patch.object(store, "store_resource", side_effect=store_then_cancel):
            index = run_crawl(
                ["organizations/1"], client=small_org_client(), cancel_event=event, store=store
            )

        self.assertEqual(index.status, InventoryIndex.Status.PARTIAL_SUCCESS)
        self.assertEqual(index.resource_count, 1)

    def test_repeated_roots_are_crawled_once(self):
        index = run_crawl(["organizations/1", "organizations/1"], client=small_org_client())
        self.assertEqual(index.status, InventoryIndex.Status.SUCCESS)
        self.assertEqual(index.root_ids, ["organizations/1"])
        self.assertEqual(index.resource_count, 3)
        self.assertEqual(index.error_count, 0)

    def test_root_payload_with_dates_is_recorded(self):
        org = dict(SMALL_ORG[0], data=dict(SMALL_ORG[0]["data"], creationTime=datetime(2021, 3, 4)))
        client = FixtureApiClient(resources=[org] + SMALL_ORG[1:])

        index = run_crawl(["organizations/1"], client=client)

        self.assertEqual(index.status, InventoryIndex.Status.SUCCESS)
        self.assertEqual(index.roots[0]["data"]["creationTime"], "2021-03-04T00:00:00")

    def test_unrecordable_root_still_completes_the_index(self):
        org = dict(SMALL_ORG[0], data=dict(SMALL_ORG[0]["data"], owner=object()))
        client = FixtureApiClient(resources=[org] + SMALL_ORG[1:])

        index = run_crawl(["organizations/1"], client=client)

        index.refresh_from_db()
        self.assertEqual(index.status, InventoryIndex.Status.PARTIAL_SUCCESS)
        self.assertEqual(index.resource_count, 3)
        self.assertEqual(index.roots, [])
        self.assertTrue(index.error_message.startswith("Could not record crawl results"))
        self.assertEqual(InventoryStore().purge(0), 1)

    def test_interrupt_completes_the_index_then_propagates(self):
        store = InventoryStore()
        real = store.store_resource

        def interrupt(index_id, resource):
            if resource.type == "image":
                raise KeyboardInterrupt
            return real(index_id, resource)

        with mock.patch.object(store, "store_resource", side_effect=interrupt):
            with self.assertRaises(KeyboardInterrupt):
                run_crawl(["organizations/1"], client=small_org_client(), store=store)

        index = InventoryIndex.objects.get()
        self.assertEqual(index.status, InventoryIndex.Status.PARTIAL_SUCCESS)
        self.assertEqual(index.resource_count, 1)
        self.assertEqual(index.error_message, "Crawl interrupted (KeyboardInterrupt)")
        self.assertIsNotNone(index.completed_at)

    def test_queue_bound_is_passed_to_the_crawler(self):
        with mock.patch.object(collector, "Crawler", wraps=collector.Crawler) as crawler_cls:
            run_crawl(["organizations/1"], client=small_org_client(), max_pending=2)
        self.assertEqual(crawler_cls.call_args.kwargs["max_pending"], 2)

    def test_no_roots(self):
        with self.assertRaises(ValueError):
            run_crawl([], client=small_org_client())
        self.assertFalse(InventoryIndex.objects.exists())

    def test_client_from_settings_is_closed(self):
        client = small_org_client()
        with mock.patch.object(collector, "get_api_client", return_value=client), \
                mock.patch.object(client, "close", wraps=client.close) as close:
            run_crawl(["organizations/1"])
        close.assert_called_once()

    def test_broken_client_is_fatal(self):
        with mock.patch.object(collector, "get_api_client", side_effect=RuntimeError("no credentials")):
            index = run_crawl(["organizations/1"])
        self.assertEqual(index.status, InventoryIndex.Status.FAILED)
        self.assertEqual(index.error_message, "no credentials")


class TestApiClientSettings(TestCase):
    def test_load_client_class(self):
        self.assertIs(load_client_class("inventory_crawler.client.FixtureApiClient"), FixtureApiClient)

    def test_load_client_class_rejects_non_clients(self):
        with self.assertRaises(TypeError):
            load_client_class("collections.OrderedDict")
        with self.assertRaises(ImportError):
            load_client_class("FixtureApiClient")

    def test_get_api_client_with_options(self):
        client = get_api_client("inventory_crawler.client.FixtureApiClient", {"resources": SMALL_ORG})
        self.assertIsInstance(client, FixtureApiClient)
        self.assertEqual(client.get("project", "p1")["projectId"], "p1")

    def test_get_api_client_from_settings(self):
        self.assertIsInstance(get_api_client(), FixtureApiClient)


@pytest.mark.parametrize('stored,errors,fatal,cancelled,expected', [
    (3, 0, False, False, InventoryIndex.Status.SUCCESS),
    (0, 0, False, False, InventoryIndex.Status.SUCCESS),
    (3, 1, False, False, InventoryIndex.Status.PARTIAL_SUCCESS),
    (0, 1, False, False, InventoryIndex.Status.PARTIAL_SUCCESS),
    (3, 0, True, False, InventoryIndex.Status.PARTIAL_SUCCESS),
    (0, 0, True, False, InventoryIndex.Status.FAILED),
    (2, 0, False, True, InventoryIndex.Status.PARTIAL_SUCCESS),
    (0, 5, False, True, InventoryIndex.Status.FAILED),
])
def test_final_status(stored, errors, fatal, cancelled, expected):
    assert final_status(stored, errors, fatal=fatal, cancelled=cancelled) == expected
