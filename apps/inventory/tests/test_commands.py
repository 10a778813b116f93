import json
from io import StringIO
from unittest import mock

import yaml
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from apps.inventory import collector
from apps.inventory.manager import model_manager
from apps.inventory.models import DataModel, InventoryIndex

from .helpers import SMALL_ORG_RESOURCES, make_index, small_org_client


def run(*args):
    out = StringIO()
    call_command(*args, stdout=out, stderr=StringIO())
    return out.getvalue()


class TestInventoryCommand(TestCase):
    def crawl(self, *args, client=None):
        with mock.patch.object(collector, "get_api_client", return_value=client or small_org_client()):
            return run("inventory", "create", "--root", "organizations/1", *args)

    def test_create(self):
        out = self.crawl("--workers", "2")
        index = InventoryIndex.objects.get()
        self.assertEqual(index.status, InventoryIndex.Status.SUCCESS)
        self.assertIn(f"Index {index.pk}: SUCCESS resources=3 errors=0", out)

    def test_create_reports_errors(self):
        client = small_org_client(
            errors=[{"type": "image", "parent": "project/p1", "message": "permission denied"}]
        )
        out = self.crawl(client=client)
        self.assertIn("PARTIAL_SUCCESS", out)
        self.assertIn("[enumeration] image under project/p1: permission denied", out)

    def test_create_and_import(self):
        out = self.crawl("--import-as", "nightly")
        model = DataModel.objects.get(name="nightly")
        self.assertEqual(model.row_count, 4)
        self.assertIn("as model 'nightly'", out)

    def test_failed_crawl_is_a_command_error(self):
        with mock.patch.object(collector, "get_api_client", return_value=small_org_client()):
            with self.assertRaises(CommandError):
                run("inventory", "create", "--root", "organizations/404")
        self.assertEqual(InventoryIndex.objects.get().status, InventoryIndex.Status.FAILED)

    def test_list(self):
        index = make_index(resources=SMALL_ORG_RESOURCES)
        out = run("inventory", "list")
        self.assertIn("STATUS", out)
        self.assertIn(str(index.pk), out)

    def test_list_empty(self):
        self.assertIn("No inventory indexes", run("inventory", "list"))

    def test_get(self):
        index = make_index(resources=SMALL_ORG_RESOURCES)
        data = json.loads(run("inventory", "get", str(index.pk)))
        self.assertEqual(data["id"], index.pk)
        self.assertEqual(data["resource_count"], 3)

    def test_get_missing(self):
        with self.assertRaises(CommandError):
            run("inventory", "get", "999")

    def test_delete(self):
        index = make_index(resources=SMALL_ORG_RESOURCES)
        self.assertIn("3 resources", run("inventory", "delete", str(index.pk)))
        self.assertFalse(InventoryIndex.objects.exists())

    def test_purge(self):
        make_index(age_days=30)
        make_index(age_days=1)
        out = run("inventory", "purge", "7")
        self.assertIn("Purged 1 inventory index(es)", out)
        self.assertEqual(InventoryIndex.objects.count(), 1)


class TestModelCommand(TestCase):
    def setUp(self):
        self.index = make_index(resources=SMALL_ORG_RESOURCES)

    def test_create(self):
        out = run("model", "create", "m1", str(self.index.pk))
        self.assertIn("4 rows", out)
        self.assertTrue(DataModel.objects.filter(name="m1").exists())

    def test_create_duplicate(self):
        run("model", "create", "m1", str(self.index.pk))
        with self.assertRaises(CommandError):
            run("model", "create", "m1", str(self.index.pk))

    def test_create_invalid_name(self):
        with self.assertRaises(CommandError):
            run("model", "create", "a/b", str(self.index.pk))

    def test_list_and_get(self):
        model_manager.create_model("m1", self.index.pk)
        self.assertIn("m1", run("model", "list"))
        self.assertEqual(json.loads(run("model", "get", "m1"))["row_count"], 4)

    def test_rows(self):
        model_manager.create_model("m1", self.index.pk)
        out = run("model", "rows", "m1", "--prefix", "organization/1/project/p1", "--type", "image")
        self.assertEqual(
            [line.split()[0] for line in out.splitlines()],
            ["organization/1/project/p1/image/img1", "organization/1/project/p1/image/img2"],
        )

    def test_rows_as_json(self):
        model_manager.create_model("m1", self.index.pk)
        rows = json.loads(run("model", "rows", "m1", "--format", "json"))
        self.assertEqual(len(rows), 4)

    def test_use(self):
        model_manager.create_model("m1", self.index.pk)
        out = run("model", "use", "m1")
        self.assertIn("Model 'm1' is now active", out)
        self.assertEqual(model_manager.active_model().name, "m1")

    def test_use_unknown_or_building_model(self):
        with self.assertRaises(CommandError):
            run("model", "use", "missing")
        DataModel.objects.create(name="half", source_index=self.index, status=DataModel.Status.BUILDING)
        with self.assertRaises(CommandError):
            run("model", "use", "half")
        self.assertIsNone(model_manager.active_model())

    def test_delete(self):
        model_manager.create_model("m1", self.index.pk)
        self.assertIn("4 rows", run("model", "delete", "m1"))
        with self.assertRaises(CommandError):
            run("model", "delete", "m1")


class TestListResourceTypes(TestCase):
    def test_text(self):
        out = run("list_resource_types")
        self.assertIn("Registered Resource Types", out)
        self.assertIn("image", out)

    def test_json(self):
        types = json.loads(run("list_resource_types", "--format", "json"))
        self.assertEqual(types[0]["name"], "organization")

    def test_yml(self):
        types = yaml.safe_load(run("list_resource_types", "--format", "yml"))
        self.assertIn("project", [t["name"] for t in types])
