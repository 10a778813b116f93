"""Management command: create, inspect, query and delete data models.

Usage:
    python manage.py model create nightly 42
    python manage.py model list
    python manage.py model get nightly
    python manage.py model use nightly
    python manage.py model rows nightly --prefix organization/1234/project/p1
    python manage.py model rows nightly --type instance --format json
    python manage.py model delete nightly

The active model is held by each process. ``model use`` checks that a
model can be activated and makes it active for the rest of this process
(useful from ``manage.py shell`` or a scheduler calling ``call_command``);
a running API server is switched with ``POST /api/v1/models/{name}/use/``.
"""
from __future__ import annotations

import json

from django.core.management.base import BaseCommand, CommandError

from apps.inventory.exceptions import InventoryError
from apps.inventory.manager import model_manager
from apps.inventory.v1.serializers import DataModelSerializer, ModelResourceRowSerializer


class Command(BaseCommand):
    help = "Import inventory indexes into named data models, and inspect or delete them"

    def add_arguments(self, parser):
        actions = parser.add_subparsers(dest="action", required=True)

        create = actions.add_parser("create", help="Import an inventory index into a new model")
        create.add_argument("name")
        create.add_argument("index_id", type=int)
        create.add_argument("--description", default="")

        actions.add_parser("list", help="List data models")

        get = actions.add_parser("get", help="Show one data model")
        get.add_argument("name")

        use = actions.add_parser("use", help="Make a data model the active model of this process")
        use.add_argument("name")

        delete = actions.add_parser("delete", help="Delete a data model and its rows")
        delete.add_argument("name")

        rows = actions.add_parser("rows", help="Query the rows of a data model")
        rows.add_argument("name")
        rows.add_argument("--prefix", default=None, help="Full name of a subtree root")
        rows.add_argument("--type", dest="resource_type", default=None)
        rows.add_argument("--format", choices=["text", "json"], default="text")

    def handle(self, *args, **options):
        try:
            getattr(self, f"_{options['action']}")(options)
        except InventoryError as exc:
            raise CommandError(str(exc)) from exc
        except ValueError as exc:
            raise CommandError(str(exc)) from exc

    def _create(self, options):
        model = model_manager.create_model(
            options["name"], options["index_id"], description=options["description"]
        )
        self.stdout.write(self.style.SUCCESS(
            f"Created model {model.name!r} (id {model.pk}) from index {options['index_id']}: "
            f"{model.row_count} rows"
        ))

    def _list(self, options):
        models = model_manager.list_models()
        if not models.exists():
            self.stdout.write(self.style.WARNING("No data models."))
            return

        self.stdout.write(self.style.MIGRATE_HEADING(
            f"{'NAME':<32} {'STATUS':<10} {'INDEX':>6} {'ROWS':>8}"
        ))
        for model in models:
            index = model.source_index_id if model.source_index_id is not None else "-"
            self.stdout.write(f"{model.name:<32} {model.status:<10} {index:>6} {model.row_count:>8}")

    def _get(self, options):
        model = model_manager.get_model(options["name"])
        self.stdout.write(json.dumps(DataModelSerializer(model).data, indent=2, default=str))

    def _use(self, options):
        model = model_manager.use_model(options["name"])
        self.stdout.write(self.style.SUCCESS(
            f"Model {model.name!r} is now active ({model.row_count} rows, from index {model.source_index_id})"
        ))

    def _delete(self, options):
        rows = model_manager.delete_model(options["name"])
        self.stdout.write(self.style.SUCCESS(f"Deleted model {options['name']!r} ({rows} rows)"))

    def _rows(self, options):
        rows = model_manager.rows(
            options["name"], prefix=options["prefix"], resource_type=options["resource_type"]
        )
        if options["format"] == "json":
            self.stdout.write(json.dumps(ModelResourceRowSerializer(rows, many=True).data, indent=2))
            return
        for row in rows:
            label = f"  {row.display_name}" if row.display_name else ""
            self.stdout.write(f"{row.full_name}{label}")
