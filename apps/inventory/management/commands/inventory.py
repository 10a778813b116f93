"""Management command: crawl, inspect, delete and purge inventory indexes.

Usage:
    python manage.py inventory create
    python manage.py inventory create --root organizations/1234 --workers 8
    python manage.py inventory create --import-as nightly
    python manage.py inventory list
    python manage.py inventory list --status FAILED
    python manage.py inventory get 42
    python manage.py inventory delete 42
    python manage.py inventory purge          # INVENTORY_RETENTION_DAYS
    python manage.py inventory purge 0        # every completed index

SIGINT/SIGTERM during ``create`` cancel the crawl; the index is still
completed (PARTIAL_SUCCESS or FAILED), never left RUNNING.
"""
from __future__ import annotations

import json
import signal
import threading
from contextlib import contextmanager

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.inventory.collector import run_crawl
from apps.inventory.exceptions import InventoryError
from apps.inventory.manager import model_manager
from apps.inventory.models import InventoryIndex
from apps.inventory.store import InventoryStore
from apps.inventory.v1.serializers import InventoryIndexSerializer


class Command(BaseCommand):
    help = "Crawl cloud resources into inventory indexes, and inspect, delete or purge them"

    def add_arguments(self, parser):
        actions = parser.add_subparsers(dest="action", required=True)

        create = actions.add_parser("create", help="Crawl into a new inventory index")
        create.add_argument(
            "--root",
            action="append",
            dest="roots",
            default=None,
            help="Crawl root such as organizations/1234 (repeatable; default: INVENTORY_ROOT_RESOURCE_IDS)",
        )
        create.add_argument(
            "--workers",
            type=int,
            default=None,
            help="Concurrent enumerations (default: INVENTORY_CRAWL_MAX_WORKERS)",
        )
        create.add_argument(
            "--import-as",
            dest="import_as",
            default=None,
            help="Import the finished index into a data model with this name",
        )

        list_ = actions.add_parser("list", help="List inventory indexes")
        list_.add_argument("--status", choices=InventoryIndex.Status.values, default=None)

        get = actions.add_parser("get", help="Show one inventory index")
        get.add_argument("index_id", type=int)

        delete = actions.add_parser("delete", help="Delete one completed inventory index")
        delete.add_argument("index_id", type=int)

        purge = actions.add_parser("purge", help="Purge completed indexes past retention")
        purge.add_argument(
            "retention_days",
            type=float,
            nargs="?",
            default=None,
            help="Age in days (default: INVENTORY_RETENTION_DAYS)",
        )

    def handle(self, *args, **options):
        try:
            getattr(self, f"_{options['action']}")(options)
        except InventoryError as exc:
            raise CommandError(str(exc)) from exc

    # ── Actions ───────────────────────────────────────────────────────

    def _create(self, options):
        cancel = threading.Event()
        with self._cancel_on_signals(cancel):
            try:
                index = run_crawl(
                    options["roots"],
                    max_workers=options["workers"],
                    cancel_event=cancel,
                )
            except ValueError as exc:
                raise CommandError(str(exc)) from exc

        style = {
            InventoryIndex.Status.SUCCESS: self.style.SUCCESS,
            InventoryIndex.Status.PARTIAL_SUCCESS: self.style.WARNING,
        }.get(index.status, self.style.ERROR)
        self.stdout.write(style(
            f"Index {index.pk}: {index.status} "
            f"resources={index.resource_count} errors={index.error_count}"
        ))
        for error in index.errors[:10]:
            self.stdout.write(
                f"  [{error['kind']}] {error['resource_type']} under {error['parent']}: {error['error']}"
            )
        if index.error_count > 10:
            self.stdout.write(f"  ... and {index.error_count - 10} more")

        if index.status == InventoryIndex.Status.FAILED:
            raise CommandError(f"Crawl failed: {index.error_message}")

        if options["import_as"]:
            model = model_manager.create_model(options["import_as"], index.pk)
            self.stdout.write(self.style.SUCCESS(
                f"Imported index {index.pk} as model {model.name!r} ({model.row_count} rows)"
            ))

    def _list(self, options):
        indexes = InventoryStore().list_indexes(status=options["status"])
        if not indexes.exists():
            self.stdout.write(self.style.WARNING("No inventory indexes."))
            return

        self.stdout.write(self.style.MIGRATE_HEADING(
            f"{'ID':>6}  {'STATUS':<16} {'RESOURCES':>9} {'ERRORS':>6}  COMPLETED"
        ))
        for index in indexes:
            completed = index.completed_at.isoformat(timespec="seconds") if index.completed_at else "-"
            self.stdout.write(
                f"{index.pk:>6}  {index.status:<16} {index.resource_count:>9} {index.error_count:>6}  {completed}"
            )

    def _get(self, options):
        index = InventoryStore().get_index(options["index_id"])
        self.stdout.write(json.dumps(InventoryIndexSerializer(index).data, indent=2, default=str))

    def _delete(self, options):
        removed = InventoryStore().delete_index(options["index_id"])
        self.stdout.write(self.style.SUCCESS(
            f"Deleted index {options['index_id']} ({removed} resources)"
        ))

    def _purge(self, options):
        retention_days = options["retention_days"]
        if retention_days is None:
            retention_days = getattr(settings, "INVENTORY_RETENTION_DAYS", 0)
        if retention_days < 0:
            raise CommandError("retention_days must not be negative")
        purged = InventoryStore().purge(retention_days)
        self.stdout.write(self.style.SUCCESS(
            f"Purged {purged} inventory index(es) older than {retention_days:g} day(s)"
        ))

    # ── Helpers ───────────────────────────────────────────────────────

    @contextmanager
    def _cancel_on_signals(self, cancel: threading.Event):
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        def _handler(signum, frame):
            self.stderr.write(self.style.WARNING(
                f"Received {signal.Signals(signum).name}; finishing in-flight enumerations..."
            ))
            cancel.set()

        previous = {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}
        try:
            yield
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
