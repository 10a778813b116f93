"""Management command: list registered resource types.

Usage:
    python manage.py list_resource_types
    python manage.py list_resource_types --format=json
    python manage.py list_resource_types --format=yml
"""
from __future__ import annotations

import json

import yaml
from django.core.management.base import BaseCommand

from apps.inventory.collector import get_registry


class Command(BaseCommand):
    help = "List registered resource types, parents before children"

    def add_arguments(self, parser):
        parser.add_argument(
            "--format",
            choices=["text", "json", "yml"],
            default="text",
            help="Output format (default: text)",
        )

    def handle(self, **options):
        types = get_registry().list_types()

        if options["format"] == "json":
            self.stdout.write(json.dumps(types, indent=2))
            return
        if options["format"] == "yml":
            self.stdout.write(yaml.safe_dump(types, default_flow_style=False, sort_keys=False))
            return

        if not types:
            self.stdout.write(self.style.WARNING("No resource types registered."))
            return

        self.stdout.write(self.style.MIGRATE_HEADING(
            f"Registered Resource Types ({len(types)})"
        ))
        for info in types:
            suffix = "  [importable]" if info["model_eligible"] else ""
            self.stdout.write(self.style.SUCCESS(f"\n  {info['name']}  ({info['collection']}){suffix}"))
            if info["parent_types"]:
                self.stdout.write(f"    Parents:  {', '.join(info['parent_types'])}")
            if info["child_types"]:
                self.stdout.write(f"    Children: {', '.join(info['child_types'])}")
            if info["requires_api"]:
                self.stdout.write(f"    Requires: {info['requires_api']}")
            if info["description"]:
                self.stdout.write(f"    {info['description']}")
