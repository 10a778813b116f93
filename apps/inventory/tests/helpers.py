"""Shared builders for inventory tests."""
from datetime import timedelta

from django.utils import timezone

from apps.inventory.models import InventoryIndex, InventoryResource
from inventory_crawler import FixtureApiClient

# organization/1 → project/p1 → image/img1, image/img2
SMALL_ORG = [
    {"type": "organization", "data": {"name": "organizations/1", "displayName": "example.com"}},
    {
        "type": "project",
        "parent": "organization/1",
        "data": {"projectId": "p1", "name": "Project One", "enabledApis": ["compute.googleapis.com"]},
    },
    {"type": "image", "parent": "project/p1", "data": {"id": "img1", "name": "base", "status": "READY"}},
    {"type": "image", "parent": "project/p1", "data": {"id": "img2", "name": "web", "status": "READY"}},
]

ORG_ROOT = {"type": "organization", "key": "1", "display_name": "example.com", "data": {"name": "organizations/1"}}


def small_org_client(errors=()):
    return FixtureApiClient(resources=SMALL_ORG, errors=errors)


def make_index(status=InventoryIndex.Status.SUCCESS, age_days=0, resources=(), roots=(ORG_ROOT,)):
    """
    Create a completed index directly.

    ``resources`` are ``(type, key, parent_type, parent_key)`` tuples.
    """
    completed_at = None
    if status != InventoryIndex.Status.RUNNING:
        completed_at = timezone.now() - timedelta(days=age_days)
    index = InventoryIndex.objects.create(
        status=status,
        completed_at=completed_at,
        root_ids=[f"{root['type']}/{root['key']}" for root in roots],
        roots=list(roots),
    )
    for resource_type, key, parent_type, parent_key in resources:
        InventoryResource.objects.create(
            index=index,
            resource_type=resource_type,
            key=key,
            parent_type=parent_type,
            parent_key=parent_key,
            display_name=key,
            data={"id": key},
        )
    index.resource_count = len(resources)
    index.save(update_fields=["resource_count"])
    return index


SMALL_ORG_RESOURCES = [
    ("project", "p1", "organization", "1"),
    ("image", "img1", "project", "p1"),
    ("image", "img2", "project", "p1"),
]
