"""Builtin resource types for a GCP-shaped hierarchy.

    organization
    ├── folder (nested folders allowed)
    │   └── project ...
    ├── project
    │   ├── bucket           storage.googleapis.com
    │   ├── image            compute.googleapis.com
    │   ├── instance         compute.googleapis.com
    │   ├── disk             compute.googleapis.com
    │   ├── network          compute.googleapis.com
    │   ├── firewall         compute.googleapis.com
    │   ├── service_account  iam.googleapis.com
    │   ├── dataset          bigquery.googleapis.com
    │   └── iam_policy
    └── iam_policy

Keys are the provider-assigned ids. The one exception is ``iam_policy``:
policies have no id of their own, so their key is a synthetic hash of the
type and the parent reference (``key_fields`` is empty). A policy is
therefore stable across crawls for as long as its parent exists.

Projects expose the APIs enabled on them through ``enabledApis``; a
project that is not ``ACTIVE`` is treated as having no enabled API, so
nothing beneath it is enumerated except its IAM policy.
"""
from __future__ import annotations

from typing import Any, Mapping

from .base import Resource, ResourceTypeDescriptor, synthetic_key

COMPUTE_API = "compute.googleapis.com"
STORAGE_API = "storage.googleapis.com"
IAM_API = "iam.googleapis.com"
BIGQUERY_API = "bigquery.googleapis.com"


def _last_segment(name: str) -> str:
    return str(name).rstrip("/").rsplit("/", 1)[-1]


def _short(value: Any) -> str:
    """Strip a self-link or resource path down to its last segment."""
    if not value:
        return ""
    return _last_segment(value)


# ── Resource manager ─────────────────────────────────────────────────


def _construct_organization(payload: Mapping[str, Any], parent: Resource | None) -> Resource:
    return Resource.from_payload(
        "organization",
        payload,
        parent,
        key=_last_segment(payload["name"]),
        display_name=payload.get("displayName", ""),
    )


def _convert_organization(payload: Mapping[str, Any]) -> dict:
    return {
        "directory_customer_id": payload.get("owner", {}).get("directoryCustomerId", ""),
        "lifecycle_state": payload.get("lifecycleState", ""),
        "create_time": payload.get("creationTime", ""),
    }


def _construct_folder(payload: Mapping[str, Any], parent: Resource | None) -> Resource:
    return Resource.from_payload(
        "folder",
        payload,
        parent,
        key=_last_segment(payload["name"]),
        display_name=payload.get("displayName", ""),
    )


def _convert_folder(payload: Mapping[str, Any]) -> dict:
    return {
        "lifecycle_state": payload.get("lifecycleState", ""),
        "create_time": payload.get("createTime", ""),
    }


def _construct_project(payload: Mapping[str, Any], parent: Resource | None) -> Resource:
    active = payload.get("lifecycleState", "ACTIVE") == "ACTIVE"
    return Resource.from_payload(
        "project",
        payload,
        parent,
        key=payload["projectId"],
        display_name=payload.get("name", ""),
        enabled_apis=payload.get("enabledApis", ()) if active else (),
    )


def _convert_project(payload: Mapping[str, Any]) -> dict:
    return {
        "project_id": payload.get("projectId", ""),
        "project_number": str(payload.get("projectNumber", "")),
        "lifecycle_state": payload.get("lifecycleState", ""),
        "labels": dict(payload.get("labels", {})),
    }


def _construct_iam_policy(payload: Mapping[str, Any], parent: Resource | None) -> Resource:
    return Resource.from_payload(
        "iam_policy",
        payload,
        parent,
        key=synthetic_key("iam_policy", payload, IAM_POLICY.key_fields, parent),
        display_name=f"{parent.ref} policy" if parent else "",
    )


def _convert_iam_policy(payload: Mapping[str, Any]) -> dict:
    bindings = payload.get("bindings", [])
    return {
        "roles": sorted({b.get("role", "") for b in bindings}),
        "binding_count": len(bindings),
        "etag": payload.get("etag", ""),
    }


ORGANIZATION = ResourceTypeDescriptor(
    name="organization",
    collection="organizations",
    construct=_construct_organization,
    convert=_convert_organization,
    child_types=("folder", "project", "iam_policy"),
    description="Root of the resource hierarchy.",
)

FOLDER = ResourceTypeDescriptor(
    name="folder",
    collection="folders",
    construct=_construct_folder,
    convert=_convert_folder,
    parent_types=("organization", "folder"),
    child_types=("folder", "project", "iam_policy"),
)

PROJECT = ResourceTypeDescriptor(
    name="project",
    collection="projects",
    construct=_construct_project,
    convert=_convert_project,
    parent_types=("organization", "folder"),
    child_types=(
        "bucket",
        "image",
        "instance",
        "disk",
        "network",
        "firewall",
        "service_account",
        "dataset",
        "iam_policy",
    ),
)

IAM_POLICY = ResourceTypeDescriptor(
    name="iam_policy",
    collection="iamPolicies",
    construct=_construct_iam_policy,
    convert=_convert_iam_policy,
    parent_types=("organization", "folder", "project"),
    description="IAM policy attached to its parent; keyed synthetically.",
)


# ── Project-level services ───────────────────────────────────────────


def _construct_bucket(payload: Mapping[str, Any], parent: Resource | None) -> Resource:
    return Resource.from_payload(
        "bucket", payload, parent, key=payload["id"], display_name=payload.get("name", "")
    )


def _convert_bucket(payload: Mapping[str, Any]) -> dict:
    return {
        "location": payload.get("location", ""),
        "storage_class": payload.get("storageClass", ""),
        "created": payload.get("timeCreated", ""),
    }


def _construct_compute(type_name: str):
    def construct(payload: Mapping[str, Any], parent: Resource | None) -> Resource:
        return Resource.from_payload(
            type_name, payload, parent, key=payload["id"], display_name=payload.get("name", "")
        )

    construct.__name__ = f"_construct_{type_name}"
    return construct


def _convert_image(payload: Mapping[str, Any]) -> dict:
    return {
        "family": payload.get("family", ""),
        "status": payload.get("status", ""),
        "disk_size_gb": payload.get("diskSizeGb"),
        "source_type": payload.get("sourceType", ""),
    }


def _convert_instance(payload: Mapping[str, Any]) -> dict:
    return {
        "machine_type": _short(payload.get("machineType")),
        "status": payload.get("status", ""),
        "zone": _short(payload.get("zone")),
        "network_ips": [
            nic.get("networkIP", "") for nic in payload.get("networkInterfaces", [])
        ],
    }


def _convert_disk(payload: Mapping[str, Any]) -> dict:
    return {
        "size_gb": payload.get("sizeGb"),
        "type": _short(payload.get("type")),
        "zone": _short(payload.get("zone")),
        "status": payload.get("status", ""),
    }


def _convert_network(payload: Mapping[str, Any]) -> dict:
    return {
        "auto_create_subnetworks": payload.get("autoCreateSubnetworks"),
        "routing_mode": payload.get("routingConfig", {}).get("routingMode", ""),
    }


def _convert_firewall(payload: Mapping[str, Any]) -> dict:
    return {
        "network": _short(payload.get("network")),
        "direction": payload.get("direction", ""),
        "priority": payload.get("priority"),
        "source_ranges": list(payload.get("sourceRanges", [])),
        "disabled": bool(payload.get("disabled", False)),
    }


def _construct_service_account(payload: Mapping[str, Any], parent: Resource | None) -> Resource:
    return Resource.from_payload(
        "service_account",
        payload,
        parent,
        key=payload["uniqueId"],
        display_name=payload.get("displayName") or payload.get("email", ""),
    )


def _convert_service_account(payload: Mapping[str, Any]) -> dict:
    return {
        "email": payload.get("email", ""),
        "disabled": bool(payload.get("disabled", False)),
    }


def _construct_dataset(payload: Mapping[str, Any], parent: Resource | None) -> Resource:
    reference = payload["datasetReference"]
    return Resource.from_payload(
        "dataset",
        payload,
        parent,
        key=reference["datasetId"],
        display_name=payload.get("friendlyName", "") or reference["datasetId"],
    )


def _convert_dataset(payload: Mapping[str, Any]) -> dict:
    return {"location": payload.get("location", "")}


BUCKET = ResourceTypeDescriptor(
    name="bucket",
    collection="buckets",
    construct=_construct_bucket,
    convert=_convert_bucket,
    parent_types=("project",),
    requires_api=STORAGE_API,
)

IMAGE = ResourceTypeDescriptor(
    name="image",
    collection="images",
    construct=_construct_compute("image"),
    convert=_convert_image,
    parent_types=("project",),
    requires_api=COMPUTE_API,
)

INSTANCE = ResourceTypeDescriptor(
    name="instance",
    collection="instances",
    construct=_construct_compute("instance"),
    convert=_convert_instance,
    parent_types=("project",),
    requires_api=COMPUTE_API,
)

DISK = ResourceTypeDescriptor(
    name="disk",
    collection="disks",
    construct=_construct_compute("disk"),
    convert=_convert_disk,
    parent_types=("project",),
    requires_api=COMPUTE_API,
)

NETWORK = ResourceTypeDescriptor(
    name="network",
    collection="networks",
    construct=_construct_compute("network"),
    convert=_convert_network,
    parent_types=("project",),
    requires_api=COMPUTE_API,
)

FIREWALL = ResourceTypeDescriptor(
    name="firewall",
    collection="firewalls",
    construct=_construct_compute("firewall"),
    convert=_convert_firewall,
    parent_types=("project",),
    requires_api=COMPUTE_API,
)

SERVICE_ACCOUNT = ResourceTypeDescriptor(
    name="service_account",
    collection="serviceAccounts",
    construct=_construct_service_account,
    convert=_convert_service_account,
    parent_types=("project",),
    requires_api=IAM_API,
)

DATASET = ResourceTypeDescriptor(
    name="dataset",
    collection="datasets",
    construct=_construct_dataset,
    convert=_convert_dataset,
    parent_types=("project",),
    requires_api=BIGQUERY_API,
)
