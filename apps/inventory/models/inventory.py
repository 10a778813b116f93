"""
Inventory snapshot models.

Every crawl writes one ``InventoryIndex`` and one ``InventoryResource`` per
discovered resource. An index is append-only while it is ``RUNNING`` and
immutable once completed; it is only ever removed as a whole (purge or
delete).

Crawl roots are not stored as resources. They are recorded on the index
(``roots``) and every stored resource's parent is either another resource
of the same index or one of those roots.
"""

from django.db import models
from django.utils import timezone


class InventoryIndex(models.Model):
    """A single crawl run and the snapshot it produced."""

    class Status(models.TextChoices):
        RUNNING = "RUNNING", "Running"
        SUCCESS = "SUCCESS", "Success"
        PARTIAL_SUCCESS = "PARTIAL_SUCCESS", "Partial success (some enumerations failed)"
        FAILED = "FAILED", "Failed"

    started_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True, db_index=True)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.RUNNING,
    )

    root_ids = models.JSONField(
        default=list,
        blank=True,
        help_text="Crawl roots as requested, e.g. ['organizations/1234'].",
    )
    roots = models.JSONField(
        default=list,
        blank=True,
        help_text="Resolved roots: [{type, key, display_name, data}].",
    )

    resource_count = models.IntegerField(default=0)
    error_count = models.IntegerField(default=0)
    errors = models.JSONField(
        default=list,
        blank=True,
        help_text="Recoverable errors: [{resource_type, parent, kind, error}]. Bounded.",
    )

    error_message = models.TextField(blank=True, default="")
    result_traceback = models.TextField(
        blank=True,
        default="",
        help_text="Python traceback if the crawl failed with an exception.",
    )

    class Meta:
        db_table = "inventory_index"
        ordering = ["-id"]
        indexes = [
            models.Index(fields=["status"], name="inventory_i_status_3c1f0e_idx"),
        ]
        verbose_name_plural = "inventory indexes"

    def __str__(self):
        return f"index {self.pk} @ {self.started_at} [{self.status}]"

    @property
    def is_terminal(self) -> bool:
        return self.status != self.Status.RUNNING

    @property
    def is_importable(self) -> bool:
        return self.status in (self.Status.SUCCESS, self.Status.PARTIAL_SUCCESS)

    @property
    def root_refs(self) -> set[str]:
        return {f"{root['type']}/{root['key']}" for root in self.roots or []}


class InventoryResource(models.Model):
    """One discovered resource within one index."""

    index = models.ForeignKey(
        InventoryIndex,
        on_delete=models.CASCADE,
        related_name="resources",
    )
    key = models.CharField(max_length=512)
    resource_type = models.CharField(max_length=64)
    parent_type = models.CharField(max_length=64, null=True, blank=True)
    parent_key = models.CharField(max_length=512, null=True, blank=True)
    display_name = models.CharField(max_length=512, blank=True, default="")
    data = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "inventory_resource"
        ordering = ["id"]
        indexes = [
            models.Index(fields=["index", "resource_type"], name="inventory_r_index_i_5b2d7a_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["index", "resource_type", "parent_type", "parent_key", "key"],
                name="inventory_resource_unique_identity",
            ),
        ]

    def __str__(self):
        return f"{self.ref} (index {self.index_id})"

    @property
    def ref(self) -> str:
        return f"{self.resource_type}/{self.key}"

    @property
    def parent_ref(self) -> str | None:
        if self.parent_type is None:
            return None
        return f"{self.parent_type}/{self.parent_key}"
