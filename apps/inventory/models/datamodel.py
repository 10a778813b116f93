"""
Named data models imported from an inventory index.

A model is a hierarchical, queryable copy of one snapshot. Each row has a
``full_name`` of ``type/key`` segments from its root down, so a subtree is
every row whose full name equals or starts with ``<full_name>/``. Rows copy
the raw payload, so a model outlives the index it was imported from.
"""

from django.db import models
from django.utils import timezone


class DataModel(models.Model):
    class Status(models.TextChoices):
        BUILDING = "BUILDING", "Building"
        SUCCESS = "SUCCESS", "Success"

    name = models.CharField(max_length=128, unique=True)
    source_index = models.ForeignKey(
        "inventory.InventoryIndex",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="data_models",
    )
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.BUILDING,
    )
    row_count = models.IntegerField(default=0)
    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "inventory_model"
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} [{self.status}]"

    @property
    def is_ready(self) -> bool:
        return self.status == self.Status.SUCCESS


class ModelResourceRow(models.Model):
    model = models.ForeignKey(
        DataModel,
        on_delete=models.CASCADE,
        related_name="rows",
    )
    full_name = models.CharField(max_length=1024)
    resource_type = models.CharField(max_length=64)
    key = models.CharField(max_length=512)
    parent_full_name = models.CharField(
        max_length=1024,
        null=True,
        blank=True,
        help_text="Full name of the parent row; null for roots.",
    )
    display_name = models.CharField(max_length=512, blank=True, default="")
    display_fields = models.JSONField(default=dict, blank=True)
    data = models.JSONField(default=dict, blank=True)
    source_resource_id = models.BigIntegerField(
        null=True,
        blank=True,
        help_text="Id of the inventory resource this row was imported from (not a foreign key).",
    )

    class Meta:
        db_table = "inventory_model_resource_row"
        ordering = ["full_name"]
        indexes = [
            models.Index(fields=["model", "resource_type"], name="inventory_m_model_i_8e4a21_idx"),
            models.Index(fields=["model", "parent_full_name"], name="inventory_m_model_i_d90c3b_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["model", "full_name"],
                name="inventory_model_row_unique_full_name",
            ),
        ]

    def __str__(self):
        return self.full_name
