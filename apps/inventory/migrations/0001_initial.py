"""
Initial schema migration for the cloud inventory service.

Creates the inventory snapshot tables (index + resources) and the imported
data model tables (model + rows).
"""

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        # ─── Inventory snapshots ────────────────────────────────────────

        migrations.CreateModel(
            name="InventoryIndex",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("started_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("completed_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("status", models.CharField(choices=[("RUNNING", "Running"), ("SUCCESS", "Success"), ("PARTIAL_SUCCESS", "Partial success (some enumerations failed)"), ("FAILED", "Failed")], default="RUNNING", max_length=16)),
                ("root_ids", models.JSONField(blank=True, default=list, help_text="Crawl roots as requested, e.g. ['organizations/1234'].")),
                ("roots", models.JSONField(blank=True, default=list, help_text="Resolved roots: [{type, key, display_name, data}].")),
                ("resource_count", models.IntegerField(default=0)),
                ("error_count", models.IntegerField(default=0)),
                ("errors", models.JSONField(blank=True, default=list, help_text="Recoverable errors: [{resource_type, parent, kind, error}]. Bounded.")),
                ("error_message", models.TextField(blank=True, default="")),
                ("result_traceback", models.TextField(blank=True, default="", help_text="Python traceback if the crawl failed with an exception.")),
            ],
            options={
                "db_table": "inventory_index",
                "ordering": ["-id"],
                "verbose_name_plural": "inventory indexes",
                "indexes": [models.Index(fields=["status"], name="inventory_i_status_3c1f0e_idx")],
            },
        ),

        migrations.CreateModel(
            name="InventoryResource",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=512)),
                ("resource_type", models.CharField(max_length=64)),
                ("parent_type", models.CharField(blank=True, max_length=64, null=True)),
                ("parent_key", models.CharField(blank=True, max_length=512, null=True)),
                ("display_name", models.CharField(blank=True, default="", max_length=512)),
                ("data", models.JSONField(blank=True, default=dict)),
                ("index", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="resources", to="inventory.inventoryindex")),
            ],
            options={
                "db_table": "inventory_resource",
                "ordering": ["id"],
                "indexes": [models.Index(fields=["index", "resource_type"], name="inventory_r_index_i_5b2d7a_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("index", "resource_type", "parent_type", "parent_key", "key"),
                        name="inventory_resource_unique_identity",
                    ),
                ],
            },
        ),

        # ─── Imported data models ───────────────────────────────────────

        migrations.CreateModel(
            name="DataModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=128, unique=True)),
                ("status", models.CharField(choices=[("BUILDING", "Building"), ("SUCCESS", "Success")], default="BUILDING", max_length=16)),
                ("row_count", models.IntegerField(default=0)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("source_index", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="data_models", to="inventory.inventoryindex")),
            ],
            options={
                "db_table": "inventory_model",
                "ordering": ["name"],
            },
        ),

        migrations.CreateModel(
            name="ModelResourceRow",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("full_name", models.CharField(max_length=1024)),
                ("resource_type", models.CharField(max_length=64)),
                ("key", models.CharField(max_length=512)),
                ("parent_full_name", models.CharField(blank=True, help_text="Full name of the parent row; null for roots.", max_length=1024, null=True)),
                ("display_name", models.CharField(blank=True, default="", max_length=512)),
                ("display_fields", models.JSONField(blank=True, default=dict)),
                ("data", models.JSONField(blank=True, default=dict)),
                ("source_resource_id", models.BigIntegerField(blank=True, help_text="Id of the inventory resource this row was imported from (not a foreign key).", null=True)),
                ("model", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="rows", to="inventory.datamodel")),
            ],
            options={
                "db_table": "inventory_model_resource_row",
                "ordering": ["full_name"],
                "indexes": [
                    models.Index(fields=["model", "resource_type"], name="inventory_m_model_i_8e4a21_idx"),
                    models.Index(fields=["model", "parent_full_name"], name="inventory_m_model_i_d90c3b_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("model", "full_name"),
                        name="inventory_model_row_unique_full_name",
                    ),
                ],
            },
        ),
    ]
