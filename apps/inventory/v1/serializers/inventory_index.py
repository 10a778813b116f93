from django.conf import settings
from rest_framework import serializers

from apps.inventory.models import InventoryIndex, InventoryResource


class InventoryIndexSerializer(serializers.ModelSerializer):
    duration_seconds = serializers.SerializerMethodField(
        help_text="Elapsed seconds from start to completion (null if still running).",
    )

    class Meta:
        model = InventoryIndex
        fields = [
            "id",
            "status",
            "started_at",
            "completed_at",
            "root_ids",
            "roots",
            "resource_count",
            "error_count",
            "errors",
            "error_message",
            "result_traceback",
            "duration_seconds",
        ]
        read_only_fields = fields  # indexes are only ever written by a crawl

    def get_duration_seconds(self, obj) -> float | None:
        if obj.completed_at and obj.started_at:
            return (obj.completed_at - obj.started_at).total_seconds()
        return None


class InventoryResourceSerializer(serializers.ModelSerializer):
    class Meta:
        model = InventoryResource
        fields = [
            "id",
            "index",
            "resource_type",
            "key",
            "parent_type",
            "parent_key",
            "display_name",
            "data",
        ]
        read_only_fields = fields


class PurgeSerializer(serializers.Serializer):
    retention_days = serializers.FloatField(
        min_value=0,
        required=False,
        help_text="Purge completed indexes at least this many days old (INVENTORY_RETENTION_DAYS by default).",
    )

    def validate(self, attrs):
        attrs.setdefault("retention_days", getattr(settings, "INVENTORY_RETENTION_DAYS", 0))
        return attrs
