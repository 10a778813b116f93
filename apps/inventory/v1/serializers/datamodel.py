from rest_framework import serializers

from apps.inventory.models import DataModel, ModelResourceRow


class DataModelSerializer(serializers.ModelSerializer):
    is_active = serializers.SerializerMethodField()

    class Meta:
        model = DataModel
        fields = [
            "id",
            "name",
            "source_index",
            "status",
            "row_count",
            "description",
            "created_at",
            "completed_at",
            "is_active",
        ]
        read_only_fields = fields

    def get_is_active(self, obj) -> bool:
        return obj.name == self.context.get("active_model")


class DataModelCreateSerializer(serializers.Serializer):
    """Request body for importing an inventory index into a new model."""

    name = serializers.RegexField(r"^[^/\s][^/]*$", max_length=128)
    index_id = serializers.IntegerField(min_value=1)
    description = serializers.CharField(required=False, allow_blank=True, default="")


class ModelResourceRowSerializer(serializers.ModelSerializer):
    class Meta:
        model = ModelResourceRow
        fields = [
            "full_name",
            "resource_type",
            "key",
            "parent_full_name",
            "display_name",
            "display_fields",
            "data",
            "source_resource_id",
        ]
        read_only_fields = fields
