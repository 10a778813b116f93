"""Serializers for the resource type registry API."""

from rest_framework import serializers


class ResourceTypeSerializer(serializers.Serializer):
    """A registered resource type, as declared by its descriptor."""

    name = serializers.CharField()
    collection = serializers.CharField()
    parent_types = serializers.ListField(child=serializers.CharField())
    child_types = serializers.ListField(child=serializers.CharField())
    requires_api = serializers.CharField(allow_null=True)
    model_eligible = serializers.BooleanField()
    synthetic_key_fields = serializers.ListField(child=serializers.CharField())
    description = serializers.CharField(allow_blank=True)
