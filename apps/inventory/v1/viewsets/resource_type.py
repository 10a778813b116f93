"""Resource type viewset — read-only API over the resource type registry.

The registry lives in the ``inventory_crawler`` package, which is external
to this Django app. Types ship with the package or are installed as
separate Python packages and discovered via entry points.

Endpoints:

    GET  /api/v1/resource-types/
        List all registered types, parents before children.

    GET  /api/v1/resource-types/{name}/
        Detail view for a single type.
"""

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from apps.inventory.collector import get_registry
from apps.inventory.v1.serializers import ResourceTypeSerializer


class ResourceTypeViewSet(ViewSet):
    permission_classes = [IsAuthenticated]
    lookup_field = "name"
    lookup_value_regex = r"[a-zA-Z0-9_-]+"

    def list(self, request):
        """List all registered resource types in dependency order."""
        serializer = ResourceTypeSerializer(get_registry().list_types(), many=True)
        return Response(serializer.data)

    def retrieve(self, request, name=None):
        descriptor = get_registry().get(name)
        if descriptor is None:
            return Response(
                {"detail": f"No registered resource type '{name}'."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(ResourceTypeSerializer(descriptor.metadata()).data)
