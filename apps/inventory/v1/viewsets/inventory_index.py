"""
Inventory index viewset — read-only snapshots plus delete and purge.

Indexes are created exclusively by crawls (``inventory create``), never
directly via POST to this endpoint.

GET    /api/v1/inventory-indexes/                  → list all indexes (filterable)
GET    /api/v1/inventory-indexes/{id}/             → detail
DELETE /api/v1/inventory-indexes/{id}/             → delete one completed index
GET    /api/v1/inventory-indexes/{id}/resources/   → resources of the index
POST   /api/v1/inventory-indexes/purge/            → purge old completed indexes
"""

import logging

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.mixins import ListModelMixin, RetrieveModelMixin
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from apps.inventory.exceptions import IndexNotFound
from apps.inventory.models import InventoryIndex, InventoryResource
from apps.inventory.store import InventoryStore
from apps.inventory.v1.serializers import (
    InventoryIndexSerializer,
    InventoryResourceSerializer,
    PurgeSerializer,
)

from .base import InventoryErrorMixin

logger = logging.getLogger("apps.inventory.views")


class InventoryIndexViewSet(InventoryErrorMixin, ListModelMixin, RetrieveModelMixin, GenericViewSet):
    """
    Inventory snapshots.

    Filtering examples:
        ?status=PARTIAL_SUCCESS
        ?ordering=-completed_at
    """

    queryset = InventoryIndex.objects.all()
    serializer_class = InventoryIndexSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["status"]
    ordering_fields = ["id", "started_at", "completed_at", "resource_count", "error_count"]

    def destroy(self, request, pk=None):
        """Delete a completed index and its resources; models built from it are kept."""
        removed = InventoryStore().delete_index(self._index_id(pk))
        logger.info("Index %s deleted via API by %s", pk, request.user)
        return Response({"resources_removed": removed}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"], url_path="resources")
    def resources(self, request, pk=None):
        """
        Return the resources stored in this index.

        GET /inventory-indexes/{id}/resources/
        GET /inventory-indexes/{id}/resources/?resource_type=image
        """
        index = self.get_object()
        qs = InventoryResource.objects.filter(index=index).order_by("id")
        resource_type = request.query_params.get("resource_type")
        if resource_type:
            qs = qs.filter(resource_type=resource_type)

        page = self.paginate_queryset(qs)
        if page is not None:
            serializer = InventoryResourceSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        serializer = InventoryResourceSerializer(qs, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=["post"], url_path="purge", serializer_class=PurgeSerializer)
    def purge(self, request):
        """
        Purge completed indexes older than ``retention_days``.

        Response: 200 with ``{"purged": n, "retention_days": d}``.
        """
        serializer = PurgeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        retention_days = serializer.validated_data["retention_days"]
        purged = InventoryStore().purge(retention_days)
        return Response({"purged": purged, "retention_days": retention_days}, status=status.HTTP_200_OK)

    @staticmethod
    def _index_id(pk) -> int:
        try:
            return int(pk)
        except (TypeError, ValueError):
            raise IndexNotFound(pk) from None
