"""
Data model viewset — create, inspect, activate and delete named models.

GET    /api/v1/models/                 → list models
POST   /api/v1/models/                 → import an index: {"name", "index_id"}
GET    /api/v1/models/active/          → the active model
GET    /api/v1/models/{name}/          → detail
DELETE /api/v1/models/{name}/          → delete the model and its rows
POST   /api/v1/models/{name}/use/      → make it the active model
GET    /api/v1/models/{name}/rows/     → rows (?prefix=organization/1&resource_type=image)
"""

import logging

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from apps.inventory.manager import model_manager
from apps.inventory.models import DataModel
from apps.inventory.v1.serializers import (
    DataModelCreateSerializer,
    DataModelSerializer,
    ModelResourceRowSerializer,
)

from .base import InventoryErrorMixin

logger = logging.getLogger("apps.inventory.views")


class DataModelViewSet(InventoryErrorMixin, GenericViewSet):
    queryset = DataModel.objects.all()
    serializer_class = DataModelSerializer
    permission_classes = [IsAuthenticated]
    lookup_field = "name"
    lookup_value_regex = r"[^/]+"
    filterset_fields = ["status", "source_index"]
    ordering_fields = ["name", "created_at", "row_count"]

    def get_serializer_context(self):
        context = super().get_serializer_context()
        active = model_manager.active_model()
        context["active_model"] = active.name if active else None
        return context

    def list(self, request):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        return Response(self.get_serializer(qs, many=True).data)

    def retrieve(self, request, name=None):
        model = model_manager.get_model(name)
        return Response(self.get_serializer(model).data)

    def create(self, request):
        """Import an inventory index into a new model. Response: 201 with the model."""
        serializer = DataModelCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        model = model_manager.create_model(
            serializer.validated_data["name"],
            serializer.validated_data["index_id"],
            description=serializer.validated_data["description"],
        )
        logger.info("Model %r created via API by %s", model.name, request.user)
        return Response(self.get_serializer(model).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, name=None):
        rows = model_manager.delete_model(name)
        return Response({"rows_removed": rows}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="use")
    def use(self, request, name=None):
        model = model_manager.use_model(name)
        return Response(self.get_serializer(model).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="active")
    def active(self, request):
        model = model_manager.active_model()
        if model is None:
            return Response({"detail": "No data model is active."}, status=status.HTTP_404_NOT_FOUND)
        return Response(self.get_serializer(model).data)

    @action(detail=True, methods=["get"], url_path="rows")
    def rows(self, request, name=None):
        """
        Return the rows of this model.

        GET /models/{name}/rows/?prefix=organization/1/project/p1   → that subtree
        GET /models/{name}/rows/?resource_type=image
        """
        qs = model_manager.rows(
            name,
            prefix=request.query_params.get("prefix"),
            resource_type=request.query_params.get("resource_type"),
        )
        page = self.paginate_queryset(qs)
        if page is not None:
            serializer = ModelResourceRowSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        return Response(ModelResourceRowSerializer(qs, many=True).data)
