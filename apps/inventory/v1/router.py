"""Router configuration for inventory v1 API."""
from rest_framework.routers import DefaultRouter

from apps.inventory.v1.viewsets import (
    DataModelViewSet,
    InventoryIndexViewSet,
    ResourceTypeViewSet,
)

router = DefaultRouter()

# Snapshots
router.register(r'inventory-indexes', InventoryIndexViewSet, basename='inventoryindex')

# Imported models
router.register(r'models', DataModelViewSet, basename='datamodel')

# Resource type registry
router.register(r'resource-types', ResourceTypeViewSet, basename='resourcetype')
