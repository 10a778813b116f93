from .datamodel import DataModelViewSet
from .inventory_index import InventoryIndexViewSet
from .resource_type import ResourceTypeViewSet

__all__ = [
    'DataModelViewSet',
    'InventoryIndexViewSet',
    'ResourceTypeViewSet',
]
