from .datamodel import DataModelCreateSerializer, DataModelSerializer, ModelResourceRowSerializer
from .inventory_index import InventoryIndexSerializer, InventoryResourceSerializer, PurgeSerializer
from .resource_type import ResourceTypeSerializer

__all__ = [
    'DataModelCreateSerializer',
    'DataModelSerializer',
    'InventoryIndexSerializer',
    'InventoryResourceSerializer',
    'ModelResourceRowSerializer',
    'PurgeSerializer',
    'ResourceTypeSerializer',
]
