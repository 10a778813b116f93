from .datamodel import DataModel, ModelResourceRow
from .inventory import InventoryIndex, InventoryResource

__all__ = [
    'DataModel',
    'InventoryIndex',
    'InventoryResource',
    'ModelResourceRow',
]
