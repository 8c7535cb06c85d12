"""
Schema definitions using Pandera for data validation.

Normalized stop and route layers are validated against these schemas
before they reach the map composer.
"""

from transitmap.schemas.layers import RouteLayerSchema, StopLayerSchema
from transitmap.schemas.registry import SchemaRegistry

__all__ = [
    "RouteLayerSchema",
    "SchemaRegistry",
    "StopLayerSchema",
]
