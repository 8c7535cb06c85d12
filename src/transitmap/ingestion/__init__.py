"""
Data ingestion layer for ArcGIS stop and route layers.

All layer loading happens through this module so that every layer is
normalized and validated the same way.
"""

from transitmap.ingestion.arcgis import (
    build_query_params,
    fetch_features,
    parse_features,
    parse_response,
)
from transitmap.ingestion.base import ArcGISLayerLoader, DataLoader, FileLayerLoader

__all__ = [
    "ArcGISLayerLoader",
    "DataLoader",
    "FileLayerLoader",
    "build_query_params",
    "fetch_features",
    "parse_features",
    "parse_response",
]
