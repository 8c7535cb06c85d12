"""
Raw feature model and geometry normalization.

Converts ArcGIS-style point and path geometry sets into GeoDataFrames.
"""

from transitmap.geometry.model import (
    GeometryKind,
    PathGeometrySet,
    PointGeometrySet,
    RawFeatureCollection,
)
from transitmap.geometry.normalize import (
    DegeneratePolicy,
    convert_to_geodataframe,
    normalize_features,
)

__all__ = [
    "DegeneratePolicy",
    "GeometryKind",
    "PathGeometrySet",
    "PointGeometrySet",
    "RawFeatureCollection",
    "convert_to_geodataframe",
    "normalize_features",
]
