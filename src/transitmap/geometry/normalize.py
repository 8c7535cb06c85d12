"""
Geometry normalization for raw point and path feature collections.

Joins attribute records with their geometry by position and builds a
GeoDataFrame of shapely Points or LineStrings. The join is explicit: the
attribute and geometry counts must match before any row is built.
"""

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

import geopandas as gpd
import numpy as np
import pandas as pd
from shapely.geometry import LineString, Point
from shapely.geometry.base import BaseGeometry

from transitmap.errors import DegenerateGeometryError, ShapeMismatchError
from transitmap.geometry.model import (
    Attributes,
    PathArray,
    PathGeometrySet,
    PointGeometrySet,
    RawFeatureCollection,
)
from transitmap.utils.logging import get_logger

log = get_logger(__name__)

GEOGRAPHIC_CRS = "EPSG:4326"


class DegeneratePolicy(str, Enum):
    """What to do with a feature whose geometry cannot be built."""

    RAISE = "raise"  # fail the whole collection
    SKIP = "skip"  # drop the feature and log a warning


def _check_alignment(raw: RawFeatureCollection) -> None:
    """Reject collections whose attributes and geometry are not 1:1."""
    geometry = raw.geometry
    if isinstance(geometry, PointGeometrySet) and len(geometry.xs) != len(geometry.ys):
        msg = (
            f"{raw.name}: point geometry has {len(geometry.xs)} x values "
            f"but {len(geometry.ys)} y values"
        )
        raise ShapeMismatchError(msg)

    n_attributes = len(raw.attributes)
    n_geometries = len(geometry)
    if n_attributes != n_geometries:
        msg = (
            f"{raw.name}: {n_attributes} attribute records but "
            f"{n_geometries} {geometry.kind.value} geometries"
        )
        raise ShapeMismatchError(msg)


def _build_point(x: float | None, y: float | None, index: int) -> Point:
    if pd.isna(x) or pd.isna(y):
        raise DegenerateGeometryError(index, "point is missing x or y")
    return Point(float(x), float(y))


def _build_line_string(path: PathArray | None, index: int) -> LineString:
    """Build a LineString from the first part of a multi-part path."""
    if path is None:
        raise DegenerateGeometryError(index, "path has no parts")
    try:
        if len(path) == 0:
            raise DegenerateGeometryError(index, "path has no parts")
        first_part = path[0]
    except (TypeError, KeyError, IndexError) as e:
        msg = f"paths is {type(path).__name__}, expected a list of parts"
        raise DegenerateGeometryError(index, msg) from e

    try:
        vertices = np.asarray(first_part, dtype=float)
    except (TypeError, ValueError) as e:
        raise DegenerateGeometryError(index, f"path part 0 is malformed ({e})") from e

    if vertices.size == 0:
        raise DegenerateGeometryError(index, "path has 0 vertices, need at least 2")
    if vertices.ndim != 2 or vertices.shape[1] < 2:
        raise DegenerateGeometryError(
            index, f"path part 0 has shape {vertices.shape}, expected (n, 2)"
        )
    if vertices.shape[0] < 2:
        raise DegenerateGeometryError(
            index, f"path has {vertices.shape[0]} vertex, need at least 2"
        )

    # z/m values, if the service sent them, are dropped
    return LineString(vertices[:, :2])


def _build_geometry(raw: RawFeatureCollection, index: int) -> BaseGeometry:
    geometry = raw.geometry
    if isinstance(geometry, PointGeometrySet):
        return _build_point(geometry.xs[index], geometry.ys[index], index)
    if isinstance(geometry, PathGeometrySet):
        return _build_line_string(geometry.paths[index], index)
    msg = f"Unsupported geometry set: {type(geometry).__name__}"
    raise TypeError(msg)


def normalize_features(
    raw: RawFeatureCollection,
    *,
    crs: str = GEOGRAPHIC_CRS,
    on_degenerate: DegeneratePolicy = DegeneratePolicy.RAISE,
) -> gpd.GeoDataFrame:
    """
    Convert a raw feature collection into a GeoDataFrame.

    Row i of the result carries attribute record i verbatim and the
    geometry built from geometry record i. Point sets become Points, path
    sets become LineStrings from part 0 of each path.

    Args:
        raw: Raw collection with a point or path geometry set.
        crs: CRS of the incoming coordinates. No transformation is applied.
        on_degenerate: Policy for features whose geometry cannot be built.

    Returns:
        GeoDataFrame with one row per feature, in input order.

    Raises:
        ShapeMismatchError: If attribute and geometry counts differ.
        DegenerateGeometryError: If a geometry cannot be built and the
            policy is RAISE.
    """
    _check_alignment(raw)

    kept: list[Attributes] = []
    geometries: list[BaseGeometry] = []
    for index, attributes in enumerate(raw.attributes):
        try:
            geometry = _build_geometry(raw, index)
        except DegenerateGeometryError as e:
            if on_degenerate is DegeneratePolicy.RAISE:
                raise
            log.warning(
                "Skipping degenerate feature",
                layer=raw.name,
                index=e.index,
                reason=e.reason,
            )
            continue
        kept.append(attributes)
        geometries.append(geometry)

    # object dtype keeps ints next to nulls as ints instead of float64
    frame = pd.DataFrame(
        [dict(record) for record in kept], index=range(len(kept)), dtype=object
    )
    gdf = gpd.GeoDataFrame(frame, geometry=geometries, crs=crs)

    log.debug(
        "Normalized features",
        layer=raw.name,
        kind=raw.kind.value,
        rows=len(gdf),
        skipped=len(raw) - len(gdf),
    )
    return gdf


def convert_to_geodataframe(
    attributes: Sequence[Attributes],
    geometry: Mapping[str, Any],
    *,
    is_path: bool,
    name: str = "layer",
    crs: str = GEOGRAPHIC_CRS,
    on_degenerate: DegeneratePolicy = DegeneratePolicy.RAISE,
) -> gpd.GeoDataFrame:
    """
    Normalize columnar attribute and geometry data selected by a flag.

    Args:
        attributes: Attribute records, one per feature.
        geometry: Either {"x": [...], "y": [...]} or {"paths": [...]}.
        is_path: True for path geometry, False for point geometry.
        name: Layer name for messages.
        crs: CRS of the coordinates.
        on_degenerate: Policy for features whose geometry cannot be built.

    Returns:
        Normalized GeoDataFrame.
    """
    geometry_set: PointGeometrySet | PathGeometrySet
    if is_path:
        geometry_set = PathGeometrySet(paths=list(geometry.get("paths", [])))
    else:
        geometry_set = PointGeometrySet(
            xs=list(geometry.get("x", [])),
            ys=list(geometry.get("y", [])),
        )

    raw = RawFeatureCollection(attributes=attributes, geometry=geometry_set, name=name)
    return normalize_features(raw, crs=crs, on_degenerate=on_degenerate)
