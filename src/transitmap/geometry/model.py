"""
Raw feature collection model.

A raw collection holds attribute records and a geometry set side by side,
aligned by position. The geometry set is one of two variants, so point
data can never be handed to the path branch or vice versa.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

Attributes = Mapping[str, Any]

# part x vertex x dimension, as returned in ArcGIS "paths"
PathArray = Sequence[Sequence[Sequence[float]]]


class GeometryKind(str, Enum):
    """Geometry encoding of a layer."""

    POINT = "point"  # bare x/y fields
    PATH = "path"  # nested paths arrays


@dataclass(frozen=True)
class PointGeometrySet:
    """
    Parallel x and y coordinates, one pair per feature.

    Entries are None where the service returned no geometry.
    """

    xs: Sequence[float | None]
    ys: Sequence[float | None]

    kind = GeometryKind.POINT

    def __len__(self) -> int:
        return len(self.xs)


@dataclass(frozen=True)
class PathGeometrySet:
    """
    One multi-part path per feature.

    Each path is indexed by part, vertex and coordinate dimension. Only the
    first part is used when building line strings.
    """

    paths: Sequence[PathArray | None]

    kind = GeometryKind.PATH

    def __len__(self) -> int:
        return len(self.paths)


GeometrySet = PointGeometrySet | PathGeometrySet


@dataclass(frozen=True)
class RawFeatureCollection:
    """
    Unprocessed layer response.

    Attributes:
        attributes: Attribute records, one per feature.
        geometry: Point or path geometry set aligned with attributes.
        name: Layer name used in log and error messages.
    """

    attributes: Sequence[Attributes]
    geometry: GeometrySet
    name: str = field(default="layer")

    @property
    def kind(self) -> GeometryKind:
        """Geometry encoding of this collection."""
        return self.geometry.kind

    def __len__(self) -> int:
        return len(self.attributes)
