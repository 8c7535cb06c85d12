"""
Pandera schemas for normalized transit layers.

Attribute names follow GTFS as published by the MapServer layers:

    stop_name    - Display name of the stop or station
    route_id     - GTFS route identifier
    route_color  - Route color as 6 hex digits without '#' (may be empty)
"""

from typing import Optional

import pandera.pandas as pa
from pandera.typing import Series

# Empty strings are allowed; the composer falls back to the style color
HEX_COLOR_PATTERN = r"^(?:[0-9A-Fa-f]{6})?$"


class StopLayerSchema(pa.DataFrameModel):
    """
    Schema for stop layers (point geometry).

    Only the label field is required; everything else is optional since
    each layer requests a different field list.
    """

    stop_name: Series[str] = pa.Field(
        nullable=True,
        description="Display name of the stop",
    )

    class Config:
        """Schema configuration."""

        name = "StopLayerSchema"
        strict = False  # Allow geometry and other columns
        coerce = False  # Keep nulls as-is


class RouteLayerSchema(pa.DataFrameModel):
    """
    Schema for route layers (line string geometry).

    route_color is optional because some layers (e.g. shapes) only
    carry a shape id and are drawn in a fixed color.
    """

    route_color: Optional[Series[str]] = pa.Field(
        str_matches=HEX_COLOR_PATTERN,
        nullable=True,
        description="Route color as 6 hex digits without '#'",
    )

    class Config:
        """Schema configuration."""

        name = "RouteLayerSchema"
        strict = False
        coerce = False
