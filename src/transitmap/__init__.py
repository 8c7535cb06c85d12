"""
transitmap: Transit stop and route maps from ArcGIS REST services.

This package fetches stop and route layers, normalizes their point and
path geometries into GeoDataFrames, and renders them as an interactive
Leaflet map.
"""

from importlib.metadata import version

__version__ = version("transitmap")

__all__ = ["__version__"]
