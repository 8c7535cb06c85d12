"""
Map rendering with folium.

Builds a Leaflet document from normalized layers and the declarative
per-mode style configuration.
"""

from transitmap.render.composer import MapComposer, render_map

__all__ = ["MapComposer", "render_map"]
