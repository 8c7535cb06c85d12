"""Zoom-dependent layer visibility."""

from branca.element import MacroElement
from folium.map import Layer
from jinja2 import Template


class ZoomVisibility(MacroElement):
    """
    Show a layer only at or above a zoom level.

    Must be added to the map after the layer itself.

    Args:
        layer: Layer (e.g. a FeatureGroup) already added to the map.
        min_zoom: Lowest zoom level at which the layer is shown.
    """

    _template = Template(
        """
        {% macro script(this, kwargs) %}
            (function() {
                var map = {{ this._parent.get_name() }};
                var layer = {{ this.layer.get_name() }};
                function update() {
                    if (map.getZoom() >= {{ this.min_zoom }}) {
                        if (!map.hasLayer(layer)) { map.addLayer(layer); }
                    } else if (map.hasLayer(layer)) {
                        map.removeLayer(layer);
                    }
                }
                map.on("zoomend", update);
                update();
            })();
        {% endmacro %}
        """
    )

    def __init__(self, layer: Layer, min_zoom: int) -> None:
        super().__init__()
        self._name = "ZoomVisibility"
        self.layer = layer
        self.min_zoom = int(min_zoom)
