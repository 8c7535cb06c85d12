"""
Map composer.

Turns normalized layers into a folium map: panes for z-ordering, base and
label tiles, one polyline group per route layer and one marker group per
stop layer. Styling comes from the per-mode configuration; the composer
does not care how the layers were produced.
"""

import html
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import folium
import geopandas as gpd
import pandas as pd
from branca.element import Element

from transitmap.config.settings import (
    HEX_COLOR_RE,
    LayerSpec,
    MarkerType,
    PipelineConfig,
    RouteStyle,
    StopStyle,
)
from transitmap.errors import RenderError
from transitmap.render.labels import label_css, render_label
from transitmap.render.zoom import ZoomVisibility
from transitmap.utils.logging import get_logger

log = get_logger(__name__)


def _in_pane(element: Any, pane: str) -> Any:
    """Assign a Leaflet pane through the element's options."""
    element.options["pane"] = pane
    return element


def _row_fields(row: pd.Series) -> dict[str, Any]:
    return {key: value for key, value in row.items() if key != "geometry"}


def resolve_route_color(value: Any, style: RouteStyle, *, layer: str, index: int) -> str:
    """
    Pick the color of one route feature.

    The attribute value (hex without '#') wins; empty values use the
    style color.

    Raises:
        RenderError: If the value is not a hex color, or is empty and the
            style has no fallback color.
    """
    if value is None or pd.isna(value) or not str(value).strip():
        if style.color is None:
            msg = f"{layer}: feature {index} has no {style.color_field} and no fallback color"
            raise RenderError(msg)
        return style.color

    text = str(value).strip()
    color = text if text.startswith("#") else f"#{text}"
    if not HEX_COLOR_RE.match(color):
        msg = f"{layer}: feature {index} has invalid color {value!r}"
        raise RenderError(msg)
    return color


class MapComposer:
    """
    Compose a folium map from normalized layers.

    Layers are looked up by name in the mapping passed to compose();
    layers that are missing (failed or disabled) are left out.
    """

    def __init__(self, config: PipelineConfig) -> None:
        """
        Initialize map composer.

        Args:
            config: Pipeline configuration with modes and map settings.
        """
        self.config = config
        self.map_config = config.map

    def compose(self, layers: Mapping[str, gpd.GeoDataFrame]) -> folium.Map:
        """
        Build the map.

        Args:
            layers: Normalized layers by layer name.

        Returns:
            folium Map.

        Raises:
            RenderError: If any part of the map cannot be built.
        """
        try:
            return self._compose(layers)
        except RenderError:
            raise
        except Exception as e:
            msg = f"Failed to build map: {e}"
            raise RenderError(msg) from e

    def save(self, m: folium.Map, path: Path) -> Path:
        """
        Write the map document.

        The document is rendered in full before anything is written, and
        replaces the target in one step.

        Raises:
            RenderError: If rendering or writing fails.
        """
        try:
            document = m.get_root().render()
        except Exception as e:
            msg = f"Failed to render map document: {e}"
            raise RenderError(msg) from e

        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".html.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document)
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            msg = f"Failed to write {path}: {e}"
            raise RenderError(msg) from e

        log.info("Saved map", path=str(path), size_kb=round(len(document) / 1024, 1))
        return path

    def _compose(self, layers: Mapping[str, gpd.GeoDataFrame]) -> folium.Map:
        mc = self.map_config
        m = folium.Map(
            location=list(mc.center),
            zoom_start=mc.zoom_start,
            min_zoom=mc.min_zoom,
            max_zoom=mc.max_zoom,
            tiles=None,
            control_scale=True,
        )
        m.get_root().header.add_child(Element(f"<title>{html.escape(mc.title)}</title>"))

        # Explicit layer stack, bottom -> top
        for pane in sorted(mc.panes, key=lambda p: p.z_index):
            folium.map.CustomPane(
                pane.name,
                z_index=pane.z_index,
                pointer_events=pane.name != mc.label_pane,
            ).add_to(m)

        folium.TileLayer(mc.base_tiles, name="Base map", control=False).add_to(m)
        if mc.label_tiles:
            _in_pane(
                folium.TileLayer(
                    mc.label_tiles, name="Map labels", overlay=True, control=False
                ),
                mc.label_pane,
            ).add_to(m)

        specs = {(s.mode, s.role): s for s in self.config.layer_specs()}
        modes = list(self.config.modes)

        drawn: list[gpd.GeoDataFrame] = []
        for mode in mc.route_order or modes:
            spec = specs.get((mode, "routes"))
            if spec is not None and spec.name in layers:
                self._add_routes(m, spec, layers[spec.name])
                drawn.append(layers[spec.name])

        for mode in mc.stop_order or modes:
            spec = specs.get((mode, "stops"))
            if spec is not None and spec.name in layers:
                self._add_stops(m, spec, layers[spec.name])
                drawn.append(layers[spec.name])

        if mc.layer_control:
            folium.LayerControl(collapsed=True).add_to(m)

        if mc.fit_bounds:
            self._fit_bounds(m, drawn)

        log.info("Composed map", layers=len(drawn))
        return m

    def _group_name(self, spec: LayerSpec) -> str:
        label = self.config.modes[spec.mode].label or spec.mode.replace("_", " ").title()
        return f"{label} {spec.role}"

    def _add_routes(self, m: folium.Map, spec: LayerSpec, gdf: gpd.GeoDataFrame) -> None:
        """Draw one route layer as polylines."""
        style: RouteStyle = spec.layer.style
        group = folium.FeatureGroup(name=self._group_name(spec), show=True)

        color_field = style.color_field
        if color_field is not None and color_field not in gdf.columns:
            if style.color is None:
                msg = f"{spec.name}: unknown color field '{color_field}'"
                raise RenderError(msg)
            log.warning(
                "Color field missing, using fixed color",
                layer=spec.name,
                color_field=color_field,
                color=style.color,
            )
            color_field = None

        for index, (_, row) in enumerate(gdf.iterrows()):
            if color_field is None:
                color = style.color
            else:
                color = resolve_route_color(
                    row[color_field], style, layer=spec.name, index=index
                )

            locations = [(lat, lon) for lon, lat in row.geometry.coords]
            _in_pane(
                folium.PolyLine(
                    locations=locations,
                    color=color,
                    weight=style.weight,
                    opacity=style.opacity,
                    dash_array=style.dash_array,
                ),
                style.pane,
            ).add_to(group)

        group.add_to(m)
        log.debug("Added route layer", layer=spec.name, features=len(gdf))

    def _add_stops(self, m: folium.Map, spec: LayerSpec, gdf: gpd.GeoDataFrame) -> None:
        """Draw one stop layer as icon or circle markers with labels."""
        style: StopStyle = spec.layer.style
        group = folium.FeatureGroup(name=self._group_name(spec), show=True)
        css = label_css(self.map_config.label_style, style.label_border_color)

        for _, row in gdf.iterrows():
            location = [row.geometry.y, row.geometry.x]
            label = render_label(style.label_template, _row_fields(row))
            tooltip = folium.Tooltip(label, style=css, sticky=True)
            popup = folium.Popup(label, max_width=300)

            if style.marker is MarkerType.ICON and style.icon is not None:
                marker = folium.Marker(
                    location=location,
                    icon=folium.CustomIcon(
                        style.icon.url,
                        icon_size=(style.icon.width, style.icon.height),
                    ),
                    tooltip=tooltip,
                    popup=popup,
                )
            else:
                marker = folium.CircleMarker(
                    location=location,
                    radius=style.radius,
                    color=style.color,
                    opacity=style.opacity,
                    fill=True,
                    fill_color=style.color,
                    fill_opacity=style.fill_opacity,
                    tooltip=tooltip,
                    popup=popup,
                )
            _in_pane(marker, style.pane).add_to(group)

        group.add_to(m)
        if style.min_zoom is not None:
            ZoomVisibility(group, style.min_zoom).add_to(m)

        log.debug(
            "Added stop layer",
            layer=spec.name,
            features=len(gdf),
            min_zoom=style.min_zoom,
        )

    def _fit_bounds(self, m: folium.Map, drawn: list[gpd.GeoDataFrame]) -> None:
        frames = [gdf for gdf in drawn if not gdf.empty]
        if not frames:
            return
        bounds = pd.DataFrame([gdf.total_bounds for gdf in frames])
        minx, miny = bounds[0].min(), bounds[1].min()
        maxx, maxy = bounds[2].max(), bounds[3].max()
        m.fit_bounds([[float(miny), float(minx)], [float(maxy), float(maxx)]])


def render_map(
    config: PipelineConfig,
    layers: Mapping[str, gpd.GeoDataFrame],
    output_path: Path | None = None,
) -> Path:
    """
    Compose and save the map.

    Args:
        config: Pipeline configuration.
        layers: Normalized layers by layer name.
        output_path: Target file (default: config.output_path).

    Returns:
        Path of the written document.
    """
    composer = MapComposer(config)
    m = composer.compose(layers)
    return composer.save(m, output_path or config.output_path)
