"""Tests for map composition and labels."""

from pathlib import Path
from typing import Any

import folium
import geopandas as gpd
import pytest
from shapely.geometry import LineString, Point

from transitmap.config import PipelineConfig
from transitmap.config.loader import build_config
from transitmap.errors import RenderError
from transitmap.geometry import PointGeometrySet, RawFeatureCollection, normalize_features
from transitmap.render import MapComposer, render_map
from transitmap.render.composer import resolve_route_color
from transitmap.render.labels import escape_value, label_css, render_label
from transitmap.render.zoom import ZoomVisibility

CRS = "EPSG:4326"


@pytest.fixture
def layers() -> dict[str, gpd.GeoDataFrame]:
    """Normalized layers for the two-mode test config."""
    return {
        "subway_routes": gpd.GeoDataFrame(
            {"route_id": ["Red", "Mattapan"], "route_color": ["DA291C", None]},
            geometry=[
                LineString([(-71.14, 42.40), (-71.12, 42.39)]),
                LineString([(-71.09, 42.28), (-71.06, 42.27)]),
            ],
            crs=CRS,
        ),
        "subway_stops": gpd.GeoDataFrame(
            {"stop_name": ["Alewife"], "municipality": ["Cambridge"]},
            geometry=[Point(-71.14, 42.40)],
            crs=CRS,
        ),
        "ferry_routes": gpd.GeoDataFrame(
            {"route_id": ["Boat-F1"]},
            geometry=[LineString([(-71.05, 42.36), (-70.95, 42.30)])],
            crs=CRS,
        ),
        "ferry_stops": gpd.GeoDataFrame(
            {"stop_name": ["Hingham"]},
            geometry=[Point(-70.92, 42.25)],
            crs=CRS,
        ),
    }


def _groups(m: folium.Map) -> dict[str, folium.FeatureGroup]:
    return {
        child.layer_name: child
        for child in m._children.values()
        if isinstance(child, folium.FeatureGroup)
    }


def _features(group: folium.FeatureGroup) -> list[Any]:
    return list(group._children.values())


class TestResolveRouteColor:
    """Tests for per-feature route colors."""

    def test_attribute_color(self, pipeline_config: PipelineConfig) -> None:
        """Test hex attributes get a '#' prefix."""
        style = pipeline_config.modes["subway"].routes.style
        assert resolve_route_color("DA291C", style, layer="r", index=0) == "#DA291C"

    @pytest.mark.parametrize("value", [None, float("nan"), "", "  "])
    def test_fallback(self, pipeline_config: PipelineConfig, value: Any) -> None:
        """Test empty values use the style color."""
        style = pipeline_config.modes["subway"].routes.style
        assert resolve_route_color(value, style, layer="r", index=0) == "#00304d"

    def test_invalid(self, pipeline_config: PipelineConfig) -> None:
        """Test malformed colors raise RenderError."""
        style = pipeline_config.modes["subway"].routes.style
        with pytest.raises(RenderError, match="feature 3 has invalid color"):
            resolve_route_color("red-ish", style, layer="r", index=3)


class TestMapComposer:
    """Tests for building the folium map."""

    def test_groups_per_layer(
        self, pipeline_config: PipelineConfig, layers: dict[str, gpd.GeoDataFrame]
    ) -> None:
        """Test each layer becomes a named feature group."""
        m = MapComposer(pipeline_config).compose(layers)
        groups = _groups(m)

        assert list(groups) == [
            "Subway routes",
            "Ferry routes",
            "Subway stops",
            "Ferry stops",
        ]
        assert len(_features(groups["Subway routes"])) == 2

    def test_route_styles(
        self, pipeline_config: PipelineConfig, layers: dict[str, gpd.GeoDataFrame]
    ) -> None:
        """Test route colors come from the attribute or the style."""
        groups = _groups(MapComposer(pipeline_config).compose(layers))

        subway = _features(groups["Subway routes"])
        assert [line.options["color"] for line in subway] == ["#DA291C", "#00304d"]
        assert all(line.options["pane"] == "custom_layers" for line in subway)

        [ferry] = _features(groups["Ferry routes"])
        assert ferry.options["color"] == "#008EAA"
        # Leaflet takes (lat, lon)
        assert ferry.locations[0] == [42.36, -71.05]

    def test_stops_are_circle_markers(
        self, pipeline_config: PipelineConfig, layers: dict[str, gpd.GeoDataFrame]
    ) -> None:
        """Test circle markers at (lat, lon)."""
        groups = _groups(MapComposer(pipeline_config).compose(layers))
        [marker] = _features(groups["Ferry stops"])

        assert isinstance(marker, folium.CircleMarker)
        assert marker.location == [42.25, -70.92]

    def test_draw_order(
        self, base_config: dict[str, Any], layers: dict[str, gpd.GeoDataFrame]
    ) -> None:
        """Test route_order controls route drawing order."""
        base_config["map"] = {"route_order": ["ferry", "subway"]}
        groups = _groups(MapComposer(build_config(base_config)).compose(layers))

        assert list(groups)[:2] == ["Ferry routes", "Subway routes"]

    def test_missing_layers_skipped(
        self, pipeline_config: PipelineConfig, layers: dict[str, gpd.GeoDataFrame]
    ) -> None:
        """Test failed layers are left out of the map."""
        del layers["subway_routes"]
        groups = _groups(MapComposer(pipeline_config).compose(layers))

        assert "Subway routes" not in groups
        assert len(groups) == 3

    def test_empty_map(self, pipeline_config: PipelineConfig) -> None:
        """Test a map without layers still builds."""
        m = MapComposer(pipeline_config).compose({})
        assert _groups(m) == {}

    def test_invalid_color_raises(
        self, pipeline_config: PipelineConfig, layers: dict[str, gpd.GeoDataFrame]
    ) -> None:
        """Test a bad route color aborts composition."""
        layers["subway_routes"].loc[0, "route_color"] = "not-a-color"
        with pytest.raises(RenderError, match="invalid color"):
            MapComposer(pipeline_config).compose(layers)

    def test_missing_color_field_without_fallback(
        self, base_config: dict[str, Any], layers: dict[str, gpd.GeoDataFrame]
    ) -> None:
        """Test a missing color column needs a fallback color."""
        base_config["modes"]["subway"]["routes"]["style"] = {"color_field": "line_hex"}
        config = build_config(base_config)
        with pytest.raises(RenderError, match="unknown color field 'line_hex'"):
            MapComposer(config).compose(layers)

    def test_missing_color_field_uses_fallback(
        self, base_config: dict[str, Any], layers: dict[str, gpd.GeoDataFrame]
    ) -> None:
        """Test a missing color column falls back to the fixed color."""
        base_config["modes"]["subway"]["routes"]["style"]["color_field"] = "line_hex"
        groups = _groups(MapComposer(build_config(base_config)).compose(layers))

        colors = {line.options["color"] for line in _features(groups["Subway routes"])}
        assert colors == {"#00304d"}

    def test_min_zoom(
        self, base_config: dict[str, Any], layers: dict[str, gpd.GeoDataFrame]
    ) -> None:
        """Test min_zoom adds a zoom visibility toggle."""
        base_config["modes"]["ferry"]["stops"]["style"]["min_zoom"] = 15
        m = MapComposer(build_config(base_config)).compose(layers)

        toggles = [c for c in m._children.values() if isinstance(c, ZoomVisibility)]
        assert len(toggles) == 1
        assert toggles[0].min_zoom == 15
        assert toggles[0].layer is _groups(m)["Ferry stops"]


class TestSave:
    """Tests for writing the map document."""

    def test_render_map(
        self,
        pipeline_config: PipelineConfig,
        layers: dict[str, gpd.GeoDataFrame],
        tmp_path: Path,
    ) -> None:
        """Test the document contains panes, tiles and labels."""
        path = render_map(pipeline_config, layers, tmp_path / "out" / "map.html")

        assert path.exists()
        document = path.read_text(encoding="utf-8")
        assert "createPane" in document
        assert "custom_layers" in document
        assert "maplabels" in document
        assert "Alewife" in document
        assert "<title>Transit Map</title>" in document
        assert list(path.parent.glob("*.tmp")) == []

    def test_zoom_script(
        self,
        base_config: dict[str, Any],
        layers: dict[str, gpd.GeoDataFrame],
        tmp_path: Path,
    ) -> None:
        """Test the zoom toggle is rendered as script."""
        base_config["modes"]["ferry"]["stops"]["style"]["min_zoom"] = 15
        path = render_map(build_config(base_config), layers, tmp_path / "map.html")

        document = path.read_text(encoding="utf-8")
        assert "zoomend" in document
        assert ">= 15" in document

    def test_replaces_existing(
        self,
        pipeline_config: PipelineConfig,
        layers: dict[str, gpd.GeoDataFrame],
        tmp_path: Path,
    ) -> None:
        """Test an existing document is replaced."""
        target = tmp_path / "map.html"
        target.write_text("old", encoding="utf-8")

        render_map(pipeline_config, layers, target)

        assert target.read_text(encoding="utf-8") != "old"


class TestLabels:
    """Tests for label templates."""

    def test_render(self) -> None:
        """Test placeholders are filled."""
        label = render_label(
            "<strong>{stop_name}</strong> {municipality}",
            {"stop_name": "Alewife", "municipality": "Cambridge"},
        )
        assert label == "<strong>Alewife</strong> Cambridge"

    def test_values_escaped(self) -> None:
        """Test attribute values cannot inject markup or script."""
        label = render_label("{stop_name}", {"stop_name": "<b>A&B</b> `${x}`"})
        assert label == "&lt;b&gt;A&amp;B&lt;/b&gt; &#96;&#36;{x}&#96;"

    def test_missing_and_null_blank(self) -> None:
        """Test absent and null fields render empty."""
        label = render_label("{stop_name}|{platform_name}", {"stop_name": None})
        assert label == "|"

    def test_normalized_int_field(self) -> None:
        """Test integer attributes next to nulls render without a decimal."""
        raw = RawFeatureCollection(
            attributes=[{"zone_id": 3}, {"zone_id": None}],
            geometry=PointGeometrySet(xs=[0.0, 1.0], ys=[0.0, 1.0]),
        )
        gdf = normalize_features(raw)

        records = gdf.drop(columns="geometry").to_dict("records")
        labels = [render_label("Zone {zone_id}", row) for row in records]
        assert labels == ["Zone 3", "Zone "]

    def test_escape_nan(self) -> None:
        """Test NaN renders empty."""
        assert escape_value(float("nan")) == ""
        assert escape_value(3) == "3"

    def test_malformed_template(self) -> None:
        """Test an unbalanced template raises RenderError."""
        with pytest.raises(RenderError, match="Invalid label template"):
            render_label("{stop_name", {"stop_name": "A"})

    def test_label_css(self) -> None:
        """Test the border color is appended to the base style."""
        css = label_css({"border-style": "solid"}, "#80276C")
        assert css == "border-style: solid; border-color: #80276C"
