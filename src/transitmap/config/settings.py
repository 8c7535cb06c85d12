"""
Typed configuration models using Pydantic.

All configuration is defined here with explicit typing and validation.
Endpoints, layer fields and map styling live in config, not in code.
"""

import re
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from transitmap.geometry.model import GeometryKind
from transitmap.geometry.normalize import DegeneratePolicy

HEX_COLOR_RE = re.compile(r"^#(?:[0-9A-Fa-f]{3}|[0-9A-Fa-f]{6})$")
NAMED_COLOR_RE = re.compile(r"^[A-Za-z]+$")


def validate_css_color(value: str) -> str:
    """Accept '#RGB', '#RRGGBB' or a CSS color keyword."""
    if HEX_COLOR_RE.match(value) or NAMED_COLOR_RE.match(value):
        return value
    msg = f"Invalid color {value!r}: expected '#RRGGBB', '#RGB' or a CSS color name"
    raise ValueError(msg)


class ServiceConfig(BaseModel):
    """ArcGIS MapServer connection settings."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(description="MapServer URL without layer id")
    out_sr: int = Field(default=4326, description="Output spatial reference (EPSG code)")
    where: str = Field(default="1=1", description="Default query filter")
    timeout_s: float = Field(default=60.0, gt=0, description="Per-request timeout")
    page_size: int = Field(
        default=2000, ge=1, description="resultRecordCount when paging"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URL so layer paths join cleanly."""
        if not v.startswith(("http://", "https://")):
            msg = f"base_url must be an http(s) URL, got: {v!r}"
            raise ValueError(msg)
        return v.rstrip("/")

    @property
    def crs(self) -> str:
        """CRS string of returned coordinates."""
        return f"EPSG:{self.out_sr}"

    def query_url(self, layer_id: int) -> str:
        """Query endpoint for a layer."""
        return f"{self.base_url}/{layer_id}/query"


class RouteStyle(BaseModel):
    """Polyline styling for a route layer."""

    model_config = ConfigDict(frozen=True)

    color_field: str | None = Field(
        default=None, description="Attribute holding a hex color without '#'"
    )
    color: str | None = Field(
        default=None, description="Fixed color, or fallback when color_field is null"
    )
    weight: float = Field(default=2.0, gt=0)
    opacity: float = Field(default=1.0, ge=0, le=1)
    dash_array: str | None = Field(default=None, description="SVG dash pattern, e.g. '2 6'")
    pane: str = "custom_layers"

    @field_validator("color")
    @classmethod
    def check_color(cls, v: str | None) -> str | None:
        """Validate the fixed color."""
        return validate_css_color(v) if v is not None else v

    @model_validator(mode="after")
    def require_color_source(self) -> "RouteStyle":
        """A route layer needs a color field, a fixed color, or both."""
        if self.color_field is None and self.color is None:
            msg = "Route style needs 'color_field' or 'color'"
            raise ValueError(msg)
        return self


class MarkerType(str, Enum):
    """How stops are drawn."""

    ICON = "icon"
    CIRCLE = "circle"


class IconConfig(BaseModel):
    """Image marker."""

    model_config = ConfigDict(frozen=True)

    url: str
    width: int = Field(default=15, ge=1)
    height: int = Field(default=15, ge=1)


class StopStyle(BaseModel):
    """Marker and label styling for a stop layer."""

    model_config = ConfigDict(frozen=True)

    marker: MarkerType = MarkerType.CIRCLE
    icon: IconConfig | None = None
    radius: float = Field(default=3.0, gt=0)
    color: str = "#00304d"
    opacity: float = Field(default=1.0, ge=0, le=1)
    fill_opacity: float = Field(default=1.0, ge=0, le=1)
    label_template: str = Field(
        default="<strong>{stop_name}</strong>",
        description="HTML label with {field} placeholders",
    )
    label_border_color: str = "black"
    pane: str = "custom_layers"
    min_zoom: int | None = Field(
        default=None, ge=0, description="Hide the layer below this zoom level"
    )

    @field_validator("color", "label_border_color")
    @classmethod
    def check_color(cls, v: str) -> str:
        """Validate style colors."""
        return validate_css_color(v)

    @model_validator(mode="after")
    def require_icon(self) -> "StopStyle":
        """Icon markers need an icon."""
        if self.marker is MarkerType.ICON and self.icon is None:
            msg = "Stop style with marker 'icon' needs an 'icon' section"
            raise ValueError(msg)
        return self


class LayerConfig(BaseModel):
    """One MapServer layer."""

    model_config = ConfigDict(frozen=True)

    layer_id: int = Field(ge=0, description="MapServer layer id")
    name: str | None = Field(default=None, description="Override for the layer name")
    out_fields: list[str] = Field(default_factory=lambda: ["*"])
    where: str | None = Field(default=None, description="Override for service.where")
    enabled: bool = True


class RouteLayerConfig(LayerConfig):
    """Route (path geometry) layer."""

    style: RouteStyle


class StopLayerConfig(LayerConfig):
    """Stop (point geometry) layer."""

    style: StopStyle = Field(default_factory=StopStyle)


class ModeConfig(BaseModel):
    """Stops and routes of one transit mode."""

    model_config = ConfigDict(frozen=True)

    label: str | None = Field(default=None, description="Display name")
    routes: RouteLayerConfig | None = None
    stops: StopLayerConfig | None = None


class LayerSpec(BaseModel):
    """A resolved layer: mode, role and layer settings together."""

    model_config = ConfigDict(frozen=True)

    name: str
    mode: str
    role: Literal["routes", "stops"]
    layer: RouteLayerConfig | StopLayerConfig

    @property
    def kind(self) -> GeometryKind:
        """Geometry encoding implied by the role."""
        return GeometryKind.PATH if self.role == "routes" else GeometryKind.POINT


class PaneConfig(BaseModel):
    """Named map pane with z-index."""

    model_config = ConfigDict(frozen=True)

    name: str
    z_index: int


def _default_panes() -> list[PaneConfig]:
    return [
        PaneConfig(name="custom_layers", z_index=410),
        PaneConfig(name="rapid_transit_stops", z_index=415),
        PaneConfig(name="maplabels", z_index=420),
    ]


def _default_label_style() -> dict[str, str]:
    return {
        "border-style": "solid",
        "border-width": "3px",
        "border-radius": ".5em",
        "font-size": "16px",
        "padding": "5px",
    }


class MapConfig(BaseModel):
    """Map document settings."""

    model_config = ConfigDict(frozen=True)

    title: str = "Transit Map"
    min_zoom: int = Field(default=9, ge=0)
    max_zoom: int = Field(default=20, ge=0)
    center: tuple[float, float] = Field(
        default=(42.3601, -71.0589), description="(lat, lon) when nothing to fit"
    )
    zoom_start: int = 11
    fit_bounds: bool = True
    base_tiles: str = "CartoDB.VoyagerNoLabels"
    label_tiles: str | None = "CartoDB.VoyagerOnlyLabels"
    label_pane: str = "maplabels"
    panes: list[PaneConfig] = Field(default_factory=_default_panes)
    label_style: dict[str, str] = Field(default_factory=_default_label_style)
    route_order: list[str] | None = Field(
        default=None, description="Mode draw order for routes (default: mode order)"
    )
    stop_order: list[str] | None = Field(
        default=None, description="Mode draw order for stops (default: mode order)"
    )
    layer_control: bool = True

    @model_validator(mode="after")
    def check_zoom_range(self) -> "MapConfig":
        """Ensure max_zoom is not below min_zoom."""
        if self.max_zoom < self.min_zoom:
            msg = "max_zoom must be >= min_zoom"
            raise ValueError(msg)
        return self

    @property
    def pane_names(self) -> set[str]:
        """Names of all configured panes."""
        return {pane.name for pane in self.panes}


class EtlConfig(BaseModel):
    """Fetch and normalization settings."""

    model_config = ConfigDict(frozen=True)

    parallel: bool = True
    max_workers: int = Field(default=4, ge=1)
    on_degenerate: DegeneratePolicy = DegeneratePolicy.RAISE
    validate_schemas: bool = True


class OutputConfig(BaseModel):
    """Output paths configuration."""

    model_config = ConfigDict(frozen=True)

    output_root: Path = Field(default=Path("./output"))
    filename: str = "transit_map.html"


class PipelineConfig(BaseModel):
    """Complete pipeline configuration."""

    model_config = ConfigDict(frozen=True)

    project: str = Field(description="Project identifier (e.g., 'mbta')")
    service: ServiceConfig
    modes: dict[str, ModeConfig]
    map: MapConfig = Field(default_factory=MapConfig)
    etl: EtlConfig = Field(default_factory=EtlConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @model_validator(mode="after")
    def check_references(self) -> "PipelineConfig":
        """Check draw orders and panes refer to configured names."""
        for order in (self.map.route_order, self.map.stop_order):
            unknown = [m for m in order or [] if m not in self.modes]
            if unknown:
                msg = f"Draw order references unknown modes: {', '.join(unknown)}"
                raise ValueError(msg)

        panes = self.map.pane_names
        for spec in self.layer_specs(include_disabled=True):
            if spec.layer.style.pane not in panes:
                msg = f"Layer '{spec.name}' uses unknown pane '{spec.layer.style.pane}'"
                raise ValueError(msg)

        names = [spec.name for spec in self.layer_specs(include_disabled=True)]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            msg = f"Duplicate layer names: {', '.join(duplicates)}"
            raise ValueError(msg)
        return self

    def layer_specs(self, *, include_disabled: bool = False) -> list[LayerSpec]:
        """
        Resolve all layers, routes and stops per mode in mode order.

        Args:
            include_disabled: Also return layers with enabled=False.

        Returns:
            Resolved layer specs.
        """
        specs: list[LayerSpec] = []
        for mode, mode_config in self.modes.items():
            for role in ("routes", "stops"):
                layer = getattr(mode_config, role)
                if layer is None or (not layer.enabled and not include_disabled):
                    continue
                specs.append(
                    LayerSpec(
                        name=layer.name or f"{mode}_{role}",
                        mode=mode,
                        role=role,
                        layer=layer,
                    )
                )
        return specs

    @property
    def output_path(self) -> Path:
        """Path of the rendered map document."""
        return self.output.output_root / self.project / self.output.filename
