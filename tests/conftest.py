"""Pytest configuration and shared fixtures."""

import json
from pathlib import Path
from typing import Any

import pytest

from transitmap.config import PipelineConfig
from transitmap.config.loader import build_config


@pytest.fixture
def base_config() -> dict[str, Any]:
    """Create a minimal two-mode configuration dictionary for testing."""
    return {
        "project": "test",
        "service": {
            "base_url": "https://example.com/arcgis/rest/services/Transit/MapServer/",
            "page_size": 2,
        },
        "modes": {
            "subway": {
                "label": "Subway",
                "routes": {
                    "layer_id": 1,
                    "style": {"color_field": "route_color", "color": "#00304d"},
                },
                "stops": {
                    "layer_id": 0,
                    "out_fields": ["stop_name", "municipality"],
                    "style": {
                        "label_template": "<strong>{stop_name}</strong> {municipality}",
                        "label_border_color": "black",
                    },
                },
            },
            "ferry": {
                "routes": {
                    "layer_id": 7,
                    "style": {"color": "#008EAA", "dash_array": "2 6"},
                },
                "stops": {
                    "layer_id": 6,
                    "style": {"color": "#008EAA", "label_border_color": "#008EAA"},
                },
            },
        },
        "etl": {"parallel": False},
    }


@pytest.fixture
def pipeline_config(base_config: dict[str, Any]) -> PipelineConfig:
    """Validated configuration built from base_config."""
    return build_config(base_config)


@pytest.fixture
def stop_payload() -> dict[str, Any]:
    """ArcGIS query response for a point layer."""
    return {
        "geometryType": "esriGeometryPoint",
        "features": [
            {
                "attributes": {"stop_name": "Alewife", "municipality": "Cambridge"},
                "geometry": {"x": -71.14, "y": 42.40},
            },
            {
                "attributes": {"stop_name": "Davis", "municipality": "Somerville"},
                "geometry": {"x": -71.12, "y": 42.39},
            },
        ],
    }


@pytest.fixture
def route_payload() -> dict[str, Any]:
    """ArcGIS query response for a polyline layer."""
    return {
        "geometryType": "esriGeometryPolyline",
        "features": [
            {
                "attributes": {"route_id": "Red", "route_color": "DA291C"},
                "geometry": {
                    "paths": [[[-71.14, 42.40], [-71.12, 42.39], [-71.10, 42.38]]]
                },
            },
            {
                "attributes": {"route_id": "Mattapan", "route_color": None},
                "geometry": {"paths": [[[-71.09, 42.28], [-71.06, 42.27]]]},
            },
        ],
    }


@pytest.fixture
def layer_dir(
    tmp_path: Path,
    stop_payload: dict[str, Any],
    route_payload: dict[str, Any],
) -> Path:
    """Directory of saved query responses for all layers of base_config."""
    ferry_routes = {
        "features": [
            {
                "attributes": {"route_id": "Boat-F1"},
                "geometry": {"paths": [[[-71.05, 42.36], [-70.95, 42.30]]]},
            }
        ]
    }
    ferry_stops = {
        "features": [
            {
                "attributes": {"stop_name": "Hingham", "municipality": "Hingham"},
                "geometry": {"x": -70.92, "y": 42.25},
            }
        ]
    }
    files = {
        "subway_stops": stop_payload,
        "subway_routes": route_payload,
        "ferry_stops": ferry_stops,
        "ferry_routes": ferry_routes,
    }
    for name, payload in files.items():
        (tmp_path / f"{name}.json").write_text(json.dumps(payload), encoding="utf-8")
    return tmp_path
