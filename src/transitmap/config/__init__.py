"""
Configuration management with typed Pydantic models.

Provides YAML loading with environment interpolation and a packaged
default configuration for the MBTA network.
"""

from transitmap.config.loader import default_config, load_config
from transitmap.config.settings import (
    EtlConfig,
    IconConfig,
    LayerSpec,
    MapConfig,
    MarkerType,
    ModeConfig,
    OutputConfig,
    PaneConfig,
    PipelineConfig,
    RouteLayerConfig,
    RouteStyle,
    ServiceConfig,
    StopLayerConfig,
    StopStyle,
)

__all__ = [
    "EtlConfig",
    "IconConfig",
    "LayerSpec",
    "MapConfig",
    "MarkerType",
    "ModeConfig",
    "OutputConfig",
    "PaneConfig",
    "PipelineConfig",
    "RouteLayerConfig",
    "RouteStyle",
    "ServiceConfig",
    "StopLayerConfig",
    "StopStyle",
    "default_config",
    "load_config",
]
