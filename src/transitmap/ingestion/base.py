"""
Base classes for layer loaders.

Every loader produces a raw feature collection; the base class turns it
into a normalized GeoDataFrame and validates it at the boundary.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Generic, TypeVar

import geopandas as gpd
import pandera.pandas as pa
import requests

from transitmap.config.settings import LayerSpec, PipelineConfig
from transitmap.errors import FetchError
from transitmap.geometry.model import RawFeatureCollection
from transitmap.geometry.normalize import normalize_features
from transitmap.ingestion.arcgis import fetch_features, parse_features, parse_response
from transitmap.schemas.registry import SchemaRegistry
from transitmap.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T", bound=pa.DataFrameModel)


class DataLoader(ABC, Generic[T]):
    """
    Abstract base class for layer loaders.

    All loaders inherit from this class to ensure consistent
    normalization and schema validation at system boundaries.
    """

    def __init__(self, config: PipelineConfig, spec: LayerSpec, schema: type[T]) -> None:
        """
        Initialize data loader.

        Args:
            config: Pipeline configuration.
            spec: Layer to load.
            schema: Pandera schema for validation.
        """
        self.config = config
        self.spec = spec
        self.schema = schema

    @abstractmethod
    def _load_raw(self) -> RawFeatureCollection:
        """Load the raw feature collection. Implemented by subclasses."""
        ...

    def load(self, *, validate: bool = True) -> gpd.GeoDataFrame:
        """
        Load, normalize and optionally validate a layer.

        Args:
            validate: Whether to validate against schema.

        Returns:
            Normalized GeoDataFrame.

        Raises:
            FetchError: If the layer cannot be retrieved.
            ShapeMismatchError: If attributes and geometry are not 1:1.
            DegenerateGeometryError: If a geometry cannot be built.
            pandera.errors.SchemaError: If validation fails.
        """
        log.info("Loading layer", loader=self.__class__.__name__, layer=self.spec.name)

        raw = self._load_raw()
        gdf = normalize_features(
            raw,
            crs=self.config.service.crs,
            on_degenerate=self.config.etl.on_degenerate,
        )
        log.info(
            "Normalized layer",
            layer=self.spec.name,
            rows=len(gdf),
            columns=[c for c in gdf.columns if c != "geometry"],
        )

        if validate:
            if gdf.empty:
                log.warning("Layer is empty, skipping validation", layer=self.spec.name)
            else:
                gdf = self._validate(gdf)
                log.info("Schema validation passed", layer=self.spec.name)

        return gdf

    def _validate(self, gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
        """Validate GeoDataFrame against schema."""
        return self.schema.validate(gdf)


class ArcGISLayerLoader(DataLoader[pa.DataFrameModel]):
    """Loader that queries a MapServer layer over HTTP."""

    def __init__(
        self,
        config: PipelineConfig,
        spec: LayerSpec,
        session: requests.Session | None = None,
    ) -> None:
        """
        Initialize ArcGIS layer loader.

        Args:
            config: Pipeline configuration.
            spec: Layer to load.
            session: HTTP session. A new session per load if not given.
        """
        super().__init__(config, spec, SchemaRegistry.get(spec.role))
        self.session = session

    def _load_raw(self) -> RawFeatureCollection:
        """Fetch all pages of the layer."""
        if self.session is not None:
            features = fetch_features(self.session, self.config.service, self.spec)
        else:
            with requests.Session() as session:
                features = fetch_features(session, self.config.service, self.spec)
        return parse_features(features, self.spec.kind, name=self.spec.name)


class FileLayerLoader(DataLoader[pa.DataFrameModel]):
    """Loader that reads a saved ArcGIS JSON response from disk."""

    def __init__(self, config: PipelineConfig, spec: LayerSpec, input_dir: Path) -> None:
        """
        Initialize file layer loader.

        Args:
            config: Pipeline configuration.
            spec: Layer to load.
            input_dir: Directory containing '<layer name>.json' files.
        """
        super().__init__(config, spec, SchemaRegistry.get(spec.role))
        self.path = input_dir / f"{spec.name}.json"

    def _load_raw(self) -> RawFeatureCollection:
        """Read and parse the layer file."""
        if not self.path.exists():
            raise FetchError(self.spec.name, f"file not found: {self.path}")

        log.info("Reading layer file", layer=self.spec.name, path=str(self.path))
        try:
            with self.path.open(encoding="utf-8") as f:
                payload = json.load(f)
        except json.JSONDecodeError as e:
            raise FetchError(self.spec.name, f"invalid JSON in {self.path}: {e}") from e
        except UnicodeDecodeError as e:
            raise FetchError(self.spec.name, f"{self.path} is not UTF-8: {e}") from e
        except OSError as e:
            raise FetchError(self.spec.name, f"cannot read {self.path}: {e}") from e

        return parse_response(payload, self.spec.kind, name=self.spec.name)
