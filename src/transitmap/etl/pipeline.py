"""
ETL pipeline implementation.

Runs one fetch and normalize pipeline per configured layer and collects
the results for the map composer. Layers are independent, so a failure
in one layer is recorded and the others still complete.
"""

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

import geopandas as gpd
import pandera.errors

from transitmap.config.settings import LayerSpec, PipelineConfig
from transitmap.errors import TransitMapError
from transitmap.ingestion.base import ArcGISLayerLoader, DataLoader, FileLayerLoader
from transitmap.utils.logging import get_logger, log_context

log = get_logger(__name__)

LoaderFactory = Callable[[PipelineConfig, LayerSpec], DataLoader]

# Failures that stay inside their own layer
LAYER_ERRORS = (
    TransitMapError,
    pandera.errors.SchemaError,
    pandera.errors.SchemaErrors,
)


@dataclass
class LayerResult:
    """
    Outcome of one layer pipeline.

    Attributes:
        spec: The layer that was loaded.
        data: Normalized layer, None on failure.
        error_type: Exception class name on failure.
        error: Error message on failure.
    """

    spec: LayerSpec
    data: gpd.GeoDataFrame | None = None
    error_type: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the layer loaded."""
        return self.data is not None

    @property
    def rows(self) -> int | None:
        """Number of features, None on failure."""
        return len(self.data) if self.data is not None else None


@dataclass
class ETLResult:
    """
    Result of ETL pipeline execution.

    Attributes:
        results: One result per layer, in configuration order.
    """

    results: list[LayerResult] = field(default_factory=list)

    @property
    def layers(self) -> dict[str, gpd.GeoDataFrame]:
        """Successfully loaded layers by name."""
        return {r.spec.name: r.data for r in self.results if r.data is not None}

    @property
    def failures(self) -> list[LayerResult]:
        """Layers that failed."""
        return [r for r in self.results if not r.ok]

    @property
    def all_failed(self) -> bool:
        """True when no layer loaded."""
        return bool(self.results) and not self.layers


def default_loader_factory(config: PipelineConfig, spec: LayerSpec) -> DataLoader:
    """Query the MapServer for each layer."""
    return ArcGISLayerLoader(config, spec)


def file_loader_factory(input_dir: Path) -> LoaderFactory:
    """Read each layer from '<input_dir>/<layer name>.json'."""

    def factory(config: PipelineConfig, spec: LayerSpec) -> DataLoader:
        return FileLayerLoader(config, spec, input_dir)

    return factory


class ETLPipeline:
    """
    Fetch and normalize all enabled layers.

    Layers share no state, so they can run on a thread pool. The result
    is only returned once every layer has finished.
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        loader_factory: LoaderFactory = default_loader_factory,
        parallel: bool | None = None,
        max_workers: int | None = None,
    ) -> None:
        """
        Initialize ETL pipeline.

        Args:
            config: Pipeline configuration.
            loader_factory: Builds the loader for a layer.
            parallel: Load layers on a thread pool (default from config).
            max_workers: Thread pool size (default from config).
        """
        self.config = config
        self.loader_factory = loader_factory
        self.parallel = config.etl.parallel if parallel is None else parallel
        self.max_workers = max_workers or config.etl.max_workers

    def run(self) -> ETLResult:
        """
        Run all layer pipelines.

        Returns:
            ETLResult with one entry per enabled layer.
        """
        specs = self.config.layer_specs()
        log.info(
            "Starting ETL pipeline",
            project=self.config.project,
            layers=len(specs),
            parallel=self.parallel,
        )

        if self.parallel and len(specs) > 1:
            by_name = self._run_parallel(specs)
        else:
            by_name = {spec.name: self._load_layer(spec) for spec in specs}

        result = ETLResult(results=[by_name[spec.name] for spec in specs])

        log.info(
            "ETL pipeline complete",
            loaded=len(result.layers),
            failed=len(result.failures),
        )
        return result

    def _run_parallel(self, specs: list[LayerSpec]) -> dict[str, LayerResult]:
        """Load layers on a thread pool."""
        log.info("Loading layers in parallel", workers=self.max_workers)

        results: dict[str, LayerResult] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(self._load_layer, spec): spec for spec in specs}
            for future in as_completed(futures):
                spec = futures[future]
                results[spec.name] = future.result()
        return results

    def _load_layer(self, spec: LayerSpec) -> LayerResult:
        """Load one layer, recording layer-level failures."""
        with log_context(layer=spec.name):
            loader = self.loader_factory(self.config, spec)
            try:
                data = loader.load(validate=self.config.etl.validate_schemas)
            except LAYER_ERRORS as e:
                log.error(
                    "Layer failed",
                    error_type=type(e).__name__,
                    error=str(e),
                )
                return LayerResult(spec=spec, error_type=type(e).__name__, error=str(e))

        return LayerResult(spec=spec, data=data)


def run_etl(
    config: PipelineConfig,
    *,
    input_dir: Path | None = None,
    parallel: bool | None = None,
) -> ETLResult:
    """
    Convenience function to run the ETL pipeline.

    Args:
        config: Pipeline configuration.
        input_dir: Read saved layer responses from this directory
            instead of querying the service.
        parallel: Override config.etl.parallel.

    Returns:
        ETLResult with loaded layers and failures.
    """
    factory = file_loader_factory(input_dir) if input_dir is not None else default_loader_factory
    pipeline = ETLPipeline(config, loader_factory=factory, parallel=parallel)
    return pipeline.run()
