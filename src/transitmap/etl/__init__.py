"""
ETL pipeline for transit layers.

Orchestrates layer fetching, normalization and validation.
"""

from transitmap.etl.pipeline import ETLPipeline, ETLResult, LayerResult, run_etl
from transitmap.etl.reporter import ConsoleReporter

__all__ = ["ConsoleReporter", "ETLPipeline", "ETLResult", "LayerResult", "run_etl"]
