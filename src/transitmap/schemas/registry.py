"""
Schema registry for discovery.

Maps layer roles to their schema so loaders can look them up by name.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

import pandera.pandas as pa

from transitmap.schemas.layers import RouteLayerSchema, StopLayerSchema

if TYPE_CHECKING:
    import pandas as pd


@dataclass(frozen=True)
class SchemaInfo:
    """Metadata about a registered schema."""

    name: str
    schema: type[pa.DataFrameModel]
    version: str
    description: str


class SchemaRegistry:
    """Centralized registry for layer schemas."""

    _schemas: ClassVar[dict[str, SchemaInfo]] = {
        "stops": SchemaInfo(
            name="stops",
            schema=StopLayerSchema,
            version="1.0.0",
            description="Stops and stations with point geometry",
        ),
        "routes": SchemaInfo(
            name="routes",
            schema=RouteLayerSchema,
            version="1.0.0",
            description="Routes and shapes with line string geometry",
        ),
    }

    @classmethod
    def get(cls, name: str) -> type[pa.DataFrameModel]:
        """
        Get a schema by name.

        Args:
            name: Schema identifier.

        Returns:
            The Pandera DataFrameModel class.

        Raises:
            KeyError: If schema not found.
        """
        return cls.get_info(name).schema

    @classmethod
    def get_info(cls, name: str) -> SchemaInfo:
        """Get full schema info by name."""
        if name not in cls._schemas:
            available = ", ".join(cls._schemas.keys())
            msg = f"Unknown schema '{name}'. Available: {available}"
            raise KeyError(msg)
        return cls._schemas[name]

    @classmethod
    def list_schemas(cls) -> list[str]:
        """List all registered schema names."""
        return list(cls._schemas.keys())

    @classmethod
    def validate(cls, df: "pd.DataFrame", schema_name: str) -> "pd.DataFrame":
        """
        Validate a DataFrame against a registered schema.

        Args:
            df: DataFrame to validate.
            schema_name: Registered schema name.

        Returns:
            Validated DataFrame.

        Raises:
            pandera.errors.SchemaError: If validation fails.
        """
        return cls.get(schema_name).validate(df)
