"""
Error types raised by the fetch, normalize and render stages.

Fetch and normalization errors are isolated to the layer that raised them;
render errors abort map creation.
"""


class TransitMapError(Exception):
    """Base class for all transitmap errors."""


class FetchError(TransitMapError):
    """Remote endpoint unreachable, non-success status, or malformed payload."""

    def __init__(self, layer: str, message: str) -> None:
        self.layer = layer
        super().__init__(f"{layer}: {message}")


class ShapeMismatchError(TransitMapError):
    """Attribute record count differs from geometry record count."""


class DegenerateGeometryError(TransitMapError):
    """A path with fewer than 2 vertices, or a point record missing x/y."""

    def __init__(self, index: int, reason: str) -> None:
        self.index = index
        self.reason = reason
        super().__init__(f"Feature {index}: {reason}")


class RenderError(TransitMapError):
    """The map composer could not build or save the map document."""
