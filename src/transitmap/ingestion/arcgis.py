"""
ArcGIS MapServer query client.

Builds layer queries, follows exceededTransferLimit pagination and turns
ArcGIS JSON features into raw feature collections.
"""

import math
from typing import Any

import requests

from transitmap.config.settings import LayerSpec, ServiceConfig
from transitmap.errors import FetchError
from transitmap.geometry.model import (
    GeometryKind,
    PathGeometrySet,
    PointGeometrySet,
    RawFeatureCollection,
)
from transitmap.utils.logging import get_logger

log = get_logger(__name__)


def build_query_params(
    service: ServiceConfig,
    spec: LayerSpec,
    *,
    offset: int | None = None,
) -> dict[str, str]:
    """
    Build query parameters for a layer.

    Args:
        service: Service settings (spatial reference, filter, page size).
        spec: Layer to query.
        offset: resultOffset for follow-up pages. The first request is
            sent without paging parameters.

    Returns:
        Query string parameters.
    """
    params = {
        "where": spec.layer.where or service.where,
        "outFields": ",".join(spec.layer.out_fields),
        "outSR": str(service.out_sr),
        "returnGeometry": "true",
        "f": "json",
    }
    if offset is not None:
        params["resultOffset"] = str(offset)
        params["resultRecordCount"] = str(service.page_size)
    return params


def _request_page(
    session: requests.Session,
    url: str,
    params: dict[str, str],
    *,
    layer: str,
    timeout: float,
) -> dict[str, Any]:
    """GET one page and return the decoded payload."""
    try:
        response = session.get(url, params=params, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.Timeout as e:
        raise FetchError(layer, f"request timed out after {timeout:g}s") from e
    except requests.exceptions.HTTPError as e:
        raise FetchError(layer, f"HTTP {e.response.status_code} from {url}") from e
    except requests.exceptions.RequestException as e:
        raise FetchError(layer, f"request failed: {e}") from e

    try:
        payload = response.json()
    except ValueError as e:
        raise FetchError(layer, "response is not valid JSON") from e

    _check_payload(payload, layer)
    return payload


def _check_payload(payload: Any, layer: str) -> None:
    """Raise FetchError unless payload is a successful query response."""
    if not isinstance(payload, dict):
        raise FetchError(layer, f"expected a JSON object, got {type(payload).__name__}")

    # ArcGIS reports query errors with HTTP 200 and an error body
    if "error" in payload:
        error = payload["error"] or {}
        details = "; ".join(str(d) for d in error.get("details") or [])
        message = f"ArcGIS error {error.get('code', '?')}: {error.get('message', 'unknown')}"
        raise FetchError(layer, f"{message} ({details})" if details else message)

    if not isinstance(payload.get("features"), list):
        raise FetchError(layer, "response has no 'features' list")


def fetch_features(
    session: requests.Session,
    service: ServiceConfig,
    spec: LayerSpec,
) -> list[dict[str, Any]]:
    """
    Fetch all features of a layer, following pagination.

    Args:
        session: HTTP session.
        service: Service settings.
        spec: Layer to fetch.

    Returns:
        ArcGIS JSON feature objects in service order.

    Raises:
        FetchError: On network, status or payload errors.
    """
    url = service.query_url(spec.layer.layer_id)
    features: list[dict[str, Any]] = []
    offset: int | None = None

    while True:
        params = build_query_params(service, spec, offset=offset)
        payload = _request_page(
            session, url, params, layer=spec.name, timeout=service.timeout_s
        )
        page = payload["features"]
        features.extend(page)

        log.debug("Fetched page", layer=spec.name, offset=offset or 0, rows=len(page))

        if not payload.get("exceededTransferLimit") or not page:
            break
        offset = len(features)

    log.info("Fetched layer", layer=spec.name, url=url, rows=len(features))
    return features


def _coordinate(value: Any) -> float | None:
    """Coordinate as float, or None for null/NaN/non-numeric values."""
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def parse_features(
    features: list[dict[str, Any]],
    kind: GeometryKind,
    *,
    name: str = "layer",
) -> RawFeatureCollection:
    """
    Split ArcGIS features into attributes and a geometry set.

    Args:
        features: ArcGIS JSON feature objects.
        kind: Geometry encoding configured for the layer.
        name: Layer name.

    Returns:
        Raw feature collection aligned by position.

    Raises:
        FetchError: If a feature, its attributes or its geometry is not
            a JSON object.
    """
    attributes: list[dict[str, Any]] = []
    geometries: list[dict[str, Any]] = []
    for index, feature in enumerate(features):
        if not isinstance(feature, dict):
            msg = f"feature {index} is {type(feature).__name__}, expected an object"
            raise FetchError(name, msg)
        for key, target in (("attributes", attributes), ("geometry", geometries)):
            value = feature.get(key) or {}
            if not isinstance(value, dict):
                msg = f"feature {index} has {key} of type {type(value).__name__}"
                raise FetchError(name, msg)
            target.append(value)

    if kind is GeometryKind.POINT:
        geometry: PointGeometrySet | PathGeometrySet = PointGeometrySet(
            xs=[_coordinate(g.get("x")) for g in geometries],
            ys=[_coordinate(g.get("y")) for g in geometries],
        )
    else:
        geometry = PathGeometrySet(paths=[g.get("paths") for g in geometries])

    return RawFeatureCollection(attributes=attributes, geometry=geometry, name=name)


def parse_response(
    payload: dict[str, Any],
    kind: GeometryKind,
    *,
    name: str = "layer",
) -> RawFeatureCollection:
    """
    Parse a complete ArcGIS query response.

    Raises:
        FetchError: If the payload is an ArcGIS error or has no features.
    """
    _check_payload(payload, name)
    return parse_features(payload["features"], kind, name=name)
