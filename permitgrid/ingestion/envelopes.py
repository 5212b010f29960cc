"""Extract the raw record list from whichever envelope a source returns."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from permitgrid.core.errors import NetworkError, ParseError


def _point(geometry: Any) -> Tuple[Optional[float], Optional[float]]:
    """(lat, lng) from an ArcGIS x/y or GeoJSON point geometry."""
    if not isinstance(geometry, dict):
        return None, None
    x, y = geometry.get("x"), geometry.get("y")
    if isinstance(x, (int, float)) and isinstance(y, (int, float)):
        return float(y), float(x)
    coords = geometry.get("coordinates")
    if isinstance(coords, (list, tuple)) and len(coords) >= 2:
        try:
            return float(coords[1]), float(coords[0])
        except (TypeError, ValueError):
            return None, None
    return None, None


def _geo_point_2d(value: Any) -> Tuple[Optional[float], Optional[float]]:
    # Opendatasoft geo_point_2d is [lat, lng] or {"lat":..,"lon":..}
    if isinstance(value, (list, tuple)) and len(value) >= 2:
        return value[0], value[1]
    if isinstance(value, dict):
        return value.get("lat"), value.get("lon")
    return None, None


def _with_point(row: Dict[str, Any], geometry: Any) -> Dict[str, Any]:
    lat, lng = _point(geometry)
    if lat is None and "geo_point_2d" in row:
        lat, lng = _geo_point_2d(row.get("geo_point_2d"))
    row["__lat"] = lat
    row["__lng"] = lng
    return row


def _flatten_record(item: Any) -> Any:
    if not isinstance(item, dict):
        return item
    fields = item.get("fields")
    if isinstance(fields, dict):
        row = dict(fields)
        for key in ("recordid", "record_timestamp"):
            if key in item and key not in row:
                row[key] = item[key]
        return _with_point(row, item.get("geometry"))
    return _with_point(dict(item), item.get("geometry"))


def _flatten_feature(feature: Any) -> Any:
    if not isinstance(feature, dict):
        return feature
    attributes = feature.get("attributes")
    row = dict(attributes) if isinstance(attributes, dict) else {}
    if not row and isinstance(feature.get("properties"), dict):
        row = dict(feature["properties"])  # GeoJSON FeatureCollection
    return _with_point(row, feature.get("geometry"))


def extract_records(payload: Any) -> List[Any]:
    """Return the raw rows of a response body.

    Accepts a bare array, ``{"records": [...]}``, ``{"results": [...]}`` or
    ``{"features": [...]}``. Raises ParseError for anything else, and
    NetworkError for an ArcGIS ``{"error": ...}`` body served with HTTP 200.
    """
    if isinstance(payload, list):
        return [_flatten_record(item) for item in payload]
    if not isinstance(payload, dict):
        raise ParseError(f"unrecognized response body of type {type(payload).__name__}")

    if isinstance(payload.get("error"), dict):
        err = payload["error"]
        raise NetworkError(f"upstream error {err.get('code', '?')}: {err.get('message', 'unknown')}")

    if isinstance(payload.get("features"), list):
        return [_flatten_feature(feature) for feature in payload["features"]]
    for key in ("records", "results"):
        if isinstance(payload.get(key), list):
            return [_flatten_record(item) for item in payload[key]]

    raise ParseError(f"unrecognized envelope with keys: {sorted(payload)[:8]}")
