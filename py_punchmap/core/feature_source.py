"""
GeoJSON feature source.

Turns table polygons exported from CAD/GIS tooling into ``Feature``
objects. Table ids are not standardised across exports, so the id is
resolved from a list of commonly used property names.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import structlog
from shapely.geometry import MultiPolygon, Polygon, shape

from .feature_index import Feature
from .geometry import Point

logger = structlog.get_logger()

ID_PROPERTIES = ("table_id", "tableId", "id", "name", "panel_id")
TABLE_CODE = re.compile(r"^R\d{1,3}_T\d{1,3}$", re.IGNORECASE)


class InvalidFeatureError(ValueError):
    """A GeoJSON feature whose geometry cannot be read."""


def resolve_feature_id(feature: Dict[str, Any], index: int) -> str:
    """Pick the table id of a GeoJSON feature."""
    if feature.get("id") is not None:
        return str(feature["id"])

    props = feature.get("properties") or {}
    for key in ID_PROPERTIES:
        value = props.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()

    strings = [v.strip() for v in props.values() if isinstance(v, str) and v.strip()]
    for value in strings:
        if TABLE_CODE.match(value):
            return value.upper()
    if strings:
        return strings[0]

    return f"F-{index}"


def main_ring(geometry: Dict[str, Any]) -> Optional[List[Point]]:
    """
    Exterior ring of a Polygon, or of the MultiPolygon part with most vertices.

    Returns None for non-polygonal geometry.
    """
    try:
        geom = shape(geometry)
    except Exception as e:
        raise InvalidFeatureError(f"Unreadable geometry: {e}") from e

    if isinstance(geom, MultiPolygon):
        best = None
        for part in geom.geoms:
            if best is None or len(part.exterior.coords) > len(best.exterior.coords):
                best = part
        geom = best
    if not isinstance(geom, Polygon) or geom.is_empty:
        return None
    return [Point(float(x), float(y)) for x, y in geom.exterior.coords]


def _iter_features(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    if data.get("type") == "FeatureCollection":
        return list(data.get("features") or [])
    if data.get("type") == "Feature":
        return [data]
    raise InvalidFeatureError(f"Expected Feature or FeatureCollection, got {data.get('type')!r}")


def features_from_geojson(data: Dict[str, Any],
                          anchors: Optional[Dict[str, Any]] = None) -> List[Feature]:
    """
    Build features from a GeoJSON FeatureCollection.

    Args:
        data: FeatureCollection of table polygons
        anchors: Optional FeatureCollection of Point features whose ids match
            the polygons; used as world anchors for box selection

    Returns:
        Features in file order. Non-polygonal features are skipped.
    """
    anchor_points: Dict[str, Point] = {}
    if anchors:
        for idx, item in enumerate(_iter_features(anchors)):
            geom = item.get("geometry") or {}
            if geom.get("type") != "Point":
                continue
            x, y = geom["coordinates"][:2]
            anchor_points[resolve_feature_id(item, idx)] = Point(float(x), float(y))

    features = []
    skipped = 0
    for idx, item in enumerate(_iter_features(data)):
        geometry = item.get("geometry")
        ring = main_ring(geometry) if geometry else None
        if ring is None:
            skipped += 1
            continue
        fid = resolve_feature_id(item, idx)
        features.append(Feature.from_coords(fid, ring, anchor=anchor_points.get(fid)))

    if skipped:
        logger.warning("Skipped non-polygonal features", skipped=skipped)
    logger.info("GeoJSON features parsed", count=len(features), anchors=len(anchor_points))
    return features


def boundary_rings(data: Dict[str, Any]) -> List[List[Point]]:
    """
    Exterior rings of every polygon in a site-boundary FeatureCollection.

    Each part of a MultiPolygon becomes its own ring. Other geometry types
    are ignored.
    """
    rings = []
    for item in _iter_features(data):
        geometry = item.get("geometry")
        if not geometry:
            continue
        try:
            geom = shape(geometry)
        except Exception as e:
            raise InvalidFeatureError(f"Unreadable boundary geometry: {e}") from e
        parts = geom.geoms if isinstance(geom, MultiPolygon) else [geom]
        for part in parts:
            if isinstance(part, Polygon) and not part.is_empty:
                rings.append([Point(float(x), float(y)) for x, y in part.exterior.coords])
    logger.info("Site boundary parsed", rings=len(rings))
    return rings


def load_geojson_file(path: Union[str, Path],
                      anchors_path: Optional[Union[str, Path]] = None) -> List[Feature]:
    """Read a GeoJSON file (and optional anchor file) into features."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    anchors = None
    if anchors_path is not None:
        with open(anchors_path, "r", encoding="utf-8") as f:
            anchors = json.load(f)
    return features_from_geojson(data, anchors)
