# agriassist/ingest_sources.py
from __future__ import annotations
from typing import Iterable, Protocol, Any, Dict
import csv, io, json


class FieldSource(Protocol):
    def records(self) -> Iterable[Dict[str, Any]]:
        """Yield normalized dicts with keys:
        field_name, field_size, field_size_unit, geometry, notes
        """
        ...


class CsvFieldSource(FieldSource):
    """CSV with field_name, field_size, field_size_unit, geometry (GeoJSON text), notes columns."""

    def __init__(self, content: str):
        self._content = content

    def records(self) -> Iterable[Dict[str, Any]]:
        reader = csv.DictReader(io.StringIO(self._content))
        if not reader.fieldnames or "field_name" not in reader.fieldnames:
            raise ValueError("CSV must have a 'field_name' column")
        for line, row in enumerate(reader, start=2):
            raw_geom = (row.get("geometry") or "").strip()
            try:
                geom = json.loads(raw_geom) if raw_geom else None
            except json.JSONDecodeError as e:
                raise ValueError(f"Row {line}: geometry is not valid JSON ({e.msg})") from e
            yield {
                "field_name": (row.get("field_name") or "").strip(),
                "field_size": row.get("field_size"),
                "field_size_unit": row.get("field_size_unit") or None,
                "geometry": geom,
                "notes": row.get("notes") or None,
            }


class GeoJSONFieldSource(FieldSource):
    """Feature or FeatureCollection; the name comes from properties.field_name (or name)."""

    def __init__(self, geojson: dict):
        self._geojson = geojson

    def records(self) -> Iterable[Dict[str, Any]]:
        gtype = self._geojson.get("type")
        if gtype == "FeatureCollection":
            features = self._geojson.get("features") or []
            if not isinstance(features, list):
                raise ValueError("FeatureCollection 'features' must be a list")
        elif gtype == "Feature":
            features = [self._geojson]
        else:
            raise ValueError("Body must be GeoJSON Feature or FeatureCollection")

        for i, feat in enumerate(features):
            if not isinstance(feat, dict):
                raise ValueError(f"Feature {i} must be an object")
            props = feat.get("properties") or {}
            if not isinstance(props, dict):
                raise ValueError(f"Feature {i}: properties must be an object")
            name = props.get("field_name") or props.get("fieldName") or props.get("name")
            if not name:
                raise ValueError("Feature properties must include 'field_name'")
            yield {
                "field_name": str(name),
                "field_size": props.get("field_size", props.get("fieldSize")),
                "field_size_unit": props.get("field_size_unit") or props.get("fieldSizeUnit"),
                "geometry": feat.get("geometry"),
                "notes": props.get("notes"),
            }
