from __future__ import annotations

from typing import Iterator, Optional, Union
from datetime import date, datetime, timezone

Number = Union[int, float]


def _is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def to_aware_utc(v: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat those as UTC."""
    return v.astimezone(timezone.utc) if v.tzinfo else v.replace(tzinfo=timezone.utc)


def month_year(d: Optional[date]) -> str:
    """'May 2024' style label."""
    return d.strftime("%b %Y") if d else "unknown date"


def month_day(d: Optional[date]) -> str:
    """'May 03' style label."""
    return d.strftime("%b %d") if d else "unknown date"


def iter_positions(coords) -> Iterator[tuple[Number, Number]]:
    """Every (lon, lat) position inside arbitrarily nested GeoJSON coordinates."""
    if not isinstance(coords, (list, tuple)):
        return
    if len(coords) >= 2 and _is_number(coords[0]) and _is_number(coords[1]):
        yield coords[0], coords[1]
        return
    for c in coords:
        yield from iter_positions(c)


def representative_point(geom: Optional[dict]) -> Optional[tuple[float, float]]:
    """(lat, lon) of a GeoJSON geometry: a Point is itself, anything else the mean of its vertices."""
    if not isinstance(geom, dict):
        return None
    positions = list(iter_positions(geom.get("coordinates")))
    if not positions:
        return None
    if geom.get("type") == "Point":
        lon, lat = positions[0]
        return float(lat), float(lon)
    n = len(positions)
    return sum(p[1] for p in positions) / n, sum(p[0] for p in positions) / n


def latlon_from_geometry(geom: Optional[dict]) -> tuple[Optional[float], Optional[float]]:
    """Representative point rounded to 4 decimals, or (None, None)."""
    point = representative_point(geom) if geom else None
    if point is None:
        return None, None
    return round(point[0], 4), round(point[1], 4)
