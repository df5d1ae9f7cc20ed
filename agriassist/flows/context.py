# agriassist/flows/context.py
"""Bounded, farm-scoped reads the flows build their prompt context from."""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from agriassist import crud, models
from agriassist.stats import average, total_acres
from agriassist.utils import month_day, month_year

logger = logging.getLogger(__name__)


def farm_name(db: Session, farm_id: str) -> Optional[str]:
    farm = crud.get_farm(db, farm_id)
    if farm is None:
        return None
    return farm.farm_name or "Unnamed Farm"


def fields(db: Session, farm_id: str) -> list[models.Field]:
    return crud.list_records(db, models.Field, farm_id)


def field_in_farm(db: Session, farm_id: str, field_id: Optional[str]) -> Optional[models.Field]:
    if not field_id:
        return None
    return crud.get_record(db, models.Field, farm_id, field_id)


def recent(db: Session, model, farm_id: str, order_by: str, limit: int, **filters) -> list:
    return crud.list_records(db, model, farm_id, order_by=order_by, limit=limit, **filters)


def unique_crops(plantings: Iterable[models.PlantingLog]) -> list[str]:
    """Crop names in first-seen order."""
    seen: list[str] = []
    for p in plantings:
        if p.crop_name and p.crop_name not in seen:
            seen.append(p.crop_name)
    return seen


def acreage(field_rows: list[models.Field]) -> float:
    return round(total_acres(field_rows), 1)


def yield_average_text(harvests: list[models.HarvestingLog]) -> Optional[str]:
    """Average of positive yields as text, e.g. '150.0 bu'; None when nothing qualifies."""
    amounts = [h.yield_amount for h in harvests]
    avg = average(amounts)
    if avg is None:
        return None
    units = sorted({h.yield_unit for h in harvests if h.yield_unit}) or ["units"]
    return f"{avg:.1f} {'/'.join(units)}"


def soil_line(log: models.SoilDataLog) -> str:
    parts = [f"Test on {month_year(log.sample_date)}"]
    if log.ph_level is not None:
        parts.append(f"pH {log.ph_level}")
    if log.organic_matter:
        parts.append(f"OM {log.organic_matter}")
    return ", ".join(parts)


def weather_line(log: models.WeatherLog, *, with_precip: bool = True) -> str:
    hi = log.temperature_high if log.temperature_high is not None else "N/A"
    lo = log.temperature_low if log.temperature_low is not None else "N/A"
    line = f"{month_day(log.date)}: {log.conditions or ''}, Temp {hi}/{lo}°C"
    if with_precip:
        line += f", Precip {log.precipitation or 0}{log.precipitation_unit or 'mm'}"
    return line


def context_used(prefix: str, lines: list[str]) -> str:
    """Bullet lines flattened into one sentence for the API reply."""
    return prefix + " " + " ".join(line.removeprefix("- ") for line in lines)
