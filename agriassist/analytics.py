# agriassist/analytics.py
"""
Chart and dashboard aggregates over a farm's logs.

Rows are pulled through crud (already farm-scoped) and reduced with pandas.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

import pandas as pd
from sqlalchemy.orm import Session

from agriassist import crud, models
from agriassist.stats import total_acres

logger = logging.getLogger(__name__)

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def _frame(rows: Iterable, columns: list[str]) -> pd.DataFrame:
    return pd.DataFrame([{c: getattr(r, c) for c in columns} for r in rows], columns=columns)


def yields_by_year(harvests: Iterable[models.HarvestingLog]) -> dict:
    """
    Summed yield per year and "crop (unit)" key.

    Every key appears in every year row (0 when that year has none); years ascend.
    Harvests without a numeric amount or a unit are left out.
    """
    df = _frame(harvests, ["crop_name", "harvest_date", "yield_amount", "yield_unit"])
    df = df.dropna(subset=["harvest_date", "yield_amount", "yield_unit"])
    df = df[df["yield_unit"].astype(str).str.len() > 0].copy()
    if df.empty:
        return {"keys": [], "rows": []}

    df["year"] = pd.to_datetime(df["harvest_date"]).dt.year.astype(str)
    df["key"] = df["crop_name"] + " (" + df["yield_unit"] + ")"
    table = (
        df.pivot_table(index="year", columns="key", values="yield_amount", aggfunc="sum", fill_value=0)
        .sort_index(key=lambda idx: idx.astype(int))
    )
    keys = sorted(table.columns.tolist())
    rows = []
    for year, values in table[keys].iterrows():
        row = {"year": year}
        row.update({k: float(values[k]) for k in keys})
        rows.append(row)
    return {"keys": keys, "rows": rows}


def monthly_usage(rows: Iterable, date_attr: str, year: Optional[int] = None) -> list[dict]:
    """Twelve {month, usage} rows (Jan..Dec) summing amount_applied by calendar month."""
    df = _frame(rows, [date_attr, "amount_applied"]).dropna()
    if not df.empty:
        dates = pd.to_datetime(df[date_attr])
        if year is not None:
            df = df[dates.dt.year == year]
            dates = dates[dates.dt.year == year]
        by_month = df.groupby(dates.dt.month)["amount_applied"].sum()
    else:
        by_month = pd.Series(dtype=float)
    return [{"month": name, "usage": float(by_month.get(i, 0.0))} for i, name in enumerate(MONTHS, start=1)]


def crop_totals(harvests: Iterable[models.HarvestingLog]) -> list[dict]:
    """Total positive yield per crop with the first unit seen for it."""
    df = _frame(harvests, ["crop_name", "yield_amount", "yield_unit"])
    df = df[pd.to_numeric(df["yield_amount"], errors="coerce").fillna(0) > 0]
    if df.empty:
        return []
    out = []
    for crop, group in df.groupby("crop_name", sort=True):
        units = group["yield_unit"].dropna()
        out.append({
            "name": crop,
            "total_yield": float(group["yield_amount"].sum()),
            "unit": units.iloc[0] if not units.empty else "units",
        })
    return out


def dashboard(db: Session, farm_id: str) -> dict:
    fields = crud.list_records(db, models.Field, farm_id)
    plantings = crud.list_records(db, models.PlantingLog, farm_id, order_by="planting_date", limit=1)
    harvests = crud.list_records(db, models.HarvestingLog, farm_id)
    revenue = sum(r.amount or 0 for r in crud.list_records(db, models.RevenueLog, farm_id))
    expenses = sum(e.amount or 0 for e in crud.list_records(db, models.ExpenseLog, farm_id))
    animals = crud.list_records(db, models.LivestockAnimal, farm_id)
    return {
        "field_count": len(fields),
        "total_acreage": round(total_acres(fields), 1),
        "open_task_count": len(crud.open_tasks(db, farm_id)),
        "total_revenue": float(revenue),
        "total_expenses": float(expenses),
        "net_income": float(revenue - expenses),
        "latest_planted_crop": plantings[0].crop_name if plantings else None,
        "animal_count": len(animals),
        "crop_yields": crop_totals(harvests),
    }
