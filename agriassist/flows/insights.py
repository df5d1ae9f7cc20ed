# agriassist/flows/insights.py
"""Proactive opportunities and risks for the coming days."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from pydantic import Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agriassist import crud, models
from agriassist.flows import context
from agriassist.llm import AdvisorLLM
from agriassist.schemas import CamelModel
from agriassist.utils import month_day, month_year

logger = logging.getLogger(__name__)

MAX_TASKS_LISTED = 5
NO_DATA_NOTE = "No specific recent data was available to form detailed insights."


class InsightsInput(CamelModel):
    days_to_look_ahead: int = Field(14, ge=1, le=90)


class InsightsReply(CamelModel):
    identified_opportunities: Optional[str] = None
    identified_risks: Optional[str] = None


class InsightsOutput(InsightsReply):
    data_considered_summary: str


def upcoming_tasks(tasks: list[models.TaskLog], today: date, days_ahead: int) -> list[str]:
    """Open tasks due within the window or overdue (undated ones too), at most five."""
    horizon = today + timedelta(days=days_ahead)
    out = []
    for t in tasks:
        if t.due_date is None:
            out.append(f"{t.task_name} (No due date)")
        elif t.due_date < today:
            out.append(f"{t.task_name} (Due: {month_day(t.due_date)} - OVERDUE)")
        elif t.due_date <= horizon:
            out.append(f"{t.task_name} (Due: {month_day(t.due_date)})")
    return out[:MAX_TASKS_LISTED]


def _safe(what: str, fn):
    try:
        return fn()
    except SQLAlchemyError:
        logger.exception("Error fetching %s for proactive insights", what)
        return []


def run(db: Session, llm: AdvisorLLM, farm_id: str, inp: InsightsInput,
        today: Optional[date] = None) -> InsightsOutput:
    today = today or date.today()
    days = inp.days_to_look_ahead
    considered: list[str] = []
    snapshot: list[str] = []

    tasks = _safe("tasks", lambda: upcoming_tasks(crud.open_tasks(db, farm_id), today, days))
    if tasks:
        snapshot.append(f"- Upcoming Tasks (due in next {days} days or overdue): {'; '.join(tasks)}")
        considered.append("Considered upcoming/overdue tasks.")

    weather = _safe("weather", lambda: [
        context.weather_line(w, with_precip=False)
        for w in context.recent(db, models.WeatherLog, farm_id, "date", 7)
    ])
    if weather:
        snapshot.append(f"- Recent Weather (last 7 days): {'; '.join(weather)}")
        considered.append("Considered recent weather logs.")

    soil = _safe("soil data", lambda: [
        f"Field {s.field_id or 'Unknown'}: pH {s.ph_level if s.ph_level is not None else 'N/A'}, "
        f"OM {s.organic_matter or 'N/A'} (Date: {month_year(s.sample_date)})"
        for s in context.recent(db, models.SoilDataLog, farm_id, "sample_date", 5)
    ])
    if soil:
        snapshot.append(f"- Recent Soil Tests: {'; '.join(soil)}")
        considered.append("Considered recent soil tests.")

    plantings = _safe("plantings", lambda: list(dict.fromkeys(
        f"{p.crop_name} (Planted: {month_year(p.planting_date)})"
        for p in context.recent(db, models.PlantingLog, farm_id, "planting_date", 10)
    )))
    if plantings:
        snapshot.append(f"- Current Active Plantings: {'; '.join(plantings)}")
        considered.append("Considered active plantings.")

    prompt = (
        "You are an AI Farm Advisor. Analyze a snapshot of recent farm data and identify 1-2 potential "
        f"upcoming opportunities and 1-2 potential upcoming risks for the next approximately {days} days. "
        "Be concise and actionable.\n\n"
        "Farm Data Snapshot:\n" + ("\n".join(snapshot) or "- No recent records.") + "\n\n"
        "identifiedOpportunities: e.g. a favorable weather window for planting, spraying or harvesting; "
        "timing for fertilizer given crop stage and soil data; early signs of good crop development.\n"
        "identifiedRisks: e.g. pest or disease pressure suggested by the weather; overdue critical tasks; "
        "likely nutrient deficiencies given current crops and the last soil tests.\n"
        "If nothing significant stands out, say so. Use Markdown."
    )

    reply = llm.generate(prompt, InsightsReply)
    return InsightsOutput(
        **reply.model_dump(),
        data_considered_summary=" ".join(considered) if considered else NO_DATA_NOTE,
    )
