# agriassist/flows/optimization.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agriassist import models
from agriassist.flows import context
from agriassist.llm import AdvisorLLM
from agriassist.schemas import CamelModel
from agriassist.stats import detect_trend
from agriassist.utils import month_year

logger = logging.getLogger(__name__)

FETCH_ERROR_NOTE = "Note: An error occurred while fetching detailed farm records. Advice may be more general."
NO_DATA_NOTE = "No specific farm data was used by the AI."


class OptimizationInput(CamelModel):
    optimization_goals: Optional[str] = None


class OptimizationReply(CamelModel):
    strategies: str


class OptimizationOutput(OptimizationReply):
    data_summary: Optional[str] = None


def yield_summaries(harvests: list[models.HarvestingLog]) -> list[str]:
    """Per crop: average yield and the trend across its harvests, oldest first."""
    by_crop: dict[str, list[models.HarvestingLog]] = {}
    for h in harvests:
        if h.crop_name and isinstance(h.yield_amount, (int, float)) and h.yield_amount > 0:
            by_crop.setdefault(h.crop_name, []).append(h)

    out = []
    for crop, logs in by_crop.items():
        text = f"{crop}: {context.yield_average_text(logs)}"
        chronological = sorted(logs, key=lambda h: h.harvest_date)
        trend = detect_trend([h.yield_amount for h in chronological])
        if trend:
            text += f" (trend: {trend})"
        out.append(text)
    return out


def gather(db: Session, farm_id: str) -> tuple[dict, list[str]]:
    """Prompt variables plus the bullet lines reported back as dataSummary."""
    facts: dict = {}
    lines: list[str] = []

    name = context.farm_name(db, farm_id)
    if name:
        facts["farm_name"] = name
        lines.append(f"- Farm: {name}.")

    field_rows = context.fields(db, farm_id)
    acres = context.acreage(field_rows)
    if field_rows:
        facts["field_count"] = len(field_rows)
        lines.append(f"- {len(field_rows)} fields, totaling ~{acres:.1f} acres.")
    if acres > 0:
        facts["total_acreage"] = acres

    crops = context.unique_crops(context.recent(db, models.PlantingLog, farm_id, "planting_date", 20))
    if crops:
        facts["recent_crops"] = ", ".join(crops)
        lines.append(f"- Crops recently planted: {facts['recent_crops']}.")

    yields = yield_summaries(context.recent(db, models.HarvestingLog, farm_id, "harvest_date", 50))
    if yields:
        facts["average_yields"] = ", ".join(yields)
        lines.append(f"- Average yields from logs: {'; '.join(yields)}.")

    soil = [context.soil_line(s) for s in context.recent(db, models.SoilDataLog, farm_id, "sample_date", 5)]
    if soil:
        facts["soil_summary"] = ". ".join(soil)
        lines.append(f"- Recent soil observations: {'; '.join(soil[:2])}...")

    fert = [
        f"{f.fertilizer_type} ({f.amount_applied} {f.amount_unit}) on {month_year(f.date_applied)}"
        for f in context.recent(db, models.FertilizerLog, farm_id, "date_applied", 5)
    ]
    if fert:
        facts["fertilizer_summary"] = ". ".join(fert)
        lines.append(f"- Recent fertilizer apps: {'; '.join(fert[:2])}...")

    irr = [
        f"{i.amount_applied} {i.amount_unit} via {i.irrigation_method or 'unknown method'} on {month_year(i.irrigation_date)}"
        for i in context.recent(db, models.IrrigationLog, farm_id, "irrigation_date", 5)
    ]
    if irr:
        facts["irrigation_summary"] = ". ".join(irr)
        lines.append(f"- Recent irrigation: {'; '.join(irr[:2])}...")

    weather = [context.weather_line(w) for w in context.recent(db, models.WeatherLog, farm_id, "date", 7)]
    if weather:
        facts["weather_summary"] = ". ".join(weather)
        lines.append(f"- Recent weather notes: {weather[0]}...")

    return facts, lines


def build_prompt(facts: dict, goals: Optional[str]) -> str:
    profile = []
    if facts.get("farm_name"):
        profile.append(f"- Farm Name: {facts['farm_name']}")
    if facts.get("total_acreage"):
        profile.append(f"- Approximate Total Size: {facts['total_acreage']} acres (across {facts.get('field_count', 0)} fields).")
    if facts.get("recent_crops"):
        profile.append(f"- Main Crops Logged Recently: {facts['recent_crops']}.")
    if facts.get("average_yields"):
        profile.append(f"- Historical Average Yields: {facts['average_yields']}.")
    if facts.get("soil_summary"):
        profile.append(f"- Soil Conditions Summary: {facts['soil_summary']}.")
    if facts.get("fertilizer_summary"):
        profile.append(f"- Fertilizer Usage Summary: {facts['fertilizer_summary']}.")
    if facts.get("irrigation_summary"):
        profile.append(f"- Water Usage/Irrigation Summary: {facts['irrigation_summary']}.")
    if facts.get("weather_summary"):
        profile.append(f"- Recent Weather Context: {facts['weather_summary']}.")

    goals_block = ""
    if goals:
        goals_block = (
            f'\nThe farmer has these specific optimization goals: "{goals}"\n'
            "Please tailor your suggestions to help achieve these goals first and foremost, "
            "while also considering overall farm improvement.\n"
        )

    return (
        "You are an AI Farm Optimization Expert, providing actionable advice to farmers to improve their operations.\n\n"
        "Based on the following information about the farm, and the farmer's specific goals if provided, "
        "suggest optimization strategies to improve efficiency, sustainability, and increase yields.\n\n"
        "Farm Profile:\n" + ("\n".join(profile) or "- No farm records available.") + "\n"
        + goals_block +
        "\nConsider crop rotation and diversification, precision agriculture, soil health management, "
        "nutrient management, water conservation, integrated pest management, tillage, equipment use, "
        "and the economic viability of each suggestion. Where a yield trend is given, address it.\n\n"
        "Focus on 3-5 key strategies with the most impact, explaining the reasoning and benefits of each. "
        "Put them, formatted as a Markdown list, in the `strategies` field."
    )


def run(db: Session, llm: AdvisorLLM, farm_id: str, inp: OptimizationInput) -> OptimizationOutput:
    try:
        facts, lines = gather(db, farm_id)
    except SQLAlchemyError:
        logger.exception("Error fetching farm data for optimization strategies")
        facts, lines = {}, [FETCH_ERROR_NOTE]

    reply = llm.generate(build_prompt(facts, inp.optimization_goals), OptimizationReply)
    return OptimizationOutput(**reply.model_dump(), data_summary="\n".join(lines) if lines else NO_DATA_NOTE)
