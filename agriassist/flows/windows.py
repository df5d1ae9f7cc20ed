# agriassist/flows/windows.py
"""Planting / harvesting window suggestions using this farm's history for the crop."""
from __future__ import annotations

import logging
from typing import Literal, Optional

from pydantic import Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agriassist import models
from agriassist.flows import context
from agriassist.llm import AdvisorLLM
from agriassist.schemas import CamelModel
from agriassist.stats import average
from agriassist.utils import month_year

logger = logging.getLogger(__name__)


class WindowsInput(CamelModel):
    location: str = Field(..., min_length=1)
    crop_type: str = Field(..., min_length=1)
    activity: Literal["Planting", "Harvesting"]
    additional_notes: Optional[str] = None


class WindowsReply(CamelModel):
    suggested_window: str
    detailed_advice: str
    confidence: Optional[str] = None


class WindowsOutput(WindowsReply):
    farm_history_summary: Optional[str] = None


def history(db: Session, farm_id: str, crop: str) -> list[str]:
    lines: list[str] = []
    plantings = context.recent(db, models.PlantingLog, farm_id, "planting_date", 5, crop_name=crop)
    if plantings:
        lines.append(f"- Past plantings for {crop}: {', '.join(month_year(p.planting_date) for p in plantings)}.")

    harvests = context.recent(db, models.HarvestingLog, farm_id, "harvest_date", 5, crop_name=crop)
    if harvests:
        lines.append(f"- Past harvests for {crop}: {', '.join(month_year(h.harvest_date) for h in harvests)}.")
        amounts = [h.yield_amount for h in harvests if isinstance(h.yield_amount, (int, float)) and h.yield_amount > 0]
        avg = average(amounts)
        if avg is not None:
            units = "/".join(sorted({h.yield_unit for h in harvests if h.yield_unit})) or "units"
            lines.append(f"- Average yield from {len(amounts)} logged harvest(s): {avg:.1f} {units}.")
    return lines


def run(db: Session, llm: AdvisorLLM, farm_id: str, inp: WindowsInput) -> WindowsOutput:
    prompt_history = used = None
    try:
        lines = history(db, farm_id, inp.crop_type)
        if lines:
            prompt_history = "\n".join(lines)
            used = context.context_used("AI considered the following historical data from your farm:", lines)
    except SQLAlchemyError:
        logger.exception("Error fetching farm history for planting/harvesting advice")
        prompt_history = "Could not fetch detailed farm history due to an error."
        used = "Note: AI could not fetch detailed farm history for context due to an error."

    prompt = (
        f"You are an expert agronomist specializing in crop scheduling for regions like {inp.location}.\n"
        f"A farmer needs advice for {inp.activity.lower()} their {inp.crop_type} crop.\n\n"
        f"Farmer's location: {inp.location}\nCrop: {inp.crop_type}\nActivity: {inp.activity}\n"
    )
    if inp.additional_notes:
        prompt += f"\nAdditional Notes from farmer: {inp.additional_notes}\n"
    if prompt_history:
        prompt += (
            f"\nHistorical context for this crop on this farm:\n{prompt_history}\n"
            "Consider this farm-specific history along with general agronomic knowledge.\n"
        )
    prompt += (
        "\n1. suggestedWindow: a concise optimal window for this activity.\n"
        "2. detailedAdvice: your reasoning, covering typical regional weather, the crop's needs "
        "(soil temperature, frost sensitivity, days to maturity), ideal soil conditions for planting "
        "or signs of ripeness for harvesting.\n"
        "3. confidence: High, Medium or Low."
    )

    reply = llm.generate(prompt, WindowsReply)
    return WindowsOutput(**reply.model_dump(), farm_history_summary=used)
