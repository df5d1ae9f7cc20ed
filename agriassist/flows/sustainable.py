# agriassist/flows/sustainable.py
from __future__ import annotations

import logging
from typing import Optional

from pydantic import Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agriassist import models
from agriassist.flows import context
from agriassist.llm import AdvisorLLM
from agriassist.schemas import CamelModel

logger = logging.getLogger(__name__)


class SustainableInput(CamelModel):
    sustainability_goals: str = Field(..., min_length=1)
    crop_types: Optional[str] = None
    farm_size_acres: Optional[float] = Field(None, gt=0)
    current_practices: Optional[str] = None
    location_context: Optional[str] = None


class SustainableReply(CamelModel):
    recommended_practices: str
    implementation_tips: str
    potential_carbon_credit_info: Optional[str] = None


class SustainableOutput(SustainableReply):
    data_summary: Optional[str] = None


def run(db: Session, llm: AdvisorLLM, farm_id: str, inp: SustainableInput) -> SustainableOutput:
    lines: list[str] = []
    derived_crops = ""
    derived_acres = 0.0
    try:
        crops = context.unique_crops(context.recent(db, models.PlantingLog, farm_id, "planting_date", 20))
        if crops:
            derived_crops = ", ".join(crops)
            lines.append(f"- Recent crops logged: {derived_crops}.")
        derived_acres = context.acreage(context.fields(db, farm_id))
        if derived_acres > 0:
            lines.append(f"- Total field area from logs: ~{derived_acres} acres.")
        if context.recent(db, models.SoilDataLog, farm_id, "sample_date", 5):
            lines.append("- Recent soil data has been logged, indicating active soil management.")
    except SQLAlchemyError:
        logger.exception("Error fetching farm data for sustainable practices advice")
        lines.append("- Error encountered while trying to fetch detailed farm records. Advice will be more general.")

    # farmer-provided details win over what the logs suggest
    crop_types = inp.crop_types or derived_crops or None
    farm_size = inp.farm_size_acres or (derived_acres if derived_acres > 0 else None)
    summary = "\n".join(lines) or None

    prompt = [
        "You are an expert advisor in sustainable agriculture and regenerative farming practices.",
        "A farmer is seeking advice based on the following farm details:",
        "",
        f"Sustainability Goals: {inp.sustainability_goals}",
    ]
    if crop_types:
        prompt.append(f"Main Crops: {crop_types}")
    if farm_size:
        prompt.append(f"Farm Size: {farm_size} acres")
    if inp.current_practices:
        prompt.append(f"Current Practices: {inp.current_practices}")
    if inp.location_context:
        prompt.append(f"Location/Climate Context: {inp.location_context}")
    if summary:
        prompt += ["", "The following information was derived from the farm's records:", summary]
    prompt += [
        "",
        "Based on all available information (prioritizing farmer-provided details if they conflict with derived data):",
        "1. recommendedPractices: 2-4 key sustainable practices, each with its benefits and how it applies. Use Markdown bullets.",
        "2. implementationTips: practical tips for 1-2 of the top recommendations.",
        "3. potentialCarbonCreditInfo: only if the goals mention carbon credits or it is highly relevant.",
    ]

    reply = llm.generate("\n".join(prompt), SustainableReply)
    return SustainableOutput(**reply.model_dump(), data_summary=summary)
