# agriassist/flows/soil.py
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
from agriassist.utils import month_year

logger = logging.getLogger(__name__)


class SoilInput(CamelModel):
    field_id: Optional[str] = None
    ph_level: float = Field(..., ge=0, le=14)
    organic_matter_percent: float = Field(..., ge=0, le=100)
    nitrogen_ppm: float = Field(..., ge=0, alias="nitrogenPPM")
    phosphorus_ppm: float = Field(..., ge=0, alias="phosphorusPPM")
    potassium_ppm: float = Field(..., ge=0, alias="potassiumPPM")
    crop_type: Optional[str] = None
    soil_texture: Optional[str] = None


class SoilReply(CamelModel):
    overall_assessment: str
    ph_interpretation: str
    organic_matter_interpretation: str
    nutrient_interpretation: str
    recommendations: str


class SoilOutput(SoilReply):
    field_name: Optional[str] = None
    historical_context_summary: Optional[str] = None


def history_lines(tests: list[models.SoilDataLog]) -> list[str]:
    lines = []
    for t in tests:
        line = f"- On {month_year(t.sample_date)}:"
        bits = []
        if t.ph_level is not None:
            bits.append(f"pH {t.ph_level:.1f}")
        if t.organic_matter:
            bits.append(f"OM {t.organic_matter}")
        nutrients = t.nutrients or {}
        for key, label in (("nitrogen", "N"), ("phosphorus", "P"), ("potassium", "K")):
            if nutrients.get(key):
                bits.append(f"{label} {nutrients[key]}")
        lines.append(f"{line} {', '.join(bits)}." if bits else f"{line} no values recorded.")
    return lines


def build_prompt(inp: SoilInput, field_name: Optional[str], history: Optional[str]) -> str:
    where = f' for their field named "{field_name}"' if field_name else ""
    results = [
        f"- pH Level: {inp.ph_level}",
        f"- Organic Matter: {inp.organic_matter_percent}%",
        f"- Nitrogen (N): {inp.nitrogen_ppm} PPM",
        f"- Phosphorus (P): {inp.phosphorus_ppm} PPM",
        f"- Potassium (K): {inp.potassium_ppm} PPM",
    ]
    if inp.crop_type:
        results.append(f"- Intended Crop: {inp.crop_type}")
    if inp.soil_texture:
        results.append(f"- Soil Texture: {inp.soil_texture}")

    prompt = (
        "You are an expert soil scientist and agronomist.\n"
        f"A farmer has provided the following soil test results{where}:\n\n"
        "Current Test Results:\n" + "\n".join(results) + "\n"
    )
    if history:
        prompt += (
            f"\nHistorical context for this field:\n{history}\n"
            "Consider this historical data when providing your interpretation and recommendations.\n"
        )
    prompt += (
        "\nBased on all available information:\n"
        "1. overallAssessment: a general summary of the soil's health.\n"
        "2. phInterpretation: is the pH optimal, what does it imply for nutrient availability, does it need liming or sulfur?\n"
        "3. organicMatterInterpretation: is it good, why it matters, how to improve it if needed.\n"
        "4. nutrientInterpretation: are N, P and K deficient, adequate or in surplus, for the intended crop if given?\n"
        "5. recommendations: specific amendments, fertilizer adjustments or practices, tailored to the crop if given."
    )
    return prompt


def run(db: Session, llm: AdvisorLLM, farm_id: str, inp: SoilInput) -> SoilOutput:
    field_name = prompt_history = used = None
    if inp.field_id:
        try:
            field = context.field_in_farm(db, farm_id, inp.field_id)
            if field is not None:
                field_name = field.field_name
                tests = context.recent(db, models.SoilDataLog, farm_id, "sample_date", 5, field_id=inp.field_id)
                lines = history_lines(tests)
                if lines:
                    prompt_history = "Recent past soil tests for this field:\n" + "\n".join(lines)
                    used = context.context_used("AI considered the following historical context:", lines)
                else:
                    used = "No significant historical soil test data found for this field in the logs."
        except SQLAlchemyError:
            logger.exception("Error fetching field or historical soil data")
            used = "Could not fetch historical soil data due to an error."

    reply = llm.generate(build_prompt(inp, field_name, prompt_history), SoilReply)
    return SoilOutput(**reply.model_dump(), field_name=field_name, historical_context_summary=used)
