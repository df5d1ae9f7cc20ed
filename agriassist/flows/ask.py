# agriassist/flows/ask.py
"""Short "how to" answers, grounded in a little farm context when there is some."""
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


class AskInput(CamelModel):
    question: str = Field(..., min_length=1)


class AskReply(CamelModel):
    answer: str


class AskOutput(AskReply):
    farm_context_used: Optional[str] = None


def farm_summary(db: Session, farm_id: str) -> list[str]:
    lines: list[str] = []
    name = context.farm_name(db, farm_id)
    if name:
        lines.append(f"- Farm Name: {name}.")
    crops = context.unique_crops(context.recent(db, models.PlantingLog, farm_id, "planting_date", 5))
    if crops:
        lines.append(f"- Recently logged crops include: {', '.join(crops)}.")
    acres = context.acreage(context.fields(db, farm_id))
    if acres > 0:
        lines.append(f"- Approximate total field area: {acres:.1f} acres.")
    return lines


def build_prompt(question: str, summary: Optional[str]) -> str:
    parts = ["You are an AI Farm Expert, providing simple and concise answers to farmers' questions about common farming tasks."]
    if summary:
        parts.append(f"Consider the following context about the farmer's setup:\n{summary}")
    parts.append(f"Question: {question}")
    parts.append("Answer in the `answer` field.")
    return "\n\n".join(parts)


def run(db: Session, llm: AdvisorLLM, farm_id: Optional[str], inp: AskInput) -> AskOutput:
    summary = used = None
    if farm_id:
        try:
            lines = farm_summary(db, farm_id)
            if lines:
                summary = "\n".join(lines)
                used = context.context_used("AI considered the following farm context:", lines)
        except SQLAlchemyError:
            logger.exception("Error fetching farm context for the farm expert")
            summary = "Note: Could not fetch detailed farm context due to an error."
            used = "Attempted to fetch farm context but encountered an error."

    reply = llm.generate(build_prompt(inp.question, summary), AskReply)
    return AskOutput(**reply.model_dump(), farm_context_used=used)
