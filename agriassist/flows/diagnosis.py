# agriassist/flows/diagnosis.py
from __future__ import annotations

import logging
from typing import Optional

from pydantic import Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agriassist.flows import context
from agriassist.llm import AdvisorLLM
from agriassist.schemas import CamelModel

logger = logging.getLogger(__name__)


class DiagnosisInput(CamelModel):
    photo_data_uri: str
    description: str = Field(..., min_length=1)
    field_id: Optional[str] = None

    @field_validator("photo_data_uri")
    @classmethod
    def _data_uri(cls, v: str) -> str:
        # data:<mimetype>;base64,<encoded_data>
        head, sep, _ = v.partition(",")
        if not sep or not head.startswith("data:") or not head.endswith(";base64"):
            raise ValueError("photoDataUri must be a base64 data URI ('data:<mimetype>;base64,<data>')")
        return v


class DiagnosisReply(CamelModel):
    plant_identification: str
    health_assessment: str
    diagnosis_details: str
    recommended_actions: str
    confidence_level: Optional[str] = None


class DiagnosisOutput(DiagnosisReply):
    field_name: Optional[str] = None


def run(db: Session, llm: AdvisorLLM, farm_id: str, inp: DiagnosisInput) -> DiagnosisOutput:
    field_name = None
    try:
        field = context.field_in_farm(db, farm_id, inp.field_id)
        field_name = field.field_name if field else None
    except SQLAlchemyError:
        logger.exception("Error fetching field name for plant diagnosis")

    prompt = (
        "You are an expert agricultural botanist and plant pathologist. Diagnose plant health issues "
        "from the attached photograph and the farmer's description.\n"
    )
    if field_name:
        prompt += (
            f'The plant is located in a field named "{field_name}". Consider this context if relevant, '
            "but primarily focus on visual and descriptive symptoms.\n"
        )
    prompt += (
        f'\nDescription provided by the farmer:\n"{inp.description}"\n\n'
        "1. plantIdentification: the species if possible, otherwise \"Unknown\" or a best guess with a disclaimer.\n"
        "2. healthAssessment: e.g. Healthy, Signs of Pest Infestation, Possible Fungal Disease, Nutrient Deficiency.\n"
        "3. diagnosisDetails: the specific disease, pest, deficiency or stress; confirm health if none.\n"
        "4. recommendedActions: clear steps, with organic and conventional options where appropriate.\n"
        "5. confidenceLevel: High, Medium or Low."
    )

    reply = llm.generate(prompt, DiagnosisReply, image_url=inp.photo_data_uri)
    return DiagnosisOutput(**reply.model_dump(), field_name=field_name)
