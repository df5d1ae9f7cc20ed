# agriassist/flows/treatment.py
from __future__ import annotations

from pydantic import Field

from agriassist.llm import AdvisorLLM
from agriassist.schemas import CamelModel


class TreatmentInput(CamelModel):
    crop_type: str = Field(..., min_length=1)
    symptoms: str = Field(..., min_length=1)


class TreatmentOutput(CamelModel):
    diagnosis: str
    treatment_plan: str
    prevention_tips: str


def run(llm: AdvisorLLM, inp: TreatmentInput) -> TreatmentOutput:
    prompt = (
        "You are an expert in agricultural plant diseases and pest management.\n"
        "Based on the crop type and symptoms described, provide a diagnosis, a treatment plan, and prevention tips.\n\n"
        f"Crop Type: {inp.crop_type}\n"
        f"Symptoms: {inp.symptoms}"
    )
    return llm.generate(prompt, TreatmentOutput)
