# agriassist/routers/ai.py
"""AI advisor endpoints; each one runs a flow against the caller's farm."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agriassist import models
from agriassist.db import get_db
from agriassist.deps import get_current_user, get_farm_user, get_llm
from agriassist.flows import (
    ask,
    diagnosis,
    insights,
    optimization,
    soil,
    sustainable,
    treatment,
    windows,
)
from agriassist.llm import AdvisorLLM

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/ask", response_model=ask.AskOutput)
def ask_farm_expert(
    body: ask.AskInput,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    llm: AdvisorLLM = Depends(get_llm),
):
    return ask.run(db, llm, user.farm_id, body)


@router.post("/optimization", response_model=optimization.OptimizationOutput)
def optimization_strategies(
    body: optimization.OptimizationInput,
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
    llm: AdvisorLLM = Depends(get_llm),
):
    return optimization.run(db, llm, user.farm_id, body)


@router.post("/soil-interpretation", response_model=soil.SoilOutput)
def soil_interpretation(
    body: soil.SoilInput,
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
    llm: AdvisorLLM = Depends(get_llm),
):
    return soil.run(db, llm, user.farm_id, body)


@router.post("/sustainable-practices", response_model=sustainable.SustainableOutput)
def sustainable_practices(
    body: sustainable.SustainableInput,
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
    llm: AdvisorLLM = Depends(get_llm),
):
    return sustainable.run(db, llm, user.farm_id, body)


@router.post("/planting-harvesting-windows", response_model=windows.WindowsOutput)
def planting_harvesting_windows(
    body: windows.WindowsInput,
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
    llm: AdvisorLLM = Depends(get_llm),
):
    return windows.run(db, llm, user.farm_id, body)


@router.post("/plant-diagnosis", response_model=diagnosis.DiagnosisOutput)
def plant_diagnosis(
    body: diagnosis.DiagnosisInput,
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
    llm: AdvisorLLM = Depends(get_llm),
):
    return diagnosis.run(db, llm, user.farm_id, body)


@router.post("/treatment-plan", response_model=treatment.TreatmentOutput)
def treatment_plan(
    body: treatment.TreatmentInput,
    user: models.User = Depends(get_current_user),
    llm: AdvisorLLM = Depends(get_llm),
):
    return treatment.run(llm, body)


@router.post("/proactive-insights", response_model=insights.InsightsOutput)
def proactive_insights(
    body: insights.InsightsInput,
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
    llm: AdvisorLLM = Depends(get_llm),
):
    return insights.run(db, llm, user.farm_id, body)
