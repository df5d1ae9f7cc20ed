# agriassist/routers/analytics.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from agriassist import analytics, crud, models, schemas
from agriassist.db import get_db
from agriassist.deps import get_farm_user

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/yields", response_model=schemas.YieldSeries)
def yields(user: models.User = Depends(get_farm_user), db: Session = Depends(get_db)):
    return analytics.yields_by_year(crud.list_records(db, models.HarvestingLog, user.farm_id))


@router.get("/fertilizer-usage", response_model=List[schemas.MonthlyUsage])
def fertilizer_usage(
    year: Optional[int] = Query(None, ge=1900, le=2200),
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
):
    rows = crud.list_records(db, models.FertilizerLog, user.farm_id)
    return analytics.monthly_usage(rows, "date_applied", year)


@router.get("/water-usage", response_model=List[schemas.MonthlyUsage])
def water_usage(
    year: Optional[int] = Query(None, ge=1900, le=2200),
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
):
    rows = crud.list_records(db, models.IrrigationLog, user.farm_id)
    return analytics.monthly_usage(rows, "irrigation_date", year)


@router.get("/dashboard", response_model=schemas.DashboardStats)
def dashboard(user: models.User = Depends(get_farm_user), db: Session = Depends(get_db)):
    return analytics.dashboard(db, user.farm_id)
