# agriassist/routers/fields.py
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from agriassist import models, schemas
from agriassist.db import get_db
from agriassist.deps import get_import_service, get_writer
from agriassist.ingest_service import FieldImportService
from agriassist.ingest_sources import CsvFieldSource, GeoJSONFieldSource

router = APIRouter(prefix="/fields", tags=["fields"])


@router.post("/import/csv", response_model=schemas.FieldImportResult)
async def import_csv(
    file: UploadFile = File(...),
    user: models.User = Depends(get_writer),
    db: Session = Depends(get_db),
    svc: FieldImportService = Depends(get_import_service),
):
    try:
        content = (await file.read()).decode("utf-8")
        return svc.ingest(CsvFieldSource(content), db, farm_id=user.farm_id, user_id=user.uid)
    except UnicodeDecodeError as e:
        raise HTTPException(status_code=400, detail=f"CSV must be UTF-8 encoded: {e}")
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/import/geojson", response_model=schemas.FieldImportResult)
def import_geojson(
    geojson: Dict[str, Any] = Body(...),
    user: models.User = Depends(get_writer),
    db: Session = Depends(get_db),
    svc: FieldImportService = Depends(get_import_service),
):
    try:
        return svc.ingest(GeoJSONFieldSource(geojson), db, farm_id=user.farm_id, user_id=user.uid)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
