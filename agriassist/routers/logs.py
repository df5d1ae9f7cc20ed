# agriassist/routers/logs.py
from typing import Any, Dict, List, Optional, Type

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from agriassist import crud, models, records
from agriassist.db import get_db
from agriassist.deps import get_farm_user, get_writer
from agriassist.records import RecordKind

router = APIRouter(prefix="/logs", tags=["logs"])


def _kind(kind: str) -> RecordKind:
    found = records.get_kind(kind)
    if found is None:
        raise HTTPException(status_code=404, detail=f"Unknown log kind '{kind}'.")
    return found


def _validate(schema: Type[BaseModel], payload: Dict[str, Any]) -> BaseModel:
    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


def _out(kind: RecordKind, obj) -> Dict[str, Any]:
    return kind.out.model_validate(obj).model_dump(by_alias=True, mode="json")


def _get_or_404(db: Session, kind: RecordKind, farm_id: str, record_id: str):
    obj = crud.get_record(db, kind.model, farm_id, record_id)
    if obj is None:
        raise HTTPException(status_code=404, detail="Record not found.")
    return obj


@router.post("/{kind}", status_code=201)
def create_record(
    kind: str,
    payload: Dict[str, Any] = Body(...),
    user: models.User = Depends(get_writer),
    db: Session = Depends(get_db),
):
    k = _kind(kind)
    body = _validate(k.create, payload)
    obj = records.create(db, k, body, farm_id=user.farm_id, user_id=user.uid)
    return _out(k, obj)


@router.get("/{kind}")
def list_records(
    kind: str,
    limit: int = Query(100, ge=1, le=500),
    field_id: Optional[str] = None,
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    k = _kind(kind)
    filters = {"field_id": field_id} if k.filters_by_field and field_id else {}
    rows = crud.list_records(
        db, k.model, user.farm_id,
        order_by=k.order_by, descending=k.descending, limit=limit, **filters,
    )
    return [_out(k, r) for r in rows]


@router.get("/{kind}/{record_id}")
def get_record(
    kind: str,
    record_id: str,
    user: models.User = Depends(get_farm_user),
    db: Session = Depends(get_db),
):
    k = _kind(kind)
    return _out(k, _get_or_404(db, k, user.farm_id, record_id))


@router.put("/{kind}/{record_id}")
def update_record(
    kind: str,
    record_id: str,
    payload: Dict[str, Any] = Body(...),
    user: models.User = Depends(get_writer),
    db: Session = Depends(get_db),
):
    k = _kind(kind)
    obj = _get_or_404(db, k, user.farm_id, record_id)
    body = _validate(k.update, payload)
    try:
        obj = records.update(db, k, obj, body)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    return _out(k, obj)


@router.delete("/{kind}/{record_id}")
def delete_record(
    kind: str,
    record_id: str,
    user: models.User = Depends(get_writer),
    db: Session = Depends(get_db),
):
    k = _kind(kind)
    crud.delete_record(db, _get_or_404(db, k, user.farm_id, record_id))
    return {"success": True, "message": "Record deleted."}
