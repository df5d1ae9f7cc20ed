# agriassist/ingest_service.py
from __future__ import annotations
from typing import Callable, Dict, Any
import logging

from pydantic import ValidationError
from sqlalchemy.orm import Session

from agriassist import crud, models, schemas
from agriassist.ingest_sources import FieldSource

logger = logging.getLogger(__name__)

Create = Callable[..., models.Field]


class FieldImportService:
    def __init__(self, *, create: Create | None = None):
        # DI
        self._create = create or crud.create_record

    @staticmethod
    def _parse_size(value: Any) -> float | None:
        if value in (None, ""):
            return None
        try:
            size = float(value)
        except (TypeError, ValueError):
            return None
        return size if size > 0 else None

    def ingest(self, source: FieldSource, db: Session, *, farm_id: str, user_id: str) -> Dict[str, Any]:
        """
        Validate every record first, then create them; a bad record fails the whole import.

        Raises ValueError (shape or validation problems) before anything is written.
        """
        payloads: list[schemas.FieldBase] = []
        for i, r in enumerate(source.records(), start=1):
            try:
                payloads.append(schemas.FieldBase(
                    field_name=r["field_name"],
                    field_size=self._parse_size(r.get("field_size")),
                    field_size_unit=r.get("field_size_unit") or "acres",
                    geometry=r.get("geometry"),
                    notes=r.get("notes"),
                ))
            except ValidationError as e:
                first = e.errors(include_url=False)[0]
                raise ValueError(f"Record {i}: {'.'.join(str(p) for p in first['loc'])}: {first['msg']}") from e

        created = []
        without_location = []
        for p in payloads:
            obj = self._create(db, models.Field, p.model_dump(), farm_id=farm_id, user_id=user_id)
            created.append(obj.id)
            if obj.latitude is None:
                without_location.append(p.field_name)

        logger.info("Imported %d fields into farm %s", len(created), farm_id)
        return {"imported": len(created), "field_ids": created, "without_location": without_location}
