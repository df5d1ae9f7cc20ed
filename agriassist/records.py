# agriassist/records.py
"""URL slug -> (ORM model, create schema, update schema, output schema, ordering) for every log kind."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Type

from pydantic import BaseModel
from sqlalchemy.orm import Session

from agriassist import crud, models, schemas
from agriassist.errors import NotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordKind:
    slug: str
    model: type
    create: Type[BaseModel]
    out: Type[BaseModel]
    order_by: str
    descending: bool = True
    tags_animal: bool = False
    update: Type[BaseModel] = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "update", schemas.partial(self.create))

    @property
    def filters_by_field(self) -> bool:
        return hasattr(self.model, "field_id")


_KINDS = [
    RecordKind("fields", models.Field, schemas.FieldBase, schemas.FieldOut, "field_name", descending=False),
    RecordKind("planting", models.PlantingLog, schemas.PlantingLogBase, schemas.PlantingLogOut, "planting_date"),
    RecordKind("harvesting", models.HarvestingLog, schemas.HarvestingLogBase, schemas.HarvestingLogOut, "harvest_date"),
    RecordKind("soil", models.SoilDataLog, schemas.SoilDataLogBase, schemas.SoilDataLogOut, "sample_date"),
    RecordKind("weather", models.WeatherLog, schemas.WeatherLogBase, schemas.WeatherLogOut, "date"),
    RecordKind("fertilizer", models.FertilizerLog, schemas.FertilizerLogBase, schemas.FertilizerLogOut, "date_applied"),
    RecordKind("irrigation", models.IrrigationLog, schemas.IrrigationLogBase, schemas.IrrigationLogOut, "irrigation_date"),
    RecordKind("revenue", models.RevenueLog, schemas.RevenueLogBase, schemas.RevenueLogOut, "date"),
    RecordKind("expenses", models.ExpenseLog, schemas.ExpenseLogBase, schemas.ExpenseLogOut, "date"),
    RecordKind("tasks", models.TaskLog, schemas.TaskLogBase, schemas.TaskLogOut, "due_date"),
    RecordKind("animals", models.LivestockAnimal, schemas.LivestockAnimalBase, schemas.LivestockAnimalOut, "animal_id_tag", descending=False),
    RecordKind("health", models.HealthRecord, schemas.HealthRecordBase, schemas.HealthRecordOut, "log_date", tags_animal=True),
    RecordKind("breeding", models.BreedingRecord, schemas.BreedingRecordBase, schemas.BreedingRecordOut, "breeding_date"),
    RecordKind("feed", models.FeedLog, schemas.FeedLogBase, schemas.FeedLogOut, "log_date", tags_animal=True),
    RecordKind("weight", models.WeightLog, schemas.WeightLogBase, schemas.WeightLogOut, "log_date", tags_animal=True),
    RecordKind("equipment", models.Equipment, schemas.EquipmentBase, schemas.EquipmentOut, "equipment_name", descending=False),
    RecordKind("inputs", models.FarmInput, schemas.FarmInputBase, schemas.FarmInputOut, "purchase_date"),
]

KINDS: dict[str, RecordKind] = {k.slug: k for k in _KINDS}


def get_kind(slug: str) -> Optional[RecordKind]:
    return KINDS.get(slug)


def _denormalize(db: Session, kind: RecordKind, data: dict[str, Any], farm_id: str) -> dict[str, Any]:
    if kind.tags_animal and "animal_id" in data:
        if data["animal_id"] is None:
            data["animal_id_tag"] = None
            return data
        animal = crud.get_record(db, models.LivestockAnimal, farm_id, data["animal_id"])
        if animal is None:
            raise NotFound("Animal not found.")
        data["animal_id_tag"] = animal.animal_id_tag
    return data


def create(db: Session, kind: RecordKind, body: BaseModel, *, farm_id: str, user_id: str):
    data = _denormalize(db, kind, body.model_dump(), farm_id)
    obj = crud.create_record(db, kind.model, data, farm_id=farm_id, user_id=user_id)
    logger.info("Created %s record %s for farm %s", kind.slug, obj.id, farm_id)
    return obj


def update(db: Session, kind: RecordKind, obj, body: BaseModel):
    """
    Apply the fields present in `body` on top of the stored record.

    The merged record is validated against the full create schema, so a PUT
    can't store what a POST would reject (raises pydantic.ValidationError).
    """
    changes = body.model_dump(exclude_unset=True)
    current = kind.create.model_validate(obj).model_dump()
    merged = kind.create.model_validate({**current, **changes}).model_dump()
    data = _denormalize(db, kind, {k: merged[k] for k in changes}, obj.farm_id)
    return crud.update_record(db, obj, data)
