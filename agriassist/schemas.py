# agriassist/schemas.py
from datetime import date, datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, create_model, field_validator
from pydantic.alias_generators import to_camel

Role = Literal["owner", "admin", "editor", "viewer"]
StaffRole = Literal["admin", "editor", "viewer"]
PlanId = Literal["free", "pro", "agribusiness"]
PaidPlanId = Literal["pro", "agribusiness"]
TaskStatus = Literal["To Do", "In Progress", "Done"]
ExpenseCategory = Literal[
    "Inputs Purchase", "Equipment Repair", "Fuel", "Labor", "Utilities",
    "Rent/Lease", "Loan Payment", "Veterinary/Livestock", "Insurance", "Taxes", "Other",
]
Species = Literal["Cattle", "Sheep", "Goat", "Pig", "Poultry", "Horse", "Other"]
Gender = Literal["Male", "Female", "Castrated Male", "Unknown"]
HealthEventType = Literal[
    "Vaccination", "Treatment", "Observation", "Deworming",
    "Injury", "Check-up", "Birth Event", "Weaning", "Other",
]
BreedingMethod = Literal["Natural Service", "Artificial Insemination", "Embryo Transfer", "Unknown", "Other"]
WeightUnit = Literal["kg", "lbs"]
EquipmentType = Literal[
    "Tractor", "Harvester", "Planter", "Tillage Tool", "Sprayer", "Baler",
    "Utility Vehicle", "Irrigation System", "Drone", "Truck/Trailer", "Other",
]
InputType = Literal["Seed", "Fertilizer", "Pesticide", "Other"]


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase keys; serializes camelCase."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class RecordMeta(CamelModel):
    id: str
    farm_id: str
    user_id: str
    created_at: datetime
    updated_at: datetime


# ---------- fields ----------

class FieldBase(CamelModel):
    field_name: str = Field(..., min_length=1)
    field_size: Optional[float] = Field(None, gt=0)
    field_size_unit: Optional[str] = "acres"
    geometry: Optional[dict[str, Any]] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("geometry")
    @classmethod
    def _geojson(cls, v):
        if v is not None and not v.get("type"):
            raise ValueError("geometry must be a GeoJSON object with a 'type'")
        return v


class FieldOut(FieldBase, RecordMeta):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


# ---------- crop logs ----------

class PlantingLogBase(CamelModel):
    crop_name: str = Field(..., min_length=1)
    planting_date: date
    field_id: Optional[str] = None
    seeds_used: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class PlantingLogOut(PlantingLogBase, RecordMeta):
    pass


class HarvestingLogBase(CamelModel):
    crop_name: str = Field(..., min_length=1)
    harvest_date: date
    field_id: Optional[str] = None
    yield_amount: Optional[float] = Field(None, ge=0)
    yield_unit: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class HarvestingLogOut(HarvestingLogBase, RecordMeta):
    pass


class Nutrients(CamelModel):
    nitrogen: Optional[str] = None
    phosphorus: Optional[str] = None
    potassium: Optional[str] = None


class SoilDataLogBase(CamelModel):
    field_id: str = Field(..., min_length=1)
    sample_date: date
    ph_level: Optional[float] = Field(None, ge=0, le=14)
    organic_matter: Optional[str] = None
    nutrients: Optional[Nutrients] = None
    treatments_applied: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class SoilDataLogOut(SoilDataLogBase, RecordMeta):
    pass


class WeatherLogBase(CamelModel):
    date: date
    location: Optional[str] = None
    temperature_high: Optional[float] = None
    temperature_low: Optional[float] = None
    precipitation: Optional[float] = Field(None, ge=0)
    precipitation_unit: Optional[str] = "mm"
    wind_speed: Optional[float] = Field(None, ge=0)
    wind_speed_unit: Optional[str] = "km/h"
    conditions: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class WeatherLogOut(WeatherLogBase, RecordMeta):
    pass


class FertilizerLogBase(CamelModel):
    field_id: str = Field(..., min_length=1)
    date_applied: date
    fertilizer_type: str = Field(..., min_length=1)
    amount_applied: float = Field(..., gt=0)
    amount_unit: str = "kg/ha"
    application_method: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class FertilizerLogOut(FertilizerLogBase, RecordMeta):
    pass


class IrrigationLogBase(CamelModel):
    field_id: str = Field(..., min_length=1)
    irrigation_date: date
    water_source: Optional[str] = None
    amount_applied: float = Field(..., gt=0)
    amount_unit: str = "mm"
    duration_hours: Optional[float] = Field(None, ge=0)
    irrigation_method: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class IrrigationLogOut(IrrigationLogBase, RecordMeta):
    pass


# ---------- finance ----------

class RevenueLogBase(CamelModel):
    date: date
    source: str = Field(..., min_length=1)
    description: Optional[str] = Field(None, max_length=200)
    amount: float = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=500)


class RevenueLogOut(RevenueLogBase, RecordMeta):
    pass


class ExpenseLogBase(CamelModel):
    date: date
    category: ExpenseCategory
    description: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=500)


class ExpenseLogOut(ExpenseLogBase, RecordMeta):
    pass


# ---------- tasks ----------

class TaskLogBase(CamelModel):
    task_name: str = Field(..., min_length=1)
    description: Optional[str] = None
    due_date: Optional[date] = None
    assigned_to: Optional[str] = None
    status: TaskStatus = "To Do"
    notes: Optional[str] = Field(None, max_length=500)


class TaskLogOut(TaskLogBase, RecordMeta):
    pass


# ---------- livestock ----------

class LivestockAnimalBase(CamelModel):
    animal_id_tag: str = Field(..., min_length=1)
    species: Species
    breed: Optional[str] = None
    birth_date: Optional[date] = None
    gender: Gender = "Unknown"
    dam_id_tag: Optional[str] = None
    sire_id_tag: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class LivestockAnimalOut(LivestockAnimalBase, RecordMeta):
    pass


class HealthRecordBase(CamelModel):
    animal_id: str = Field(..., min_length=1)
    log_date: date
    event_type: HealthEventType
    details: str = Field(..., min_length=1, max_length=1000)
    medication_administered: Optional[str] = Field(None, max_length=200)
    dosage: Optional[str] = Field(None, max_length=100)
    administered_by: Optional[str] = Field(None, max_length=100)
    follow_up_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=500)


class HealthRecordOut(HealthRecordBase, RecordMeta):
    animal_id_tag: Optional[str] = None


class BreedingRecordBase(CamelModel):
    dam_animal_id: str = Field(..., min_length=1)
    sire_animal_id: Optional[str] = None
    breeding_date: Optional[date] = None
    expected_due_date: Optional[date] = None
    actual_birth_date: Optional[date] = None
    number_of_offspring: Optional[int] = Field(None, ge=0)
    offspring_male_count: Optional[int] = Field(None, ge=0)
    offspring_female_count: Optional[int] = Field(None, ge=0)
    offspring_id_tags: list[str] = Field(default_factory=list)
    breeding_method: Optional[BreedingMethod] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("offspring_id_tags", mode="before")
    @classmethod
    def _split_tags(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        return [str(t).strip() for t in v if str(t).strip()]


class BreedingRecordOut(BreedingRecordBase, RecordMeta):
    pass


class FeedLogBase(CamelModel):
    animal_id: Optional[str] = None
    log_date: date
    feed_type: str = Field(..., min_length=1, max_length=150)
    quantity_consumed: float = Field(..., gt=0)
    quantity_unit: str = Field("kg", min_length=1, max_length=50)
    notes: Optional[str] = Field(None, max_length=500)


class FeedLogOut(FeedLogBase, RecordMeta):
    animal_id_tag: Optional[str] = None


class WeightLogBase(CamelModel):
    animal_id: str = Field(..., min_length=1)
    log_date: date
    weight: float = Field(..., gt=0)
    weight_unit: WeightUnit = "kg"
    notes: Optional[str] = Field(None, max_length=500)


class WeightLogOut(WeightLogBase, RecordMeta):
    animal_id_tag: Optional[str] = None


# ---------- equipment & inputs ----------

class EquipmentBase(CamelModel):
    equipment_name: str = Field(..., min_length=1)
    equipment_type: EquipmentType
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    purchase_date: Optional[date] = None
    purchase_cost: Optional[float] = Field(None, gt=0)
    last_maintenance_date: Optional[date] = None
    next_maintenance_date: Optional[date] = None
    maintenance_details: Optional[str] = None
    notes: Optional[str] = None


class EquipmentOut(EquipmentBase, RecordMeta):
    pass


class FarmInputBase(CamelModel):
    input_name: str = Field(..., min_length=1)
    input_type: InputType
    quantity: float = Field(..., gt=0)
    quantity_unit: str = Field("kg", min_length=1)
    purchase_date: date
    purchase_cost: Optional[float] = Field(None, gt=0)
    supplier: Optional[str] = None
    notes: Optional[str] = None


class FarmInputOut(FarmInputBase, RecordMeta):
    pass


def partial(model: type[BaseModel]) -> type[BaseModel]:
    """
    Same fields as `model`, all optional: the body of a PUT that updates what it sends.

    Field constraints are not carried over; crud re-validates the merged record
    against `model` before writing.
    """
    fields = {
        name: (Optional[f.annotation], None)
        for name, f in model.model_fields.items()
    }
    return create_model(f"{model.__name__.removesuffix('Base')}Update", __base__=model, **fields)


# ---------- users / farms ----------

class NotificationPreferences(CamelModel):
    task_reminders_email: bool = True
    weather_alerts_email: bool = False
    ai_insights_email: bool = True
    staff_activity_email: bool = False


class UserSettings(CamelModel):
    notification_preferences: NotificationPreferences = Field(default_factory=NotificationPreferences)
    preferred_area_unit: str = "acres"
    preferred_weight_unit: str = "kg"
    theme: str = "system"


class UserSettingsUpdate(CamelModel):
    notification_preferences: Optional[dict[str, bool]] = None
    preferred_area_unit: Optional[str] = None
    preferred_weight_unit: Optional[str] = None
    theme: Optional[str] = None


class UserOut(CamelModel):
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    farm_id: Optional[str] = None
    farm_name: Optional[str] = None
    is_farm_owner: bool
    role_on_current_farm: Optional[str] = None
    selected_plan_id: str
    subscription_status: str
    subscription_current_period_end: Optional[datetime] = None
    settings: Optional[dict[str, Any]] = None
    onboarding_completed: bool


class StaffMember(CamelModel):
    uid: str
    role: Role


class FarmOut(CamelModel):
    farm_id: str
    owner_id: str
    farm_name: Optional[str] = None
    staff: list[StaffMember] = Field(default_factory=list)
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class FarmUpdate(CamelModel):
    farm_name: Optional[str] = Field(None, min_length=1)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1)
    farm_name: str = Field(..., min_length=1)


class PaidRegistrationRequest(CamelModel):
    plan_id: Optional[str] = None
    name: Optional[str] = None
    farm_name: Optional[str] = None


class WelcomeEmailRequest(CamelModel):
    to: Optional[str] = None
    user_name: Optional[str] = None


# ---------- staff / invitations ----------

class InviteStaffRequest(CamelModel):
    invited_email: str = Field(..., min_length=3)
    invited_role: StaffRole = "viewer"


class InvitationAction(CamelModel):
    invitation_id: str = Field(..., min_length=1)


class InvitationTokenRequest(CamelModel):
    invitation_token: str = Field(..., min_length=1)


class RemoveStaffRequest(CamelModel):
    staff_uid_to_remove: str = Field(..., min_length=1)


class UpdateStaffRoleRequest(CamelModel):
    staff_uid_to_update: str = Field(..., min_length=1)
    new_role: str = Field(..., min_length=1)


class InvitationOut(CamelModel):
    id: str
    inviter_farm_id: str
    inviter_uid: str
    farm_name: Optional[str] = None
    invited_email: str
    invited_user_uid: Optional[str] = None
    invited_role: str
    status: str
    token_expires_at: Optional[datetime] = None
    created_at: datetime


class ActionResult(CamelModel):
    success: bool
    message: str


# ---------- billing ----------

class CheckoutRequest(CamelModel):
    plan_id: Optional[str] = None


class CheckoutResult(CamelModel):
    success: bool
    session_id: str


# ---------- notifications ----------

class NotificationCreate(CamelModel):
    user_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    link: Optional[str] = None
    farm_id: Optional[str] = None


class NotificationOut(CamelModel):
    id: str
    user_id: str
    farm_id: Optional[str] = None
    type: str
    title: str
    message: str
    link: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    triggered_by: Optional[str] = None
    created_at: datetime


# ---------- analytics ----------

class MonthlyUsage(CamelModel):
    month: str
    usage: float


class YieldSeries(CamelModel):
    keys: list[str]
    rows: list[dict[str, Union[str, float]]]


class CropYield(CamelModel):
    name: str
    total_yield: float
    unit: str


class DashboardStats(CamelModel):
    field_count: int
    total_acreage: float
    open_task_count: int
    total_revenue: float
    total_expenses: float
    net_income: float
    latest_planted_crop: Optional[str] = None
    animal_count: int
    crop_yields: list[CropYield] = Field(default_factory=list)


class FieldImportResult(CamelModel):
    imported: int
    field_ids: list[str]
    without_location: list[str] = Field(default_factory=list)
