# agriassist/models.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, Float, Integer, JSON, String, Text
from sqlalchemy.orm import validates

from .db import Base


def _uuid() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    uid = Column(String, primary_key=True, index=True)       # identity-provider uid
    email = Column(String, unique=True, index=True, nullable=True)
    name = Column(String, nullable=True)

    farm_id = Column(String, index=True, nullable=True)      # at most one farm per user
    farm_name = Column(String, nullable=True)
    is_farm_owner = Column(Boolean, nullable=False, default=False)
    role_on_current_farm = Column(String, nullable=True)     # owner | admin | editor | viewer

    selected_plan_id = Column(String, nullable=False, default="free")
    subscription_status = Column(String, nullable=False, default="active")
    stripe_customer_id = Column(String, nullable=True, index=True)
    stripe_subscription_id = Column(String, nullable=True, index=True)
    subscription_current_period_end = Column(DateTime(timezone=True), nullable=True)

    settings = Column(JSON, nullable=True)                   # notificationPreferences, units, theme
    onboarding_completed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    @validates("email")
    def _lower(self, _, v):
        return v.lower() if v else v


class Farm(Base):
    __tablename__ = "farms"

    farm_id = Column(String, primary_key=True, index=True)
    owner_id = Column(String, index=True, nullable=False)
    farm_name = Column(String, nullable=True)
    staff = Column(JSON, nullable=False, default=list)       # [{"uid": ..., "role": ...}]
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class LogRecordMixin:
    """Columns every tenant record carries."""

    id = Column(String, primary_key=True, default=_uuid)
    farm_id = Column(String, index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class Field(LogRecordMixin, Base):
    __tablename__ = "fields"

    field_name = Column(String, nullable=False, index=True)
    field_size = Column(Float, nullable=True)
    field_size_unit = Column(String, nullable=True, default="acres")

    # GeoJSON boundary; lat/lon hold its representative point
    geometry = Column(JSON, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)


class PlantingLog(LogRecordMixin, Base):
    __tablename__ = "planting_logs"

    crop_name = Column(String, nullable=False, index=True)
    planting_date = Column(Date, nullable=False, index=True)
    field_id = Column(String, index=True, nullable=True)
    seeds_used = Column(String, nullable=True)


class HarvestingLog(LogRecordMixin, Base):
    __tablename__ = "harvesting_logs"

    crop_name = Column(String, nullable=False, index=True)
    harvest_date = Column(Date, nullable=False, index=True)
    field_id = Column(String, index=True, nullable=True)
    yield_amount = Column(Float, nullable=True)
    yield_unit = Column(String, nullable=True)


class SoilDataLog(LogRecordMixin, Base):
    __tablename__ = "soil_data_logs"

    field_id = Column(String, index=True, nullable=False)
    sample_date = Column(Date, nullable=False, index=True)
    ph_level = Column(Float, nullable=True)
    organic_matter = Column(String, nullable=True)           # e.g. "3.5%"
    nutrients = Column(JSON, nullable=True)                  # {"nitrogen": "10 ppm", ...}
    treatments_applied = Column(Text, nullable=True)


class WeatherLog(LogRecordMixin, Base):
    __tablename__ = "weather_logs"

    date = Column(Date, nullable=False, index=True)
    location = Column(String, nullable=True)
    temperature_high = Column(Float, nullable=True)
    temperature_low = Column(Float, nullable=True)
    precipitation = Column(Float, nullable=True)
    precipitation_unit = Column(String, nullable=True, default="mm")
    wind_speed = Column(Float, nullable=True)
    wind_speed_unit = Column(String, nullable=True, default="km/h")
    conditions = Column(String, nullable=True)


class FertilizerLog(LogRecordMixin, Base):
    __tablename__ = "fertilizer_logs"

    field_id = Column(String, index=True, nullable=False)
    date_applied = Column(Date, nullable=False, index=True)
    fertilizer_type = Column(String, nullable=False)
    amount_applied = Column(Float, nullable=False)
    amount_unit = Column(String, nullable=False, default="kg/ha")
    application_method = Column(String, nullable=True)


class IrrigationLog(LogRecordMixin, Base):
    __tablename__ = "irrigation_logs"

    field_id = Column(String, index=True, nullable=False)
    irrigation_date = Column(Date, nullable=False, index=True)
    water_source = Column(String, nullable=True)
    amount_applied = Column(Float, nullable=False)
    amount_unit = Column(String, nullable=False, default="mm")
    duration_hours = Column(Float, nullable=True)
    irrigation_method = Column(String, nullable=True)


class RevenueLog(LogRecordMixin, Base):
    __tablename__ = "revenue_logs"

    date = Column(Date, nullable=False, index=True)
    source = Column(String, nullable=False)
    description = Column(String, nullable=True)
    amount = Column(Float, nullable=False)


class ExpenseLog(LogRecordMixin, Base):
    __tablename__ = "expense_logs"

    date = Column(Date, nullable=False, index=True)
    category = Column(String, nullable=False)
    description = Column(String, nullable=False)
    amount = Column(Float, nullable=False)


class TaskLog(LogRecordMixin, Base):
    __tablename__ = "task_logs"

    task_name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(Date, nullable=True, index=True)
    assigned_to = Column(String, nullable=True)
    status = Column(String, nullable=False, default="To Do", index=True)


class LivestockAnimal(LogRecordMixin, Base):
    __tablename__ = "livestock_animals"

    animal_id_tag = Column(String, nullable=False, index=True)
    species = Column(String, nullable=False)
    breed = Column(String, nullable=True)
    birth_date = Column(Date, nullable=True)
    gender = Column(String, nullable=False, default="Unknown")
    dam_id_tag = Column(String, nullable=True)
    sire_id_tag = Column(String, nullable=True)


class HealthRecord(LogRecordMixin, Base):
    __tablename__ = "livestock_health_logs"

    animal_id = Column(String, index=True, nullable=False)
    animal_id_tag = Column(String, nullable=True)            # denormalized for listings
    log_date = Column(Date, nullable=False, index=True)
    event_type = Column(String, nullable=False)
    details = Column(Text, nullable=False)
    medication_administered = Column(String, nullable=True)
    dosage = Column(String, nullable=True)
    administered_by = Column(String, nullable=True)
    follow_up_date = Column(Date, nullable=True)


class BreedingRecord(LogRecordMixin, Base):
    __tablename__ = "livestock_breeding_records"

    dam_animal_id = Column(String, index=True, nullable=False)
    sire_animal_id = Column(String, index=True, nullable=True)
    breeding_date = Column(Date, nullable=True, index=True)
    expected_due_date = Column(Date, nullable=True)
    actual_birth_date = Column(Date, nullable=True)
    number_of_offspring = Column(Integer, nullable=True)
    offspring_male_count = Column(Integer, nullable=True)
    offspring_female_count = Column(Integer, nullable=True)
    offspring_id_tags = Column(JSON, nullable=False, default=list)
    breeding_method = Column(String, nullable=True)


class FeedLog(LogRecordMixin, Base):
    __tablename__ = "livestock_feed_logs"

    animal_id = Column(String, index=True, nullable=True)    # None: fed to a group
    animal_id_tag = Column(String, nullable=True)
    log_date = Column(Date, nullable=False, index=True)
    feed_type = Column(String, nullable=False)
    quantity_consumed = Column(Float, nullable=False)
    quantity_unit = Column(String, nullable=False, default="kg")


class WeightLog(LogRecordMixin, Base):
    __tablename__ = "livestock_weight_logs"

    animal_id = Column(String, index=True, nullable=False)
    animal_id_tag = Column(String, nullable=True)
    log_date = Column(Date, nullable=False, index=True)
    weight = Column(Float, nullable=False)
    weight_unit = Column(String, nullable=False, default="kg")


class Equipment(LogRecordMixin, Base):
    __tablename__ = "farm_equipment"

    equipment_name = Column(String, nullable=False, index=True)
    equipment_type = Column(String, nullable=False)
    manufacturer = Column(String, nullable=True)
    model = Column(String, nullable=True)
    serial_number = Column(String, nullable=True)
    purchase_date = Column(Date, nullable=True)
    purchase_cost = Column(Float, nullable=True)
    last_maintenance_date = Column(Date, nullable=True)
    next_maintenance_date = Column(Date, nullable=True)
    maintenance_details = Column(Text, nullable=True)


class FarmInput(LogRecordMixin, Base):
    __tablename__ = "farm_inputs"

    input_name = Column(String, nullable=False)
    input_type = Column(String, nullable=False)
    quantity = Column(Float, nullable=False)
    quantity_unit = Column(String, nullable=False, default="kg")
    purchase_date = Column(Date, nullable=False, index=True)
    purchase_cost = Column(Float, nullable=True)
    supplier = Column(String, nullable=True)


class Invitation(Base):
    __tablename__ = "pending_invitations"

    id = Column(String, primary_key=True, default=_uuid)
    inviter_farm_id = Column(String, index=True, nullable=False)
    inviter_uid = Column(String, nullable=False)
    farm_name = Column(String, nullable=True)
    invited_email = Column(String, index=True, nullable=False)
    invited_user_uid = Column(String, index=True, nullable=True)
    invited_role = Column(String, nullable=False, default="viewer")

    # pending | accepted | declined | revoked | expired | error_farm_not_found
    status = Column(String, nullable=False, default="pending", index=True)
    invitation_token = Column(String, unique=True, index=True, nullable=True)
    token_expires_at = Column(DateTime(timezone=True), nullable=True)

    accepted_by_uid = Column(String, nullable=True)
    revoked_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    declined_at = Column(DateTime(timezone=True), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    @validates("invited_email")
    def _lower(self, _, v):
        return v.lower() if v else v


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, index=True, nullable=False)
    farm_id = Column(String, index=True, nullable=True)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    triggered_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now, index=True)
