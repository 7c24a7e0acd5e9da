# raw record models: read-only inputs supplied by the record source
# doctor, client, meal plan, diet log, activity and weight check-in documents

from datetime import date, datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """naive timestamps from the store are utc"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RecordModel(BaseModel):
    """immutable base for everything delivered in a snapshot"""

    model_config = {"populate_by_name": True, "frozen": True}


class Doctor(RecordModel):
    id: str
    name: str = ""
    email: str = ""


class Client(RecordModel):
    id: str
    doctor_id: str = Field("", alias="doctorId")
    first_name: str = Field("", alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    email: str = ""
    phone: str = ""
    avatar_url: Optional[str] = Field(None, alias="avatarUrl")
    is_active: bool = Field(True, alias="isActive")
    subscription_status: str = Field("active", alias="subscriptionStatus")
    starting_weight: Optional[float] = Field(None, alias="startingWeight")
    current_weight: Optional[float] = Field(None, alias="currentWeight")
    target_weight: Optional[float] = Field(None, alias="targetWeight")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    last_active_at: Optional[datetime] = Field(None, alias="lastActiveAt")

    normalize_tz = field_validator("created_at", "last_active_at")(_as_utc)

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()


class PlanMilestone(RecordModel):
    title: str
    due_date: date = Field(..., alias="dueDate")
    completed: bool = False


PlanStatus = Literal["draft", "published", "active", "completed", "archived"]


class MealPlan(RecordModel):
    id: str
    client_id: str = Field(..., alias="clientId")
    status: PlanStatus = "draft"
    start_date: date = Field(..., alias="startDate")
    end_date: Optional[date] = Field(None, alias="endDate")
    daily_calorie_target: Optional[float] = Field(None, alias="dailyCalorieTarget")
    milestones: tuple[PlanMilestone, ...] = ()
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    normalize_tz = field_validator("created_at")(_as_utc)

    @property
    def is_active(self) -> bool:
        # published plans are live for the client as soon as they are sent
        return self.status in ("active", "published")


class DietLogEntry(RecordModel):
    id: str
    client_id: str = Field(..., alias="clientId")
    plan_id: Optional[str] = Field(None, alias="planId")
    logged_at: datetime = Field(..., alias="loggedAt")
    meal_type: str = Field("", alias="mealType")
    calories: float = 0.0
    completed: bool = True

    normalize_tz = field_validator("logged_at")(_as_utc)


class ActivityEntry(RecordModel):
    id: str
    client_id: str = Field(..., alias="clientId")
    logged_at: datetime = Field(..., alias="loggedAt")
    activity_type: str = Field("", alias="activityType")
    duration_minutes: float = Field(0.0, alias="durationMinutes")
    calories_burned: float = Field(0.0, alias="caloriesBurned")

    normalize_tz = field_validator("logged_at")(_as_utc)


class WeightLog(RecordModel):
    id: str
    client_id: str = Field(..., alias="clientId")
    logged_at: datetime = Field(..., alias="loggedAt")
    weight: float
    unit: Literal["kg", "lbs"] = "kg"
    feeling: Optional[str] = None

    normalize_tz = field_validator("logged_at")(_as_utc)


class ClientRecords(BaseModel):
    """everything the aggregator needs for one client, as of one set of snapshots"""
    client: Optional[Client] = None
    meal_plans: tuple[MealPlan, ...] = ()
    diet_logs: tuple[DietLogEntry, ...] = ()
    activities: tuple[ActivityEntry, ...] = ()
    weight_logs: tuple[WeightLog, ...] = ()

    model_config = {"frozen": True}
