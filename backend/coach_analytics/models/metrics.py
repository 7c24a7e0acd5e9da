# metric models: windows and per-client aggregates
# every field is always populated so consumers never branch on missing keys

from datetime import date, datetime, timedelta, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field

ClientStatus = Literal["on_track", "needs_support", "at_risk"]


class Window(BaseModel):
    """half-open [start, end) interval split into equal buckets"""
    start: datetime
    end: datetime
    bucket_count: int = Field(..., alias="bucketCount")
    bucket_size: timedelta = Field(..., alias="bucketSize")
    period: str

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def length(self) -> timedelta:
        return self.end - self.start

    def contains(self, ts: datetime) -> bool:
        return self.start <= ts < self.end

    def bucket_start(self, index: int) -> datetime:
        if self.bucket_size >= timedelta(days=1):
            return self.start + index * self.bucket_size
        # hourly buckets step in absolute time across dst changes
        utc_start = self.start.astimezone(timezone.utc)
        return (utc_start + index * self.bucket_size).astimezone(self.start.tzinfo)


class BucketPoint(BaseModel):
    """one chart bucket"""
    index: int
    start: datetime
    diet_logs: int = Field(0, alias="dietLogs")
    activities: int = 0
    calories: float = 0.0

    model_config = {"populate_by_name": True, "frozen": True}


class WeightPoint(BaseModel):
    logged_at: datetime = Field(..., alias="loggedAt")
    weight: float

    model_config = {"populate_by_name": True, "frozen": True}


class UpcomingMilestone(BaseModel):
    plan_id: str = Field(..., alias="planId")
    title: str
    due_date: date = Field(..., alias="dueDate")

    model_config = {"populate_by_name": True, "frozen": True}


class ClientMetrics(BaseModel):
    """windowed metrics for one client"""
    client_id: str = Field(..., alias="clientId")
    period: str
    window_start: datetime = Field(..., alias="windowStart")
    window_end: datetime = Field(..., alias="windowEnd")

    # adherence
    days_in_window: int = Field(0, alias="daysInWindow")
    days_elapsed: int = Field(0, alias="daysElapsed")
    adherent_days: int = Field(0, alias="adherentDays")
    adherence_rate: float = Field(0.0, alias="adherenceRate")

    # nutrition
    diet_log_count: int = Field(0, alias="dietLogCount")
    calories_logged: float = Field(0.0, alias="caloriesLogged")
    calorie_target: float = Field(0.0, alias="calorieTarget")

    # activity
    activity_count: int = Field(0, alias="activityCount")
    activity_minutes: float = Field(0.0, alias="activityMinutes")
    active_buckets: int = Field(0, alias="activeBuckets")
    current_streak: int = Field(0, alias="currentStreak")
    longest_streak: int = Field(0, alias="longestStreak")

    # weight
    weight_log_count: int = Field(0, alias="weightLogCount")
    start_weight: float = Field(0.0, alias="startWeight")
    current_weight: float = Field(0.0, alias="currentWeight")
    target_weight: float = Field(0.0, alias="targetWeight")
    weight_change: float = Field(0.0, alias="weightChange")
    weekly_weight_change: float = Field(0.0, alias="weeklyWeightChange")
    weight_points: tuple[WeightPoint, ...] = Field((), alias="weightPoints")

    # chart
    buckets: tuple[BucketPoint, ...] = ()

    # plan
    has_active_plan: bool = Field(False, alias="hasActivePlan")
    active_plan_id: Optional[str] = Field(None, alias="activePlanId")
    upcoming_milestones: tuple[UpcomingMilestone, ...] = Field((), alias="upcomingMilestones")
    milestones_completed: int = Field(0, alias="milestonesCompleted")

    # recency / status
    last_check_in: Optional[datetime] = Field(None, alias="lastCheckIn")
    days_since_last_log: Optional[int] = Field(None, alias="daysSinceLastLog")
    days_since_weight_log: Optional[int] = Field(None, alias="daysSinceWeightLog")
    status: ClientStatus = "at_risk"
    has_data: bool = Field(False, alias="hasData")

    model_config = {"populate_by_name": True, "frozen": True}


class TimelineEvent(BaseModel):
    """entry in a client's recent activity feed"""
    id: str
    type: Literal["weight", "meals", "activity", "plan"]
    timestamp: datetime
    text: str
    subtext: str = ""

    model_config = {"populate_by_name": True, "frozen": True}
