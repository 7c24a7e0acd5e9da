# analytics models: doctor caseload rollup
# mirrors frontend DoctorStats (overview, progress buckets, daily activity, client check-ins)

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from coach_analytics.models.metrics import ClientStatus

AttentionType = Literal["missing_checkin", "weight_gain"]


class TrendDelta(BaseModel):
    """current vs prior period aggregate; delta is None when undefined"""
    current: Optional[float] = None
    prior: Optional[float] = None
    delta: Optional[float] = None


class ProgressBuckets(BaseModel):
    on_track: int = Field(0, alias="onTrack")
    needs_support: int = Field(0, alias="needsSupport")
    at_risk: int = Field(0, alias="atRisk")

    model_config = {"populate_by_name": True}


class DailyActivity(BaseModel):
    date: str
    diet_logs: int = Field(0, alias="dietLogs")
    activities: int = 0
    active_clients: int = Field(0, alias="activeClients")

    model_config = {"populate_by_name": True}


class ClientCheckIn(BaseModel):
    id: str
    name: str
    last_check_in: Optional[datetime] = Field(None, alias="lastCheckIn")
    status: ClientStatus
    adherence_rate: Optional[float] = Field(None, alias="adherenceRate")

    model_config = {"populate_by_name": True}


class AttentionClient(BaseModel):
    """client flagged for the doctor's attention list"""
    id: str
    name: str
    avatar_url: Optional[str] = Field(None, alias="avatarUrl")
    attention_type: AttentionType = Field(..., alias="attentionType")
    days_since_checkin: Optional[int] = Field(None, alias="daysSinceCheckin")
    has_any_checkins: bool = Field(False, alias="hasAnyCheckins")
    weight_change: Optional[float] = Field(None, alias="weightChange")
    current_weight: Optional[float] = Field(None, alias="currentWeight")

    model_config = {"populate_by_name": True}


class AnalyticsSnapshot(BaseModel):
    """caseload-level analytics for one doctor over one window"""
    doctor_id: str = Field(..., alias="doctorId")
    period: str
    window_start: Optional[datetime] = Field(None, alias="windowStart")
    window_end: Optional[datetime] = Field(None, alias="windowEnd")

    total_clients: int = Field(0, alias="totalClients")
    active_clients: int = Field(0, alias="activeClients")
    clients_with_data: int = Field(0, alias="clientsWithData")

    average_adherence: Optional[float] = Field(None, alias="averageAdherence")
    average_activity_count: Optional[float] = Field(None, alias="averageActivityCount")
    average_weight_change: Optional[float] = Field(None, alias="averageWeightChange")
    check_in_rate: float = Field(0.0, alias="checkInRate")

    trends: dict[str, TrendDelta] = Field(default_factory=dict)
    progress_buckets: ProgressBuckets = Field(default_factory=ProgressBuckets, alias="progressBuckets")
    daily_activity: list[DailyActivity] = Field(default_factory=list, alias="dailyActivity")
    clients: list[ClientCheckIn] = Field(default_factory=list)
    attention: list[AttentionClient] = Field(default_factory=list)

    model_config = {"populate_by_name": True}
