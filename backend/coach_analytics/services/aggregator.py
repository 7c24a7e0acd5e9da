# metric aggregator: folds a client's raw records inside a window into ClientMetrics
# records are framed with pandas, filtered to [start, end) and bucketed by floor division
# empty streams produce zeroed fields, only a missing client record is an error

import logging
from collections import Counter
from datetime import datetime, time, timedelta, timezone
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from coach_analytics.config import settings
from coach_analytics.errors import InsufficientDataError
from coach_analytics.models.metrics import (
    BucketPoint,
    ClientMetrics,
    ClientStatus,
    TimelineEvent,
    UpcomingMilestone,
    WeightPoint,
    Window,
)
from coach_analytics.models.records import ClientRecords, MealPlan
from coach_analytics.services.windowing import elapsed_buckets, elapsed_days, resolve_zone, window_days

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)
ONE_WEEK = timedelta(days=7)
TIMELINE_DAYS = 30
ALL_MEALS_THRESHOLD = 5


def _frame(entries: Sequence, columns: list[str]) -> pd.DataFrame:
    """dataframe of the given record fields with utc logged_at, sorted by time"""
    if not entries:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame([e.model_dump(include=set(columns)) for e in entries], columns=columns)
    df["logged_at"] = pd.to_datetime(df["logged_at"], utc=True)
    return df.sort_values(["logged_at", "id"], kind="mergesort").reset_index(drop=True)


def _utc(ts: datetime) -> pd.Timestamp:
    return pd.Timestamp(ts).tz_convert("UTC")


def _between(df: pd.DataFrame, start: datetime, end: datetime) -> pd.DataFrame:
    """rows with start <= logged_at < end"""
    if df.empty:
        return df
    mask = (df["logged_at"] >= _utc(start)) & (df["logged_at"] < _utc(end))
    return df[mask]


def _wall_offsets(stamps: pd.Series, window: Window) -> pd.Series:
    """offsets from the window start in local wall-clock time"""
    local = stamps.dt.tz_convert(window.start.tzinfo).dt.tz_localize(None)
    return local - pd.Timestamp(window.start.replace(tzinfo=None))


def _bucket_indices(df: pd.DataFrame, window: Window) -> np.ndarray:
    """bucket index per row, boundary timestamps go to the later bucket"""
    if df.empty:
        return np.zeros(0, dtype=np.int64)
    if window.bucket_size >= ONE_DAY:
        offsets = _wall_offsets(df["logged_at"], window)
    else:
        offsets = df["logged_at"] - _utc(window.start)
    indices = (offsets // pd.Timedelta(window.bucket_size)).astype("int64")
    return indices.clip(lower=0, upper=window.bucket_count - 1).to_numpy()


def _per_bucket(indices: np.ndarray, size: int, weights: Optional[np.ndarray] = None) -> np.ndarray:
    if size <= 0:
        return np.zeros(0)
    if len(indices) == 0:
        return np.zeros(size)
    return np.bincount(indices, weights=weights, minlength=size)


def _streaks(counts: Sequence[float]) -> tuple[int, int]:
    """(current, longest) run of buckets with at least one entry"""
    current = longest = 0
    for count in counts:
        if count > 0:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return current, longest


def _active_plan(plans: Sequence[MealPlan]) -> Optional[MealPlan]:
    # at most one active plan per client is guaranteed upstream
    active = [p for p in plans if p.is_active]
    if not active:
        return None
    return max(active, key=lambda p: (p.start_date, p.id))


def _days_since(now: datetime, ts: Optional[datetime]) -> Optional[int]:
    if ts is None:
        return None
    return max(0, (now - ts) // ONE_DAY)


def classify_status(adherence_rate: float, days_since_last_log: Optional[int]) -> ClientStatus:
    """on track / needs support / at risk from adherence and recency"""
    if days_since_last_log is None or days_since_last_log >= settings.AT_RISK_INACTIVE_DAYS:
        return "at_risk"
    if adherence_rate < settings.NEEDS_SUPPORT_ADHERENCE:
        return "at_risk"
    if adherence_rate < settings.ON_TRACK_ADHERENCE:
        return "needs_support"
    return "on_track"


def _weekly_weight_change(weights: pd.DataFrame, cutoff: datetime, fallback: float) -> float:
    """average of the last 7 days minus average of the 7 days before"""
    recent = _between(weights, cutoff - ONE_WEEK, cutoff)
    older = _between(weights, cutoff - 2 * ONE_WEEK, cutoff - ONE_WEEK)
    current_avg = float(recent["weight"].mean()) if not recent.empty else fallback
    last_avg = float(older["weight"].mean()) if not older.empty else current_avg
    return round(current_avg - last_avg, 1)


def aggregate(
    client_id: str,
    window: Window,
    records: ClientRecords,
    now: Optional[datetime] = None,
) -> ClientMetrics:
    """compute windowed metrics for one client.
    raises InsufficientDataError when the client record itself is missing;
    empty record streams are valid and yield zeroed metrics."""
    if records.client is None:
        raise InsufficientDataError(client_id)

    client = records.client
    now = now or datetime.now(timezone.utc)
    cutoff = min(window.end, now)

    diet = _frame(records.diet_logs, ["id", "logged_at", "calories", "completed"])
    activity = _frame(records.activities, ["id", "logged_at", "duration_minutes"])
    weights = _frame(records.weight_logs, ["id", "logged_at", "weight"])

    diet_in = _between(diet, window.start, window.end)
    activity_in = _between(activity, window.start, window.end)
    weights_in = _between(weights, window.start, window.end)

    # adherence: days with a qualifying log over days elapsed up to min(end, now)
    days_in_window = window_days(window)
    days_elapsed = elapsed_days(window, cutoff)
    qualifying = diet_in
    if not qualifying.empty:
        qualifying = _between(qualifying[qualifying["completed"].astype(bool)], window.start, cutoff)
    if qualifying.empty:
        adherent_days = 0
    else:
        day_index = _wall_offsets(qualifying["logged_at"], window) // pd.Timedelta(ONE_DAY)
        adherent_days = int(day_index[day_index < days_elapsed].nunique())
    adherence_rate = adherent_days / days_elapsed if days_elapsed > 0 else 0.0

    # per-bucket series
    diet_idx = _bucket_indices(diet_in, window)
    activity_idx = _bucket_indices(activity_in, window)
    diet_counts = _per_bucket(diet_idx, window.bucket_count)
    calorie_sums = _per_bucket(
        diet_idx, window.bucket_count,
        diet_in["calories"].to_numpy(dtype=float) if not diet_in.empty else None,
    )
    activity_counts = _per_bucket(activity_idx, window.bucket_count)
    buckets = tuple(
        BucketPoint(
            index=i,
            start=window.bucket_start(i),
            diet_logs=int(diet_counts[i]),
            activities=int(activity_counts[i]),
            calories=round(float(calorie_sums[i]), 1),
        )
        for i in range(window.bucket_count)
    )

    # streaks over elapsed buckets only
    started = elapsed_buckets(window, cutoff)
    current_streak, longest_streak = _streaks(activity_counts[:started])

    # plan
    plan = _active_plan(records.meal_plans)
    calorie_target = 0.0
    upcoming: list[UpcomingMilestone] = []
    if plan is not None:
        if plan.daily_calorie_target:
            calorie_target = float(plan.daily_calorie_target) * days_elapsed
        today = now.date()
        upcoming = sorted(
            (
                UpcomingMilestone(plan_id=plan.id, title=m.title, due_date=m.due_date)
                for m in plan.milestones
                if not m.completed and m.due_date >= today
            ),
            key=lambda m: (m.due_date, m.title),
        )
    window_dates = (window.start.date(), window.end.date())
    milestones_completed = sum(
        1
        for p in records.meal_plans
        for m in p.milestones
        if m.completed and window_dates[0] <= m.due_date < window_dates[1]
    )

    # weight
    fallback_current = client.current_weight or 0.0
    if not weights_in.empty:
        start_weight = float(weights_in["weight"].iloc[0])
        current_weight = float(weights_in["weight"].iloc[-1])
    else:
        start_weight = client.starting_weight or 0.0
        current_weight = fallback_current
    weight_points = tuple(
        WeightPoint(logged_at=row.logged_at.to_pydatetime(), weight=float(row.weight))
        for row in weights_in.itertuples(index=False)
    )
    weights_before = weights[weights["logged_at"] < _utc(cutoff)] if not weights.empty else weights
    latest_weight_at = weights_before["logged_at"].iloc[-1].to_pydatetime() if not weights_before.empty else None
    latest_weight = float(weights_before["weight"].iloc[-1]) if not weights_before.empty else fallback_current

    # recency across all streams, not just the window
    stamps = [
        frame["logged_at"][frame["logged_at"] <= _utc(now)].max()
        for frame in (diet, activity, weights)
        if not frame.empty
    ]
    stamps = [s for s in stamps if not pd.isna(s)]
    last_check_in = max(stamps).to_pydatetime() if stamps else None
    days_since_last_log = _days_since(now, last_check_in)

    metrics = ClientMetrics(
        client_id=client_id,
        period=window.period,
        window_start=window.start,
        window_end=window.end,
        days_in_window=days_in_window,
        days_elapsed=days_elapsed,
        adherent_days=adherent_days,
        adherence_rate=adherence_rate,
        diet_log_count=len(diet_in),
        calories_logged=round(float(diet_in["calories"].sum()), 1) if not diet_in.empty else 0.0,
        calorie_target=calorie_target,
        activity_count=len(activity_in),
        activity_minutes=round(float(activity_in["duration_minutes"].sum()), 1) if not activity_in.empty else 0.0,
        active_buckets=int(np.count_nonzero(activity_counts)),
        current_streak=current_streak,
        longest_streak=longest_streak,
        weight_log_count=len(weights_in),
        start_weight=start_weight,
        current_weight=current_weight,
        target_weight=client.target_weight or 0.0,
        weight_change=round(current_weight - start_weight, 1),
        weekly_weight_change=_weekly_weight_change(weights, cutoff, latest_weight),
        weight_points=weight_points,
        buckets=buckets,
        has_active_plan=plan is not None,
        active_plan_id=plan.id if plan else None,
        upcoming_milestones=tuple(upcoming),
        milestones_completed=milestones_completed,
        last_check_in=last_check_in,
        days_since_last_log=days_since_last_log,
        days_since_weight_log=_days_since(now, latest_weight_at),
        status=classify_status(adherence_rate, days_since_last_log),
        has_data=bool(len(diet_in) or len(activity_in) or len(weights_in)),
    )
    logger.debug(
        f"Aggregated client {client_id} over {window.period}: "
        f"adherence={adherence_rate:.2f} activities={len(activity_in)}"
    )
    return metrics


def build_activity_timeline(
    records: ClientRecords,
    client_id: str,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
    tz=None,
) -> list[TimelineEvent]:
    """recent activity feed for a client profile, newest first.
    meals are grouped per calendar day in the configured timezone."""
    if records.client is None:
        raise InsufficientDataError(client_id)

    now = now or datetime.now(timezone.utc)
    limit = settings.ACTIVITY_TIMELINE_LIMIT if limit is None else limit
    since = now - timedelta(days=TIMELINE_DAYS)
    events: list[TimelineEvent] = []

    for log in records.weight_logs:
        if since <= log.logged_at <= now:
            events.append(TimelineEvent(
                id=f"weight_{log.id}",
                type="weight",
                timestamp=log.logged_at,
                text=f"Logged weight: {log.weight:g} {log.unit}",
                subtext=log.feeling.replace("_", " ") if log.feeling else "",
            ))

    zone = resolve_zone(tz)
    meals_by_day = Counter(
        log.logged_at.astimezone(zone).date()
        for log in records.diet_logs
        if log.completed and since <= log.logged_at <= now
    )
    for day, count in meals_by_day.items():
        events.append(TimelineEvent(
            id=f"meals_{day.isoformat()}",
            type="meals",
            timestamp=datetime.combine(day, time.min, tzinfo=zone),
            text="Completed all meals" if count >= ALL_MEALS_THRESHOLD else f"Completed {count} meals",
        ))

    for entry in records.activities:
        if since <= entry.logged_at <= now:
            events.append(TimelineEvent(
                id=f"activity_{entry.id}",
                type="activity",
                timestamp=entry.logged_at,
                text=f"Logged {entry.activity_type or 'activity'}",
                subtext=f"{entry.duration_minutes:g} min" if entry.duration_minutes else "",
            ))

    for plan in records.meal_plans:
        if plan.created_at is not None and since <= plan.created_at <= now:
            events.append(TimelineEvent(
                id=f"plan_{plan.id}",
                type="plan",
                timestamp=plan.created_at,
                text=f"Meal plan {plan.status}",
                subtext=f"Starts {plan.start_date.isoformat()}",
            ))

    events.sort(key=lambda e: (e.timestamp, e.id), reverse=True)
    return events[:limit]
