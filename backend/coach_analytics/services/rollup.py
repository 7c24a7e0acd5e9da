# doctor dashboard rollup: caseload analytics from per-client metrics
# inactive roster members only count towards total_clients
# averages only count active clients with data in the window
# a trend delta is undefined (None) when the prior period has no qualifying client

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping, Optional, Sequence

import numpy as np

from coach_analytics.config import settings
from coach_analytics.models.analytics import (
    AnalyticsSnapshot,
    ClientCheckIn,
    DailyActivity,
    ProgressBuckets,
    TrendDelta,
)
from coach_analytics.models.metrics import ClientMetrics, Window
from coach_analytics.models.records import Client
from coach_analytics.services.attention import build_attention_list

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)
STATUS_ORDER = {"at_risk": 0, "needs_support": 1, "on_track": 2}

TREND_METRICS: dict[str, Callable[[ClientMetrics], float]] = {
    "adherence": lambda m: m.adherence_rate,
    "activity_count": lambda m: float(m.activity_count),
    "diet_log_count": lambda m: float(m.diet_log_count),
}


def _with_data(metrics: Mapping[str, Optional[ClientMetrics]]) -> list[ClientMetrics]:
    return [m for _, m in sorted(metrics.items()) if m is not None and m.has_data]


def _mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return round(float(np.mean(values)), 4)


def _trend(current: Optional[float], prior: Optional[float]) -> TrendDelta:
    delta = None
    if current is not None and prior is not None:
        delta = round(current - prior, 4)
    return TrendDelta(current=current, prior=prior, delta=delta)


def _daily_activity(resolved: list[ClientMetrics], now: datetime) -> list[DailyActivity]:
    """caseload totals for the trailing elapsed buckets"""
    if not resolved or not resolved[0].buckets:
        return []
    template = resolved[0].buckets
    diet = np.zeros(len(template), dtype=np.int64)
    activity = np.zeros(len(template), dtype=np.int64)
    engaged = np.zeros(len(template), dtype=np.int64)
    for m in resolved:
        d = np.array([b.diet_logs for b in m.buckets], dtype=np.int64)
        a = np.array([b.activities for b in m.buckets], dtype=np.int64)
        diet += d
        activity += a
        engaged += ((d + a) > 0).astype(np.int64)

    daily = len(template) < 2 or template[1].start - template[0].start >= ONE_DAY
    points = [
        DailyActivity(
            date=b.start.date().isoformat() if daily else b.start.isoformat(),
            diet_logs=int(diet[i]),
            activities=int(activity[i]),
            active_clients=int(engaged[i]),
        )
        for i, b in enumerate(template)
        if b.start <= now
    ]
    return points[-settings.DAILY_ACTIVITY_DAYS:]


def rollup(
    doctor_id: str,
    per_client_metrics: Mapping[str, Optional[ClientMetrics]],
    prior_period_metrics: Mapping[str, Optional[ClientMetrics]],
    clients: Optional[Sequence[Client]] = None,
    window: Optional[Window] = None,
    now: Optional[datetime] = None,
) -> AnalyticsSnapshot:
    """aggregate the doctor's current client set into an AnalyticsSnapshot.
    per_client_metrics is keyed by the roster as supplied at call time;
    None values are clients whose metrics could not be resolved."""
    now = now or datetime.now(timezone.utc)
    roster = {c.id: c for c in clients or ()}

    engaged = {
        cid: m for cid, m in per_client_metrics.items()
        if cid not in roster or roster[cid].is_active
    }
    resolved = [m for _, m in sorted(engaged.items()) if m is not None]
    current = _with_data(engaged)
    prior = _with_data({cid: prior_period_metrics.get(cid) for cid in engaged})

    if window is None and resolved:
        period, window_start, window_end = resolved[0].period, resolved[0].window_start, resolved[0].window_end
    elif window is not None:
        period, window_start, window_end = window.period, window.start, window.end
    else:
        period, window_start, window_end = "", None, None

    elapsed = sum(m.days_elapsed for m in resolved)
    check_in_rate = round(sum(m.adherent_days for m in resolved) / elapsed, 4) if elapsed else 0.0

    trends = {
        name: _trend(_mean([fn(m) for m in current]), _mean([fn(m) for m in prior]))
        for name, fn in TREND_METRICS.items()
    }

    buckets = ProgressBuckets()
    check_ins: list[ClientCheckIn] = []
    for m in resolved:
        client = roster.get(m.client_id)
        if m.status == "on_track":
            buckets.on_track += 1
        elif m.status == "needs_support":
            buckets.needs_support += 1
        else:
            buckets.at_risk += 1
        check_ins.append(ClientCheckIn(
            id=m.client_id,
            name=client.name if client is not None else m.client_id,
            last_check_in=m.last_check_in,
            status=m.status,
            adherence_rate=m.adherence_rate if m.has_data else None,
        ))
    check_ins.sort(key=lambda c: (STATUS_ORDER[c.status], c.name, c.id))

    weight_changes = [m.weight_change for m in current if m.weight_log_count > 0]

    snapshot = AnalyticsSnapshot(
        doctor_id=doctor_id,
        period=period,
        window_start=window_start,
        window_end=window_end,
        total_clients=len(per_client_metrics),
        active_clients=len(engaged),
        clients_with_data=len(current),
        average_adherence=trends["adherence"].current,
        average_activity_count=trends["activity_count"].current,
        average_weight_change=_mean(weight_changes),
        check_in_rate=check_in_rate,
        trends=trends,
        progress_buckets=buckets,
        daily_activity=_daily_activity(resolved, now),
        clients=check_ins,
        attention=build_attention_list(
            [roster[cid] for cid in sorted(engaged) if cid in roster],
            engaged,
        ),
    )
    logger.debug(
        f"Rollup for doctor {doctor_id}: {snapshot.total_clients} clients, "
        f"{snapshot.clients_with_data} with data"
    )
    return snapshot
