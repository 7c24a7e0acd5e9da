# clients needing attention on the doctor dashboard
# missing weight check-in (critical) before week-on-week weight gain (warning)

import logging
from typing import Mapping, Optional, Sequence

from coach_analytics.config import settings
from coach_analytics.models.analytics import AttentionClient
from coach_analytics.models.metrics import ClientMetrics
from coach_analytics.models.records import Client

logger = logging.getLogger(__name__)

ATTENTION_SUBSCRIPTIONS = {"active", "trial"}


def _missing_checkin_key(entry: AttentionClient) -> tuple:
    # never checked in sorts before the longest overdue
    overdue = float("inf") if not entry.has_any_checkins else (entry.days_since_checkin or 0)
    return (0, -overdue, entry.id)


def _weight_gain_key(entry: AttentionClient) -> tuple:
    return (1, -(entry.weight_change or 0.0), entry.id)


def build_attention_list(
    clients: Sequence[Client],
    metrics: Mapping[str, Optional[ClientMetrics]],
    limit: Optional[int] = None,
) -> list[AttentionClient]:
    """flag active clients whose check-ins lapsed or whose weight went up"""
    limit = settings.ATTENTION_LIMIT if limit is None else limit
    flagged: list[tuple[tuple, AttentionClient]] = []

    for client in clients:
        if client.subscription_status not in ATTENTION_SUBSCRIPTIONS:
            continue
        m = metrics.get(client.id)
        if m is None:
            continue

        has_checkins = m.days_since_weight_log is not None
        if not has_checkins or m.days_since_weight_log >= settings.MISSING_CHECKIN_DAYS:
            entry = AttentionClient(
                id=client.id,
                name=client.name,
                avatar_url=client.avatar_url,
                attention_type="missing_checkin",
                days_since_checkin=m.days_since_weight_log,
                has_any_checkins=has_checkins,
            )
            flagged.append((_missing_checkin_key(entry), entry))
            continue

        if m.weekly_weight_change > 0:
            entry = AttentionClient(
                id=client.id,
                name=client.name,
                avatar_url=client.avatar_url,
                attention_type="weight_gain",
                has_any_checkins=True,
                weight_change=m.weekly_weight_change,
                current_weight=m.current_weight,
            )
            flagged.append((_weight_gain_key(entry), entry))

    flagged.sort(key=lambda item: item[0])
    logger.debug(f"{len(flagged)} of {len(clients)} clients need attention")
    return [entry for _, entry in flagged[:limit]]
