# tab/section composer: client profile sections from metrics + client metadata
# the catalog order is the only ordering; tabs without content are left out entirely

from dataclasses import dataclass
from typing import Any, Callable, Sequence

from coach_analytics.models.metrics import ClientMetrics
from coach_analytics.models.records import Client
from coach_analytics.models.sections import SectionItem

ContentPredicate = Callable[[ClientMetrics, Client], bool]
PayloadBuilder = Callable[[ClientMetrics, Client], dict[str, Any]]


@dataclass(frozen=True)
class TabDefinition:
    """one entry of the profile catalog with its explicit content predicate"""
    id: str
    title: str
    has_content: ContentPredicate
    build: PayloadBuilder


def _header(metrics: ClientMetrics, client: Client) -> dict[str, Any]:
    return {
        "name": client.name,
        "email": client.email,
        "phone": client.phone,
        "avatarUrl": client.avatar_url,
        "subscriptionStatus": client.subscription_status,
        "status": metrics.status,
        "lastCheckIn": metrics.last_check_in,
    }


def _adherence(metrics: ClientMetrics, client: Client) -> dict[str, Any]:
    return {
        "adherenceRate": metrics.adherence_rate,
        "adherentDays": metrics.adherent_days,
        "daysElapsed": metrics.days_elapsed,
        "daysInWindow": metrics.days_in_window,
    }


def _nutrition(metrics: ClientMetrics, client: Client) -> dict[str, Any]:
    return {
        "dietLogCount": metrics.diet_log_count,
        "caloriesLogged": metrics.calories_logged,
        "calorieTarget": metrics.calorie_target,
        "series": [(b.start, b.calories) for b in metrics.buckets],
    }


def _activity(metrics: ClientMetrics, client: Client) -> dict[str, Any]:
    return {
        "activityCount": metrics.activity_count,
        "activityMinutes": metrics.activity_minutes,
        "activeBuckets": metrics.active_buckets,
        "series": [(b.start, b.activities) for b in metrics.buckets],
    }


def _streak(metrics: ClientMetrics, client: Client) -> dict[str, Any]:
    return {
        "currentStreak": metrics.current_streak,
        "longestStreak": metrics.longest_streak,
    }


def _weight(metrics: ClientMetrics, client: Client) -> dict[str, Any]:
    weights = [p.weight for p in metrics.weight_points]
    return {
        "startWeight": metrics.start_weight,
        "currentWeight": metrics.current_weight,
        "targetWeight": metrics.target_weight,
        "weightChange": metrics.weight_change,
        "weeklyChange": metrics.weekly_weight_change,
        "remaining": round(metrics.current_weight - metrics.target_weight, 1),
        # chart scale padding
        "minWeight": min(weights) - 5,
        "maxWeight": max(weights) + 5,
        "points": [(p.logged_at, p.weight) for p in metrics.weight_points],
    }


def _meal_plan(metrics: ClientMetrics, client: Client) -> dict[str, Any]:
    return {
        "activePlanId": metrics.active_plan_id,
        "calorieTarget": metrics.calorie_target,
        "milestonesCompleted": metrics.milestones_completed,
    }


def _milestones(metrics: ClientMetrics, client: Client) -> dict[str, Any]:
    return {
        "upcoming": [
            {"planId": m.plan_id, "title": m.title, "dueDate": m.due_date}
            for m in metrics.upcoming_milestones
        ],
    }


# adherence needs elapsed days and any diet log, qualifying or not
TAB_CATALOG: tuple[TabDefinition, ...] = (
    TabDefinition("header", "Client", lambda m, c: len(c.name) > 0, _header),
    TabDefinition("adherence", "Adherence", lambda m, c: m.days_elapsed > 0 and m.diet_log_count > 0, _adherence),
    TabDefinition("nutrition", "Nutrition", lambda m, c: m.diet_log_count > 0, _nutrition),
    TabDefinition("activity", "Activity", lambda m, c: m.activity_count > 0, _activity),
    TabDefinition("streak", "Streak", lambda m, c: m.longest_streak > 0, _streak),
    TabDefinition("weight", "Weight Progress", lambda m, c: len(m.weight_points) > 0, _weight),
    TabDefinition("meal_plan", "Meal Plan", lambda m, c: m.has_active_plan, _meal_plan),
    TabDefinition("milestones", "Upcoming Milestones", lambda m, c: len(m.upcoming_milestones) > 0, _milestones),
)


def compose_sections(
    metrics: ClientMetrics,
    client: Client,
    tabs: Sequence[TabDefinition] = TAB_CATALOG,
) -> list[SectionItem]:
    """ordered sections with displayable content, rebuilt in full on every call"""
    return [
        SectionItem(id=tab.id, title=tab.title, visible=True, payload=tab.build(metrics, client))
        for tab in tabs
        if tab.has_content(metrics, client)
    ]
