# tests for the profile section composer: catalog order and per-tab content predicates

import pytest
from datetime import date

from coach_analytics.services.aggregator import aggregate
from coach_analytics.services.sections import TAB_CATALOG, TabDefinition, compose_sections
from coach_analytics.services.windowing import compute_window
from tests.conftest import (
    CLIENT_ID,
    NOW,
    activity,
    blank_metrics,
    day,
    diet_log,
    make_client,
    meal_plan,
    milestone,
    records_for,
    weight,
)


def _full_metrics():
    records = records_for(
        make_client(),
        plans=[meal_plan(milestones=[milestone("Lose 2 kg", date(2025, 6, 30))])],
        diet=[diet_log(day(1)), diet_log(day(2))],
        activities=[activity(day(1)), activity(day(2))],
        weights=[weight(day(1), 81.0), weight(day(3), 80.2)],
    )
    return aggregate(CLIENT_ID, compute_window(NOW, "week"), records, now=NOW)


class TestComposeSections:
    """section visibility and ordering"""

    def test_all_tabs_in_catalog_order(self):
        sections = compose_sections(_full_metrics(), make_client())
        assert [s.id for s in sections] == [t.id for t in TAB_CATALOG]
        assert all(s.visible for s in sections)

    def test_empty_metrics_only_header(self):
        metrics = blank_metrics()
        sections = compose_sections(metrics, make_client())
        assert [s.id for s in sections] == ["header"]

    def test_nameless_client_has_no_header(self):
        metrics = blank_metrics()
        assert compose_sections(metrics, make_client(first_name="", last_name=None)) == []

    def test_partial_content(self):
        records = records_for(make_client(), activities=[activity(day(2))])
        metrics = aggregate(CLIENT_ID, compute_window(NOW, "week"), records, now=NOW)
        ids = [s.id for s in compose_sections(metrics, make_client())]
        assert ids == ["header", "activity", "streak"]

    def test_adherence_shown_without_qualifying_logs(self):
        records = records_for(make_client(), diet=[diet_log(day(1), completed=False)])
        metrics = aggregate(CLIENT_ID, compute_window(NOW, "week"), records, now=NOW)
        assert metrics.adherent_days == 0
        sections = {s.id: s for s in compose_sections(metrics, make_client())}
        assert list(sections) == ["header", "adherence", "nutrition"]

    def test_adherence_hidden_before_window_starts(self):
        metrics = blank_metrics(days_elapsed=0, diet_log_count=2)
        ids = [s.id for s in compose_sections(metrics, make_client())]
        assert "adherence" not in ids

    def test_order_is_stable_across_calls(self):
        metrics = _full_metrics()
        first = compose_sections(metrics, make_client())
        second = compose_sections(metrics, make_client())
        assert first == second

    def test_weight_payload(self):
        sections = {s.id: s for s in compose_sections(_full_metrics(), make_client())}
        payload = sections["weight"].payload
        assert payload["weightChange"] == -0.8
        assert payload["minWeight"] == pytest.approx(75.2)
        assert payload["maxWeight"] == 86.0
        assert payload["remaining"] == 8.2

    def test_custom_catalog(self):
        tabs = (
            TabDefinition("always", "Always", lambda m, c: True, lambda m, c: {"id": m.client_id}),
            TabDefinition("never", "Never", lambda m, c: False, lambda m, c: {}),
        )
        sections = compose_sections(blank_metrics(), make_client(), tabs)
        assert [s.id for s in sections] == ["always"]
        assert sections[0].payload == {"id": CLIENT_ID}
