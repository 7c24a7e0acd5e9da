# clients router: windowed metrics, profile sections and activity timeline for one client
# records are loaded from mongodb into a per-request record source, then observed once

import logging

from fastapi import APIRouter, Depends, Query

from coach_analytics.config import settings
from coach_analytics.dependencies import get_record_source, render_view, resolve_period, resolve_range
from coach_analytics.models.metrics import ClientMetrics, TimelineEvent
from coach_analytics.models.sections import SectionItem
from coach_analytics.models.views import ViewResponse
from coach_analytics.services.db import Database, get_db
from coach_analytics.services.loader import load_client_records
from coach_analytics.services.reactive import (
    observe_activity_timeline,
    observe_client_metrics,
    observe_sections,
)
from coach_analytics.services.record_source import RecordSource
from coach_analytics.services.windowing import ChartPeriod

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("/{client_id}/metrics", response_model=ViewResponse[ClientMetrics])
async def get_client_metrics(
    client_id: str,
    period: ChartPeriod = Depends(resolve_period),
    bounds: tuple = Depends(resolve_range),
    db: Database = Depends(get_db),
    source: RecordSource = Depends(get_record_source),
):
    """windowed adherence, activity, streak and weight metrics"""
    await load_client_records(db, source, client_id)
    with observe_client_metrics(source, client_id, period, start=bounds[0], end=bounds[1]) as observation:
        return render_view(observation.current, ClientMetrics, "client", client_id)


@router.get("/{client_id}/sections", response_model=ViewResponse[list[SectionItem]])
async def get_client_sections(
    client_id: str,
    period: ChartPeriod = Depends(resolve_period),
    bounds: tuple = Depends(resolve_range),
    db: Database = Depends(get_db),
    source: RecordSource = Depends(get_record_source),
):
    """ordered profile tabs that have content for this client"""
    await load_client_records(db, source, client_id)
    with observe_sections(source, client_id, period, start=bounds[0], end=bounds[1]) as observation:
        return render_view(observation.current, list[SectionItem], "client", client_id)


@router.get("/{client_id}/activity", response_model=ViewResponse[list[TimelineEvent]])
async def get_client_activity(
    client_id: str,
    limit: int = Query(settings.ACTIVITY_TIMELINE_LIMIT, ge=1, le=100),
    db: Database = Depends(get_db),
    source: RecordSource = Depends(get_record_source),
):
    """recent weight, meal, activity and plan events, newest first"""
    await load_client_records(db, source, client_id)
    with observe_activity_timeline(source, client_id, limit=limit) as observation:
        return render_view(observation.current, list[TimelineEvent], "client", client_id)
