# doctors router: caseload analytics for the doctor dashboard
# current-period rollup with prior-period trends, progress buckets and attention list

import logging

from fastapi import APIRouter, Depends

from coach_analytics.dependencies import get_record_source, render_view, resolve_period, resolve_range
from coach_analytics.models.analytics import AnalyticsSnapshot
from coach_analytics.models.views import ViewResponse
from coach_analytics.services.db import Database, get_db
from coach_analytics.services.loader import load_doctor_caseload
from coach_analytics.services.reactive import observe_dashboard
from coach_analytics.services.record_source import RecordSource
from coach_analytics.services.windowing import ChartPeriod

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/doctors", tags=["doctors"])


@router.get("/{doctor_id}/analytics", response_model=ViewResponse[AnalyticsSnapshot])
async def get_doctor_analytics(
    doctor_id: str,
    period: ChartPeriod = Depends(resolve_period),
    bounds: tuple = Depends(resolve_range),
    db: Database = Depends(get_db),
    source: RecordSource = Depends(get_record_source),
):
    """aggregate analytics over the doctor's current client roster"""
    await load_doctor_caseload(db, source, doctor_id)
    with observe_dashboard(source, doctor_id, period, start=bounds[0], end=bounds[1]) as observation:
        state = observation.current
        if state.is_ready:
            logger.info(
                f"Dashboard for doctor {doctor_id} ({state.value.period}): "
                f"{state.value.total_clients} clients, {len(state.value.attention)} need attention"
            )
        return render_view(state, AnalyticsSnapshot, "doctor", doctor_id)
