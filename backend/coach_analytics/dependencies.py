# fastapi dependency injection
# provides a per-request record source, validated chart periods and custom ranges

import logging
from datetime import date
from typing import Any, Optional

from fastapi import HTTPException, Query, status

from coach_analytics.errors import InvalidPeriodError
from coach_analytics.models.views import ViewResponse, ViewState
from coach_analytics.services.record_source import RecordSource
from coach_analytics.services.windowing import ChartPeriod, parse_period

logger = logging.getLogger(__name__)


def get_record_source() -> RecordSource:
    """a fresh store per request; every request reloads its records from mongodb"""
    return RecordSource()


def resolve_period(period: Optional[str] = Query(None, description="chart period, defaults to day")) -> ChartPeriod:
    """parse the period query parameter, rejecting unknown values with 400"""
    try:
        return parse_period(period)
    except InvalidPeriodError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


def resolve_range(
    start: Optional[date] = Query(None, description="custom range start (inclusive)"),
    end: Optional[date] = Query(None, description="custom range end (exclusive)"),
) -> tuple[Optional[date], Optional[date]]:
    """optional explicit bounds for a custom range, rejected with 400 unless both are set and ordered"""
    if (start is None) != (end is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start and end must be given together",
        )
    if start is not None and end <= start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"end must be after start: {start}..{end}",
        )
    return start, end


def render_view(state: ViewState, value_type: Any, entity: str, identifier: str) -> ViewResponse:
    """map a view state onto the http response; not-found becomes 404"""
    if state.is_not_found:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{entity.capitalize()} not found: {identifier}",
        )
    return ViewResponse[value_type](status=state.status, isLoading=state.is_loading, value=state.value)
