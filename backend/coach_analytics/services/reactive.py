# reactive binding layer: explicit observation handles over record source snapshots
# an observation subscribes to its declared inputs, recomputes synchronously on delivery
# and suppresses re-emission while its inputs are structurally unchanged

import logging
from datetime import date, datetime, timezone
from typing import Callable, Generic, Mapping, Optional, Sequence, TypeVar, Union

from coach_analytics.errors import InsufficientDataError, InvalidPeriodError, UnresolvedIdentityError
from coach_analytics.models.analytics import AnalyticsSnapshot
from coach_analytics.models.metrics import ClientMetrics, TimelineEvent, Window
from coach_analytics.models.records import Client, ClientRecords
from coach_analytics.models.sections import SectionItem
from coach_analytics.models.views import ViewState, ViewStatus
from coach_analytics.services.aggregator import aggregate, build_activity_timeline
from coach_analytics.services.record_source import (
    EntityType,
    QueryKey,
    RecordSource,
    Snapshot,
    Subscription,
)
from coach_analytics.services.rollup import rollup
from coach_analytics.services.sections import TAB_CATALOG, TabDefinition, compose_sections
from coach_analytics.services.windowing import (
    ChartPeriod,
    compute_custom_window,
    compute_window,
    previous_window,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
Snapshots = Mapping[QueryKey, Snapshot]
InputResolver = Callable[[RecordSource], Sequence[QueryKey]]
ViewListener = Callable[[ViewState], None]


class Observation(Generic[T]):
    """live derived value owned and disposed by the presentation boundary"""

    def __init__(
        self,
        source: RecordSource,
        inputs: Union[Sequence[QueryKey], InputResolver],
        compute: Callable[[Snapshots], T],
        name: str = "observation",
    ):
        self.name = name
        self.computations = 0
        self._source = source
        self._inputs = inputs
        self._compute = compute
        self._subscriptions: dict[QueryKey, Subscription] = {}
        self._listeners: list[ViewListener] = []
        self._last_inputs: Optional[tuple[Snapshot, ...]] = None
        self._state: Optional[ViewState[T]] = None
        self._disposed = False
        self._refresh()

    # public handle

    @property
    def current(self) -> ViewState[T]:
        if self._disposed:
            raise RuntimeError(f"{self.name} has been disposed")
        return self._state

    @property
    def declared_inputs(self) -> list[QueryKey]:
        return list(self._subscriptions)

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        """register for emissions; returns a function that removes the listener"""
        if self._disposed:
            raise RuntimeError(f"{self.name} has been disposed")
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def dispose(self):
        """stop recomputing and release the last computed values"""
        if self._disposed:
            return
        for subscription in self._subscriptions.values():
            subscription.cancel()
        self._subscriptions.clear()
        self._listeners.clear()
        self._last_inputs = None
        self._state = None
        self._disposed = True
        logger.debug(f"Disposed {self.name}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()

    # recomputation

    def _resolve_inputs(self) -> list[QueryKey]:
        if callable(self._inputs):
            return list(self._inputs(self._source))
        return list(self._inputs)

    def _sync_subscriptions(self, keys: list[QueryKey]):
        wanted = set(keys)
        for key in [k for k in self._subscriptions if k not in wanted]:
            self._subscriptions.pop(key).cancel()
        for key in keys:
            if key not in self._subscriptions:
                self._subscriptions[key] = self._source.subscribe(key, self._on_snapshot)

    def _on_snapshot(self, snapshot: Snapshot):
        if not self._disposed:
            self._refresh()

    def _unchanged(self, snapshots: tuple[Snapshot, ...]) -> bool:
        previous = self._last_inputs
        if previous is None or len(previous) != len(snapshots):
            return False
        return all(s.same_content(p) for s, p in zip(snapshots, previous))

    def _evaluate(self, snapshots: tuple[Snapshot, ...]) -> ViewState[T]:
        # never synthesize values from partial input
        if any(s.is_loading for s in snapshots):
            return ViewState(status=ViewStatus.LOADING)
        self.computations += 1
        try:
            value = self._compute({s.key: s for s in snapshots})
        except UnresolvedIdentityError as e:
            logger.warning(f"{self.name}: {e}")
            return ViewState(status=ViewStatus.NOT_FOUND)
        return ViewState(status=ViewStatus.READY, value=value)

    def _refresh(self):
        keys = self._resolve_inputs()
        self._sync_subscriptions(keys)
        snapshots = tuple(self._source.get(k) for k in keys)
        if self._unchanged(snapshots):
            logger.debug(f"{self.name}: inputs unchanged, keeping previous value")
            return
        state = self._evaluate(snapshots)
        self._last_inputs = snapshots
        if state.is_loading and self._state is not None and self._state.is_loading:
            return
        self._state = state
        for listener in list(self._listeners):
            listener(self._state)


# input helpers

CLIENT_STREAMS = (
    EntityType.MEAL_PLANS,
    EntityType.DIET_LOGS,
    EntityType.ACTIVITIES,
    EntityType.WEIGHT_LOGS,
)


def client_keys(client_id: str, include_client: bool = True) -> list[QueryKey]:
    keys = [QueryKey(EntityType.CLIENT, client_id)] if include_client else []
    return keys + [QueryKey(entity, client_id) for entity in CLIENT_STREAMS]


def client_records(snapshots: Snapshots, client_id: str, client: Optional[Client] = None) -> ClientRecords:
    """bundle resolved snapshots into the aggregator's input"""
    if client is None:
        client_snapshot = snapshots.get(QueryKey(EntityType.CLIENT, client_id))
        if client_snapshot is not None and client_snapshot.records:
            client = client_snapshot.records[0]

    def stream(entity: EntityType) -> tuple:
        snapshot = snapshots.get(QueryKey(entity, client_id))
        return snapshot.records if snapshot is not None else ()

    return ClientRecords(
        client=client,
        meal_plans=stream(EntityType.MEAL_PLANS),
        diet_logs=stream(EntityType.DIET_LOGS),
        activities=stream(EntityType.ACTIVITIES),
        weight_logs=stream(EntityType.WEIGHT_LOGS),
    )


def _clock(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


Bound = Union[date, datetime, None]


def _window(
    period,
    reference_time: Optional[datetime],
    now: Optional[datetime],
    start: Bound = None,
    end: Bound = None,
) -> Window:
    # raises InvalidPeriodError at call time, before anything is subscribed
    # explicit bounds select a custom range whatever the period says
    if start is not None or end is not None:
        if start is None or end is None:
            raise InvalidPeriodError(f"custom range needs both start and end, got {start}..{end}")
        return compute_custom_window(start, end)
    return compute_window(reference_time or _clock(now), period)


# factories: the period is supplied on every call and never remembered


def observe_client_metrics(
    source: RecordSource,
    client_id: str,
    period: Union[str, ChartPeriod, None] = None,
    reference_time: Optional[datetime] = None,
    now: Optional[datetime] = None,
    start: Bound = None,
    end: Bound = None,
) -> Observation[ClientMetrics]:
    window = _window(period, reference_time, now, start, end)

    def compute(snapshots: Snapshots) -> ClientMetrics:
        return aggregate(client_id, window, client_records(snapshots, client_id), now=_clock(now))

    return Observation(source, client_keys(client_id), compute, name=f"metrics:{client_id}")


def observe_sections(
    source: RecordSource,
    client_id: str,
    period: Union[str, ChartPeriod, None] = None,
    reference_time: Optional[datetime] = None,
    now: Optional[datetime] = None,
    start: Bound = None,
    end: Bound = None,
    tabs: Sequence[TabDefinition] = TAB_CATALOG,
) -> Observation[list[SectionItem]]:
    window = _window(period, reference_time, now, start, end)

    def compute(snapshots: Snapshots) -> list[SectionItem]:
        records = client_records(snapshots, client_id)
        metrics = aggregate(client_id, window, records, now=_clock(now))
        return compose_sections(metrics, records.client, tabs)

    return Observation(source, client_keys(client_id), compute, name=f"sections:{client_id}")


def observe_activity_timeline(
    source: RecordSource,
    client_id: str,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Observation[list[TimelineEvent]]:

    def compute(snapshots: Snapshots) -> list[TimelineEvent]:
        records = client_records(snapshots, client_id)
        if records.client is None:
            raise InsufficientDataError(client_id)
        return build_activity_timeline(records, client_id, now=_clock(now), limit=limit)

    return Observation(source, client_keys(client_id), compute, name=f"timeline:{client_id}")


def observe_dashboard(
    source: RecordSource,
    doctor_id: str,
    period: Union[str, ChartPeriod, None] = None,
    reference_time: Optional[datetime] = None,
    now: Optional[datetime] = None,
    start: Bound = None,
    end: Bound = None,
) -> Observation[AnalyticsSnapshot]:
    window = _window(period, reference_time, now, start, end)
    prior = previous_window(window)
    doctor_key = QueryKey(EntityType.DOCTOR, doctor_id)
    roster_key = QueryKey(EntityType.ROSTER, doctor_id)

    def inputs(src: RecordSource) -> list[QueryKey]:
        # client streams follow the roster as it is right now
        keys = [doctor_key, roster_key]
        roster = src.get(roster_key)
        if not roster.is_loading:
            for client in sorted(roster.records, key=lambda c: c.id):
                keys.extend(client_keys(client.id, include_client=False))
        return keys

    def compute(snapshots: Snapshots) -> AnalyticsSnapshot:
        if not snapshots[doctor_key].records:
            raise UnresolvedIdentityError("doctor", doctor_id)
        clients = list(snapshots[roster_key].records)
        current: dict[str, Optional[ClientMetrics]] = {}
        previous: dict[str, Optional[ClientMetrics]] = {}
        at = _clock(now)
        for client in clients:
            records = client_records(snapshots, client.id, client=client)
            current[client.id] = aggregate(client.id, window, records, now=at)
            previous[client.id] = aggregate(client.id, prior, records, now=at)
        return rollup(doctor_id, current, previous, clients=clients, window=window, now=at)

    return Observation(source, inputs, compute, name=f"dashboard:{doctor_id}")
