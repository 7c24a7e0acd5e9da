# raw record source: live, keyed snapshots of store query results
# snapshots are delivered synchronously to subscribers, strictly in publish order

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

logger = logging.getLogger(__name__)


class EntityType(str, Enum):
    DOCTOR = "doctor"
    ROSTER = "roster"  # clients assigned to a doctor
    CLIENT = "client"
    MEAL_PLANS = "meal_plans"
    DIET_LOGS = "diet_logs"
    ACTIVITIES = "activities"
    WEIGHT_LOGS = "weight_logs"


class SnapshotStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"


@dataclass(frozen=True)
class QueryKey:
    entity: EntityType
    owner_id: str


@dataclass(frozen=True)
class Snapshot:
    """one point-in-time result set for a query key"""
    key: QueryKey
    status: SnapshotStatus
    records: tuple = ()
    version: int = 0

    @property
    def is_loading(self) -> bool:
        return self.status is SnapshotStatus.LOADING

    def same_content(self, other: Optional["Snapshot"]) -> bool:
        """structural comparison, short-circuited by the version stamp"""
        if other is None or other.key != self.key:
            return False
        if other.version == self.version:
            return True
        return other.status == self.status and other.records == self.records


Listener = Callable[[Snapshot], None]


@dataclass(eq=False)
class Subscription:
    source: "RecordSource"
    key: QueryKey
    listener: Listener
    active: bool = field(default=True)

    def cancel(self):
        if self.active:
            self.active = False
            self.source._remove(self)


class RecordSource:
    """in-process stand-in for the reactive store boundary"""

    def __init__(self):
        self._snapshots: dict[QueryKey, Snapshot] = {}
        self._subscriptions: dict[QueryKey, list[Subscription]] = {}
        self._version = 0

    def get(self, key: QueryKey) -> Snapshot:
        """latest snapshot for key; never-published keys are loading"""
        snapshot = self._snapshots.get(key)
        if snapshot is None:
            return Snapshot(key=key, status=SnapshotStatus.LOADING)
        return snapshot

    def publish(self, key: QueryKey, records: Iterable = ()) -> Snapshot:
        """deliver a resolved result set for key"""
        return self._deliver(key, SnapshotStatus.READY, tuple(records))

    def mark_loading(self, key: QueryKey) -> Snapshot:
        return self._deliver(key, SnapshotStatus.LOADING, ())

    def subscribe(self, key: QueryKey, listener: Listener) -> Subscription:
        subscription = Subscription(self, key, listener)
        self._subscriptions.setdefault(key, []).append(subscription)
        return subscription

    def subscriber_count(self, key: QueryKey) -> int:
        return len(self._subscriptions.get(key, []))

    def _deliver(self, key: QueryKey, status: SnapshotStatus, records: tuple) -> Snapshot:
        self._version += 1
        snapshot = Snapshot(key=key, status=status, records=records, version=self._version)
        self._snapshots[key] = snapshot
        logger.debug(f"Snapshot v{snapshot.version} for {key.entity.value}:{key.owner_id} ({status.value})")
        # copy so listeners may cancel while being notified
        for subscription in list(self._subscriptions.get(key, [])):
            if subscription.active:
                subscription.listener(snapshot)
        return snapshot

    def _remove(self, subscription: Subscription):
        subs = self._subscriptions.get(subscription.key, [])
        if subscription in subs:
            subs.remove(subscription)
        if not subs:
            self._subscriptions.pop(subscription.key, None)
