# loads raw records from mongodb into the record source
# keys are marked loading first, then published once their collection has been read

import logging
from collections import defaultdict
from typing import Iterable, Type

from bson import ObjectId
from pydantic import ValidationError

from coach_analytics.models.records import (
    ActivityEntry,
    Client,
    DietLogEntry,
    Doctor,
    MealPlan,
    RecordModel,
    WeightLog,
)
from coach_analytics.services.db import Database
from coach_analytics.services.record_source import EntityType, QueryKey, RecordSource

logger = logging.getLogger(__name__)

# entity -> (collection accessor, record model, timestamp field used for ordering)
STREAMS: dict[EntityType, tuple[str, Type[RecordModel], str]] = {
    EntityType.MEAL_PLANS: ("meal_plans", MealPlan, "start_date"),
    EntityType.DIET_LOGS: ("diet_logs", DietLogEntry, "logged_at"),
    EntityType.ACTIVITIES: ("activity_entries", ActivityEntry, "logged_at"),
    EntityType.WEIGHT_LOGS: ("weight_logs", WeightLog, "logged_at"),
}


def _id_query(identifier: str) -> dict:
    """match either an objectid or a plain string _id"""
    if ObjectId.is_valid(identifier):
        return {"_id": {"$in": [ObjectId(identifier), identifier]}}
    return {"_id": identifier}


def _doc_to_record(doc: dict, model: Type[RecordModel]):
    """convert a mongodb document to a record model; malformed documents are skipped"""
    data = {k: (str(v) if isinstance(v, ObjectId) else v) for k, v in doc.items() if k != "_id"}
    data["id"] = str(doc["_id"])
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Skipping malformed {model.__name__} document {data['id']}: {e.error_count()} errors")
        return None


def _records(docs: Iterable[dict], model: Type[RecordModel]) -> list:
    return [r for r in (_doc_to_record(d, model) for d in docs) if r is not None]


async def _read_streams(db: Database, client_ids: list[str]) -> dict[EntityType, dict[str, list]]:
    """read every per-client collection once for the given clients"""
    grouped: dict[EntityType, dict[str, list]] = {}
    for entity, (collection, model, order_field) in STREAMS.items():
        by_client: dict[str, list] = defaultdict(list)
        if client_ids:
            cursor = getattr(db, collection).find({"client_id": {"$in": client_ids}}).sort(order_field, 1)
            docs = [doc async for doc in cursor]
            for record in _records(docs, model):
                by_client[record.client_id].append(record)
        grouped[entity] = by_client
    return grouped


def _publish_streams(source: RecordSource, client_id: str, grouped: dict[EntityType, dict[str, list]]):
    for entity in STREAMS:
        source.publish(QueryKey(entity, client_id), grouped[entity].get(client_id, []))


async def load_client_records(db: Database, source: RecordSource, client_id: str) -> bool:
    """load one client's record streams; returns False when the client does not exist"""
    keys = [QueryKey(EntityType.CLIENT, client_id)] + [QueryKey(e, client_id) for e in STREAMS]
    for key in keys:
        source.mark_loading(key)

    doc = await db.clients.find_one(_id_query(client_id))
    client = _doc_to_record(doc, Client) if doc else None
    grouped = await _read_streams(db, [client_id] if client else [])

    _publish_streams(source, client_id, grouped)
    source.publish(QueryKey(EntityType.CLIENT, client_id), [client] if client else [])

    logger.info(
        f"Loaded records for client {client_id}: "
        + ", ".join(f"{e.value}={len(grouped[e].get(client_id, []))}" for e in STREAMS)
    )
    return client is not None


async def load_doctor_caseload(db: Database, source: RecordSource, doctor_id: str) -> bool:
    """load a doctor, their roster and every roster client's record streams.
    returns False when the doctor does not exist"""
    doctor_key = QueryKey(EntityType.DOCTOR, doctor_id)
    roster_key = QueryKey(EntityType.ROSTER, doctor_id)
    source.mark_loading(doctor_key)
    source.mark_loading(roster_key)

    doc = await db.doctors.find_one(_id_query(doctor_id))
    doctor = _doc_to_record(doc, Doctor) if doc else None

    clients: list[Client] = []
    if doctor is not None:
        docs = [d async for d in db.clients.find({"doctor_id": doctor_id})]
        clients = sorted(_records(docs, Client), key=lambda c: c.id)

    client_ids = [c.id for c in clients]
    grouped = await _read_streams(db, client_ids)

    # streams go out before the roster so dashboards resolve the new roster in one pass
    for client in clients:
        source.publish(QueryKey(EntityType.CLIENT, client.id), [client])
        _publish_streams(source, client.id, grouped)
    source.publish(doctor_key, [doctor] if doctor else [])
    source.publish(roster_key, clients)

    logger.info(f"Loaded caseload for doctor {doctor_id}: {len(clients)} clients")
    return doctor is not None
