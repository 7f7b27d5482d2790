from __future__ import annotations

import json
from typing import List

import structlog

from bplight.config.thresholds import default_thresholds
from bplight.models.app_types import Reading, ThresholdLock, ThresholdSet
from bplight.storage.kv import KeyValueStore
from bplight.sync.reconciler import sort_readings

log = structlog.get_logger(__name__)

READINGS_KEY = "bp_readings"
THRESHOLDS_KEY = "bp_thresholds"
LOCK_KEY = "bp_threshold_lock"


def _load_json(store: KeyValueStore, key: str):
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        log.warning("stored_value_unreadable", key=key, error=str(e))
        return None


def load_readings(store: KeyValueStore) -> List[Reading]:
    data = _load_json(store, READINGS_KEY)
    if not isinstance(data, list):
        return []
    readings = []
    dropped = 0
    for item in data:
        try:
            r = Reading.from_dict(item)
        except (KeyError, TypeError, ValueError):
            dropped += 1
            continue
        if r.is_complete:
            readings.append(r)
        else:
            dropped += 1
    if dropped:
        log.warning("stored_readings_dropped", count=dropped)
    return sort_readings(readings)


def save_readings(store: KeyValueStore, readings: List[Reading]) -> None:
    store.set(READINGS_KEY, json.dumps([r.to_dict() for r in readings]))


def load_thresholds(store: KeyValueStore) -> ThresholdSet:
    data = _load_json(store, THRESHOLDS_KEY)
    if data is None:
        return default_thresholds()
    try:
        return ThresholdSet.from_dict(data)
    except (KeyError, TypeError, ValueError):
        log.warning("stored_thresholds_invalid")
        return default_thresholds()


def save_thresholds(store: KeyValueStore, thresholds: ThresholdSet) -> None:
    store.set(THRESHOLDS_KEY, json.dumps(thresholds.to_dict()))


def load_lock(store: KeyValueStore) -> ThresholdLock:
    data = _load_json(store, LOCK_KEY)
    if not isinstance(data, dict):
        return ThresholdLock()
    return ThresholdLock.from_dict(data)


def save_lock(store: KeyValueStore, lock: ThresholdLock) -> None:
    store.set(LOCK_KEY, json.dumps(lock.to_dict()))
