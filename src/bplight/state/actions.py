"""Operations that change the dashboard state.

Each action takes the session's AppState and the key-value store, validates
its input before touching anything, commits the new reading collection to the
state and persists it before returning. Re-rendering is left to the caller,
so the dashboard never sees a half-merged collection.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any, Dict, Optional, Union

import structlog
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

from bplight.config.thresholds import ENTRY_RANGES, default_thresholds
from bplight.dashboard.projector import ChartSeries, chart_series
from bplight.ehr import bridge
from bplight.ehr.export import export_patient_record
from bplight.ehr.fhir_rest import FhirRestClient
from bplight.ehr.observation import patient_name
from bplight.ehr.smart import SmartSession
from bplight.importer.smartwatch import ImportResult, parse_smartwatch
from bplight.models.app_types import (
    AppState,
    ConnectionMode,
    Cutoffs,
    Reading,
    SessionContext,
    SOURCE_DEMO,
    SOURCE_FHIR,
    SOURCE_LOCAL,
    SOURCE_SMART,
    SOURCE_SMARTWATCH,
    ThresholdLock,
    ThresholdSet,
    canonical_timestamp,
    to_canonical,
)
from bplight.models.errors import FhirError, ThresholdLockedError, ValidationError
from bplight.sim.demo import generate_demo_readings
from bplight.storage import repository
from bplight.storage.kv import KeyValueStore
from bplight.sync.reconciler import add_reading, merge

log = structlog.get_logger(__name__)

ph = PasswordHasher()


@dataclass
class Outcome:
    ok: bool
    message: str
    level: str = "success"  # success | warning | error


def load_state(store: KeyValueStore, chart: Any = None) -> AppState:
    return AppState(
        readings=repository.load_readings(store),
        thresholds=repository.load_thresholds(store),
        lock=repository.load_lock(store),
        session=SessionContext(),
        chart=chart,
    )


def _commit(state: AppState, store: KeyValueStore, readings) -> None:
    state.readings = readings
    repository.save_readings(store, readings)


def refresh_chart(state: AppState, tz: Optional[tzinfo] = None) -> ChartSeries:
    series = chart_series(state.readings, tz)
    if state.chart is not None:
        state.chart.publish(series)
    return series


# ---------------------------------------------------------------------------
# Manual entry
# ---------------------------------------------------------------------------

def _entry_int(value: Any, name: str) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        n = 0
    if not n:
        raise ValidationError("Please enter both systolic and diastolic values")
    lo, hi = ENTRY_RANGES[name]
    if n < lo or n > hi:
        raise ValidationError(f"{name.capitalize()} must be between {lo}-{hi} mmHg")
    return n


def validate_entry(systolic: Any, diastolic: Any, when: Union[datetime, str, None]) -> Reading:
    s = _entry_int(systolic, "systolic")
    d = _entry_int(diastolic, "diastolic")
    if not when:
        raise ValidationError("Please choose the measurement time")
    if isinstance(when, datetime):
        date_time = to_canonical(when)
    else:
        try:
            date_time = canonical_timestamp(when)
        except ValueError:
            raise ValidationError(f"Invalid measurement time: {when!r}")
    return Reading(systolic=s, diastolic=d, date_time=date_time, source=SOURCE_LOCAL)


def submit_reading(
    state: AppState,
    store: KeyValueStore,
    systolic: Any,
    diastolic: Any,
    when: Union[datetime, str, None],
    fhir: Optional[FhirRestClient] = None,
) -> Outcome:
    """Record one reading. The local copy is always kept; a failed remote
    write only downgrades the outcome to a warning."""
    reading = validate_entry(systolic, diastolic, when)
    session = state.session

    if session.mode == ConnectionMode.SMART and session.smart_client is not None:
        if bridge.submit_smart_reading(session.smart_client, reading):
            reading.source = SOURCE_SMART
            outcome = Outcome(True, "Saved to the EHR")
        else:
            outcome = Outcome(True, "EHR save failed, saved locally", "warning")
    elif session.mode == ConnectionMode.FHIR and session.patient_id and fhir is not None:
        if bridge.submit_fhir_reading(fhir, session.patient_id, reading):
            reading.source = SOURCE_FHIR
            outcome = Outcome(True, "Saved to the FHIR server")
        else:
            outcome = Outcome(True, "FHIR save failed, saved locally", "warning")
    else:
        outcome = Outcome(True, "Saved locally")

    _commit(state, store, add_reading(state.readings, reading))
    log.info("reading_submitted", source=reading.source, remote_ok=outcome.level == "success")
    return outcome


# ---------------------------------------------------------------------------
# Connections and syncs
# ---------------------------------------------------------------------------

def use_demo_mode(state: AppState, store: KeyValueStore, rng=None) -> Outcome:
    state.session = SessionContext(mode=ConnectionMode.DEMO)
    if not state.readings:
        _commit(state, store, merge([], generate_demo_readings(rng=rng), SOURCE_DEMO))
    return Outcome(True, "Demo mode: data is stored locally only")


def sync_fhir(state: AppState, store: KeyValueStore, client: FhirRestClient) -> int:
    """Re-pull the patient's readings; FhirError leaves the state untouched."""
    if not state.session.patient_id:
        return 0
    incoming = bridge.fetch_fhir_readings(client, state.session.patient_id)
    _commit(state, store, merge(state.readings, incoming, SOURCE_FHIR))
    log.info("fhir_sync_done", count=len(incoming))
    return len(incoming)


def connect_fhir(state: AppState, store: KeyValueStore, client: FhirRestClient) -> Outcome:
    try:
        capability = client.probe()
    except FhirError as e:
        log.warning("fhir_connect_failed", error=str(e))
        use_demo_mode(state, store)
        return Outcome(False, f"Connection failed ({e.detail}); using local demo mode", "error")

    state.session = SessionContext(mode=ConnectionMode.FHIR, fhir_base_url=client.base_url)
    version = capability.get("fhirVersion") or "R4"
    try:
        patient = client.first_patient()
        if patient is not None:
            state.session.patient_id = patient.get("id")
            state.session.patient_name = patient_name(patient)
            sync_fhir(state, store, client)
    except FhirError as e:
        log.warning("fhir_patient_load_failed", error=str(e))
        return Outcome(True, f"Connected to FHIR server ({version}); patient data unavailable", "warning")
    return Outcome(True, f"Connected to FHIR server ({version})")


def sync_smart(state: AppState, store: KeyValueStore) -> int:
    client = state.session.smart_client
    if client is None:
        return 0
    incoming = bridge.fetch_smart_readings(client)
    _commit(state, store, merge(state.readings, incoming, SOURCE_SMART))
    log.info("smart_sync_done", count=len(incoming))
    return len(incoming)


def connect_smart(state: AppState, store: KeyValueStore, session: SmartSession) -> Outcome:
    try:
        patient = session.patient.read()
    except FhirError as e:
        log.warning("smart_connect_failed", error=str(e))
        return Outcome(False, f"SMART on FHIR connection failed: {e.detail}", "error")

    state.session = SessionContext(
        mode=ConnectionMode.SMART,
        patient_id=patient.get("id") or session.patient.id,
        patient_name=patient_name(patient),
        smart_client=session,
    )
    try:
        count = sync_smart(state, store)
    except FhirError as e:
        log.warning("smart_sync_failed", error=str(e))
        return Outcome(True, "Connected via SMART on FHIR; could not load readings", "warning")
    return Outcome(True, f"Connected via SMART on FHIR; loaded {count} readings from the EHR")


def disconnect(state: AppState) -> None:
    state.session = SessionContext()


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------

def import_smartwatch(
    state: AppState,
    store: KeyValueStore,
    raw: Union[str, bytes, dict],
    tz: Optional[tzinfo] = None,
) -> ImportResult:
    """ImportFormatError (a ValidationError) aborts before any change."""
    result = parse_smartwatch(raw, state.readings, tz)
    if result.valid == 0:
        raise ValidationError("No valid blood pressure records found")
    if result.readings:
        _commit(state, store, merge(state.readings, result.readings, SOURCE_SMARTWATCH))
    log.info(
        "smartwatch_imported",
        imported=result.imported,
        duplicates=result.duplicates,
        invalid=result.invalid,
    )
    return result


def export_record(state: AppState, now: Optional[datetime] = None) -> Dict[str, Any]:
    if state.session.mode != ConnectionMode.SMART or state.session.smart_client is None:
        raise ValidationError("Export needs a SMART on FHIR session")
    return export_patient_record(state.session.smart_client, now)


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

def validate_thresholds(red_sys: Any, red_dia: Any, yellow_sys: Any, yellow_dia: Any) -> ThresholdSet:
    values = []
    for v in (red_sys, red_dia, yellow_sys, yellow_dia):
        try:
            n = int(v)
        except (TypeError, ValueError):
            n = 0
        if n <= 0:
            raise ValidationError("Please enter all four threshold values")
        values.append(n)

    t = ThresholdSet(red=Cutoffs(values[0], values[1]), yellow=Cutoffs(values[2], values[3]))
    if t.red.systolic < t.yellow.systolic or t.red.diastolic < t.yellow.diastolic:
        raise ValidationError("Red thresholds must not be lower than yellow thresholds")
    return t


def _ensure_unlocked(state: AppState) -> None:
    if state.lock.locked:
        raise ThresholdLockedError("Thresholds are locked; unlock them first")


def save_thresholds(
    state: AppState,
    store: KeyValueStore,
    red_sys: Any,
    red_dia: Any,
    yellow_sys: Any,
    yellow_dia: Any,
) -> ThresholdSet:
    _ensure_unlocked(state)
    state.thresholds = validate_thresholds(red_sys, red_dia, yellow_sys, yellow_dia)
    repository.save_thresholds(store, state.thresholds)
    return state.thresholds


def reset_thresholds(state: AppState, store: KeyValueStore) -> ThresholdSet:
    _ensure_unlocked(state)
    state.thresholds = default_thresholds()
    repository.save_thresholds(store, state.thresholds)
    return state.thresholds


def lock_thresholds(state: AppState, store: KeyValueStore, password: str) -> None:
    if state.lock.locked:
        raise ValidationError("Thresholds are already locked")
    if not password:
        raise ValidationError("Please enter a password")
    state.lock = ThresholdLock(locked=True, password=ph.hash(password))
    repository.save_lock(store, state.lock)


def unlock_thresholds(state: AppState, store: KeyValueStore, password: str) -> bool:
    if not state.lock.locked:
        return True
    try:
        ph.verify(state.lock.password or "", password or "")
    except InvalidHashError:
        # not an argon2 hash: the lock cannot be verified, so it is cleared
        log.warning("threshold_lock_hash_invalid")
    except VerificationError:
        log.warning("threshold_unlock_rejected")
        return False
    state.lock = ThresholdLock()
    repository.save_lock(store, state.lock)
    return True
