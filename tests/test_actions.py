import json
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import numpy as np
import pytest

from bplight.config.thresholds import default_thresholds
from bplight.dashboard.projector import ChartHost
from bplight.ehr.bridge import smart_bp_path
from bplight.ehr.fhir_rest import FhirRestClient
from bplight.models.app_types import ConnectionMode, Reading, SessionContext, ThresholdLock
from bplight.models.errors import FhirError, ImportFormatError, ThresholdLockedError, ValidationError
from bplight.state import actions
from bplight.storage import repository
from bplight.storage.kv import MemoryStore

from fakes import DownHttp, FakeHttp, FakePatient, FakeResponse, FakeSmartSession, bp_obs, bundle

BASE = "https://fhir.test/fhir"
WHEN = datetime(2024, 10, 16, 10, 15, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def state(store):
    return actions.load_state(store)


def stored(store):
    return repository.load_readings(store)


# 1) Manual entry
@pytest.mark.parametrize("sys_, dia", [(None, 80), (120, ""), (0, 80), (59, 80), (251, 80), (120, 39), (120, 151)])
def test_submit_rejects_bad_values_without_change(state, store, sys_, dia):
    with pytest.raises(ValidationError):
        actions.submit_reading(state, store, sys_, dia, WHEN)
    assert state.readings == []
    assert store.get(repository.READINGS_KEY) is None


def test_submit_rejects_missing_or_bad_time(state, store):
    with pytest.raises(ValidationError):
        actions.submit_reading(state, store, 120, 80, None)
    with pytest.raises(ValidationError):
        actions.submit_reading(state, store, 120, 80, "tomorrow-ish")


def test_submit_local(state, store):
    outcome = actions.submit_reading(state, store, 145, 92, WHEN)
    assert outcome.ok and outcome.level == "success"
    assert state.readings == [Reading(145, 92, "2024-10-16T10:15:00.000Z", "local")]
    assert stored(store) == state.readings


def test_submit_accepts_range_edges(state, store):
    actions.submit_reading(state, store, 60, 40, WHEN)
    actions.submit_reading(state, store, "250", "150", datetime(2024, 10, 17, tzinfo=timezone.utc))
    assert [r.systolic for r in state.readings] == [250, 60]


def test_submit_smart_success_tags_source(state, store):
    session = FakeSmartSession()
    state.session = SessionContext(mode=ConnectionMode.SMART, patient_id="pat-1", smart_client=session)
    outcome = actions.submit_reading(state, store, 145, 92, WHEN)
    assert outcome.level == "success"
    assert state.readings[0].source == "smart-ehr"
    assert len(session.created) == 1


def test_submit_smart_failure_keeps_local_copy(state, store):
    session = FakeSmartSession(create_error=FhirError(500, "boom"))
    state.session = SessionContext(mode=ConnectionMode.SMART, patient_id="pat-1", smart_client=session)
    outcome = actions.submit_reading(state, store, 145, 92, WHEN)
    assert outcome.ok and outcome.level == "warning"
    assert state.readings[0].source == "local"
    assert stored(store)[0].source == "local"


def test_submit_fhir_success_and_failure(state, store):
    http = FakeHttp({("POST", f"{BASE}/Observation"): FakeResponse(201, {"id": "o1"})})
    client = FhirRestClient(BASE, http=http)
    state.session = SessionContext(mode=ConnectionMode.FHIR, patient_id="p1", fhir_base_url=BASE)

    assert actions.submit_reading(state, store, 145, 92, WHEN, fhir=client).level == "success"
    assert state.readings[0].source == "fhir"

    down = FhirRestClient(BASE, http=DownHttp())
    later = datetime(2024, 10, 17, tzinfo=timezone.utc)
    assert actions.submit_reading(state, store, 150, 95, later, fhir=down).level == "warning"
    assert [r.source for r in state.readings] == ["local", "fhir"]


def test_submit_smart_without_patient_id_keeps_local_copy(state, store):
    session = FakeSmartSession(patient=FakePatient(patient_id=""))
    state.session = SessionContext(mode=ConnectionMode.SMART, patient_id="", smart_client=session)
    outcome = actions.submit_reading(state, store, 120, 80, "2024-10-16T10:15:00Z")

    assert outcome.ok and outcome.level == "warning"
    assert state.readings == [Reading(120, 80, "2024-10-16T10:15:00.000Z", "local")]
    assert stored(store) == state.readings
    assert session.created == []


def test_failed_remote_write_survives_next_sync(state, store):
    session = FakeSmartSession(create_error=FhirError(500, "boom"))
    state.session = SessionContext(mode=ConnectionMode.SMART, patient_id="pat-1", smart_client=session)
    actions.submit_reading(state, store, 145, 92, WHEN)

    session.responses[smart_bp_path("pat-1")] = [bp_obs(120, 80, "2024-10-01T00:00:00Z")]
    actions.sync_smart(state, store)
    assert {r.source for r in state.readings} == {"local", "smart-ehr"}


# 2) Connections
def fhir_routes(observations):
    return {
        ("GET", f"{BASE}/metadata"): FakeResponse(200, {"resourceType": "CapabilityStatement", "fhirVersion": "4.0.1"}),
        ("GET", f"{BASE}/Patient"): FakeResponse(200, bundle([
            {"resourceType": "Patient", "id": "p1", "name": [{"text": "Lin Mei"}]},
        ])),
        ("GET", f"{BASE}/Observation"): FakeResponse(200, bundle(observations)),
    }


def test_connect_fhir_loads_patient_and_readings(state, store):
    client = FhirRestClient(BASE, http=FakeHttp(fhir_routes([bp_obs(130, 85, "2024-10-01T00:00:00Z")])))
    outcome = actions.connect_fhir(state, store, client)

    assert outcome.ok and "4.0.1" in outcome.message
    assert state.session.mode == ConnectionMode.FHIR
    assert state.session.patient_id == "p1"
    assert state.session.patient_name == "Lin Mei"
    assert [r.source for r in state.readings] == ["fhir"]
    assert stored(store) == state.readings


def test_connect_fhir_unreachable_falls_back_to_demo(state, store):
    outcome = actions.connect_fhir(state, store, FhirRestClient(BASE, http=DownHttp()))
    assert not outcome.ok
    assert outcome.level == "error"
    assert state.session.mode == ConnectionMode.DEMO
    assert len(state.readings) == 30


def test_sync_fhir_replaces_previous_fhir_readings(state, store):
    state.readings = [
        Reading(110, 70, "2024-09-01T00:00:00.000Z", "fhir"),
        Reading(115, 75, "2024-09-02T00:00:00.000Z", "local"),
    ]
    state.session = SessionContext(mode=ConnectionMode.FHIR, patient_id="p1")
    client = FhirRestClient(BASE, http=FakeHttp(fhir_routes([bp_obs(130, 85, "2024-10-01T00:00:00Z")])))

    assert actions.sync_fhir(state, store, client) == 1
    assert [(r.systolic, r.source) for r in state.readings] == [(130, "fhir"), (115, "local")]


def test_sync_fhir_error_leaves_state(state, store):
    state.readings = [Reading(110, 70, "2024-09-01T00:00:00.000Z", "fhir")]
    state.session = SessionContext(mode=ConnectionMode.FHIR, patient_id="p1")
    with pytest.raises(FhirError):
        actions.sync_fhir(state, store, FhirRestClient(BASE, http=DownHttp()))
    assert len(state.readings) == 1


def test_connect_smart(state, store):
    session = FakeSmartSession({smart_bp_path("pat-1"): [bp_obs(150, 95, "2024-10-16T10:15:00Z")]})
    outcome = actions.connect_smart(state, store, session)

    assert outcome.ok and "1 readings" in outcome.message
    assert state.session.mode == ConnectionMode.SMART
    assert state.session.patient_name == "Jane Doe"
    assert state.session.smart_client is session
    assert state.readings[0].source == "smart-ehr"


def test_connect_smart_patient_read_fails(state, store):
    session = FakeSmartSession(patient=FakePatient(error=FhirError(401, "Unauthorized")))
    outcome = actions.connect_smart(state, store, session)
    assert not outcome.ok
    assert state.session.mode == ConnectionMode.DISCONNECTED


def test_connect_smart_sync_failure_is_warning(state, store):
    session = FakeSmartSession({smart_bp_path("pat-1"): FhirError(500, "down")})
    outcome = actions.connect_smart(state, store, session)
    assert outcome.ok and outcome.level == "warning"
    assert state.session.mode == ConnectionMode.SMART


def test_disconnect_keeps_readings(state, store):
    actions.submit_reading(state, store, 145, 92, WHEN)
    state.session = SessionContext(mode=ConnectionMode.DEMO)
    actions.disconnect(state)
    assert state.session.mode == ConnectionMode.DISCONNECTED
    assert len(state.readings) == 1


# 3) Demo mode
def test_demo_mode_seeds_empty_collection(state, store):
    actions.use_demo_mode(state, store, rng=np.random.default_rng(7))
    assert state.session.mode == ConnectionMode.DEMO
    assert len(state.readings) == 30
    assert all(r.source == "demo" for r in state.readings)
    assert all(110 <= r.systolic <= 149 and 65 <= r.diastolic <= 94 for r in state.readings)
    instants = [r.instant for r in state.readings]
    assert instants == sorted(instants, reverse=True)


def test_demo_mode_keeps_existing_readings(state, store):
    actions.submit_reading(state, store, 145, 92, WHEN)
    actions.use_demo_mode(state, store)
    assert len(state.readings) == 1


# 4) Import / export
def test_import_smartwatch_merges_and_persists(state, store):
    raw = json.dumps({"bp": [{"time": "2024-10-16 10:15:00", "sys": 150, "dia": 95}]})
    result = actions.import_smartwatch(state, store, raw, ZoneInfo("UTC"))
    assert result.imported == 1
    assert state.readings[0].source == "smartwatch"
    assert stored(store) == state.readings

    again = actions.import_smartwatch(state, store, raw, ZoneInfo("UTC"))
    assert again.imported == 0 and again.duplicates == 1
    assert len(state.readings) == 1


def test_import_without_valid_records_raises(state, store):
    with pytest.raises(ValidationError):
        actions.import_smartwatch(state, store, json.dumps({"bp": [{"sys": 1}]}))
    with pytest.raises(ImportFormatError):
        actions.import_smartwatch(state, store, "{oops")
    assert state.readings == []


def test_export_requires_smart_session(state):
    with pytest.raises(ValidationError):
        actions.export_record(state)


def test_export_record(state):
    state.session = SessionContext(mode=ConnectionMode.SMART, patient_id="pat-1", smart_client=FakeSmartSession())
    record = actions.export_record(state, now=WHEN)
    assert record["patient"]["id"] == "pat-1"
    assert record["exportedAt"] == "2024-10-16T10:15:00.000Z"


# 5) Thresholds
def test_save_thresholds(state, store):
    t = actions.save_thresholds(state, store, "170", 105, 145, "92")
    assert (t.red.systolic, t.red.diastolic, t.yellow.systolic, t.yellow.diastolic) == (170, 105, 145, 92)
    assert repository.load_thresholds(store) == t


@pytest.mark.parametrize("values", [(0, 100, 140, 90), (160, None, 140, 90), (160, 100, "x", 90)])
def test_save_thresholds_requires_all_values(state, store, values):
    with pytest.raises(ValidationError):
        actions.save_thresholds(state, store, *values)
    assert state.thresholds == default_thresholds()


def test_misordered_thresholds_rejected(state, store):
    with pytest.raises(ValidationError):
        actions.save_thresholds(state, store, 130, 100, 140, 90)
    with pytest.raises(ValidationError):
        actions.save_thresholds(state, store, 160, 85, 140, 90)


def test_equal_red_and_yellow_allowed(state, store):
    t = actions.save_thresholds(state, store, 150, 95, 150, 95)
    assert t.red == t.yellow


def test_lock_blocks_changes_until_unlocked(state, store):
    actions.save_thresholds(state, store, 170, 105, 145, 92)
    actions.lock_thresholds(state, store, "s3cret")

    lock = repository.load_lock(store)
    assert lock.locked
    assert lock.password != "s3cret"

    with pytest.raises(ThresholdLockedError):
        actions.save_thresholds(state, store, 160, 100, 140, 90)
    with pytest.raises(ThresholdLockedError):
        actions.reset_thresholds(state, store)

    assert actions.unlock_thresholds(state, store, "wrong") is False
    assert state.lock.locked

    assert actions.unlock_thresholds(state, store, "s3cret") is True
    assert not repository.load_lock(store).locked
    assert actions.reset_thresholds(state, store) == default_thresholds()


def test_lock_requires_password(state, store):
    with pytest.raises(ValidationError):
        actions.lock_thresholds(state, store, "")


def test_unreadable_lock_hash_can_be_cleared(store):
    repository.save_lock(store, ThresholdLock(locked=True, password="plain-text"))
    state = actions.load_state(store)
    assert state.lock.locked

    assert actions.unlock_thresholds(state, store, "anything") is True
    assert not state.lock.locked
    assert not repository.load_lock(store).locked
    actions.save_thresholds(state, store, 170, 105, 145, 92)


def test_lock_survives_reload(state, store):
    actions.lock_thresholds(state, store, "pw")
    reloaded = actions.load_state(store)
    assert reloaded.lock.locked
    assert actions.unlock_thresholds(reloaded, store, "pw")


# 6) Chart refresh
def test_refresh_chart_publishes_latest_series(state, store):
    built = []
    state.chart = ChartHost(lambda s: built.append(len(s)) or len(s))
    actions.submit_reading(state, store, 145, 92, WHEN)
    actions.refresh_chart(state, ZoneInfo("UTC"))
    actions.submit_reading(state, store, 150, 92, datetime(2024, 10, 17, tzinfo=timezone.utc))
    series = actions.refresh_chart(state, ZoneInfo("UTC"))

    assert built == [1, 2]
    assert state.chart.current == 2
    assert series.systolic == [145, 150]
