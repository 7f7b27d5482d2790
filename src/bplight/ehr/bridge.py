from __future__ import annotations

from typing import Any, Dict, List
from urllib.parse import urlencode

import jsonschema
import structlog

from bplight.config.thresholds import FHIR_PAGE_SIZE, SMART_PAGE_SIZE
from bplight.ehr.fhir_rest import FhirRestClient
from bplight.ehr.observation import (
    bp_search_query,
    observation_from_reading,
    readings_from_observations,
)
from bplight.ehr.smart import SmartSession
from bplight.models.app_types import Reading, SOURCE_FHIR, SOURCE_SMART
from bplight.models.errors import BPError

log = structlog.get_logger(__name__)


def smart_bp_path(patient_id: str, count: int = SMART_PAGE_SIZE) -> str:
    return "Observation?" + urlencode(bp_search_query(patient_id, count))


def fetch_fhir_readings(client: FhirRestClient, patient_id: str) -> List[Reading]:
    """Raises FhirError when the server cannot be queried."""
    resources = client.search_bp_observations(patient_id, count=FHIR_PAGE_SIZE)
    return readings_from_observations(resources, SOURCE_FHIR)


def fetch_smart_readings(session: SmartSession) -> List[Reading]:
    response = session.request(smart_bp_path(session.patient.id), flat=True)
    if isinstance(response, dict):
        response = [response]
    return readings_from_observations(response or [], SOURCE_SMART)


def submit_fhir_reading(client: FhirRestClient, patient_id: str, reading: Reading) -> bool:
    if not patient_id:
        return False
    try:
        observation = observation_from_reading(reading, patient_id)
    except jsonschema.ValidationError as e:
        log.warning("fhir_observation_invalid", error=e.message)
        return False
    return client.create_observation(observation)


def submit_smart_reading(session: SmartSession, reading: Reading) -> bool:
    if session is None or not session.patient.id:
        return False
    try:
        observation: Dict[str, Any] = observation_from_reading(reading, session.patient.id)
        session.create(observation)
    except jsonschema.ValidationError as e:
        log.warning("smart_observation_invalid", error=e.message)
        return False
    except (BPError, ValueError) as e:
        log.warning("smart_create_failed", error=str(e))
        return False
    return True
