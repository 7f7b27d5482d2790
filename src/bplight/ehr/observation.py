"""FHIR R4 Observation <-> Reading mapping for the LOINC blood-pressure panel."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Union

import jsonschema

from bplight.models.app_types import Reading, canonical_timestamp

LOINC_SYSTEM = "http://loinc.org"
UCUM_SYSTEM = "http://unitsofmeasure.org"
CATEGORY_SYSTEM = "http://terminology.hl7.org/CodeSystem/observation-category"

BP_PANEL_CODE = "85354-9"
SYSTOLIC_CODE = "8480-6"
DIASTOLIC_CODE = "8462-4"

FHIR_JSON = "application/fhir+json"

# Minimal subset of the R4 Observation shape that we send; not full FHIR.
BP_OBSERVATION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["resourceType", "status", "category", "code", "subject", "effectiveDateTime", "component"],
    "properties": {
        "resourceType": {"const": "Observation"},
        "status": {"type": "string"},
        "category": {"type": "array", "minItems": 1},
        "code": {"type": "object", "required": ["coding"]},
        "subject": {
            "type": "object",
            "required": ["reference"],
            "properties": {"reference": {"type": "string", "pattern": "^Patient/.+"}},
        },
        "effectiveDateTime": {"type": "string"},
        "component": {
            "type": "array",
            "minItems": 2,
            "items": {
                "type": "object",
                "required": ["code", "valueQuantity"],
                "properties": {
                    "valueQuantity": {
                        "type": "object",
                        "required": ["value", "unit", "system", "code"],
                        "properties": {"value": {"type": "number"}},
                    },
                },
            },
        },
    },
}

Path = Union[str, int]


def get_path(obj: Any, *path: Path) -> Optional[Any]:
    """Walk dict keys / list indexes; None means the field is absent."""
    cur = obj
    for step in path:
        if isinstance(step, int):
            if not isinstance(cur, list) or not -len(cur) <= step < len(cur):
                return None
        elif not isinstance(cur, dict) or step not in cur:
            return None
        cur = cur[step]
    return cur


def coding_codes(concept: Any) -> List[str]:
    codings = get_path(concept, "coding")
    if not isinstance(codings, list):
        return []
    return [c["code"] for c in codings if isinstance(c, dict) and "code" in c]


def component_value(obs: Dict[str, Any], code: str) -> Optional[float]:
    components = get_path(obs, "component")
    if not isinstance(components, list):
        return None
    for comp in components:
        if code in coding_codes(get_path(comp, "code")):
            value = get_path(comp, "valueQuantity", "value")
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return value
            return None
    return None


def effective_time(obs: Dict[str, Any]) -> Optional[str]:
    return get_path(obs, "effectiveDateTime") or get_path(obs, "effectivePeriod", "start")


def reading_from_observation(obs: Dict[str, Any], source: str) -> Optional[Reading]:
    """None when either component or the timestamp is missing or unusable."""
    systolic = component_value(obs, SYSTOLIC_CODE)
    diastolic = component_value(obs, DIASTOLIC_CODE)
    when = effective_time(obs)
    if not systolic or not diastolic or not isinstance(when, str):
        return None
    try:
        date_time = canonical_timestamp(when)
    except ValueError:
        return None
    return Reading(
        systolic=int(round(systolic)),
        diastolic=int(round(diastolic)),
        date_time=date_time,
        source=source,
    )


def readings_from_observations(resources: Iterable[Dict[str, Any]], source: str) -> List[Reading]:
    out = []
    for res in resources:
        if get_path(res, "resourceType") not in (None, "Observation"):
            continue
        r = reading_from_observation(res, source)
        if r is not None:
            out.append(r)
    return out


def _bp_component(code: str, display: str, value: int) -> Dict[str, Any]:
    return {
        "code": {"coding": [{"system": LOINC_SYSTEM, "code": code, "display": display}]},
        "valueQuantity": {
            "value": value,
            "unit": "mmHg",
            "system": UCUM_SYSTEM,
            "code": "mm[Hg]",
        },
    }


def validate_observation(obs: Dict[str, Any]) -> None:
    jsonschema.validate(instance=obs, schema=BP_OBSERVATION_SCHEMA)


def observation_from_reading(reading: Reading, patient_id: str) -> Dict[str, Any]:
    obs = {
        "resourceType": "Observation",
        "status": "final",
        "category": [{
            "coding": [{
                "system": CATEGORY_SYSTEM,
                "code": "vital-signs",
                "display": "Vital Signs",
            }]
        }],
        "code": {
            "coding": [{
                "system": LOINC_SYSTEM,
                "code": BP_PANEL_CODE,
                "display": "Blood pressure panel with all children optional",
            }],
            "text": "Blood Pressure",
        },
        "subject": {"reference": f"Patient/{patient_id}"},
        "effectiveDateTime": reading.date_time,
        "component": [
            _bp_component(SYSTOLIC_CODE, "Systolic blood pressure", reading.systolic),
            _bp_component(DIASTOLIC_CODE, "Diastolic blood pressure", reading.diastolic),
        ],
    }
    validate_observation(obs)
    return obs


def patient_name(patient: Dict[str, Any]) -> str:
    name = get_path(patient, "name", 0)
    if isinstance(name, dict):
        if name.get("text"):
            return name["text"]
        parts = list(name.get("given") or [])
        if name.get("family"):
            parts.append(name["family"])
        if parts:
            return " ".join(parts)
    return "Unknown Patient"


def bp_search_query(patient_id: str, count: int) -> Dict[str, Any]:
    return {
        "patient": patient_id,
        "code": BP_PANEL_CODE,
        "_sort": "-date",
        "_count": count,
    }
