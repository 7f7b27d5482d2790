from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bplight.ehr.smart import SmartSession
from bplight.models.app_types import to_canonical

# Export section -> FHIR search, relative to the patient
EXPORT_QUERIES: Dict[str, str] = {
    "conditions": "Condition?patient={pid}",
    "medications": "MedicationRequest?patient={pid}",
    "diagnosticReports": "DiagnosticReport?patient={pid}",
    "vitalSigns": "Observation?patient={pid}&category=vital-signs&_sort=-date",
}


def export_patient_record(session: SmartSession, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Bundle what the EHR holds for the session patient, verbatim.

    FhirError from any query propagates; a partial export is never returned.
    """
    pid = session.patient.id
    record: Dict[str, Any] = {
        "exportedAt": to_canonical(now or datetime.now(timezone.utc)),
        "patient": session.patient.read(),
    }
    for section, query in EXPORT_QUERIES.items():
        resources = session.request(query.format(pid=pid), flat=True)
        record[section] = resources if isinstance(resources, list) else [resources]
    return record
