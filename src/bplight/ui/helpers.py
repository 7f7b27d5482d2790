from __future__ import annotations

import streamlit as st

from bplight.models.app_types import ConnectionMode, SessionContext

SOURCE_LABELS = {
    "local": "Manual entry",
    "fhir": "FHIR server",
    "smart-ehr": "EHR",
    "demo": "Demo",
    "smartwatch": "Smartwatch",
}


def source_label(source: str) -> str:
    return SOURCE_LABELS.get(source, source)


def mode_banner(session: SessionContext) -> str:
    if session.mode == ConnectionMode.SMART:
        return f"SMART on FHIR connected: {session.patient_name or 'Unknown Patient'}"
    if session.mode == ConnectionMode.FHIR:
        who = f" (patient {session.patient_id})" if session.patient_id else ""
        return f"Connected to {session.fhir_base_url}{who}"
    if session.mode == ConnectionMode.DEMO:
        return "Demo mode: data is stored locally only"
    return "Not connected"


def flash(outcome) -> None:
    if outcome is None:
        return
    show = {"success": st.success, "warning": st.warning, "error": st.error}.get(outcome.level, st.info)
    show(outcome.message)
