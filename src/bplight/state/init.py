from __future__ import annotations

import streamlit as st

from bplight.dashboard.projector import ChartHost
from bplight.ehr.fhir_rest import FhirRestClient
from bplight.ehr.smart import SmartClient
from bplight.state.actions import connect_smart, load_state
from bplight.storage.kv import open_store
from bplight.ui.charts import build_bp_chart


def ensure_init() -> None:
    """Initialize Streamlit session state for the dashboard.

    Loads readings, thresholds and the threshold lock from the store into
    `st.session_state.app`, and connects straight to the EHR when a SMART
    launch has supplied a token.
    """
    if "app" in st.session_state:
        return

    store = open_store()
    st.session_state.store = store
    st.session_state.fhir = FhirRestClient()
    st.session_state.app = load_state(store, chart=ChartHost(build_bp_chart))
    st.session_state.flash = None

    smart = SmartClient.from_settings()
    if smart is not None:
        outcome = connect_smart(st.session_state.app, store, smart)
        st.session_state.flash = outcome
