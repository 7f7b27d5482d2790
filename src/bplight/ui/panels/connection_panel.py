import streamlit as st

from bplight.models.app_types import ConnectionMode
from bplight.models.errors import BPError
from bplight.state import actions
from bplight.ui.render import render_export


def connection_panel():
    app = st.session_state.app
    store = st.session_state.store
    fhir = st.session_state.fhir

    with st.sidebar:
        st.markdown("## Connection")

        if app.session.mode == ConnectionMode.DISCONNECTED:
            st.caption(f"FHIR server: {fhir.base_url}")
            col1, col2 = st.columns(2)
            with col1:
                if st.button("Connect", use_container_width=True):
                    with st.spinner("Connecting to FHIR server…"):
                        st.session_state.flash = actions.connect_fhir(app, store, fhir)
            with col2:
                if st.button("Demo mode", use_container_width=True):
                    st.session_state.flash = actions.use_demo_mode(app, store)
            return

        if app.session.patient_name:
            st.caption(f"Patient: {app.session.patient_name}")
        if app.session.patient_id:
            st.caption(f"ID: {app.session.patient_id}")

        if app.session.mode in (ConnectionMode.FHIR, ConnectionMode.SMART):
            if st.button("Sync readings", use_container_width=True):
                try:
                    if app.session.mode == ConnectionMode.SMART:
                        n = actions.sync_smart(app, store)
                    else:
                        n = actions.sync_fhir(app, store, fhir)
                    st.session_state.flash = actions.Outcome(True, f"Loaded {n} readings")
                except BPError as e:
                    st.session_state.flash = actions.Outcome(False, f"Sync failed: {e}", "warning")

        if app.session.mode == ConnectionMode.SMART:
            if st.button("Prepare EHR export", use_container_width=True):
                try:
                    st.session_state.export = actions.export_record(app)
                except BPError as e:
                    st.session_state.flash = actions.Outcome(False, f"Export failed: {e}", "warning")
            if st.session_state.get("export"):
                render_export(st.session_state.export)

        if st.button("Disconnect", use_container_width=True):
            actions.disconnect(app)
            st.session_state.pop("export", None)
