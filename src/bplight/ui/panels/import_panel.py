import streamlit as st

from bplight.config import settings
from bplight.importer.smartwatch import read_import_file
from bplight.models.errors import ValidationError
from bplight.state import actions


def import_panel():
    app = st.session_state.app

    uploaded = st.file_uploader("Smartwatch export (JSON)", type=["json"])
    if uploaded is None or not st.button("Import"):
        return

    read = read_import_file(uploaded)
    if not read.ok:
        st.error(read.error)
        return

    try:
        result = actions.import_smartwatch(app, st.session_state.store, read.text, settings.display_tz())
    except ValidationError as e:
        st.error(str(e))
        return

    st.success(f"Imported {result.imported} blood pressure readings")
    if result.duplicates:
        st.info(f"Skipped {result.duplicates} duplicate readings")
    if result.invalid:
        st.info(f"Skipped {result.invalid} incomplete records")

    lines = [f"- Blood pressure: {result.total_records} records"]
    if result.heart_rate_records:
        lines.append(f"- Heart rate: {result.heart_rate_records} records")
    if result.spo2_records:
        lines.append(f"- Blood oxygen: {result.spo2_records} records")
    st.markdown("**The file contains:**\n" + "\n".join(lines))
