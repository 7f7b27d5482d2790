from datetime import datetime

import streamlit as st

from bplight.config import settings
from bplight.config.thresholds import ENTRY_RANGES
from bplight.models.errors import ValidationError
from bplight.state import actions
from bplight.ui.helpers import flash


def entry_panel():
    app = st.session_state.app

    with st.form("bp_entry", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            systolic = st.number_input(
                "Systolic (mmHg)", min_value=0, max_value=300, value=None, step=1,
                help="%d-%d mmHg" % ENTRY_RANGES["systolic"],
            )
        with col2:
            diastolic = st.number_input(
                "Diastolic (mmHg)", min_value=0, max_value=200, value=None, step=1,
                help="%d-%d mmHg" % ENTRY_RANGES["diastolic"],
            )
        now = datetime.now()
        col3, col4 = st.columns(2)
        with col3:
            day = st.date_input("Date", value=now.date())
        with col4:
            at = st.time_input("Time", value=now.time().replace(second=0, microsecond=0))

        if st.form_submit_button("Save reading"):
            when = None
            if day and at:
                tz = settings.display_tz()
                naive = datetime.combine(day, at)
                when = naive.replace(tzinfo=tz) if tz else naive.astimezone()
            try:
                outcome = actions.submit_reading(
                    app, st.session_state.store, systolic, diastolic, when, fhir=st.session_state.fhir,
                )
            except ValidationError as e:
                st.warning(str(e))
            else:
                flash(outcome)
