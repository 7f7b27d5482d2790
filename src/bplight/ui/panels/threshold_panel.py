import streamlit as st

from bplight.models.errors import ValidationError
from bplight.state import actions


def threshold_panel():
    app = st.session_state.app
    store = st.session_state.store
    t = app.thresholds
    locked = app.lock.locked

    if locked:
        st.info("Thresholds are locked.")

    with st.form("thresholds"):
        st.markdown("**Red light** (at or above)")
        r1, r2 = st.columns(2)
        red_sys = r1.number_input("Systolic", value=t.red.systolic, step=1, key="red_sys", disabled=locked)
        red_dia = r2.number_input("Diastolic", value=t.red.diastolic, step=1, key="red_dia", disabled=locked)

        st.markdown("**Yellow light** (at or above)")
        y1, y2 = st.columns(2)
        yellow_sys = y1.number_input("Systolic", value=t.yellow.systolic, step=1, key="yellow_sys", disabled=locked)
        yellow_dia = y2.number_input("Diastolic", value=t.yellow.diastolic, step=1, key="yellow_dia", disabled=locked)

        c1, c2 = st.columns(2)
        save = c1.form_submit_button("Save thresholds", disabled=locked)
        reset = c2.form_submit_button("Reset to defaults", disabled=locked)

    try:
        if save:
            actions.save_thresholds(app, store, red_sys, red_dia, yellow_sys, yellow_dia)
            st.success("Thresholds saved")
        elif reset:
            actions.reset_thresholds(app, store)
            st.success("Thresholds reset to defaults")
    except ValidationError as e:
        st.warning(str(e))

    password = st.text_input("Password", type="password", key="lock_pw")
    if locked:
        if st.button("Unlock thresholds"):
            if actions.unlock_thresholds(app, store, password):
                st.success("Thresholds unlocked")
                st.rerun()
            else:
                st.error("Wrong password")
    elif st.button("Lock thresholds"):
        try:
            actions.lock_thresholds(app, store, password)
        except ValidationError as e:
            st.warning(str(e))
        else:
            st.rerun()
