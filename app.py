"""Blood Pressure Traffic Light Streamlit app.

This file is the Streamlit *entrypoint*.

What this app does
------------------
- Records blood-pressure readings (manual entry, smartwatch JSON import).
- Classifies each reading as red / yellow / green against editable,
  optionally password-locked thresholds.
- Optionally syncs with a FHIR server, either a public REST endpoint or an
  EHR session opened by a SMART on FHIR launch (token supplied via env).
- Renders the latest status, the level distribution, a 30-reading trend chart
  and the 50 most recent readings.

How it runs
-----------
    `streamlit run app.py`
"""

import streamlit as st

from bplight.observability import init_logging
from bplight.state.init import ensure_init
from bplight.ui import render as ui_render
from bplight.ui import styles as ui_styles
from bplight.ui.helpers import flash
from bplight.ui.panels.connection_panel import connection_panel
from bplight.ui.panels.entry_panel import entry_panel
from bplight.ui.panels.import_panel import import_panel
from bplight.ui.panels.threshold_panel import threshold_panel


def main() -> None:
    st.set_page_config(page_title="BP Traffic Light", layout="wide", initial_sidebar_state="expanded")

    init_logging("bplight")
    ui_styles.inject()

    # Load persisted readings / thresholds once per browser session
    ensure_init()

    connection_panel()

    app = st.session_state.app
    ui_render.navbar(app)
    flash(st.session_state.pop("flash", None))

    dashboard_tab, entry_tab, import_tab, settings_tab = st.tabs(
        ["Dashboard", "Add reading", "Import", "Thresholds"]
    )

    # Forms first so a submission is merged and persisted before the
    # dashboard is drawn from the collection.
    with entry_tab:
        entry_panel()
    with import_tab:
        import_panel()
    with settings_tab:
        threshold_panel()
    with dashboard_tab:
        ui_render.render_dashboard(app)


if __name__ == "__main__":
    main()
