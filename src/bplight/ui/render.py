from __future__ import annotations

import json
from datetime import datetime

import pandas as pd
import streamlit as st

from bplight.config import settings
from bplight.dashboard.projector import distribution, history_view, latest_status
from bplight.models.app_types import AppState
from bplight.state.actions import refresh_chart
from bplight.ui.helpers import mode_banner, source_label


def navbar(state: AppState) -> None:
    left, right = st.columns([4, 1])

    with left:
        st.markdown("### Blood Pressure Traffic Light")
        st.caption(mode_banner(state.session))

    with right:
        st.caption(f"Last update: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        st.caption(f"{len(state.readings)} readings")


def render_latest(state: AppState) -> None:
    status = latest_status(state.readings, state.thresholds)
    if not status.has_data:
        st.markdown(
            "<div class='bp-card'><div class='bp-body'>"
            "<div class='light-icon'>⚪</div>"
            "<div class='light-label'>No data</div>"
            "<div class='light-desc'>Add a reading, import a file or connect to a FHIR server.</div>"
            "</div></div>",
            unsafe_allow_html=True,
        )
        return

    c = status.classification
    st.markdown(
        f"""
        <div class="bp-card"><div class="bp-body">
            <div class="light-icon">{c.icon}</div>
            <div class="light-label {c.css_class}">{c.label}</div>
            <div class="light-desc">{status.summary}</div>
        </div></div>
        """,
        unsafe_allow_html=True,
    )


def render_distribution(state: AppState) -> None:
    dist = distribution(state.readings, state.thresholds)
    cols = st.columns(3)
    for col, (lvl, title) in zip(cols, [("red", "🔴 Red"), ("yellow", "🟡 Yellow"), ("green", "🟢 Green")]):
        with col:
            st.markdown(
                f"<div class='bp-stat'><div class='lab'>{title}</div>"
                f"<div class='num light-{lvl}'>{dist.counts[lvl]}</div>"
                f"<div class='pct'>{dist.percents[lvl]}%</div></div>",
                unsafe_allow_html=True,
            )


def render_history(state: AppState) -> None:
    rows = history_view(state.readings, state.thresholds, settings.display_tz())
    if not rows:
        st.info("No data")
        return
    df = pd.DataFrame({
        "Time": [r.when for r in rows],
        "Blood pressure": [f"{r.reading.systolic}/{r.reading.diastolic}" for r in rows],
        "Status": [f"{r.classification.icon} {r.classification.label}" for r in rows],
        "Source": [source_label(r.reading.source) for r in rows],
    })
    st.dataframe(df, hide_index=True, use_container_width=True)


def render_chart(state: AppState) -> None:
    series = refresh_chart(state, settings.display_tz())
    if not len(series):
        st.info("No readings to chart yet.")
        return
    st.altair_chart(state.chart.current, use_container_width=True)


def render_dashboard(state: AppState) -> None:
    left, right = st.columns([2, 3])
    with left:
        st.markdown("**Latest reading**")
        render_latest(state)
        st.markdown("**Distribution**")
        render_distribution(state)
    with right:
        st.markdown("**Trend (last 30 readings)**")
        render_chart(state)

    st.markdown("**History (last 50 readings)**")
    render_history(state)


def render_export(record: dict) -> None:
    st.download_button(
        "Download export (JSON)",
        data=json.dumps(record, ensure_ascii=False, indent=2),
        file_name=f"ehr_export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json",
        mime="application/json",
    )
