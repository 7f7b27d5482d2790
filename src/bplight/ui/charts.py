from __future__ import annotations

import altair as alt
import pandas as pd

from bplight.dashboard.projector import ChartSeries

SYSTOLIC_COLOR = "#dc3545"
DIASTOLIC_COLOR = "#667eea"


def series_frame(series: ChartSeries) -> pd.DataFrame:
    """Long-form frame: one row per (reading, measure)."""
    n = len(series)
    return pd.DataFrame({
        "Time": pd.to_datetime(series.date_times * 2, utc=True),
        "Label": series.labels * 2,
        "Measure": ["Systolic"] * n + ["Diastolic"] * n,
        "mmHg": series.systolic + series.diastolic,
    })


def build_bp_chart(series: ChartSeries) -> alt.Chart:
    df = series_frame(series)

    base = alt.Chart(df).encode(
        x=alt.X("Time:T", axis=alt.Axis(format="%m/%d", title=None)),
        y=alt.Y("mmHg:Q", title="mmHg", scale=alt.Scale(domain=[40, 200])),
        color=alt.Color(
            "Measure:N",
            scale=alt.Scale(domain=["Systolic", "Diastolic"], range=[SYSTOLIC_COLOR, DIASTOLIC_COLOR]),
            legend=alt.Legend(orient="top", title=None),
        ),
    )

    hover = alt.selection_point(fields=["Time"], on="mouseover", nearest=True, empty="none")

    line = base.mark_line(interpolate="monotone", strokeWidth=2)
    selectors = base.mark_point(opacity=0).add_params(hover)
    hover_dots = (
        base.mark_point(size=40, filled=True)
        .transform_filter(hover)
        .encode(
            tooltip=[
                alt.Tooltip("Label:N", title="Date"),
                alt.Tooltip("Measure:N"),
                alt.Tooltip("mmHg:Q"),
            ]
        )
    )

    return (line + selectors + hover_dots).properties(height=280)
