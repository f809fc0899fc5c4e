"""
Plotly figures and pandas tables for the dashboard.
Pure functions of API payloads, no Streamlit calls.
"""

import pandas as pd
import plotly.graph_objects as go

PLOTLY_MOBILE_CONFIG = {
    "displayModeBar": False,
    "scrollZoom": False,
    "staticPlot": False,
    "responsive": True,
}

PLOTLY_MOBILE_LAYOUT = dict(
    dragmode=False,
    template="plotly_dark",
    margin=dict(l=40, r=20, t=40, b=35),
    legend=dict(orientation="h", yanchor="bottom", y=1.02),
    xaxis=dict(fixedrange=True),
    yaxis=dict(fixedrange=True),
)

CURVE_COLORS = [
    "rgb(75, 192, 192)",
    "rgb(255, 99, 132)",
    "rgb(54, 162, 235)",
    "rgb(255, 205, 86)",
    "rgb(153, 102, 255)",
    "rgb(255, 159, 64)",
]

ZONE_COLORS = {"safe": "#4CAF50", "caution": "#FF9800", "high_risk": "#F44336"}


def points_frame(points: list[dict], origin: str) -> pd.DataFrame:
    """Curve points as a frame with an `hours` column relative to the reference midnight."""
    df = pd.DataFrame(points, columns=["time", "mg"])
    df["time"] = pd.to_datetime(df["time"])
    df["hours"] = (df["time"] - pd.Timestamp(origin)) / pd.Timedelta(hours=1)
    return df


def hour_ticks(horizon_hours: int) -> tuple[list[int], list[str]]:
    every = 3 if horizon_hours > 24 else 2
    vals = list(range(0, horizon_hours + 1, every))
    return vals, [f"{h % 24:02d}:00" for h in vals]


def build_caffeine_figure(chart: dict) -> go.Figure:
    """Per-drink curves (dashed), the total (solid), bedtime marker and threshold line."""
    origin = chart["date"]
    fig = go.Figure()

    for idx, curve in enumerate(chart.get("curves", [])):
        df = points_frame(curve["points"], origin)
        fig.add_trace(go.Scatter(
            x=df["hours"], y=df["mg"],
            mode="lines",
            name=curve["label"],
            line=dict(color=CURVE_COLORS[idx % len(CURVE_COLORS)], width=1.5, dash="dash"),
        ))

    if chart.get("total"):
        df = points_frame(chart["total"], origin)
        fig.add_trace(go.Scatter(
            x=df["hours"], y=df["mg"],
            mode="lines",
            name="Total",
            line=dict(color="#FFFFFF", width=3),
        ))

    fig.add_vline(
        x=chart["bedtime_position_h"],
        line=dict(color="#ef4444", width=2, dash="dash"),
        annotation_text="Bedtime",
        annotation_font=dict(color="#ef4444"),
    )
    fig.add_hline(
        y=chart.get("threshold_mg", 30),
        line=dict(color="#4CAF50", width=1, dash="dot"),
        annotation_text=f"{chart.get('threshold_mg', 30):g} mg",
    )

    tickvals, ticktext = hour_ticks(chart["horizon_hours"])
    fig.update_layout(
        title="Caffeine in your body",
        xaxis_title="Time",
        yaxis_title="mg",
        xaxis=dict(tickmode="array", tickvals=tickvals, ticktext=ticktext),
    )
    return fig


def history_frame(rows: list[dict]) -> pd.DataFrame:
    """History payload as a display table."""
    df = pd.DataFrame([
        {
            "Day": r["date_display"] + (" (Today)" if r.get("is_today") else ""),
            "Drinks": len(r.get("drinks", [])),
            "Total (mg)": r.get("total_mg", 0),
            "Above 400 mg": "yes" if r.get("above_guideline") else "",
        }
        for r in rows
    ], columns=["Day", "Drinks", "Total (mg)", "Above 400 mg"])
    return df
