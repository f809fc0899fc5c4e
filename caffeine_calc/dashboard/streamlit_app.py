"""
Streamlit Caffeine Calculator.
Main page: profile, bedtime, drinks -> caffeine left at bedtime + cutoffs.
Sidebar: today's log and 7-day history.
"""

import os
from datetime import datetime

import httpx
import streamlit as st

from caffeine_calc.dashboard.charts import (
    PLOTLY_MOBILE_CONFIG,
    PLOTLY_MOBILE_LAYOUT,
    ZONE_COLORS,
    build_caffeine_figure,
    history_frame,
)

# --- Config ---
API_BASE = os.getenv("CAFFEINE_API_URL", "http://localhost:8000")
API_KEY = os.getenv("CAFFEINE_API_KEY", "")
HEADERS = {"x-api-key": API_KEY} if API_KEY else {}


def api_get(path: str, params: dict | None = None) -> dict | list:
    try:
        r = httpx.get(f"{API_BASE}{path}", params=params, headers=HEADERS, timeout=10)
        r.raise_for_status()
        return r.json()
    except httpx.HTTPError as e:
        st.error(f"API Error: {e}")
        return {}


def api_send(method: str, path: str, data: dict | None = None) -> dict | list:
    try:
        r = httpx.request(method, f"{API_BASE}{path}", json=data, headers=HEADERS, timeout=10)
        r.raise_for_status()
        return r.json()
    except httpx.HTTPError as e:
        st.error(f"API Error: {e}")
        return {}


def mobile_chart(fig, height=380, **kwargs):
    """Render a Plotly chart with mobile-friendly settings (no accidental zoom/pan)."""
    fig.update_layout(**PLOTLY_MOBILE_LAYOUT, height=height, **kwargs)
    st.plotly_chart(fig, use_container_width=True, config=PLOTLY_MOBILE_CONFIG)


def _clock(value: str | None):
    if not value:
        return None
    return datetime.strptime(value, "%H:%M").time()


st.set_page_config(page_title="Caffeine Calculator", layout="wide", initial_sidebar_state="collapsed")
st.title("Caffeine Calculator")
st.caption("How much caffeine is left when you go to bed? Estimates only - not medical advice.")

# =========================================================
# SIDEBAR: today + history
# =========================================================
with st.sidebar:
    st.header("Today")
    # The API decides which day "today" is (its TZ), so take date and log from it.
    hist = api_get("/api/history", {"days": 7})
    today_row = hist[0] if isinstance(hist, list) and hist else {}
    today_day = today_row.get("date")
    today_log = today_row.get("drinks", [])
    if isinstance(today_log, list) and today_log:
        for idx, item in enumerate(today_log):
            ec, dc = st.columns([5, 1])
            with ec:
                st.text(f"{item['start']} {item['name']} {item['dose_mg']:g}mg")
            with dc:
                if st.button("X", key=f"del_{idx}"):
                    api_send("DELETE", f"/api/intake/{today_day}/{idx}")
                    st.rerun()
    else:
        st.caption("-")

    st.divider()
    st.header("History")
    if isinstance(hist, list) and hist:
        st.dataframe(history_frame(hist), use_container_width=True, hide_index=True)

# =========================================================
# 1 - About you
# =========================================================
saved = api_get("/api/profile")
saved_info = saved.get("personal_info", {}) if isinstance(saved, dict) else {}
saved_units = saved.get("units", {}) if isinstance(saved, dict) else {}

st.subheader("1 - About you")
pc1, pc2, pc3, pc4 = st.columns(4)
with pc1:
    age = st.number_input("Age", min_value=1, max_value=120, value=int(saved_info.get("age") or 30))
with pc2:
    sex = st.selectbox("Sex", ["male", "female"], index=1 if saved_info.get("sex") == "female" else 0)
with pc3:
    unit = st.radio("Units", ["metric", "imperial"], horizontal=True,
                    index=1 if saved_units.get("weight") == "imperial" else 0)
with pc4:
    weight = st.number_input("Weight (kg)" if unit == "metric" else "Weight (lb)",
                             min_value=1.0, value=float(saved_info.get("weight") or 70.0))

saved_bed = api_get("/api/bedtime")
bedtime = st.time_input("Bedtime", value=_clock(saved_bed.get("bedtime") if isinstance(saved_bed, dict) else None)
                        or datetime.strptime("23:00", "%H:%M").time())

# =========================================================
# 2 - Drinks
# =========================================================
st.divider()
st.subheader("2 - Drinks")

if "drinks" not in st.session_state:
    st.session_state.drinks = [
        {"name": i["name"], "dose_mg": i["dose_mg"], "start": i["start"], "end": i["end"]}
        for i in (today_log if isinstance(today_log, list) else [])
    ]

with st.expander("Add a drink", expanded=not st.session_state.drinks):
    query = st.text_input("Search drinks", key="q", placeholder="Espresso, Cola...")
    if query:
        suggestions = api_get("/api/drinks/search", {"q": query})
    else:
        grouped = api_get("/api/drinks/grouped")
        suggestions = [d for g in grouped for d in g["drinks"]] if isinstance(grouped, list) else []
    if not isinstance(suggestions, list):
        suggestions = []
    names = [
        f"{d.get('category') or d['source']}: {d['name']} ({d['caffeine_mg']:g} mg)"
        for d in suggestions
    ]
    picked = st.selectbox("Suggestions", ["-"] + names, key="pick")
    default_dose = 95.0
    default_name = query or "Coffee"
    if picked != "-":
        chosen = suggestions[names.index(picked)]
        default_dose, default_name = float(chosen["caffeine_mg"]), chosen["name"]
    ac1, ac2, ac3, ac4 = st.columns(4)
    with ac1:
        name = st.text_input("Name", value=default_name, key="dname")
    with ac2:
        dose = st.number_input("mg", min_value=0.0, step=5.0, value=default_dose, key="ddose")
    with ac3:
        start = st.time_input("From", value=datetime.now().time().replace(second=0, microsecond=0), key="dstart")
    with ac4:
        end = st.time_input("Until (optional)", value=start, key="dend")
    if st.button("Add drink", type="primary", use_container_width=True):
        drink = {"name": name, "dose_mg": dose, "start": start.strftime("%H:%M"), "end": end.strftime("%H:%M")}
        st.session_state.drinks.append(drink)
        api_send("POST", "/api/intake", drink)
        st.rerun()

for idx, d in enumerate(st.session_state.drinks):
    span = d["start"] if not d.get("end") or d["end"] == d["start"] else f"{d['start']}-{d['end']}"
    st.text(f"{span}  {d['name']}  {d['dose_mg']:g} mg")

# =========================================================
# 3 - Result
# =========================================================
st.divider()
if st.button("Calculate", type="primary", use_container_width=True):
    api_send("PUT", "/api/profile", {"age": age, "sex": sex, "weight": weight, "weight_unit": unit})
    api_send("PUT", "/api/bedtime", {"bedtime": bedtime.strftime("%H:%M")})

    payload = {
        "profile": {"age": age, "sex": sex, "weight": weight, "weight_unit": unit},
        "bedtime": bedtime.strftime("%H:%M"),
        "intakes": st.session_state.drinks,
        "now": datetime.now().astimezone().isoformat(),
    }
    report = api_send("POST", "/api/calculate", payload)
    chart = api_send("POST", "/api/chart", payload)

    if isinstance(report, dict) and "total_at_bedtime_mg" in report:
        advisory = report.get("advisory")
        if advisory:
            if advisory["type"] == "danger":
                st.error(advisory["message"])
            else:
                st.warning(advisory["message"])

        m1, m2, m3 = st.columns(3)
        m1.metric("Left at bedtime", f"{report['total_at_bedtime_mg']:.1f} mg")
        m2.metric("Your half-life", f"{report['half_life_h']:.1f} h")
        m3.metric("Total today", f"{report['daily_total_mg']:g} mg")
        color = ZONE_COLORS.get(report["zone"], "#999")
        st.markdown(f"<span style='color:{color}'>{report['zone_message']}</span>", unsafe_allow_html=True)

        if report["cutoffs"]:
            st.caption(f"Individual drink cutoff times ({report['threshold_mg']:g} mg threshold):")
            for c in report["cutoffs"]:
                st.text(f"{c['name']} ({c['dose_mg']:g} mg): cutoff = {c['label']}")

    if isinstance(chart, dict) and chart.get("curves"):
        mobile_chart(build_caffeine_figure(chart), height=420)
