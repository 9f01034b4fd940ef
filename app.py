import logging
from contextlib import contextmanager
from datetime import date
from typing import Optional

import pandas as pd
import streamlit as st

from streamdash.aggregations import summary_kpis
from streamdash.controller import DashboardController, DashboardState
from streamdash.data import SAMPLE_SOURCE, load_dashboard_data
from streamdash.filters import ALL_ARTISTS, ALL_GENRES, FilterCriteria

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 4px;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container(border=True)
    container.markdown(f"<div class='card-title'>{title}</div>", unsafe_allow_html=True)
    with container:
        yield container


def format_filter_summary(criteria: FilterCriteria) -> str:
    date_chip = (
        f"Released: {criteria.start_date:%Y-%m-%d} – {criteria.end_date:%Y-%m-%d}"
        if criteria.start_date and criteria.end_date
        else "Released: All"
    )
    chips = [f"Genre: {criteria.genre}", f"Artist: {criteria.artist}", date_chip]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_page_header(title: str, breadcrumb: str, filter_summary_html: str, export_df: Optional[pd.DataFrame] = None):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if export_df is not None and not export_df.empty:
            st.download_button(
                "Export CSV",
                data=export_df.to_csv(index=False, date_format="%Y-%m-%d").encode("utf-8"),
                file_name="tracks.csv",
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{filter_summary_html}</div>", unsafe_allow_html=True)


def get_controller() -> DashboardController:
    if "controller" not in st.session_state:
        controller = DashboardController(loader=load_dashboard_data)
        controller.start()
        st.session_state["controller"] = controller
    return st.session_state["controller"]


def reset_filter_widgets(controller: DashboardController):
    controller.reset_filters()
    defaults = controller.criteria
    st.session_state["genre"] = defaults.genre
    st.session_state["artist"] = defaults.artist
    st.session_state["date_range"] = (defaults.start_date, defaults.end_date)


def render_kpis(filtered: pd.DataFrame):
    kpis = summary_kpis(filtered)
    cols = st.columns(4)
    cols[0].metric("Tracks", f"{kpis['tracks']:,}")
    cols[1].metric("Total Streams", f"{kpis['total_streams']:,}")
    cols[2].metric("Artists", f"{kpis['artists']:,}")
    cols[3].metric("Avg Duration", f"{kpis['avg_duration_min']:.2f} min")


def render_view(controller: DashboardController, name: str):
    handle = controller.views.get(name)
    with card(handle.sink.title or name):
        spec = handle.sink.spec
        if spec is None:
            st.info("Chart not rendered yet.")
        else:
            st.vega_lite_chart(spec, use_container_width=True)


# ---------- UI setup ----------
st.set_page_config(page_title="Streaming Dashboard", layout="wide")
inject_base_styles()
st.title("Most-Streamed Songs Dashboard")
st.caption("Trends, top artists, genre share and audio profiles for the filtered track set.")

controller = get_controller()
if controller.state == DashboardState.ERROR:
    st.error(f"Dashboard unavailable. {controller.error}")
    st.stop()

if controller.source == SAMPLE_SOURCE:
    st.warning("No CSV source was reachable; showing the bundled sample data.")
if controller.dropped_rows:
    st.caption(f"{controller.dropped_rows:,} row(s) without a valid release date were skipped.")

options = controller.options()
min_date: date = options["min_date"]
max_date: date = options["max_date"]

# ----- Sidebar: filters -----
with st.sidebar:
    st.markdown("### Filters")
    genre = st.selectbox("Genre", [ALL_GENRES] + options["genres"], key="genre")
    artist = st.selectbox("Artist", [ALL_ARTISTS] + options["artists"], key="artist")
    if "date_range" not in st.session_state:
        st.session_state["date_range"] = (min_date, max_date)
    date_range = st.date_input(
        "Release date range",
        min_value=min_date,
        max_value=max_date,
        key="date_range",
    )
    st.button("Reset Filters", on_click=reset_filter_widgets, args=(controller,))

start_date, end_date = (date_range if isinstance(date_range, (list, tuple)) and len(date_range) == 2 else (min_date, max_date))
criteria = FilterCriteria(genre=genre, artist=artist, start_date=start_date, end_date=end_date)
if criteria != controller.criteria:
    controller.on_criteria_changed(criteria)

filtered = controller.filtered
render_page_header("Overview", "Home / Overview", format_filter_summary(controller.criteria), export_df=filtered)
render_kpis(filtered)
if filtered.empty:
    st.info("No tracks match the selected filters.")

left, right = st.columns(2)
with left:
    render_view(controller, "streams_by_year")
    render_view(controller, "genre_share")
    render_view(controller, "genre_month_heatmap")
with right:
    render_view(controller, "top_artists")
    render_view(controller, "duration_vs_streams")
    render_view(controller, "feature_profile")
render_view(controller, "streams_by_month")
