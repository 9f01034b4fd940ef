from __future__ import annotations

from typing import Any, Callable, Dict, Literal, Optional

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

ChartKind = Literal["line", "bar", "arc", "point", "heatmap", "radial"]

DEFAULT_WIDTH = 600
DEFAULT_HEIGHT = 400
ACCENT = "#22C55E"


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def _line(result: pd.DataFrame) -> alt.Chart:
    hover = alt.selection_point(fields=["period"], on="mouseover", nearest=True, empty="all")
    period_type = "T" if pd.api.types.is_datetime64_any_dtype(result["period"]) else "O"
    return (
        alt.Chart(result)
        .mark_line(point={"filled": True, "size": 60}, color=ACCENT, interpolate="monotone")
        .encode(
            x=alt.X(f"period:{period_type}", title="Release Period", axis=alt.Axis(grid=False)),
            y=alt.Y("streams:Q", title="Streams", axis=alt.Axis(format="~s", gridDash=[4, 4], domain=False, ticks=False)),
            tooltip=[alt.Tooltip("period", title="Period"), alt.Tooltip("streams:Q", format=",")],
        )
        .add_params(hover)
    )


def _bar(result: pd.DataFrame) -> alt.Chart:
    hover = alt.selection_point(fields=["artist_name"], on="mouseover", empty="all")
    return (
        alt.Chart(result)
        .mark_bar(color="orange")
        .encode(
            x=alt.X("artist_name:N", title="Artist", sort=None, axis=alt.Axis(labelAngle=-45, grid=False)),
            y=alt.Y("streams:Q", title="Streams", axis=alt.Axis(format="~s", gridDash=[4, 4], domain=False, ticks=False)),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.6)),
            tooltip=[alt.Tooltip("artist_name", title="Artist"), alt.Tooltip("streams:Q", format=",")],
        )
        .add_params(hover)
    )


def _arc(result: pd.DataFrame) -> alt.Chart:
    return (
        alt.Chart(result)
        .mark_arc(innerRadius=60, stroke="white", strokeWidth=1)
        .encode(
            theta=alt.Theta("value:Q", stack=True),
            color=alt.Color("genre:N", title="Genre", scale=alt.Scale(scheme="category10")),
            order=alt.Order("value:Q", sort="descending"),
            tooltip=[alt.Tooltip("genre", title="Genre"), "value:Q", alt.Tooltip("share:Q", format=".1%")],
        )
    )


def _point(result: pd.DataFrame) -> alt.Chart:
    return (
        alt.Chart(result)
        .mark_circle(size=60, color="purple", opacity=0.7)
        .encode(
            x=alt.X("duration_min:Q", title="Duration (min)"),
            y=alt.Y("streams:Q", title="Streams", axis=alt.Axis(format="~s")),
            tooltip=["track_name", "artist_name", "genre", alt.Tooltip("duration_min:Q", format=".2f"), alt.Tooltip("streams:Q", format=",")],
        )
    )


def _heatmap(result: pd.DataFrame) -> alt.Chart:
    return (
        alt.Chart(result)
        .mark_rect()
        .encode(
            x=alt.X("month:O", title="Month"),
            y=alt.Y("genre:N", title="Genre"),
            color=alt.Color("streams:Q", title="Streams", scale=alt.Scale(scheme="greens")),
            tooltip=["genre", "month", alt.Tooltip("streams:Q", format=",")],
        )
    )


def _radial(result: pd.DataFrame) -> alt.Chart:
    # Polar bars: one wedge per feature, radius on the 0-100 scale.
    return (
        alt.Chart(result)
        .transform_calculate(slot="1")
        .mark_arc(stroke="white", padAngle=0.02)
        .encode(
            theta=alt.Theta("slot:Q", stack=True),
            radius=alt.Radius("value:Q", scale=alt.Scale(type="sqrt", zero=True, domain=[0, 100])),
            color=alt.Color("feature:N", legend=alt.Legend(title="Feature")),
            tooltip=["feature", alt.Tooltip("value:Q", format=".1f")],
        )
    )


BUILDERS: Dict[str, Callable[[pd.DataFrame], alt.Chart]] = {
    "line": _line,
    "bar": _bar,
    "arc": _arc,
    "point": _point,
    "heatmap": _heatmap,
    "radial": _radial,
}


def empty_chart(message: str = "No data for the selected filters") -> alt.Chart:
    return alt.Chart(pd.DataFrame({"text": [message]})).mark_text(size=14, color="#6b7280").encode(text="text:N")


def build_chart(
    kind: ChartKind,
    result: pd.DataFrame,
    *,
    width: int = DEFAULT_WIDTH,
    height: int = DEFAULT_HEIGHT,
    title: Optional[str] = None,
) -> alt.Chart:
    if kind not in BUILDERS:
        raise ValueError(f"unknown chart kind: {kind!r}")
    chart = empty_chart() if result is None or result.empty else BUILDERS[kind](result)
    props: Dict[str, Any] = {"width": width, "height": height}
    if title:
        props["title"] = title
    return chart.properties(**props)
