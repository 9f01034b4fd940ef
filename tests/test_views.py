from __future__ import annotations

from typing import List, Tuple

import pandas as pd
import pytest

from streamdash import aggregations as agg
from streamdash.charts import build_chart, to_vega_spec
from streamdash.errors import UnknownViewError
from streamdash.views import DEFAULT_VIEWS, ChartView, VegaLiteSink, ViewRegistry, build_default_views


class RecordingSink:
    def __init__(self, kind=None, title=None):
        self.rendered: List[pd.DataFrame] = []
        self.sizes: List[Tuple[int, int]] = []

    def render(self, result):
        self.rendered.append(result)

    def resize(self, width, height):
        self.sizes.append((width, height))


def test_chart_view_updates_and_renders(two_records):
    sink = RecordingSink()
    view = ChartView("top", agg.top_artists, sink)
    result = view.update(two_records)
    assert view.result is result
    assert list(result["artist_name"]) == ["B", "A"]
    assert sink.rendered == [result]
    view.resize(300, 200)
    assert sink.sizes == [(300, 200)]


def test_registry_rejects_duplicates():
    registry = ViewRegistry([ChartView("a", agg.top_artists, RecordingSink())])
    with pytest.raises(ValueError):
        registry.register(ChartView("a", agg.genre_share, RecordingSink()))


def test_registry_unknown_view():
    with pytest.raises(UnknownViewError):
        ViewRegistry().get("missing")


def test_update_all_returns_every_view(catalog):
    registry = build_default_views(RecordingSink)
    results = registry.update_all(catalog)
    assert list(results) == list(DEFAULT_VIEWS)
    assert len(registry) == len(DEFAULT_VIEWS)
    assert "top_artists" in registry
    assert len(results["genre_month_heatmap"]) == catalog["genre"].nunique() * 12


def test_resize_all_reaches_every_sink():
    registry = build_default_views(RecordingSink)
    registry.resize_all(640, 480)
    assert all(view.sink.sizes == [(640, 480)] for view in registry)


def test_vega_sink_builds_spec(catalog):
    registry = build_default_views()
    registry.update_all(catalog)
    for view in registry:
        spec = view.sink.spec
        assert spec is not None
        assert spec["width"] == 600
        assert "$schema" in spec


def test_vega_sink_resize_rerenders(two_records):
    sink = VegaLiteSink("bar", "Top Artists")
    view = ChartView("top", agg.top_artists, sink)
    view.update(two_records)
    view.resize(320, 240)
    assert sink.spec["width"] == 320
    assert sink.spec["height"] == 240


def test_empty_result_renders_empty_state(two_records):
    sink = VegaLiteSink("line")
    sink.render(agg.streams_over_time(two_records.iloc[0:0]))
    assert sink.spec["mark"]["type"] == "text"


def test_build_chart_unknown_kind(two_records):
    with pytest.raises(ValueError):
        build_chart("sankey", agg.top_artists(two_records))


def test_build_chart_title(two_records):
    spec = to_vega_spec(build_chart("bar", agg.top_artists(two_records), title="Top"))
    assert spec["title"] == "Top"
