from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import partial
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol

import pandas as pd

from streamdash import aggregations as agg
from streamdash.charts import DEFAULT_HEIGHT, DEFAULT_WIDTH, ChartKind, build_chart, to_vega_spec
from streamdash.errors import UnknownViewError

logger = logging.getLogger(__name__)

Aggregate = Callable[[pd.DataFrame], pd.DataFrame]


class RenderSink(Protocol):
    def render(self, result: pd.DataFrame) -> None: ...

    def resize(self, width: int, height: int) -> None: ...


class VegaLiteSink:
    """Shared rendering adapter: keeps the Vega-Lite spec for the latest result."""

    def __init__(self, kind: ChartKind, title: Optional[str] = None, *, width: int = DEFAULT_WIDTH, height: int = DEFAULT_HEIGHT):
        self.kind = kind
        self.title = title
        self.width = width
        self.height = height
        self.spec: Optional[Dict[str, Any]] = None
        self._result: Optional[pd.DataFrame] = None

    def render(self, result: pd.DataFrame) -> None:
        self._result = result
        self.spec = to_vega_spec(build_chart(self.kind, result, width=self.width, height=self.height, title=self.title))

    def resize(self, width: int, height: int) -> None:
        self.width, self.height = max(1, int(width)), max(1, int(height))
        if self._result is not None:
            self.render(self._result)


class ViewHandle(ABC):
    name: str

    @abstractmethod
    def update(self, records: pd.DataFrame) -> pd.DataFrame:
        """Recompute this view from a (filtered) record set and redraw it."""

    @abstractmethod
    def resize(self, width: int, height: int) -> None:
        ...


class ChartView(ViewHandle):
    def __init__(self, name: str, aggregate: Aggregate, sink: RenderSink):
        self.name = name
        self.aggregate = aggregate
        self.sink = sink
        self.result: Optional[pd.DataFrame] = None

    def update(self, records: pd.DataFrame) -> pd.DataFrame:
        self.result = self.aggregate(records)
        self.sink.render(self.result)
        return self.result

    def resize(self, width: int, height: int) -> None:
        self.sink.resize(width, height)

    def __repr__(self) -> str:
        return f"ChartView({self.name!r})"


class ViewRegistry:
    def __init__(self, views: Optional[List[ViewHandle]] = None):
        self._views: Dict[str, ViewHandle] = {}
        for view in views or []:
            self.register(view)

    def register(self, view: ViewHandle) -> ViewHandle:
        if view.name in self._views:
            raise ValueError(f"view already registered: {view.name}")
        self._views[view.name] = view
        return view

    def get(self, name: str) -> ViewHandle:
        try:
            return self._views[name]
        except KeyError:
            raise UnknownViewError(name) from None

    def names(self) -> List[str]:
        return list(self._views)

    def __iter__(self) -> Iterator[ViewHandle]:
        return iter(list(self._views.values()))

    def __len__(self) -> int:
        return len(self._views)

    def __contains__(self, name: object) -> bool:
        return name in self._views

    def update_all(self, records: pd.DataFrame) -> Dict[str, pd.DataFrame]:
        results = {}
        for view in self:
            results[view.name] = view.update(records)
        logger.debug("Updated %d view(s) with %d record(s)", len(results), len(records))
        return results

    def resize_all(self, width: int, height: int) -> None:
        for view in self:
            view.resize(width, height)


# name -> (chart kind, title, aggregation)
DEFAULT_VIEWS: Dict[str, Any] = {
    "streams_by_year": ("line", "Streaming Trends Over Time", partial(agg.streams_over_time, granularity="year")),
    "streams_by_month": ("line", "Monthly Streams", partial(agg.streams_over_time, granularity="month")),
    "top_artists": ("bar", "Top Artists by Total Streams", agg.top_artists),
    "genre_share": ("arc", "Genre Distribution", agg.genre_share),
    "duration_vs_streams": ("point", "Song Length vs. Total Streams", agg.duration_vs_streams),
    "genre_month_heatmap": ("heatmap", "Monthly Streaming Activity by Genre", agg.genre_month_matrix),
    "feature_profile": ("radial", "Audio Feature Profile", agg.feature_profile),
}


def build_default_views(sink_factory: Callable[..., RenderSink] = VegaLiteSink) -> ViewRegistry:
    registry = ViewRegistry()
    for name, (kind, title, aggregate) in DEFAULT_VIEWS.items():
        registry.register(ChartView(name, aggregate, sink_factory(kind, title)))
    return registry
