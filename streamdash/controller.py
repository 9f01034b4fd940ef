from __future__ import annotations

import logging
import time
from dataclasses import asdict
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

import pandas as pd

from streamdash.aggregations import summary_kpis
from streamdash.data import LoadResult, dataset_options, empty_records, load_records
from streamdash.debounce import Debouncer
from streamdash.errors import DashboardNotReadyError, DataUnavailableError
from streamdash.filters import FilterCriteria, default_criteria, filter_records, normalize_criteria
from streamdash.views import ViewRegistry, build_default_views

logger = logging.getLogger(__name__)

RESIZE_WAIT_SECONDS = 0.25


class DashboardState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FILTERING = "filtering"
    ERROR = "error"


class DashboardController:
    """Owns the master record set and active criteria; pushes filtered sets to every view.

    Lifecycle: ``start()`` loads data (primary sources, then bundled sample)
    and moves to READY, or to ERROR when nothing can be loaded. Afterwards each
    ``on_criteria_changed`` call re-filters the master set and updates all views.
    """

    def __init__(
        self,
        views: Optional[ViewRegistry] = None,
        *,
        loader: Callable[[], LoadResult] = load_records,
        resize_wait: float = RESIZE_WAIT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.views = views if views is not None else build_default_views()
        self.loader = loader
        self.state = DashboardState.UNINITIALIZED
        self.criteria = FilterCriteria()
        self.source: Optional[str] = None
        self.dropped_rows = 0
        self.error: Optional[str] = None
        self.filtered: pd.DataFrame = empty_records()
        self._records: pd.DataFrame = empty_records()
        self._resizer = Debouncer(self.views.resize_all, resize_wait, clock=clock)

    @property
    def records(self) -> pd.DataFrame:
        return self._records.copy()

    @property
    def ready(self) -> bool:
        return self.state == DashboardState.READY

    def start(self) -> DashboardState:
        if self.state != DashboardState.UNINITIALIZED:
            return self.state
        self.state = DashboardState.LOADING
        try:
            loaded = self.loader()
        except DataUnavailableError as exc:
            logger.error("Dashboard unavailable: %s", exc)
            self.error = str(exc)
            self.state = DashboardState.ERROR
            return self.state
        except Exception as exc:
            logger.exception("Dashboard load failed")
            self.error = f"{type(exc).__name__}: {exc}"
            self.state = DashboardState.ERROR
            return self.state

        self._records = loaded.records.copy()
        self.source = loaded.source
        self.dropped_rows = loaded.dropped_rows
        self.criteria = default_criteria(self._records)
        self.filtered = self._records
        self.views.update_all(self._records)
        self.state = DashboardState.READY
        logger.info("Dashboard ready: %d record(s) from %s", len(self._records), self.source)
        return self.state

    def on_criteria_changed(self, criteria: Union[FilterCriteria, Mapping[str, Any]]) -> Dict[str, pd.DataFrame]:
        if self.state != DashboardState.READY:
            raise DashboardNotReadyError(f"dashboard is {self.state.value}")
        if not isinstance(criteria, FilterCriteria):
            criteria = normalize_criteria(criteria)

        self.state = DashboardState.FILTERING
        try:
            filtered = filter_records(self._records, criteria)
            results = self.views.update_all(filtered)
        finally:
            self.state = DashboardState.READY
        self.criteria = criteria
        self.filtered = filtered
        logger.debug("Criteria %s matched %d of %d record(s)", criteria, len(filtered), len(self._records))
        return results

    def reset_filters(self) -> Dict[str, pd.DataFrame]:
        return self.on_criteria_changed(default_criteria(self._records))

    def request_resize(self, width: int, height: int) -> None:
        self._resizer.trigger(width, height)

    def poll(self) -> bool:
        """Run a pending resize once the quiet period has elapsed."""
        return self._resizer.poll()

    def options(self) -> Dict[str, Any]:
        return dataset_options(self._records)

    def snapshot(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "state": self.state.value,
            "source": self.source,
            "error": self.error,
            "criteria": asdict(self.criteria),
            "options": self.options(),
            "record_count": int(len(self._records)),
            "filtered_count": int(len(self.filtered)),
            "dropped_rows": self.dropped_rows,
            "kpis": summary_kpis(self.filtered),
            "views": {},
        }
        for view in self.views:
            result = getattr(view, "result", None)
            sink = getattr(view, "sink", None)
            payload["views"][view.name] = {
                "rows": result.to_dict(orient="records") if result is not None else [],
                "spec": getattr(sink, "spec", None),
            }
        return payload
