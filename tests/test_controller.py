from __future__ import annotations

from datetime import date

import pandas as pd
import pytest

from streamdash.controller import DashboardController, DashboardState
from streamdash.errors import DashboardNotReadyError, DataUnavailableError
from streamdash.filters import FilterCriteria
from streamdash.views import build_default_views


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def controller(two_records, make_loader):
    ctl = DashboardController(loader=make_loader(two_records))
    ctl.start()
    return ctl


def test_start_moves_to_ready(controller):
    assert controller.state == DashboardState.READY
    assert controller.source == "test.csv"
    assert controller.criteria == FilterCriteria(start_date=date(2020, 1, 1), end_date=date(2021, 6, 15))
    top = controller.views.get("top_artists").result
    assert list(top["artist_name"]) == ["B", "A"]


def test_start_failure_is_error_state():
    def loader():
        raise DataUnavailableError("nothing reachable")

    ctl = DashboardController(loader=loader)
    assert ctl.start() == DashboardState.ERROR
    assert ctl.error == "nothing reachable"
    with pytest.raises(DashboardNotReadyError):
        ctl.on_criteria_changed(FilterCriteria())


def test_unexpected_loader_failure_is_error_state():
    def loader():
        raise OSError("disk gone")

    ctl = DashboardController(loader=loader)
    assert ctl.start() == DashboardState.ERROR
    assert "disk gone" in ctl.error
    assert ctl.start() == DashboardState.ERROR


def test_criteria_change_before_start_is_rejected(two_records, make_loader):
    ctl = DashboardController(loader=make_loader(two_records))
    with pytest.raises(DashboardNotReadyError):
        ctl.on_criteria_changed(FilterCriteria())


def test_genre_criteria_reaches_every_view(controller):
    results = controller.on_criteria_changed(FilterCriteria(genre="rock"))
    assert controller.state == DashboardState.READY
    assert len(controller.filtered) == 1
    assert list(results["top_artists"]["artist_name"]) == ["B"]
    assert list(results["streams_by_year"]["period"]) == [2021]
    assert set(results["genre_month_heatmap"]["genre"]) == {"rock"}


def test_empty_filter_result_is_not_an_error(controller):
    results = controller.on_criteria_changed({"start_date": "2022-01-01"})
    assert controller.state == DashboardState.READY
    assert controller.filtered.empty
    assert results["top_artists"].empty
    assert (results["feature_profile"]["value"] == 0).all()
    assert controller.snapshot()["kpis"]["tracks"] == 0


def test_same_criteria_gives_identical_results(controller):
    criteria = FilterCriteria(genre="pop")
    first = controller.on_criteria_changed(criteria)
    second = controller.on_criteria_changed(criteria)
    assert first.keys() == second.keys()
    for name in first:
        pd.testing.assert_frame_equal(first[name], second[name])


def test_reset_restores_defaults(controller):
    controller.on_criteria_changed(FilterCriteria(artist="A"))
    controller.reset_filters()
    assert controller.criteria == FilterCriteria(start_date=date(2020, 1, 1), end_date=date(2021, 6, 15))
    assert len(controller.filtered) == 2


def test_master_set_is_not_exposed_for_mutation(controller):
    controller.records.loc[0, "streams"] = 999
    assert controller.records["streams"].iloc[0] == 100


def test_resize_is_debounced(two_records, make_loader):
    clock = FakeClock()
    ctl = DashboardController(build_default_views(), loader=make_loader(two_records), clock=clock)
    ctl.start()
    ctl.request_resize(800, 300)
    ctl.request_resize(900, 350)
    assert not ctl.poll()
    clock.now += 1
    assert ctl.poll()
    assert ctl.views.get("top_artists").sink.spec["width"] == 900


def test_snapshot_payload(controller):
    snap = controller.snapshot()
    assert snap["state"] == "ready"
    assert snap["record_count"] == 2
    assert snap["options"]["genres"] == ["pop", "rock"]
    assert set(snap["views"]) == set(controller.views.names())
    assert snap["views"]["top_artists"]["rows"][0]["artist_name"] == "B"
    assert snap["views"]["top_artists"]["spec"] is not None
