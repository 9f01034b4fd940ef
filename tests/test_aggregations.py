from __future__ import annotations

import pandas as pd
import pytest

from streamdash import aggregations as agg
from streamdash.data import AUDIO_FEATURES, normalize_records


def _rows(result: pd.DataFrame, *cols: str):
    return list(result[list(cols)].itertuples(index=False, name=None))


def test_yearly_series_scenario(two_records):
    result = agg.streams_over_time(two_records)
    assert _rows(result, "period", "streams") == [(2020, 100), (2021, 200)]


def test_monthly_series(catalog):
    result = agg.streams_over_time(catalog, granularity="month")
    assert result["period"].iloc[0] == pd.Timestamp("2020-01-01")
    assert result["period"].is_monotonic_increasing
    assert result["streams"].sum() == catalog["streams"].sum()


def test_series_rejects_unknown_granularity(catalog):
    with pytest.raises(ValueError):
        agg.streams_over_time(catalog, granularity="week")


def test_top_artists_scenario(two_records):
    assert _rows(agg.top_artists(two_records), "artist_name", "streams") == [("B", 200), ("A", 100)]


def test_top_artists_ties_keep_first_seen_order(catalog):
    # Gamma and Delta tie at 300; Gamma is seen first.
    result = agg.top_artists(catalog)
    assert _rows(result, "artist_name", "streams") == [("Alpha", 600), ("Beta", 350), ("Gamma", 300), ("Delta", 300)]


def test_top_artists_truncates_and_sorts():
    raw = pd.DataFrame(
        {"artist_name": [f"artist{i}" for i in range(15)], "streams": [str(i) for i in range(15)], "released_date": "2020-01-01"}
    )
    records, _ = normalize_records(raw)
    result = agg.top_artists(records)
    assert len(result) == 10
    assert list(result["streams"]) == sorted(result["streams"], reverse=True)
    assert result["artist_name"].iloc[0] == "artist14"
    assert len(agg.top_artists(records, n=3)) == 3


def test_genre_share_counts_top_five():
    genres = ["a"] * 6 + ["b"] * 5 + ["c"] * 4 + ["d"] * 3 + ["e"] * 2 + ["f"]
    raw = pd.DataFrame({"genre": genres, "streams": "1", "released_date": "2020-01-01", "artist_name": "x"})
    records, _ = normalize_records(raw)
    result = agg.genre_share(records)
    assert list(result["genre"]) == ["a", "b", "c", "d", "e"]
    assert list(result["value"]) == [6, 5, 4, 3, 2]
    assert result["share"].sum() == pytest.approx(20 / 21)


def test_genre_share_by_streams(catalog):
    result = agg.genre_share(catalog, n=None, weight="streams")
    assert _rows(result, "genre", "value") == [("pop", 900), ("rock", 300), ("jazz", 300), ("Unknown", 50)]
    assert result["share"].sum() == pytest.approx(1.0)


def test_genre_month_matrix_is_dense(catalog):
    result = agg.genre_month_matrix(catalog)
    genres = catalog["genre"].nunique()
    assert len(result) == genres * 12
    pop_jan = result[(result["genre"] == "pop") & (result["month"] == 1)]["streams"].iloc[0]
    assert pop_jan == 500
    pop_mar = result[(result["genre"] == "pop") & (result["month"] == 3)]["streams"].iloc[0]
    assert pop_mar == 300
    assert (result[result["genre"] == "jazz"]["streams"] == 0).sum() == 11


def test_duration_vs_streams_one_point_per_record(catalog):
    result = agg.duration_vs_streams(catalog)
    assert len(result) == len(catalog)
    assert result["duration_min"].iloc[0] == pytest.approx(200000 / 60000)


def test_feature_profile_means(catalog):
    result = agg.feature_profile(catalog)
    assert list(result["feature"]) == AUDIO_FEATURES
    dance = result.set_index("feature")["value"]["danceability"]
    assert dance == pytest.approx((70 + 40 + 60 + 80 + 50) / 5)
    assert result.set_index("feature")["value"]["energy"] == 0.0


def test_summary_kpis(catalog):
    kpis = agg.summary_kpis(catalog)
    assert kpis["tracks"] == 6
    assert kpis["total_streams"] == 1550
    assert kpis["artists"] == 4
    assert kpis["genres"] == 4


@pytest.mark.parametrize(
    "fn",
    [
        agg.streams_over_time,
        agg.top_artists,
        agg.genre_share,
        agg.genre_month_matrix,
        agg.duration_vs_streams,
    ],
)
def test_empty_input_gives_empty_result(two_records, fn):
    empty = two_records.iloc[0:0]
    result = fn(empty)
    assert isinstance(result, pd.DataFrame)
    assert result.empty


def test_empty_input_feature_profile_is_zero_filled(two_records):
    result = agg.feature_profile(two_records.iloc[0:0])
    assert len(result) == len(AUDIO_FEATURES)
    assert (result["value"] == 0.0).all()
    assert agg.summary_kpis(two_records.iloc[0:0])["tracks"] == 0


def test_aggregations_are_idempotent(catalog):
    for fn in (agg.streams_over_time, agg.top_artists, agg.genre_share, agg.genre_month_matrix, agg.feature_profile):
        pd.testing.assert_frame_equal(fn(catalog), fn(catalog))
