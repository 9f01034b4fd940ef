from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

import pandas as pd

from streamdash.data import AUDIO_FEATURES

Granularity = Literal["year", "month"]
ShareWeight = Literal["count", "streams"]

TOP_ARTISTS_N = 10
TOP_GENRES_N = 5
MONTHS = list(range(1, 13))


def streams_over_time(records: pd.DataFrame, granularity: Granularity = "year") -> pd.DataFrame:
    if records.empty:
        return pd.DataFrame({"period": pd.Series(dtype=object), "streams": pd.Series(dtype="int64")})
    dates = records["released_date"]
    if granularity == "year":
        period = dates.dt.year.astype("int64").rename("period")
    elif granularity == "month":
        period = dates.dt.to_period("M").dt.to_timestamp().rename("period")
    else:
        raise ValueError(f"unknown granularity: {granularity!r}")
    out = (
        records["streams"]
        .groupby(period)
        .sum()
        .reset_index()
        .sort_values("period")
        .reset_index(drop=True)
    )
    out["streams"] = out["streams"].astype("int64")
    return out


def _ranked_sum(records: pd.DataFrame, key: str, value: pd.Series) -> pd.DataFrame:
    # groupby(sort=False) keeps first-seen order and mergesort is stable,
    # so equal totals stay in order of first appearance.
    grouped = value.groupby(records[key], sort=False).sum()
    ranked = grouped.sort_values(ascending=False, kind="mergesort")
    return ranked.rename_axis(key).reset_index(name="value")


def top_artists(records: pd.DataFrame, n: int = TOP_ARTISTS_N) -> pd.DataFrame:
    if records.empty:
        return pd.DataFrame({"artist_name": pd.Series(dtype="string"), "streams": pd.Series(dtype="int64")})
    ranked = _ranked_sum(records, "artist_name", records["streams"]).head(max(0, int(n)))
    ranked = ranked.rename(columns={"value": "streams"})
    ranked["streams"] = ranked["streams"].astype("int64")
    return ranked.reset_index(drop=True)


def genre_share(records: pd.DataFrame, n: Optional[int] = TOP_GENRES_N, weight: ShareWeight = "count") -> pd.DataFrame:
    """Genres ranked by track count (or streams), truncated to the top ``n``.

    Genres past ``n`` are dropped rather than folded into an "Other" slice;
    ``share`` is relative to the full total so the kept slices may sum below 1.
    """
    if records.empty:
        return pd.DataFrame(
            {"genre": pd.Series(dtype="string"), "value": pd.Series(dtype="int64"), "share": pd.Series(dtype="float64")}
        )
    if weight == "count":
        value = pd.Series(1, index=records.index, dtype="int64")
    elif weight == "streams":
        value = records["streams"]
    else:
        raise ValueError(f"unknown weight: {weight!r}")
    ranked = _ranked_sum(records, "genre", value)
    total = float(ranked["value"].sum())
    ranked["share"] = ranked["value"] / total if total else 0.0
    if n is not None:
        ranked = ranked.head(max(0, int(n)))
    ranked["value"] = ranked["value"].astype("int64")
    return ranked.reset_index(drop=True)


def genre_month_matrix(records: pd.DataFrame) -> pd.DataFrame:
    """Streams per (genre, release month), dense over genres x 12 months."""
    if records.empty:
        return pd.DataFrame(
            {"genre": pd.Series(dtype="string"), "month": pd.Series(dtype="int64"), "streams": pd.Series(dtype="int64")}
        )
    genres = sorted(records["genre"].astype(str).unique())
    month = records["released_date"].dt.month.astype("int64").rename("month")
    sums = records["streams"].groupby([records["genre"].astype(str), month]).sum()
    grid = pd.MultiIndex.from_product([genres, MONTHS], names=["genre", "month"])
    out = sums.reindex(grid, fill_value=0).reset_index(name="streams")
    out["month"] = out["month"].astype("int64")
    out["streams"] = out["streams"].astype("int64")
    return out


def duration_vs_streams(records: pd.DataFrame) -> pd.DataFrame:
    cols = ["track_name", "artist_name", "genre", "duration_min", "streams"]
    if records.empty:
        return pd.DataFrame({c: pd.Series(dtype=object) for c in cols}).astype(
            {"duration_min": "float64", "streams": "int64"}
        )
    return records[cols].reset_index(drop=True)


def feature_profile(records: pd.DataFrame, features: Optional[List[str]] = None) -> pd.DataFrame:
    features = list(features or AUDIO_FEATURES)
    values = []
    for name in features:
        mean = None
        if not records.empty and name in records.columns:
            mean = pd.to_numeric(records[name], errors="coerce").mean(skipna=True)
        values.append(float(mean) if mean is not None and pd.notna(mean) else 0.0)
    return pd.DataFrame({"feature": features, "value": values})


def summary_kpis(records: pd.DataFrame) -> Dict[str, Any]:
    if records.empty:
        return {"tracks": 0, "total_streams": 0, "artists": 0, "genres": 0, "avg_duration_min": 0.0}
    return {
        "tracks": int(len(records)),
        "total_streams": int(records["streams"].sum()),
        "artists": int(records["artist_name"].nunique()),
        "genres": int(records["genre"].nunique()),
        "avg_duration_min": float(records["duration_min"].mean()),
    }
