from __future__ import annotations

import pandas as pd
import pytest

from streamdash.data import LoadResult, normalize_records


@pytest.fixture
def two_rows() -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"track_name": "One", "artist_name": "A", "genre": "pop", "streams": "100", "released_date": "2020-01-01", "duration_ms": "180000"},
            {"track_name": "Two", "artist_name": "B", "genre": "rock", "streams": "200", "released_date": "2021-06-15", "duration_ms": "240000"},
        ]
    )


@pytest.fixture
def two_records(two_rows) -> pd.DataFrame:
    records, _ = normalize_records(two_rows)
    return records


@pytest.fixture
def catalog() -> pd.DataFrame:
    rows = [
        ("Song A1", "Alpha", "pop", 500, "2020-01-10", 200000, 70),
        ("Song B1", "Beta", "rock", 300, "2020-03-05", 240000, 40),
        ("Song C1", "Gamma", "pop", 300, "2021-03-20", 180000, 60),
        ("Song A2", "Alpha", "pop", 100, "2021-07-01", 210000, 80),
        ("Song D1", "Delta", "jazz", 300, "2022-11-11", 300000, ""),
        ("Song B2", "Beta", "", 50, "2022-12-24", 150000, 50),
    ]
    raw = pd.DataFrame(
        rows,
        columns=["track_name", "artist(s)_name", "genre", "streams", "released_date", "duration_ms", "danceability_%"],
    ).astype(str)
    records, _ = normalize_records(raw)
    return records


@pytest.fixture
def make_loader():
    def _make(records: pd.DataFrame, source: str = "test.csv"):
        return lambda: LoadResult(records=records, source=source)

    return _make
