from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import requests

from streamdash.errors import DataUnavailableError, SourceError

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
DEFAULT_SOURCES = [
    str(DATA_DIR / "smss.csv"),
    str(DATA_DIR / "Spotify-Most-Streamed-Songs.csv"),
]
SOURCES_ENV = "STREAMDASH_SOURCES"
HTTP_TIMEOUT = float(os.getenv("STREAMDASH_HTTP_TIMEOUT", "10"))

SAMPLE_SOURCE = "sample"
UNKNOWN_GENRE = "Unknown"

AUDIO_FEATURES = [
    "danceability",
    "energy",
    "valence",
    "acousticness",
    "instrumentalness",
    "liveness",
    "speechiness",
]

RECORD_COLUMNS = [
    "track_name",
    "artist_name",
    "released_date",
    "streams",
    "duration_ms",
    "genre",
    "duration_min",
] + AUDIO_FEATURES

RAW_COLUMNS = {
    "track_name": "track_name",
    "Track Name": "track_name",
    "track": "track_name",
    "artist_name": "artist_name",
    "artist(s)_name": "artist_name",
    "Artist Name": "artist_name",
    "artist": "artist_name",
    "released_date": "released_date",
    "release_date": "released_date",
    "Release Date": "released_date",
    "released_year": "released_year",
    "released_month": "released_month",
    "released_day": "released_day",
    "streams": "streams",
    "Streams": "streams",
    "duration_ms": "duration_ms",
    "Duration (ms)": "duration_ms",
    "genre": "genre",
    "Genre": "genre",
    **{f"{name}_%": name for name in AUDIO_FEATURES},
    **{name: name for name in AUDIO_FEATURES},
}

# Bundled fallback used when no CSV source is reachable.
SAMPLE_RECORDS: List[Dict[str, str]] = [
    {
        "track_name": "Seven (feat. Latto) (Explicit Ver.)",
        "artist_name": "Latto, Jung Kook",
        "released_date": "2023-07-14",
        "streams": "141381703",
        "duration_ms": "184000",
        "genre": "K-Pop",
        "danceability_%": "80",
        "energy_%": "83",
        "valence_%": "89",
        "acousticness_%": "31",
        "instrumentalness_%": "0",
        "liveness_%": "8",
        "speechiness_%": "4",
    },
    {
        "track_name": "LALA",
        "artist_name": "Myke Towers",
        "released_date": "2023-03-23",
        "streams": "133716286",
        "duration_ms": "197000",
        "genre": "Latin",
        "danceability_%": "71",
        "energy_%": "74",
        "valence_%": "61",
        "acousticness_%": "7",
        "instrumentalness_%": "0",
        "liveness_%": "10",
        "speechiness_%": "4",
    },
    {
        "track_name": "vampire",
        "artist_name": "Olivia Rodrigo",
        "released_date": "2023-06-30",
        "streams": "140003974",
        "duration_ms": "219000",
        "genre": "Pop",
        "danceability_%": "51",
        "energy_%": "53",
        "valence_%": "32",
        "acousticness_%": "17",
        "instrumentalness_%": "0",
        "liveness_%": "31",
        "speechiness_%": "6",
    },
    {
        "track_name": "Cruel Summer",
        "artist_name": "Taylor Swift",
        "released_date": "2019-08-23",
        "streams": "800840817",
        "duration_ms": "178000",
        "genre": "Pop",
        "danceability_%": "55",
        "energy_%": "72",
        "valence_%": "58",
        "acousticness_%": "11",
        "instrumentalness_%": "0",
        "liveness_%": "11",
        "speechiness_%": "15",
    },
    {
        "track_name": "WHERE SHE GOES",
        "artist_name": "Bad Bunny",
        "released_date": "2023-05-18",
        "streams": "303236322",
        "duration_ms": "231000",
        "genre": "Latin",
        "danceability_%": "65",
        "energy_%": "80",
        "valence_%": "23",
        "acousticness_%": "14",
        "instrumentalness_%": "63",
        "liveness_%": "11",
        "speechiness_%": "6",
    },
]


@dataclass(frozen=True)
class Record:
    track_name: str
    artist_name: str
    released_date: datetime
    streams: int
    duration_ms: int
    genre: str = UNKNOWN_GENRE
    features: Dict[str, float] = field(default_factory=dict)

    @property
    def duration_minutes(self) -> float:
        return self.duration_ms / 60000

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Record":
        features = {}
        for name in AUDIO_FEATURES:
            value = row.get(name)
            if value is not None and not pd.isna(value):
                features[name] = float(value)
        return cls(
            track_name=str(row.get("track_name", "")),
            artist_name=str(row.get("artist_name", "")),
            released_date=pd.Timestamp(row["released_date"]).to_pydatetime(),
            streams=int(row.get("streams", 0)),
            duration_ms=int(row.get("duration_ms", 0)),
            genre=str(row.get("genre", UNKNOWN_GENRE)),
            features=features,
        )


@dataclass
class LoadResult:
    records: pd.DataFrame
    source: str
    dropped_rows: int = 0
    errors: List[str] = field(default_factory=list)


def empty_records() -> pd.DataFrame:
    df = pd.DataFrame({c: pd.Series(dtype=object) for c in RECORD_COLUMNS})
    df["released_date"] = pd.Series(dtype="datetime64[ns]")
    df["streams"] = pd.Series(dtype="int64")
    df["duration_ms"] = pd.Series(dtype="int64")
    df["duration_min"] = pd.Series(dtype="float64")
    for name in AUDIO_FEATURES:
        df[name] = pd.Series(dtype="float64")
    return df


def drop_duplicate_columns(df: pd.DataFrame) -> pd.DataFrame:
    return df.loc[:, ~df.columns.duplicated()]


def clean_text(series: pd.Series) -> pd.Series:
    series = series.astype("string").str.strip()
    return series.replace("", pd.NA)


def to_count(series: pd.Series) -> pd.Series:
    """Coerce to a non-negative int64 column; junk and blanks become 0."""
    values = pd.to_numeric(series, errors="coerce").astype("float64")
    values = values.where(np.isfinite(values), 0.0)
    return values.clip(lower=0).astype("int64")


def parse_release_dates(df: pd.DataFrame) -> pd.Series:
    dates = pd.Series(pd.NaT, index=df.index, dtype="datetime64[ns]")
    if "released_date" in df.columns:
        text = clean_text(df["released_date"])
        dates = pd.to_datetime(text, errors="coerce", format="%Y-%m-%d")
    if "released_year" in df.columns:
        parts = pd.DataFrame(
            {
                "year": pd.to_numeric(df["released_year"], errors="coerce"),
                "month": pd.to_numeric(df.get("released_month", 1), errors="coerce"),
                "day": pd.to_numeric(df.get("released_day", 1), errors="coerce"),
            },
            index=df.index,
        )
        parts[["month", "day"]] = parts[["month", "day"]].fillna(1)
        valid = parts.notna().all(axis=1)
        from_parts = pd.Series(pd.NaT, index=df.index, dtype="datetime64[ns]")
        if valid.any():
            from_parts[valid] = pd.to_datetime(parts[valid].astype("int64"), errors="coerce")
        dates = dates.fillna(from_parts)
    return dates


def normalize_records(raw: pd.DataFrame) -> Tuple[pd.DataFrame, int]:
    """Turn raw CSV rows into the record schema.

    Returns the normalized frame and the number of rows dropped because their
    release date could not be parsed. Numeric junk is defaulted to 0 instead.
    """
    if raw is None or raw.empty:
        return empty_records(), 0

    df = raw.rename(columns=lambda c: RAW_COLUMNS.get(str(c).strip(), str(c).strip()))
    df = drop_duplicate_columns(df).copy()

    released = parse_release_dates(df)
    keep = released.notna()
    dropped = int((~keep).sum())
    if dropped:
        logger.warning("Dropping %d record(s) with unparseable release date", dropped)

    df = df[keep]
    out = pd.DataFrame(index=df.index)
    for col in ["track_name", "artist_name"]:
        out[col] = clean_text(df[col]).fillna("") if col in df.columns else ""
    out["released_date"] = released[keep]
    out["streams"] = to_count(df["streams"]) if "streams" in df.columns else 0
    out["duration_ms"] = to_count(df["duration_ms"]) if "duration_ms" in df.columns else 0
    out["genre"] = clean_text(df["genre"]).fillna(UNKNOWN_GENRE) if "genre" in df.columns else UNKNOWN_GENRE
    out["duration_min"] = out["duration_ms"] / 60000.0
    for name in AUDIO_FEATURES:
        out[name] = pd.to_numeric(df[name], errors="coerce").astype("float64") if name in df.columns else float("nan")

    if out.empty:
        return empty_records(), dropped
    out = out.astype({"track_name": "string", "artist_name": "string", "genre": "string", "streams": "int64", "duration_ms": "int64"})
    return out[RECORD_COLUMNS].reset_index(drop=True), dropped


def iter_records(records: pd.DataFrame) -> Iterator[Record]:
    for row in records.to_dict(orient="records"):
        yield Record.from_row(row)


# ---------------- Loaders ----------------
def get_sources() -> List[str]:
    configured = os.getenv(SOURCES_ENV, "").strip()
    if not configured:
        return list(DEFAULT_SOURCES)
    return [p.strip() for p in configured.split(",") if p.strip()]


def is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def source_signature(sources: Sequence[str]) -> Tuple[Tuple[str, float], ...]:
    sig = []
    for source in sources:
        path = Path(source)
        mtime = path.stat().st_mtime if not is_remote(source) and path.exists() else 0.0
        sig.append((source, mtime))
    return tuple(sig)


def read_csv_source(source: str) -> pd.DataFrame:
    if is_remote(source):
        try:
            response = requests.get(source, timeout=HTTP_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise SourceError(source, f"fetch failed ({exc})") from exc
        buffer: Any = io.StringIO(response.text)
    else:
        path = Path(source)
        if not path.exists():
            raise SourceError(source, "file not found")
        buffer = path

    try:
        df = pd.read_csv(buffer, dtype=str, keep_default_na=False, encoding_errors="replace")
    except OSError as exc:
        raise SourceError(source, f"unreadable ({exc})") from exc
    except ValueError as exc:
        # ParserError, EmptyDataError and UnicodeDecodeError are all ValueErrors
        raise SourceError(source, f"malformed CSV ({exc})") from exc
    if df.empty:
        raise SourceError(source, "no rows")
    return df


def load_sample_frame() -> pd.DataFrame:
    return pd.DataFrame(SAMPLE_RECORDS)


def load_records(sources: Optional[Iterable[str]] = None, *, use_sample: bool = True) -> LoadResult:
    """Load the master record set, falling back source by source.

    Raises DataUnavailableError when neither a source nor the bundled sample
    produces at least one valid record.
    """
    sources = list(get_sources() if sources is None else sources)
    errors: List[str] = []
    for source in sources:
        try:
            raw = read_csv_source(source)
        except SourceError as exc:
            logger.warning("CSV source unavailable: %s", exc)
            errors.append(str(exc))
            continue
        records, dropped = normalize_records(raw)
        if records.empty:
            msg = f"{source}: no valid records"
            logger.warning("CSV source unusable: %s", msg)
            errors.append(msg)
            continue
        logger.info("Loaded %d record(s) from %s", len(records), source)
        return LoadResult(records=records, source=source, dropped_rows=dropped, errors=errors)

    if use_sample:
        records, dropped = normalize_records(load_sample_frame())
        if not records.empty:
            logger.warning("Falling back to bundled sample data (%d records)", len(records))
            return LoadResult(records=records, source=SAMPLE_SOURCE, dropped_rows=dropped, errors=errors)

    raise DataUnavailableError("No data source available: " + ("; ".join(errors) or "no sources configured"))


@lru_cache(maxsize=4)
def _load_dashboard_data_cached(sig: Tuple[Tuple[str, float], ...]) -> LoadResult:
    return load_records([name for name, _ in sig])


def load_dashboard_data() -> LoadResult:
    return _load_dashboard_data_cached(source_signature(get_sources()))


def dataset_options(records: pd.DataFrame) -> Dict[str, Any]:
    if records.empty:
        return {"genres": [], "artists": [], "min_date": None, "max_date": None}
    dates = records["released_date"]
    return {
        "genres": sorted(records["genre"].dropna().astype(str).unique().tolist()),
        "artists": sorted(a for a in records["artist_name"].dropna().astype(str).unique().tolist() if a),
        "min_date": dates.min().date(),
        "max_date": dates.max().date(),
    }
