from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional, Union

import pandas as pd

from streamdash.data import Record

ALL_GENRES = "All Genres"
ALL_ARTISTS = "All Artists"


@dataclass(frozen=True)
class FilterCriteria:
    genre: str = ALL_GENRES
    artist: str = ALL_ARTISTS
    start_date: Optional[date] = None
    end_date: Optional[date] = None


def _as_date(value: object) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        ts = pd.to_datetime(str(value).strip(), errors="coerce")
    except Exception:
        return None
    if pd.isna(ts):
        return None
    return ts.date()


def _as_choice(value: object, wildcard: str) -> str:
    if value is None:
        return wildcard
    s = str(value).strip()
    if not s or s == wildcard:
        return wildcard
    return s


def normalize_criteria(raw: Optional[Mapping[str, Any]]) -> FilterCriteria:
    raw = raw or {}
    start = _as_date(raw.get("start_date"))
    end = _as_date(raw.get("end_date"))
    if start is not None and end is not None and start > end:
        start, end = end, start
    return FilterCriteria(
        genre=_as_choice(raw.get("genre"), ALL_GENRES),
        artist=_as_choice(raw.get("artist"), ALL_ARTISTS),
        start_date=start,
        end_date=end,
    )


def default_criteria(records: pd.DataFrame) -> FilterCriteria:
    """Wildcards plus the full observed release-date span."""
    if records.empty:
        return FilterCriteria()
    dates = records["released_date"]
    return FilterCriteria(start_date=dates.min().date(), end_date=dates.max().date())


def _field(record: Union[Record, Mapping[str, Any]], name: str) -> Any:
    if isinstance(record, Record):
        return getattr(record, name)
    return record[name]


def matches(record: Union[Record, Mapping[str, Any]], criteria: FilterCriteria) -> bool:
    released = _as_date(_field(record, "released_date"))
    if criteria.genre != ALL_GENRES and _field(record, "genre") != criteria.genre:
        return False
    if criteria.artist != ALL_ARTISTS and _field(record, "artist_name") != criteria.artist:
        return False
    if criteria.start_date is not None and (released is None or released < criteria.start_date):
        return False
    if criteria.end_date is not None and (released is None or released > criteria.end_date):
        return False
    return True


def filter_mask(records: pd.DataFrame, criteria: FilterCriteria) -> pd.Series:
    mask = pd.Series(True, index=records.index)
    if records.empty:
        return mask
    if criteria.genre != ALL_GENRES:
        mask &= records["genre"] == criteria.genre
    if criteria.artist != ALL_ARTISTS:
        mask &= records["artist_name"] == criteria.artist
    released = records["released_date"].dt.normalize()
    if criteria.start_date is not None:
        mask &= released >= pd.Timestamp(criteria.start_date)
    if criteria.end_date is not None:
        mask &= released <= pd.Timestamp(criteria.end_date)
    return mask.fillna(False).astype(bool)


def filter_records(records: pd.DataFrame, criteria: FilterCriteria) -> pd.DataFrame:
    return records[filter_mask(records, criteria)].reset_index(drop=True)
