from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from streamdash.filters import ALL_ARTISTS, ALL_GENRES


class FilterCriteriaModel(BaseModel):
    genre: str = ALL_GENRES
    artist: str = ALL_ARTISTS
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class OptionsResponse(BaseModel):
    genres: List[str]
    artists: List[str]
    min_date: Optional[date] = None
    max_date: Optional[date] = None


class StatusResponse(BaseModel):
    state: str
    source: Optional[str] = None
    error: Optional[str] = None
    record_count: int = 0
    views: List[str] = Field(default_factory=list)
