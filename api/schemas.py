from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field


class FilterStateModel(BaseModel):
    year: Union[int, str] = "all"
    quarter: str = "all"
    department: str = "all"
    location: str = "all"
    name_search: str = ""
    sort: str = "name-asc"
    target_achievement: str = "all"


class ViewRequestModel(BaseModel):
    filters: FilterStateModel = Field(default_factory=FilterStateModel)
    show_target: bool = True
    period1: Optional[str] = None
    period2: Optional[str] = None


class TargetHistoryEntry(BaseModel):
    year: int
    target: Optional[float] = None


class TargetHistoryResponse(BaseModel):
    name: str
    history: List[TargetHistoryEntry]


class RefreshResponse(BaseModel):
    loaded: bool
    records: int
    people_with_targets: int
