from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DailyClicks(BaseModel):
    date: str
    clicks: int


class LinkStats(BaseModel):
    """
    Everything the stats view shows for one keyword.

    When `aggregate` is set the counters cover every keyword pointing at
    the same long URL, listed in `aggregated_keywords`.
    """
    keyword: str
    shorturl: str
    url: str
    title: Optional[str] = None
    created: Optional[datetime] = None
    clicks: int = 0
    aggregate: bool = False
    aggregated_keywords: List[str] = Field(default_factory=list)
    referrers: Dict[str, int] = Field(default_factory=dict)
    countries: Dict[str, int] = Field(default_factory=dict)
    daily_clicks: List[DailyClicks] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
