from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field

from loader_app.config import settings


class LinkInfo(BaseModel):
    """Serialized ShortURL row as returned by the API"""
    keyword: str
    url: str
    title: Optional[str] = None
    timestamp: Optional[datetime] = None
    ip: Optional[str] = None
    clicks: int = 0

    @computed_field
    @property
    def shorturl(self) -> str:
        return f"{settings.site_url.rstrip('/')}/{self.keyword}"

    model_config = ConfigDict(from_attributes=True)
