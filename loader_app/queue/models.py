"""
Messages carried by the click queue.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClickEvent(BaseModel):
    """
    Published by the go controller each time a short URL redirects.

    The click worker turns it into a ClickLog row and a clicks increment.
    """

    keyword: str = Field(..., description="The keyword that was followed")
    timestamp: datetime = Field(default_factory=_utcnow, description="When the click happened")

    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="User agent string")
    referrer: Optional[str] = Field(None, description="HTTP referer, 'direct' when absent")
    country_code: Optional[str] = Field(None, description="Two letter country code if known")

    # Set by queue backends that need acknowledgement
    message_id: Optional[str] = Field(None, exclude=True)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "keyword": "abc",
                "timestamp": "2025-10-29T10:30:00Z",
                "ip_address": "192.168.1.1",
                "user_agent": "Mozilla/5.0 (X11; Linux x86_64) Firefox/128.0",
                "referrer": "https://news.ycombinator.com/",
                "country_code": "US",
            }
        }
    )
