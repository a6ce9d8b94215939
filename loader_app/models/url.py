from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from loader_app.database.connection import Base


class ShortURL(Base):
    """
    A keyword and the long URL it redirects to.

    `clicks` is an aggregate counter kept up to date by the click worker;
    the per-click detail lives in ClickLog.
    """
    __tablename__ = "yourls_url"

    keyword = Column(String(100), primary_key=True)
    url = Column(Text, nullable=False)
    title = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now())
    ip = Column(String(41), nullable=True)
    clicks = Column(Integer, default=0, nullable=False)
