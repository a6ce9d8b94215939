from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from loader_app.database.connection import Base


class ClickLog(Base):
    """One row per redirect served, written by the click worker"""
    __tablename__ = "yourls_log"

    click_id = Column(Integer, primary_key=True, autoincrement=True)
    click_time = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    shorturl = Column(String(100), nullable=False, index=True)
    referrer = Column(String(200), nullable=True)
    user_agent = Column(String(255), nullable=True)
    ip_address = Column(String(41), nullable=True)
    country_code = Column(String(2), nullable=True)
