from sqlalchemy import Column, Integer, String, Text
from loader_app.database.connection import Base


class Option(Base):
    """Key/value store for application state such as the keyword counter"""
    __tablename__ = "yourls_options"

    option_id = Column(Integer, primary_key=True, autoincrement=True)
    option_name = Column(String(64), unique=True, nullable=False)
    option_value = Column(Text, nullable=False, default="")
