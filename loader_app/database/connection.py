from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from loader_app.config import settings


connect_args = {}
if settings.database_url.startswith("sqlite"):
    # SQLite connections are shared across FastAPI's threadpool
    connect_args = {"check_same_thread": False}

engine = create_engine(settings.database_url, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a database session for one request and close it afterwards"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
