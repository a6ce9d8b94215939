"""
Test configuration and fixtures for the short-link loader.
This centralizes all test setup, making individual tests clean.
"""

import os

# Settings are read at import time: use in-process backends and a test database
os.environ["CACHE_BACKEND"] = "memory"
os.environ["QUEUE_BACKEND"] = "memory"
os.environ["DATABASE_URL"] = "sqlite:///./test.db"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from loader_app.cache.factory import CacheFactory
from loader_app.cache.strategies import InMemoryCache
from loader_app.database.connection import Base, get_db
from loader_app.dependencies import get_cache, get_page_service, get_queue
from loader_app.models.url import ShortURL
from loader_app.queue.factory import QueueFactory
from loader_app.queue.strategies import InMemoryQueue
from loader_app.services.keyword_factory import KeywordFactory
from loader_app.services.keyword_service import KeywordService
from loader_app.services.page_service import PageService

# Test database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ABOUT_PAGE = "<html><body><h1>About {{ app_name }}</h1></body></html>\n"


def _reset_singletons():
    CacheFactory.clear_instance()
    QueueFactory.clear_instance()
    KeywordFactory.clear_instances()
    get_cache.cache_clear()
    get_queue.cache_clear()


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def pages_dir(tmp_path):
    """A pages directory holding a single "about" page"""
    directory = tmp_path / "pages"
    directory.mkdir()
    (directory / "about.html").write_text(ABOUT_PAGE)
    return directory


@pytest.fixture(scope="function")
def client(db_session, pages_dir):
    """
    Create a test client with database and pages dependencies overridden.
    This is the main fixture that tests will use.
    """
    def override_get_db():
        yield db_session

    _reset_singletons()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_page_service] = lambda: PageService(str(pages_dir))

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    _reset_singletons()


@pytest.fixture
def queue(client):
    """The click queue the running app publishes to"""
    return get_queue()


@pytest.fixture
def keyword_service(db_session):
    """A keyword service with its own in-memory cache and queue"""
    KeywordFactory.clear_instances()
    service = KeywordService(db=db_session, cache=InMemoryCache(), queue=InMemoryQueue())
    yield service
    KeywordFactory.clear_instances()


@pytest.fixture
def make_link(db_session):
    """Insert a ShortURL row directly"""
    def _make_link(keyword, url, clicks=0, title=None):
        link = ShortURL(keyword=keyword, url=url, clicks=clicks, title=title)
        db_session.add(link)
        db_session.commit()
        return link
    return _make_link


@pytest.fixture
def session_factory(db_session):
    """Session factory bound to the test database, for code that opens its own sessions"""
    return TestingSessionLocal
