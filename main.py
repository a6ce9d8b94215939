from fastapi import FastAPI
from loader_app.config import settings
from loader_app.database.connection import engine, Base
from loader_app.logging_config import configure_logging
from loader_app.api import static, actions, loader

# Import models to ensure they're registered with Base
from loader_app import models  # noqa: F401

configure_logging(settings.log_level)

# Create database tables
Base.metadata.create_all(bind=engine)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Front loader for a link shortener: redirects, pages, stats and API",
    debug=settings.debug
)


@app.get("/")
def read_root():
    """Site root, where unmatched requests end up"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "api": "/api",
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers
# Order matters: the loader catches every path the others leave unclaimed
app.include_router(static.router)
app.include_router(actions.router)
app.include_router(loader.router)
