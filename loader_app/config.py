from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


DEFAULT_ALLOWED_PROTOCOLS = [
    "http://", "https://", "ftp://", "ftps://", "mailto:", "news:",
    "irc://", "irc6://", "ircs://", "gopher://", "telnet://", "feed://",
    "mms://", "rtsp://", "svn://", "git://", "nntp://", "ssh://", "sftp://",
]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file (the installer writes this one)
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "Short-link Loader"
    app_version: str = "1.0.0"
    secret_key: str = "your-secret-key-here-change-in-production"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Site
    site_url: str = "http://127.0.0.1:8000"
    admin_url: Optional[str] = None  # Defaults to {site_url}/admin/index.php

    # Database
    database_url: str = "sqlite:///./loader.db"

    # Keywords
    url_convert: int = 36  # 36: 0-9a-z, 62: 0-9a-zA-Z
    unique_urls: bool = True  # False allows several keywords per long URL
    redirect_status: int = 301
    reserved_keywords: List[str] = [
        "api", "admin", "css", "js", "images", "plugins", "pages", "user",
        "favicon.ico", "robots.txt", "health", "docs", "redoc",
    ]
    allowed_protocols: List[str] = DEFAULT_ALLOWED_PROTOCOLS

    # Keyword generation strategy
    keyword_strategy: str = "sequential"  # Options: "sequential", "random"
    random_keyword_length: int = 5
    max_retries: int = 10

    # Pages
    pages_dir: str = "pages"

    # API authentication
    private: bool = False
    api_signature: Optional[str] = None
    admin_username: str = "admin"
    admin_password: Optional[str] = None

    # Cache settings
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 3600

    # Click queue settings
    queue_backend: str = "redis_streams"  # Options: "redis_streams", "memory"
    queue_name: str = "clicks"
    queue_consumer_group: str = "click_workers"
    queue_batch_size: int = 100
    queue_worker_interval: int = 5  # Seconds between click counter flushes

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def allow_duplicate_longurls(self) -> bool:
        return not self.unique_urls

    @property
    def admin_index_url(self) -> str:
        if self.admin_url:
            return self.admin_url
        return f"{self.site_url.rstrip('/')}/admin/index.php"

    @property
    def shorturl_charset(self) -> str:
        charset = "0123456789abcdefghijklmnopqrstuvwxyz"
        if self.url_convert == 62:
            charset += "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
        return charset


settings = Settings()
