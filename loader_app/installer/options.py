"""
Installer options, validated before anything on the host is touched.
"""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

HOSTNAME = re.compile(
    r"^(?=.{1,253}$)(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.(?!-)[A-Za-z0-9-]{1,63}(?<!-))*$"
)
IDENTIFIER = re.compile(r"^[A-Za-z0-9_]{1,64}$")
ADMIN_USER = re.compile(r"^[A-Za-z0-9_.@-]{1,64}$")
EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
SAFE_PATH = re.compile(r"^/[A-Za-z0-9_./-]*$")
VERSION = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")
CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


class InstallOptions(BaseModel):
    domain: str
    db_name: str = "loader"
    db_user: str = "loader"
    db_pass: str
    admin_user: str = "admin"
    admin_pass: str
    install_dir: str = "/var/www/loader"
    app_version: str = "1.0.0"
    app_port: int = Field(8000, ge=1, le=65535)
    letsencrypt: bool = False
    email: Optional[str] = None
    source_path: Optional[str] = None
    archive_url: Optional[str] = None  # "{version}" is replaced by app_version
    git_url: Optional[str] = None
    self_signed_fallback: bool = False
    dry_run: bool = False

    @field_validator("domain")
    @classmethod
    def check_domain(cls, value: str) -> str:
        if not HOSTNAME.match(value):
            raise ValueError(f"{value!r} is not a valid host name")
        return value.lower()

    @field_validator("db_name", "db_user")
    @classmethod
    def check_identifier(cls, value: str) -> str:
        if not IDENTIFIER.match(value):
            raise ValueError("only letters, digits and underscore are allowed")
        return value

    @field_validator("admin_user")
    @classmethod
    def check_admin_user(cls, value: str) -> str:
        if not ADMIN_USER.match(value):
            raise ValueError("only letters, digits and _ . @ - are allowed")
        return value

    @field_validator("db_pass", "admin_pass")
    @classmethod
    def check_password(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        if CONTROL_CHARS.search(value):
            raise ValueError("must not contain control characters")
        if "${" in value:
            # .env files expand ${VAR}
            raise ValueError("must not contain '${'")
        return value

    @field_validator("install_dir")
    @classmethod
    def check_install_dir(cls, value: str) -> str:
        value = value.rstrip("/") or "/"
        if not SAFE_PATH.match(value) or ".." in value.split("/") or value == "/":
            raise ValueError(f"{value!r} is not a safe absolute directory")
        return value

    @field_validator("app_version")
    @classmethod
    def check_version(cls, value: str) -> str:
        if not VERSION.match(value):
            raise ValueError(f"{value!r} is not a valid version")
        return value

    @field_validator("email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        if value and not EMAIL.match(value):
            raise ValueError(f"{value!r} is not a valid email address")
        return value

    @model_validator(mode="after")
    def check_combinations(self) -> "InstallOptions":
        if self.letsencrypt and not self.email:
            raise ValueError("--email is required when using --letsencrypt")
        if not (self.source_path or self.archive_url or self.git_url):
            raise ValueError("one of --source-path, --archive-url or --git-url is required")
        return self

    @property
    def site_url(self) -> str:
        scheme = "https" if self.letsencrypt else "http"
        return f"{scheme}://{self.domain}"

    @property
    def resolved_archive_url(self) -> Optional[str]:
        if not self.archive_url:
            return None
        return self.archive_url.replace("{version}", self.app_version)
