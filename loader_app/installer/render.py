"""
Text the installer writes to the host: SQL for the database setup and the
Jinja2-rendered config files.
"""

import os
from urllib.parse import quote_plus

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from loader_app.installer.options import InstallOptions

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")


def dotenv_quote(value) -> str:
    """Double-quoted .env value; backslash and quote are escaped"""
    value = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{value}"'


def sql_string(value: str) -> str:
    """Single-quoted SQL literal, safe whether or not backslash escapes are on"""
    return "'" + value.replace("\\", "\\\\").replace("'", "''") + "'"


_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    keep_trailing_newline=True,
    undefined=StrictUndefined,
)
_env.filters["dotenv"] = dotenv_quote


def render_template(name: str, **context) -> str:
    return _env.get_template(name).render(**context)


def database_url(options: InstallOptions) -> str:
    return (
        f"mysql+pymysql://{quote_plus(options.db_user)}:{quote_plus(options.db_pass)}"
        f"@localhost/{options.db_name}?charset=utf8mb4"
    )


def render_database_sql(options: InstallOptions) -> str:
    """
    Idempotent database setup. Running it twice leaves the same state: the
    database and user are only created when missing, and the password and
    grants are re-applied.
    """
    user = f"{sql_string(options.db_user)}@'localhost'"
    password = sql_string(options.db_pass)
    return "\n".join([
        f"CREATE DATABASE IF NOT EXISTS `{options.db_name}` "
        "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;",
        f"CREATE USER IF NOT EXISTS {user} IDENTIFIED BY {password};",
        f"ALTER USER {user} IDENTIFIED BY {password};",
        f"GRANT ALL PRIVILEGES ON `{options.db_name}`.* TO {user};",
        "FLUSH PRIVILEGES;",
        "",
    ])
