"""
Logging setup shared by the web app, the click worker and the installer.
"""

import logging
import sys


class InstallerFormatter(logging.Formatter):
    """Prefix records with [+], [!] or [x], coloured when writing to a terminal"""

    PREFIXES = {
        logging.DEBUG: ("[.]", "\033[1;34m"),
        logging.INFO: ("[+]", "\033[1;32m"),
        logging.WARNING: ("[!]", "\033[1;33m"),
        logging.ERROR: ("[x]", "\033[1;31m"),
        logging.CRITICAL: ("[x]", "\033[1;31m"),
    }

    def __init__(self, use_color: bool = True):
        super().__init__("%(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        prefix, color = self.PREFIXES.get(record.levelno, ("[?]", ""))
        if self.use_color:
            prefix = f"{color}{prefix}\033[0m"
        return f"{prefix} {super().format(record)}"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the web app and worker"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def configure_installer_logging(verbose: bool = False) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(InstallerFormatter(use_color=sys.stderr.isatty()))

    root = logging.getLogger("loader_app.installer")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False
