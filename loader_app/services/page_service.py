"""
Pages: named routes rendered by the application itself instead of being
resolved through the keyword table. A page "about" is the Jinja2 template
`<pages_dir>/about.html`.
"""

import os
import re
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

PAGE_NAME = re.compile(r"^[a-zA-Z0-9_-]+$")


class PageService:
    def __init__(self, pages_dir: str):
        self.pages_dir = pages_dir
        self.env = Environment(
            loader=FileSystemLoader(pages_dir),
            autoescape=select_autoescape(["html"]),
        )

    def is_page(self, name: str) -> bool:
        if not name or not PAGE_NAME.match(name):
            return False
        return os.path.isfile(os.path.join(self.pages_dir, f"{name}.html"))

    def render(self, name: str, **context: Any) -> str:
        return self.env.get_template(f"{name}.html").render(page=name, **context)
