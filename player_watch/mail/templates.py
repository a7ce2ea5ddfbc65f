from __future__ import annotations

import base64
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, Template, TemplateError, select_autoescape

"""Jinja2 template loading for notification mails.

Templates live in one directory as ``<name>.html``. A missing directory or
template is a startup error for the run.
"""

__all__ = [
    "TEMPLATES_DIR_DEFAULT",
    "TEMPLATE_SUFFIX",
    "TemplateLoadError",
    "TemplateLoader",
]

TEMPLATES_DIR_DEFAULT = "templates"
TEMPLATE_SUFFIX = ".html"


class TemplateLoadError(Exception):
    """Raised when a template directory or file cannot be loaded."""


def b64encode(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


class TemplateLoader:
    def __init__(self, templates_dir: str | Path = TEMPLATES_DIR_DEFAULT) -> None:
        self.templates_dir = Path(templates_dir)
        if not self.templates_dir.is_dir():
            raise TemplateLoadError(f"templates directory not found: {self.templates_dir}")

        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            # inline templates are mail subjects: plain text
            autoescape=select_autoescape(["html", "htm", "xml"], default_for_string=False),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["b64encode"] = b64encode

    def load(self, name: str) -> Template:
        """Return the compiled template ``<name>.html``.

        Raises:
            TemplateLoadError: file missing or not parseable
        """
        filename = f"{name}{TEMPLATE_SUFFIX}"
        if not (self.templates_dir / filename).is_file():
            raise TemplateLoadError(f"template file not found: {self.templates_dir / filename}")
        try:
            return self.env.get_template(filename)
        except TemplateError as e:
            raise TemplateLoadError(f"failed to parse template {filename}: {e}") from e

    def from_string(self, source: str) -> Template:
        try:
            return self.env.from_string(source)
        except TemplateError as e:
            raise TemplateLoadError(f"failed to parse inline template: {e}") from e
