"""Jinja2 rendering of the bootstrap artifacts.

Templates live in ``ideaforge/ui/templates/`` as ``*.j2`` files. Values that
end up inside JavaScript go through the ``tojson`` filter; the entry document
escapes text explicitly with ``|e``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateRenderer:
    """Renders the bundle's bootstrap templates."""

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render ``template_path`` (relative to the template directory)."""
        template = self.env.get_template(template_path)
        return template.render(**context)
