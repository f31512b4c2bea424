"""Jinja environment for prompts, tracker comments and change request bodies."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

TEMPLATES_DIR = Path(__file__).with_name("templates")


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=False,
        undefined=StrictUndefined,
    )


def render_template(name: str, **context: Any) -> str:
    """Render a bundled template and strip surrounding whitespace."""
    return _environment().get_template(name).render(**context).strip()


__all__ = ["TEMPLATES_DIR", "render_template"]
