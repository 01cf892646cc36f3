"""Prompt templates for provider analysis and visual generation.

Templates are Markdown files in this directory rendered with Jinja2.
Optional variables that are not passed render as empty, so templates
guard optional sections with ``{% if var %}``.
"""

from __future__ import annotations

from functools import cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, TemplateNotFound

_PROMPTS_DIR = Path(__file__).parent
_SUFFIX = ".md"


@cache
def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(_PROMPTS_DIR),
        keep_trailing_newline=True,
        autoescape=False,
    )


def available_templates() -> list[str]:
    """Names of the shipped templates, without the .md suffix."""
    return sorted(p.stem for p in _PROMPTS_DIR.glob(f"*{_SUFFIX}"))


def render_prompt(template_name: str, **variables: object) -> str:
    """Render the ``<template_name>.md`` template with ``variables``.

    Raises:
        FileNotFoundError: If no such template exists.
    """
    try:
        template = _environment().get_template(f"{template_name}{_SUFFIX}")
    except TemplateNotFound:
        raise FileNotFoundError(
            f"Prompt template not found: {_PROMPTS_DIR / (template_name + _SUFFIX)}"
        ) from None
    return template.render(**variables)
