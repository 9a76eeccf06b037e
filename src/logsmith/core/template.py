"""Jinja2 templates for changelog rendering."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any

from jinja2 import Environment, TemplateError, TemplateSyntaxError

from logsmith.config.models import to_python_replacement
from logsmith.exceptions import TemplateParseError, TemplateRenderError


def upper_first(value: str) -> str:
    """Uppercase the first character of a string."""
    return value[:1].upper() + value[1:] if value else value


def split_regex(value: str, pattern: str) -> list[str]:
    return re.split(pattern, value)


def replace_regex(value: str, pattern: str, replacement: str = "") -> str:
    return re.sub(pattern, to_python_replacement(replacement), value)


def find_regex(value: str, pattern: str) -> list[str]:
    return [match.group(0) for match in re.finditer(pattern, value)]


def format_date(value: int | None, format: str = "%Y-%m-%d") -> str:
    """Format a unix timestamp (UTC) with ``strftime``."""
    if value is None:
        return ""
    return datetime.fromtimestamp(int(value), tz=UTC).strftime(format)


def _get(item: Any, attribute: str) -> Any:
    for part in attribute.split("."):
        if item is None:
            return None
        item = item.get(part) if isinstance(item, dict) else getattr(item, part, None)
    return item


def group_by(items: list[Any], attribute: str) -> list[tuple[Any, list[Any]]]:
    """Group items by an attribute, sorted by key.

    Items whose attribute is missing or None are left out. Items keep their
    order inside each group.
    """
    groups: dict[Any, list[Any]] = {}
    for item in items:
        key = _get(item, attribute)
        if key is None:
            continue
        groups.setdefault(key, []).append(item)
    return sorted(groups.items(), key=lambda group: str(group[0]))


FILTERS = {
    "upper_first": upper_first,
    "split_regex": split_regex,
    "replace_regex": replace_regex,
    "find_regex": find_regex,
    "date": format_date,
    "group_by": group_by,
}


def _create_environment() -> Environment:
    env = Environment(
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters.update(FILTERS)
    return env


class Template:
    """A compiled changelog template.

    Args:
        source: Jinja2 template text
        trim: Strip leading and trailing whitespace from every line of the
            template before compiling it

    Raises:
        TemplateParseError: If the template has a syntax error
    """

    def __init__(self, source: str, trim: bool = False) -> None:
        if trim:
            source = "\n".join(line.strip() for line in source.split("\n"))
        self.source = source
        try:
            self._template = _create_environment().from_string(source)
        except TemplateSyntaxError as e:
            raise TemplateParseError(f"Template syntax error on line {e.lineno}: {e.message}") from e

    def render(self, context: dict[str, Any]) -> str:
        """Render the template.

        Raises:
            TemplateRenderError: If rendering fails
        """
        try:
            return self._template.render(context)
        except (TemplateError, TypeError, ValueError, ArithmeticError, OSError, re.error) as e:
            raise TemplateRenderError(f"Failed to render template: {e}") from e
