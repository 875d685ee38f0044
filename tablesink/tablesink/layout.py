"""
Layout rendering for log records.

A layout is a logging.Formatter-style template, e.g. "%(name)s" or
"{levelname}-{name}". Layouts render both table names and message bodies.

Unlike logging.Formatter.format(), rendering never writes back to the
record, and attributes missing from the record render as empty strings so
that a template referencing an optional `extra=` field still produces a
name.
"""

import logging
import string
from functools import lru_cache
from typing import Optional, Union

DEFAULT_LAYOUT = "%(message)s"
DEFAULT_TABLE_NAME_LAYOUT = "%(name)s"


class _RecordFields(dict):
    """Record attributes with empty-string defaults for missing keys."""

    def __missing__(self, key: str) -> str:
        return ""


class Layout:
    """
    A compiled layout template.

    Args:
        template: Format string in the chosen style
        style: One of '%', '{' or '$' (same meaning as logging.Formatter)
        datefmt: strftime format used for %(asctime)s
    """

    def __init__(self, template: str = DEFAULT_LAYOUT, style: str = "%", datefmt: Optional[str] = None):
        # Constant templates such as "Logs" are allowed, so no validation.
        self._formatter = logging.Formatter(template, datefmt=datefmt, style=style, validate=False)
        self.template = template
        self.style = style
        self.datefmt = datefmt

    def render(self, record: logging.LogRecord) -> str:
        """Render the template against a record."""
        fields = _RecordFields(record.__dict__)
        fields["message"] = record.getMessage()
        if self._formatter.usesTime():
            fields["asctime"] = self._formatter.formatTime(record, self.datefmt)

        if self.style == "%":
            return self.template % fields
        if self.style == "{":
            return self.template.format_map(fields)
        return string.Template(self.template).substitute(fields)

    def __repr__(self) -> str:
        return f"Layout({self.template!r}, style={self.style!r})"


@lru_cache(maxsize=128)
def _compiled(template: str) -> Layout:
    return Layout(template)


def render(record: logging.LogRecord, template: Union[str, Layout]) -> str:
    """
    Render a record with a layout or a '%'-style template string.

    Template strings are compiled once and cached.
    """
    if isinstance(template, Layout):
        return template.render(record)
    return _compiled(template).render(record)
