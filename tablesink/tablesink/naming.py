"""
Table name repair.

Table names must:
- contain only alphanumeric characters and '-'
- start with a letter
- be 3 to 63 characters long

Names that cannot be repaired fall back to DEFAULT_TABLE_NAME.
"""

import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_TABLE_NAME = "Logs"
MIN_TABLE_NAME_LENGTH = 3
MAX_TABLE_NAME_LENGTH = 63

_FORBIDDEN_CHARACTERS = re.compile(r"[^a-zA-Z0-9-]")
_LEADING_NON_LETTERS = re.compile(r"^[^a-zA-Z]*")


def sanitize_table_name(raw: str) -> str:
    """
    Repair a rendered table name so the store will accept it.

    Args:
        raw: Candidate name, usually rendered from a template

    Returns:
        The cleaned name, or DEFAULT_TABLE_NAME if nothing valid remains
    """
    cleaned = _FORBIDDEN_CHARACTERS.sub("", raw)
    cleaned = _LEADING_NON_LETTERS.sub("", cleaned)

    if not MIN_TABLE_NAME_LENGTH <= len(cleaned) <= MAX_TABLE_NAME_LENGTH:
        logger.warning(
            f"Invalid table name provided: {raw!r} | Using default: {DEFAULT_TABLE_NAME}"
        )
        return DEFAULT_TABLE_NAME

    logger.debug(f"Using table name {cleaned!r} for {raw!r}")
    return cleaned
