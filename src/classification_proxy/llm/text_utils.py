"""
Text processing utilities for the LLM layer.

Prompt lines are positional, so anything placed on a line must be
guaranteed not to contain a line break.
"""

import re

_WHITESPACE_RUN = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    """
    Replace every run of whitespace (including newlines) with one space.

    Examples:
        >>> collapse_whitespace("a\\n\\n b\\t c")
        'a b c'
    """
    return _WHITESPACE_RUN.sub(" ", text)


def normalize_content(text: str, max_chars: int = 500) -> str:
    """
    Prepare item content for a single prompt line.

    Collapses whitespace and hard-truncates to ``max_chars``. Truncation
    happens after collapsing, so the cap applies to what the model sees.

    Examples:
        >>> normalize_content("hello\\n  world", 8)
        'hello wo'
    """
    return collapse_whitespace(text)[:max_chars]
