"""
Quoted string handling for SeqN text

SeqN strings use JSON string syntax: double quotes with backslash escapes.
Non-ASCII characters are written as-is.
"""

import json


def quote_escape(value: str) -> str:
    """
    Quote a string for SeqN output.

    Example:
        >>> quote_escape('say "hi"')
        '"say \\\\"hi\\\\""'
    """
    return json.dumps(value, ensure_ascii=False)


def quote_unescape(token: str) -> str:
    """
    Undo ``quote_escape`` on a quoted token taken from source text.

    Raw tab characters inside the quotes are accepted.

    Raises:
        ValueError: If the token is not a valid quoted string
    """
    value = json.loads(token, strict=False)
    if not isinstance(value, str):
        raise ValueError(f"Not a quoted string: {token}")
    return value
