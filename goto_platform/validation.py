"""
Input rules for short codes and target URLs.

Shared by the link manager (request-time validation) and the file storage
backend (load-time validation of operator-edited files).
"""

import re
from urllib.parse import urlparse

from .errors import ValidationError

# Leading "_" is reserved for service paths such as /_docs and /_front.
CodePattern = re.compile(r"^[0-9A-Za-z][0-9A-Za-z_-]{0,63}$")
AllowedSchemes = {"http", "https"}


def is_valid_code(code: str) -> bool:
    return isinstance(code, str) and bool(CodePattern.match(code))


def validate_code(code: str) -> str:
    """
    Validate a short code (1-64 chars of [0-9A-Za-z_-], alphanumeric first).

    Raises:
        ValidationError: If the code is empty or contains unsafe characters.
    """
    if not code:
        raise ValidationError("invalid short code: must not be empty")
    if not is_valid_code(code):
        raise ValidationError(
            f"invalid short code: {code!r} (use up to 64 of 0-9a-zA-Z_-, starting with a letter or digit)"
        )
    return code


def validate_target(target: str) -> str:
    """
    Normalize and validate a target URL.

    Only basic well-formedness is checked: an http/https scheme and a
    network location. Surrounding whitespace is stripped.

    Returns:
        str: The stripped target.

    Raises:
        ValidationError: If the URL is empty or malformed.
    """
    target = (target or "").strip()
    if not target:
        raise ValidationError("malformed URL: empty target")
    try:
        parsed = urlparse(target)
    except ValueError as e:
        raise ValidationError(f"malformed URL: {e}") from e
    if parsed.scheme not in AllowedSchemes or not parsed.netloc:
        raise ValidationError(f"malformed URL: {target!r} (expected http(s)://host/...)")
    return target
