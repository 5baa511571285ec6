"""Vision statement formatting ("When I am 30 years old, I will ...")."""

import re
from typing import Optional

from .models import DEFAULT_VISION_AGE

_AGE_PREFIX_RE = re.compile(r"When I am (\d+) years old,?", re.IGNORECASE)
_I_WILL_RE = re.compile(r"^I will\b", re.IGNORECASE)


def vision_prefix(age: int) -> str:
    return f"When I am {age} years old,"


def format_vision_statement(text: Optional[str], age: int = DEFAULT_VISION_AGE) -> str:
    """Normalize a vision statement to start with the age prefix.

    Idempotent for a given age. Blank input stays blank.
    """
    if isinstance(age, bool) or not isinstance(age, int) or age < 1:
        raise ValueError(f"age must be a positive integer, got {age!r}")

    statement = (text or '').strip()
    if not statement:
        return ''

    prefix = vision_prefix(age)
    if statement.startswith(prefix):
        return statement

    match = _AGE_PREFIX_RE.search(statement)
    if match:
        if match.start() == 0:
            rest = statement[match.end():].strip()
            return f"{prefix} {rest}" if rest else prefix
        if int(match.group(1)) == age:
            return statement
        start, end = match.span(1)
        return f"{statement[:start]}{age}{statement[end:]}"

    if _I_WILL_RE.match(statement):
        return f"{prefix} {statement}"

    return f"{prefix} I will be {statement}"
