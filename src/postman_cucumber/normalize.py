"""Path and value helpers shared by the parser, the generator and the runtime."""

import math
import re

PLACEHOLDER_RE = re.compile(r"{{\s*([^{}]+?)\s*}}")
QUOTE_CHARS = "'\"`"


def path_segment(name: str) -> str:
    """Collapse whitespace runs in a folder name into a single underscore."""
    return re.sub(r"\s+", "_", name)


def strip_placeholder(token: str) -> str:
    """Remove ``{{``/``}}`` decoration: ``{{alice}}`` -> ``alice``."""
    return token.replace("{{", "").replace("}}", "").strip()


def substitute_placeholders(text: str, values: dict) -> str:
    """Replace ``{{name}}`` tokens with ``values[name]``.

    Unknown names are left as-is so a later pass can still resolve them.
    """

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name in values:
            return str(values[name])
        return match.group(0)

    return PLACEHOLDER_RE.sub(_replace, text)


def strip_quotes(value: str) -> str:
    """Trim whitespace and surrounding quote characters."""
    return value.strip().strip(QUOTE_CHARS).strip()


def coerce_number(value: str):
    """Return an int or float for numeric-looking strings, else the string."""
    text = value.strip()
    if not text:
        return value
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return value
    # "nan" and "inf" are words, not numbers
    return number if math.isfinite(number) else value
