"""Text cleanup and value coercion for World Airport Codes pages.

All helpers are pure and accept ``None`` (returned unchanged as ``None``), so
they can be chained over values extracted from optional page nodes.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

_NEWLINE_RE = re.compile(r"\s*\r?\n\s*")
_LEADING_COLON_RE = re.compile(r"^:\s*")
_UNCERTAIN_RE = re.compile(r"(?: \(\?\))+$")
_FEET_RE = re.compile(r" ft\.$")
_SENTINELS = ("Unavailable", "Unknown (add)")

# The site writes emails through a script: string1 = "user"; ... string3 = "domain"
_EMAIL_MARKER = "string1"
_OBFUSCATED_EMAIL_RE = re.compile(r'^.*string1\s*=\s*"([^"]*)".*string3\s*=\s*"([^"]*)".*$')
EMAIL_RX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_DMS_PART_RE = re.compile(r"\d+")
_NUMERIC_PREFIX_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)")


def decode(text: str) -> str:
    """Convert all HTML entities (named, numeric, quotes) to their characters."""
    return html.unescape(text)


def is_valid_email(text: Optional[str]) -> bool:
    return bool(text) and EMAIL_RX.match(text) is not None


def deobfuscate_email(text: str) -> str:
    """Rebuild ``user@domain`` from the site's anti-spam script.

    Returns an empty string when the script cannot be read back into a valid
    address.
    """
    m = _OBFUSCATED_EMAIL_RE.match(text)
    if not m:
        return ""
    email = f"{m.group(1)}@{m.group(2)}"
    return email if is_valid_email(email) else ""


def clear_text(raw: Optional[str]) -> Optional[str]:
    """Clean a raw detail value: entities, markup artifacts, sentinels, emails."""
    if raw is None:
        return None
    data = _NEWLINE_RE.sub(" ", raw)
    data = decode(data).strip()
    data = _LEADING_COLON_RE.sub("", data)
    data = _UNCERTAIN_RE.sub("", data)
    data = _FEET_RE.sub("", data)
    if data in _SENTINELS:
        data = ""

    if _EMAIL_MARKER in data:
        data = deobfuscate_email(data)

    return data or None


def convert_dms(dms: Optional[str]) -> Optional[float]:
    """Convert a ``D M S[NSEW]`` coordinate to decimal degrees.

    Returns None unless exactly three numeric groups are present. A trailing
    ``S`` or ``W`` makes the result negative.
    """
    if dms is None:
        return None
    parts = _DMS_PART_RE.findall(dms)
    if len(parts) != 3:
        return None
    degrees, minutes, seconds = (int(p) for p in parts)
    result = degrees + minutes / 60 + seconds / 3600
    if dms.endswith(("S", "W")):
        result *= -1
    return result


def _numeric_prefix(text: Optional[str], field: str) -> Optional[str]:
    if text is None:
        return None
    t = text.replace(",", "").strip()
    m = _NUMERIC_PREFIX_RE.match(t)
    if not m:
        logger.warning("Ignoring non-numeric %s value: %r", field, text)
        return None
    return m.group(0)


def parse_float(text: Optional[str], field: str = "value") -> Optional[float]:
    """Parse the leading number of ``text`` (thousands separators allowed)."""
    num = _numeric_prefix(text, field)
    return float(num) if num is not None else None


def parse_int(text: Optional[str], field: str = "value") -> Optional[int]:
    """Like parse_float, truncating toward zero (``"5.5"`` gives ``5``)."""
    num = _numeric_prefix(text, field)
    return int(float(num)) if num is not None else None
