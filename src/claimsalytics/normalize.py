"""Field normalizers: raw cell values to typed claim fields.

Every function here is total over its input domain. Unparseable input
degrades to a neutral value (0, ``None`` or a placeholder) and never raises.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime

from dateutil import parser as date_parser

from claimsalytics.config import DEFAULT_PAYER_ALIASES, PayerAlias
from claimsalytics.schema import AQL_PREFIXES, UNKNOWN_PAYER, CodeClass

_MONEY_NOISE = re.compile(r"[$,\s]")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")
# Leading numeric prefix; trailing text such as " USD" is ignored
_LEADING_NUMBER = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def cell_text(value: object) -> str:
    """Render a raw cell (text, number, date or empty) as trimmed text.

    Integral floats lose their ``.0`` so numeric procedure codes read back
    as entered (``99213.0`` -> ``"99213"``). Dates render as ISO strings.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _to_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _LEADING_NUMBER.match(str(value).lstrip())
        if match is None:
            return None
        number = float(match.group())
    return number if math.isfinite(number) else None


def normalize_money(value: object) -> float:
    """Parse a money cell; parenthesized amounts are negative.

    >>> normalize_money("$1,234.56")
    1234.56
    >>> normalize_money("(500)")
    -500.0
    """
    if value is None or value == "":
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = _to_number(value)
        return number if number is not None else 0.0

    text = _MONEY_NOISE.sub("", str(value)).strip()
    if text.startswith("(") and text.endswith(")"):
        text = "-" + text[1:-1]
    number = _to_number(text)
    return number if number is not None else 0.0


def parse_units(value: object) -> float:
    """Parse a unit count; negative or unparseable counts become 0."""
    if value is None or value == "":
        return 0.0
    number = _to_number(value if isinstance(value, (int, float)) else str(value).strip())
    if number is None or number < 0:
        return 0.0
    return number


def parse_service_date(value: object) -> date | None:
    """Parse a date of service, or ``None`` when nothing matches.

    Accepts ISO ``YYYY-MM-DD``, US ``M/D/YYYY`` and ``M/D/YY`` (two-digit
    years are 20xx), then falls back to a general parse. Dates are built
    from their calendar components so the day of month never shifts.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    try:
        iso = _ISO_DATE.match(text)
        if iso:
            return date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))

        us = _US_DATE.match(text)
        if us:
            year = int(us.group(3))
            if year < 100:
                year += 2000
            return date(year, int(us.group(1)), int(us.group(2)))
    except ValueError:
        # shaped like a date but out of range, e.g. 2024-02-30
        return None

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None


def normalize_payer(raw: object, aliases: list[PayerAlias] | None = None) -> str:
    """Canonicalize a free-typed payer name through the alias table."""
    name = cell_text(raw)
    if not name:
        return UNKNOWN_PAYER

    upper = name.upper()
    for alias in DEFAULT_PAYER_ALIASES if aliases is None else aliases:
        if alias.matches(upper):
            return alias.canonical
    return name


def classify_code(code: str) -> CodeClass:
    """Classify a procedure code by its first character."""
    upper = code.strip().upper()
    if upper.startswith(AQL_PREFIXES):
        return CodeClass.AQL
    if upper[:1].isdigit():
        return CodeClass.NUMERIC
    return CodeClass.OTHER
