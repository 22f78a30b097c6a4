"""Phone number normalization.

Turns a raw chat line into the digits-only, country-prefixed identifier used as
the cache key and as the WhatsApp lookup target.
"""

from __future__ import annotations

import re
from typing import List

_NON_DIGIT = re.compile(r"\D")
_LINE_SPLIT = re.compile(r"\r?\n")

DEFAULT_COUNTRY_CODE = "62"
DEFAULT_MIN_DIGITS = 9


def normalize(raw: str, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """Strip non-digits and rewrite a leading trunk ``0`` to ``country_code``."""
    digits = _NON_DIGIT.sub("", raw)
    if digits.startswith("0"):
        return country_code + digits[1:]
    return digits


def is_acceptable(identifier: str, min_digits: int = DEFAULT_MIN_DIGITS) -> bool:
    return len(identifier) >= min_digits


def parse_lines(
    text: str,
    country_code: str = DEFAULT_COUNTRY_CODE,
    min_digits: int = DEFAULT_MIN_DIGITS,
) -> List[str]:
    """Normalize every line of ``text`` and drop those too short to be numbers.

    Order and duplicates are preserved.
    """
    out: List[str] = []
    for line in _LINE_SPLIT.split(text):
        identifier = normalize(line, country_code)
        if is_acceptable(identifier, min_digits):
            out.append(identifier)
    return out
