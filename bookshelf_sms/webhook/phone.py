"""Phone number normalization, masking and allow-list parsing."""

from __future__ import annotations

import re

_NON_DIALABLE = re.compile(r"[^\d+]")


def normalize_phone_number(phone_number: str) -> str:
    """Normalize to E.164 where the country can be inferred.

    Ten-digit numbers and eleven-digit numbers starting with 1 are treated as
    North American. Other numbers without a ``+`` are returned digits-only.
    """
    normalized = _NON_DIALABLE.sub("", phone_number)
    if not normalized.startswith("+"):
        if len(normalized) == 10:
            normalized = "+1" + normalized
        elif len(normalized) == 11 and normalized.startswith("1"):
            normalized = "+" + normalized
    return normalized


def mask_phone(phone_number: str | None) -> str:
    """Keep only the last four digits, e.g. ``***1234``."""
    if not phone_number:
        return "***"
    return "***" + phone_number[-4:]


def parse_allowlist(raw: str | None) -> frozenset[str]:
    """Parse a comma separated list of phone numbers into normalized form."""
    if not raw:
        return frozenset()
    numbers = (normalize_phone_number(part.strip()) for part in raw.split(","))
    return frozenset(n for n in numbers if n)
