"""Canonicalisation of Indian mobile numbers for storage and duplicate lookups."""
from __future__ import annotations

import re
from typing import List, Optional

from .errors import LeadPipelineError

COUNTRY_CODE = "+91"

_WHITESPACE = re.compile(r"\s+")
_TEN_DIGITS = re.compile(r"[0-9]{10}")


class InvalidPhoneNumberError(LeadPipelineError, ValueError):
    """Raised when a phone number cannot be reduced to ten digits."""

    def __init__(self, raw: str) -> None:
        super().__init__("Phone number must be exactly 10 digits")
        self.raw = raw


def _strip(raw: object) -> str:
    if raw is None:
        return ""
    return _WHITESPACE.sub("", str(raw))


def normalize_phone(raw: object) -> str:
    """Return the bare ten-digit form of ``raw``.

    Whitespace is removed, then a ``+91`` prefix, or a bare ``91`` prefix on a
    twelve character string, is dropped.
    """

    cleaned = _strip(raw)
    if cleaned.startswith(COUNTRY_CODE):
        cleaned = cleaned[len(COUNTRY_CODE):]
    elif cleaned.startswith("91") and len(cleaned) == 12:
        cleaned = cleaned[2:]

    if not _TEN_DIGITS.fullmatch(cleaned):
        raise InvalidPhoneNumberError(str(raw))
    return cleaned


def is_valid_phone(raw: object) -> bool:
    try:
        normalize_phone(raw)
    except InvalidPhoneNumberError:
        return False
    return True


def phone_variants(normalized: str, raw: Optional[str] = None) -> List[str]:
    """Every format a number may have been stored under, most canonical first."""

    candidates = [normalized, f"{COUNTRY_CODE}{normalized}", f"91{normalized}"]
    if raw is not None:
        candidates.append(_strip(raw))

    variants: List[str] = []
    for candidate in candidates:
        if candidate and candidate not in variants:
            variants.append(candidate)
    return variants


def format_for_storage(normalized: str) -> str:
    return f"{COUNTRY_CODE}{normalized}"


__all__ = [
    "COUNTRY_CODE",
    "InvalidPhoneNumberError",
    "format_for_storage",
    "is_valid_phone",
    "normalize_phone",
    "phone_variants",
]
