"""
Canonical forms for NAP comparison. Both functions are total and idempotent.
"""
import re
from typing import Optional

_NON_DIGIT = re.compile(r"\D")
_PUNCTUATION = re.compile(r"[^\w\s]", re.ASCII)
_WHITESPACE = re.compile(r"\s+")


def normalize_phone(phone: Optional[str]) -> str:
    """
    Reduce a phone number to its digits, dropping a leading US country code.

    Args:
        phone (Optional[str]): Phone number in any format, e.g. "+1 (555) 123-4567".

    Returns:
        str: Digits only, e.g. "5551234567". Empty string for empty input.
    """
    if not phone:
        return ""
    digits = _NON_DIGIT.sub("", phone)
    if len(digits) == 11 and digits.startswith("1"):
        return digits[1:]
    return digits


def normalize_text(text: Optional[str]) -> str:
    """
    Lowercase, keep only ASCII letters, digits, underscore and whitespace,
    then collapse whitespace. Accented letters are dropped ("Café" -> "caf").

    Args:
        text (Optional[str]): Free text such as a business name or address.

    Returns:
        str: Normalized text, e.g. "Acme, Inc." -> "acme inc".
    """
    if not text:
        return ""
    lowered = _PUNCTUATION.sub("", text.lower())
    return _WHITESPACE.sub(" ", lowered).strip()
