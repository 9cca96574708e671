# File: parkslot/domain/validation.py
"""
Field validation for vehicle registration requests

Practical format checks, not RFC-complete ones. Normalizers are applied
before validators so stored values are canonical (upper-case plates,
lower-case emails, digit-only phones).
"""

import re
from typing import Any, Optional

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_DIGITS_PATTERN = re.compile(r'^\d{7,15}$')
PLATE_PATTERN = re.compile(r'^[A-Z0-9-]{4,15}$')


def normalize_email(email: Optional[str]) -> str:
    return str(email or '').strip().lower()


def is_valid_email(email: Optional[str]) -> bool:
    return bool(EMAIL_PATTERN.match(str(email or '').strip()))


def normalize_phone(phone: Optional[str]) -> str:
    """Keep a leading '+', strip every other non-digit"""
    raw = str(phone or '').strip()
    if not raw:
        return ''
    digits = re.sub(r'\D', '', raw)
    return ('+' if raw.startswith('+') else '') + digits


def is_valid_phone(phone: Optional[str]) -> bool:
    """Empty phone numbers are valid, the field is optional"""
    normalized = normalize_phone(phone)
    if not normalized:
        return True
    digits = normalized[1:] if normalized.startswith('+') else normalized
    return bool(PHONE_DIGITS_PATTERN.match(digits))


def normalize_plate(plate: Optional[str]) -> str:
    return str(plate or '').strip().upper()


def is_valid_plate(plate: Optional[str]) -> bool:
    value = normalize_plate(plate)
    return bool(value) and bool(PLATE_PATTERN.match(value))


def parse_slot_number(value: Any) -> Optional[int]:
    """
    Parse a requested slot number
    Returns: positive int, or None if the value is not a positive integer
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value > 0 else None
    text = str(value).strip()
    if not text.isdigit():
        return None
    number = int(text)
    return number if number > 0 else None


def is_blank(value: Any) -> bool:
    """True for None, empty strings and whitespace-only strings"""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False
