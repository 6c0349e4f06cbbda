"""Organizer contact classification.

A single place for the contact patterns used by every adapter and by the
notification router. Precedence is email, then chat handle, then phone.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ContactKind(Enum):
    EMAIL = 'email'
    CHAT_HANDLE = 'chat_handle'
    PHONE = 'phone'


@dataclass(frozen=True)
class Contact:
    kind: ContactKind
    value: str


EMAIL_PATTERN = re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,6}')
CHAT_HANDLE_PATTERN = re.compile(r'(?<![\w.@])@[a-zA-Z0-9_]{5,32}\b')
PHONE_PATTERN = re.compile(r'\+?\d[\d\s\-()]{8,18}\d')
ISO_DATE_PREFIX = re.compile(r'\d{4}-\d{1,2}-\d{1,2}')

MIN_PHONE_DIGITS = 10


def _find_phone(text: str) -> Optional[str]:
    for match in PHONE_PATTERN.finditer(text):
        candidate = match.group().strip()
        if ISO_DATE_PREFIX.match(candidate):
            continue
        digits = re.sub(r'\D', '', candidate)
        if MIN_PHONE_DIGITS <= len(digits) <= 15:
            return candidate
    return None


def classify_contact(text: Optional[str]) -> Optional[Contact]:
    """
    Find the highest-priority contact anywhere in a block of text.

    Args:
        text: Free text, typically the full text of an event card

    Returns:
        Contact with its kind, or None if the text holds no contact
    """
    if not text:
        return None

    match = EMAIL_PATTERN.search(text)
    if match:
        return Contact(ContactKind.EMAIL, match.group())

    match = CHAT_HANDLE_PATTERN.search(text)
    if match:
        return Contact(ContactKind.CHAT_HANDLE, match.group())

    phone = _find_phone(text)
    if phone:
        return Contact(ContactKind.PHONE, phone)

    return None


def extract_contact(text: Optional[str]) -> Optional[str]:
    """Return just the contact string found in text, or None."""
    contact = classify_contact(text)
    return contact.value if contact else None
