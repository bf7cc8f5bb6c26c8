"""Map WhatsApp chat addresses onto canonical phone numbers."""

import re
from dataclasses import dataclass
from typing import Any, Optional

from mavrikan.services.input_parser import sanitize_name

# Suffix conventions WAHA engines use for one-to-one chats
PRIVATE_SUFFIXES = ("c.us", "s.whatsapp.net", "lid")
DEFAULT_SUFFIX = "c.us"

_NON_DIGITS = re.compile(r"\D")

_NAME_PATHS = (
    ("pushName",),
    ("_data", "notifyName"),
    ("_data", "pushName"),
    ("notifyName",),
    ("sender", "pushname"),
    ("sender", "name"),
    ("contact", "name"),
    ("contact", "pushname"),
)


@dataclass(frozen=True)
class ContactAddress:
    phone: str
    chat_address: str


def normalize_address(raw: Optional[str]) -> Optional[ContactAddress]:
    """Split a chat address into the canonical phone and the address to reply to.

    Returns None for groups, broadcasts and anything that is not a private contact.
    """
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not text:
        return None

    if "@" in text:
        local, suffix = text.split("@", 1)
        suffix = suffix.lower()
        if suffix not in PRIVATE_SUFFIXES:
            return None
    else:
        local, suffix = text, DEFAULT_SUFFIX

    # multi-device JIDs look like 972500000000:12@s.whatsapp.net
    local = local.split(":", 1)[0]
    digits = _NON_DIGITS.sub("", local)
    if not digits:
        return None
    return ContactAddress(phone=digits, chat_address=f"{digits}@{suffix}")


def format_chat_address(phone: str) -> str:
    """Build the default one-to-one address for a phone number."""
    return f"{_NON_DIGITS.sub('', phone or '')}@{DEFAULT_SUFFIX}"


def format_display_phone(phone: Optional[str]) -> str:
    """972544994417 -> 0544994417."""
    if not phone:
        return ""
    text = str(phone)
    if text.startswith("972"):
        return "0" + text[3:]
    return text


def mask_phone(phone: Optional[str]) -> str:
    if not phone or len(phone) <= 4:
        return "***"
    return f"***{phone[-4:]}"


def resolve_display_name(payload: dict[str, Any], fallback: str) -> str:
    """Pick the first usable profile name the provider sent, else the fallback."""
    for path in _NAME_PATHS:
        value: Any = payload
        for key in path:
            value = value.get(key) if isinstance(value, dict) else None
        name = sanitize_name(value)
        if name:
            return name
    return fallback
