#!/usr/bin/env python3
"""
Mark every existing WhatsApp contact as owner-handled so the bot never
interrupts a conversation the owner already has going.
Usage: python scripts/import_contacts.py
"""

import sys
from typing import Any, Iterator, Optional

from mavrikan.config import settings
from mavrikan.database import SessionLocal, init_db
from mavrikan.services.conversation_service import mark_owner_contacted
from mavrikan.services.identity_service import normalize_address
from mavrikan.services.input_parser import sanitize_name
from mavrikan.services.waha_service import WahaError, WahaService

PAGE_SIZE = 100
MIN_PHONE_DIGITS = 8


def iter_chats(gateway: WahaService, page_size: int = PAGE_SIZE) -> Iterator[dict]:
    """Page through all chats until WAHA returns a short page."""
    offset = 0
    while True:
        print(f"Fetching chats (offset: {offset})...")
        chats = gateway.list_chats(limit=page_size, offset=offset)
        yield from chats
        if len(chats) < page_size:
            return
        offset += page_size


def chat_id_of(chat: dict[str, Any]) -> Optional[str]:
    raw = chat.get("id") or chat.get("_id")
    if isinstance(raw, dict):
        raw = raw.get("_serialized")
    return raw if isinstance(raw, str) else None


def chat_name_of(chat: dict[str, Any]) -> Optional[str]:
    contact = chat.get("contact") if isinstance(chat.get("contact"), dict) else {}
    return sanitize_name(chat.get("name")) or sanitize_name(chat.get("pushName")) or sanitize_name(contact.get("name"))


def import_contacts(gateway: WahaService, db) -> tuple[int, int, int]:
    """Returns (imported, already_marked, skipped)."""
    imported = already_marked = skipped = 0

    for chat in iter_chats(gateway):
        address = normalize_address(chat_id_of(chat))
        if address is None or len(address.phone) < MIN_PHONE_DIGITS:
            skipped += 1
            continue

        _, changed = mark_owner_contacted(
            db,
            address.phone,
            name=chat_name_of(chat),
            chat_address=address.chat_address,
        )
        db.commit()

        if not changed:
            already_marked += 1
            continue
        imported += 1
        if imported % 10 == 0:
            print(f"Progress: {imported} contacts imported...")

    return imported, already_marked, skipped


def main():
    print("=== Importing existing WhatsApp contacts ===\n")
    print(f"WAHA URL: {settings.waha_url}")
    print(f"Session: {settings.waha_session}\n")

    init_db()
    gateway = WahaService(settings.waha_url, settings.waha_api_key, settings.waha_session)
    db = SessionLocal()
    try:
        imported, already_marked, skipped = import_contacts(gateway, db)
    except WahaError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        db.close()

    print("\n=== Done ===")
    print(f"Imported: {imported}")
    print(f"Already marked: {already_marked}")
    print(f"Skipped: {skipped} (groups, broadcasts, invalid)")
    print("\nThese contacts will NOT trigger the bot automatically.")


if __name__ == "__main__":
    main()
