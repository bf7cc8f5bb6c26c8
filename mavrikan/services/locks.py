"""
Per-contact locks: one inbound turn per phone at a time inside this process.
The row lock taken by the conversation read covers concurrent workers.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from mavrikan.logging_config import get_logger
from mavrikan.services.identity_service import mask_phone

logger = get_logger("locks")

LOCK_WAIT_SECONDS = 10.0

_registry_lock = threading.Lock()
_locks: dict[str, list] = {}  # phone -> [lock, holders]


class LockTimeoutError(Exception):
    """Raised when a contact lock cannot be acquired in time."""


@contextmanager
def contact_lock(phone: str, wait: float = LOCK_WAIT_SECONDS) -> Iterator[None]:
    """
    Serialize turns for one phone number.

    Usage:
        with contact_lock(phone):
            # read, step, write
    """
    with _registry_lock:
        entry = _locks.setdefault(phone, [threading.Lock(), 0])
        entry[1] += 1
    lock = entry[0]

    acquired = lock.acquire(timeout=wait)
    try:
        if not acquired:
            logger.warning("Contact lock timed out", extra={"context": {"phone": mask_phone(phone)}})
            raise LockTimeoutError(f"Could not acquire lock for {mask_phone(phone)} within {wait}s")
        yield
    finally:
        if acquired:
            lock.release()
        with _registry_lock:
            entry[1] -= 1
            if entry[1] == 0 and _locks.get(phone) is entry:
                del _locks[phone]
