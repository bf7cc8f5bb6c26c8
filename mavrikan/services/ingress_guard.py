"""Process-local duplicate and burst protection for the inbound webhook.

Nothing here is persisted: a restart forgets every seen message id and every
counter, which only widens the window for one redelivery.
"""

import threading
import time
from typing import Callable, Optional

from mavrikan.logging_config import get_logger
from mavrikan.services.identity_service import mask_phone

logger = get_logger("ingress_guard")

DEDUP_WINDOW_SECONDS = 30.0
RATE_LIMIT_MAX = 15
RATE_WINDOW_SECONDS = 60.0


class IngressGuard:
    """Deduplicates provider redeliveries and caps messages per sender per minute.

    Rate counters live in fixed epochs and are cleared in bulk when
    an epoch ends, so a sender can squeeze up to twice the ceiling across an
    epoch boundary.
    """

    def __init__(
        self,
        *,
        dedup_window_seconds: float = DEDUP_WINDOW_SECONDS,
        rate_limit_max: int = RATE_LIMIT_MAX,
        rate_window_seconds: float = RATE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.dedup_window_seconds = dedup_window_seconds
        self.rate_limit_max = rate_limit_max
        self.rate_window_seconds = rate_window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._seen: dict[str, float] = {}
        self._counts: dict[str, int] = {}
        self._epoch_started = clock()

    def is_duplicate(self, message_id: Optional[str]) -> bool:
        """True if the id was already seen inside the window; otherwise remembers it."""
        if not message_id:
            return False
        now = self._clock()
        with self._lock:
            expires_at = self._seen.get(message_id)
            if expires_at is not None and expires_at > now:
                return True
            self._seen[message_id] = now + self.dedup_window_seconds
            return False

    def allow(self, sender: str) -> bool:
        """Count one message for the sender; False once the ceiling is reached this epoch."""
        with self._lock:
            self._roll_epoch_if_due(self._clock())
            count = self._counts.get(sender, 0)
            if count >= self.rate_limit_max:
                logger.info(
                    "Rate limit hit",
                    extra={"context": {"sender": mask_phone(sender.split("@", 1)[0]), "count": count}},
                )
                return False
            self._counts[sender] = count + 1
            return True

    def message_count(self, sender: str) -> int:
        with self._lock:
            self._roll_epoch_if_due(self._clock())
            return self._counts.get(sender, 0)

    def evict_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [message_id for message_id, expires_at in self._seen.items() if expires_at <= now]
            for message_id in expired:
                del self._seen[message_id]
        return len(expired)

    def roll_epoch(self) -> None:
        """Clear all rate counters and start a new epoch."""
        with self._lock:
            self._counts.clear()
            self._epoch_started = self._clock()

    def tick(self) -> None:
        """Periodic maintenance: drop expired ids and roll the epoch when due."""
        self.evict_expired()
        with self._lock:
            self._roll_epoch_if_due(self._clock())

    def _roll_epoch_if_due(self, now: float) -> None:
        if now - self._epoch_started >= self.rate_window_seconds:
            self._counts.clear()
            self._epoch_started = now
