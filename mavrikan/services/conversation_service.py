from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from mavrikan.logging_config import get_logger
from mavrikan.models import Conversation
from mavrikan.services.flow_engine import (
    KEY_CHAT_ADDRESS,
    KEY_COMPLETED_AT,
    KEY_OWNER_CONTACTED,
    STICKY_KEYS,
)
from mavrikan.services.identity_service import mask_phone
from mavrikan.services.state_machine import RESTING_STATES, FlowState

logger = get_logger("conversation_service")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _sticky(data: Optional[dict]) -> dict[str, Any]:
    data = data if isinstance(data, dict) else {}
    return {key: data[key] for key in STICKY_KEYS if data.get(key) is not None}


def get_conversation(db: Session, phone: str, *, for_update: bool = False) -> Optional[Conversation]:
    """Load the conversation for a phone, optionally holding a row lock until commit."""
    query = db.query(Conversation).filter(Conversation.phone == phone)
    if for_update:
        query = query.with_for_update()
    return query.first()


def save_conversation(
    db: Session,
    phone: str,
    name: Optional[str],
    state: FlowState,
    updates: Optional[dict[str, Any]] = None,
    clear: Iterable[str] = (),
) -> Conversation:
    """Create or update a conversation; `data` is shallow-merged, never replaced."""
    conversation = get_conversation(db, phone)
    if conversation is None:
        conversation = Conversation(phone=phone, display_name=name or phone, data={})
        db.add(conversation)
    elif name:
        conversation.display_name = name

    data = dict(conversation.data or {})
    data.update(updates or {})
    for key in clear:
        data.pop(key, None)

    conversation.state = state.value
    conversation.data = data
    conversation.updated_at = _now()
    db.flush()
    return conversation


def update_chat_address(db: Session, conversation: Conversation, chat_address: str) -> bool:
    """Remember the latest address format a contact wrote from. Returns True if it changed."""
    data = dict(conversation.data or {})
    if data.get(KEY_CHAT_ADDRESS) == chat_address:
        return False
    previous = data.get(KEY_CHAT_ADDRESS)
    data[KEY_CHAT_ADDRESS] = chat_address
    conversation.data = data
    conversation.updated_at = _now()
    db.flush()
    if previous:
        logger.info(
            "Chat address switched",
            extra={
                "context": {
                    "phone": mask_phone(conversation.phone),
                    "previous": previous.split("@")[-1],
                    "current": chat_address.split("@")[-1],
                }
            },
        )
    return True


def complete_conversation(db: Session, phone: str) -> Optional[Conversation]:
    """Explicit reset after a lead is filed: the contact can never re-enter the flow."""
    conversation = get_conversation(db, phone)
    if conversation is None:
        return None
    data = _sticky(conversation.data)
    data[KEY_COMPLETED_AT] = _now().isoformat()
    conversation.state = FlowState.COMPLETED.value
    conversation.data = data
    conversation.updated_at = _now()
    db.flush()
    return conversation


def mark_owner_contacted(
    db: Session,
    phone: str,
    *,
    name: Optional[str] = None,
    chat_address: Optional[str] = None,
) -> tuple[Conversation, bool]:
    """Stamp `owner_contacted` without touching state or the rest of the data.

    Unknown phones get a new idle record. Returns (conversation, changed).
    """
    conversation = get_conversation(db, phone)
    stamp = _now().isoformat()

    if conversation is None:
        data: dict[str, Any] = {KEY_OWNER_CONTACTED: stamp}
        if chat_address:
            data[KEY_CHAT_ADDRESS] = chat_address
        conversation = Conversation(
            phone=phone,
            display_name=name or phone,
            state=FlowState.IDLE.value,
            data=data,
            updated_at=_now(),
        )
        db.add(conversation)
        db.flush()
        return conversation, True

    data = dict(conversation.data or {})
    if data.get(KEY_OWNER_CONTACTED):
        return conversation, False

    data[KEY_OWNER_CONTACTED] = stamp
    conversation.data = data
    conversation.updated_at = _now()
    db.flush()
    return conversation, True


def sweep_idle_conversations(db: Session, timeout_minutes: int = 30) -> int:
    """Send mid-flow conversations untouched for `timeout_minutes` back to idle."""
    cutoff = _now() - timedelta(minutes=timeout_minutes)
    stale = (
        db.query(Conversation)
        .filter(
            Conversation.updated_at < cutoff,
            Conversation.state.notin_([state.value for state in RESTING_STATES]),
        )
        .all()
    )
    for conversation in stale:
        conversation.state = FlowState.IDLE.value
        conversation.data = _sticky(conversation.data)
    db.commit()

    if stale:
        logger.info("Idle conversations reset", extra={"context": {"count": len(stale)}})
    return len(stale)
