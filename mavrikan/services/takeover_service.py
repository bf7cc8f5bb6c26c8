"""Detect the operator writing to a contact from the business phone."""

from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from mavrikan.logging_config import get_logger
from mavrikan.services.conversation_service import get_conversation, mark_owner_contacted
from mavrikan.services.identity_service import mask_phone, normalize_address
from mavrikan.services.locks import contact_lock

logger = get_logger("takeover_service")

# WAHA marks messages sent through its REST API (i.e. by this bot) with this source
BOT_SOURCE = "api"


class TakeoverOutcome(str, Enum):
    CREATED = "created"
    MARKED = "marked"
    ALREADY_MARKED = "already_marked"
    IGNORED = "ignored"


def handle_operator_message(db: Session, payload: dict[str, Any]) -> TakeoverOutcome:
    """Flag the destination contact as owner-handled so the bot never engages them."""
    if payload.get("source") == BOT_SOURCE:
        return TakeoverOutcome.IGNORED

    # `from` on an operator event is the business number itself
    address = normalize_address(payload.get("to"))
    if address is None:
        return TakeoverOutcome.IGNORED

    with contact_lock(address.phone):
        existed = get_conversation(db, address.phone, for_update=True) is not None
        _, changed = mark_owner_contacted(db, address.phone, chat_address=address.chat_address)
        db.commit()

    if not changed:
        return TakeoverOutcome.ALREADY_MARKED

    outcome = TakeoverOutcome.MARKED if existed else TakeoverOutcome.CREATED
    logger.info(
        "Owner takeover recorded",
        extra={"context": {"phone": mask_phone(address.phone), "outcome": outcome.value}},
    )
    return outcome
