"""One inbound message, start to finish: identity, lock, read, step, write, reply."""

from typing import Any, Optional

from sqlalchemy.orm import Session

from mavrikan.config import settings
from mavrikan.logging_config import LoggerAdapter, get_logger
from mavrikan.services.conversation_service import get_conversation, save_conversation, update_chat_address
from mavrikan.services.flow_engine import (
    KEY_CHAT_ADDRESS,
    KEY_COMPLETED_AT,
    KEY_OWNER_CONTACTED,
    InboundTurn,
    Transition,
    step,
)
from mavrikan.services.flow_engine import Outcome as TurnOutcome
from mavrikan.services.identity_service import (
    ContactAddress,
    mask_phone,
    normalize_address,
    resolve_display_name,
)
from mavrikan.services.input_parser import sanitize_input
from mavrikan.services.lead_service import finalize_lead
from mavrikan.services.locks import contact_lock
from mavrikan.services.messages import MSG_NOT_UNDERSTOOD
from mavrikan.services.state_machine import FlowState, is_active, parse_state
from mavrikan.services.waha_service import WahaService

logger = get_logger("message_service")

__all__ = ["TurnOutcome", "handle_inbound_message", "handle_poll_vote"]


def _media_url(payload: dict[str, Any]) -> Optional[str]:
    media = payload.get("media")
    if isinstance(media, dict) and media.get("url"):
        return str(media["url"])
    return None


def _option_label(option: Any) -> str:
    # engines send either plain labels or {"name": ...} objects
    if isinstance(option, dict):
        return str(option.get("name") or "")
    return str(option) if option else ""


def handle_inbound_message(db: Session, gateway: WahaService, payload: dict[str, Any]) -> TurnOutcome:
    """Process a contact's text or media message."""
    address = normalize_address(payload.get("from"))
    if address is None:
        return TurnOutcome.IGNORED

    turn = InboundTurn(
        text=sanitize_input(payload.get("body"), settings.max_text_length),
        has_media=bool(payload.get("hasMedia")),
        media_url=_media_url(payload),
    )
    return _run_turn(db, gateway, address, resolve_display_name(payload, ""), turn)


def handle_poll_vote(db: Session, gateway: WahaService, payload: dict[str, Any]) -> TurnOutcome:
    """Process a `poll.vote` event as if the contact had typed the selected options."""
    vote = payload.get("vote") or {}
    if vote.get("fromMe"):
        return TurnOutcome.IGNORED

    address = normalize_address(vote.get("from"))
    if address is None:
        return TurnOutcome.IGNORED

    selections = tuple(label for label in map(_option_label, vote.get("selectedOptions") or []) if label)
    if not selections:
        return TurnOutcome.IGNORED

    turn = InboundTurn(text=sanitize_input(selections[0], settings.max_text_length), selections=selections)
    return _run_turn(db, gateway, address, resolve_display_name(payload, ""), turn)


def _run_turn(
    db: Session,
    gateway: WahaService,
    address: ContactAddress,
    profile_name: str,
    turn: InboundTurn,
) -> TurnOutcome:
    log = LoggerAdapter(logger, {"phone": mask_phone(address.phone)})
    reply_to = address.chat_address
    # Only a contact we know is mid-flow may hear the fallback reply.
    engaged = False

    try:
        with contact_lock(address.phone):
            conversation = get_conversation(db, address.phone, for_update=True)
            if conversation is None:
                state, data = FlowState.IDLE, {}
            else:
                update_chat_address(db, conversation, address.chat_address)
                state, data = parse_state(conversation.state), dict(conversation.data or {})
            engaged = is_active(state) and not data.get(KEY_COMPLETED_AT) and not data.get(KEY_OWNER_CONTACTED)

            result = step(state, data, turn)

            if result.lead is not None:
                name = profile_name or (conversation.display_name if conversation else None) or address.phone
                finalize_lead(
                    db,
                    gateway,
                    phone=address.phone,
                    name=name,
                    chat_address=reply_to,
                    draft=result.lead,
                )
            else:
                if result.writes:
                    _persist(db, address, profile_name, result)
                db.commit()
    except Exception:
        db.rollback()
        log.exception("Turn failed", context={"engaged": engaged})
        if engaged:
            gateway.send_text(reply_to, MSG_NOT_UNDERSTOOD)
        return TurnOutcome.ERROR

    for reply in result.replies:
        gateway.send_text(reply_to, reply)

    if result.outcome != TurnOutcome.IGNORED:
        log.info(
            "Turn handled",
            context={"from_state": state.value, "to_state": result.state.value, "outcome": result.outcome.value},
        )
    return result.outcome


def _persist(db: Session, address: ContactAddress, profile_name: str, result: Transition) -> None:
    updates = {**result.updates, KEY_CHAT_ADDRESS: address.chat_address}
    save_conversation(
        db,
        address.phone,
        profile_name or None,
        result.state,
        updates,
        clear=result.clear,
    )
