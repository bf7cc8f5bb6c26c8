from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from mavrikan.database import get_db
from mavrikan.logging_config import get_logger
from mavrikan.schemas.webhook import MESSAGE_EVENTS, POLL_VOTE_EVENT, WahaMessage, WahaWebhook, WebhookResponse
from mavrikan.services.ingress_guard import IngressGuard
from mavrikan.services.message_service import handle_inbound_message, handle_poll_vote
from mavrikan.services.takeover_service import handle_operator_message
from mavrikan.services.waha_service import WahaService, get_gateway

logger = get_logger("webhook")

router = APIRouter()


def get_ingress_guard(request: Request) -> IngressGuard:
    return request.app.state.ingress_guard


@router.post("/webhook/whatsapp", response_model=WebhookResponse, response_model_exclude_none=True)
def handle_whatsapp_webhook(
    body: WahaWebhook,
    db: Session = Depends(get_db),
    guard: IngressGuard = Depends(get_ingress_guard),
    gateway: WahaService = Depends(get_gateway),
):
    """Receive WAHA events. Always acknowledges unless processing blows up."""
    logger.debug(f"Webhook event: {body.event}")
    try:
        if body.event in MESSAGE_EVENTS:
            return _handle_message_event(body.payload, db, guard, gateway)
        if body.event == POLL_VOTE_EVENT:
            return _handle_poll_vote_event(body.payload, db, guard, gateway)
        return WebhookResponse(ignored=True)
    except Exception:
        db.rollback()
        logger.exception("Webhook processing failed", extra={"context": {"event": body.event}})
        return JSONResponse(status_code=500, content={"error": "Internal error"})


def _handle_message_event(
    payload: dict[str, Any],
    db: Session,
    guard: IngressGuard,
    gateway: WahaService,
) -> WebhookResponse:
    message = WahaMessage.model_validate(payload)

    if message.fromMe:
        outcome = handle_operator_message(db, payload)
        return WebhookResponse(outcome=outcome.value)

    if not message.id or not message.from_:
        return WebhookResponse(ignored=True)

    # WAHA redelivers the same message; skip it before anything else
    if guard.is_duplicate(message.id):
        logger.info("Skipping duplicate message", extra={"context": {"message_id": message.id}})
        return WebhookResponse(duplicate=True)

    if message.skipped:
        return WebhookResponse(ignored=True)

    if not guard.allow(message.from_):
        return WebhookResponse(rate_limited=True)

    outcome = handle_inbound_message(db, gateway, payload)
    return WebhookResponse(outcome=outcome.value)


def _handle_poll_vote_event(
    payload: dict[str, Any],
    db: Session,
    guard: IngressGuard,
    gateway: WahaService,
) -> WebhookResponse:
    vote = payload.get("vote") or {}
    sender = vote.get("from")
    if vote.get("fromMe") or not sender:
        return WebhookResponse(ignored=True)

    if guard.is_duplicate(vote.get("id")):
        return WebhookResponse(duplicate=True)

    if not guard.allow(sender):
        return WebhookResponse(rate_limited=True)

    outcome = handle_poll_vote(db, gateway, payload)
    return WebhookResponse(outcome=outcome.value)
