from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from mavrikan.config import settings
from mavrikan.logging_config import get_logger
from mavrikan.models import Lead
from mavrikan.services.conversation_service import complete_conversation
from mavrikan.services.flow_engine import LeadDraft
from mavrikan.services.identity_service import format_chat_address, mask_phone
from mavrikan.services.messages import MSG_THANK_YOU, photo_caption, render_owner_notification
from mavrikan.services.waha_service import WahaService

logger = get_logger("lead_service")


def save_lead(db: Session, *, phone: str, name: str, draft: LeadDraft) -> Lead:
    lead = Lead(
        phone=phone,
        name=name,
        location=draft.location,
        item_type=draft.item_type,
        item_details=draft.item_details,
        photos=list(draft.photos),
        created_at=datetime.now(timezone.utc),
    )
    db.add(lead)
    db.flush()
    return lead


def finalize_lead(
    db: Session,
    gateway: WahaService,
    *,
    phone: str,
    name: str,
    chat_address: Optional[str],
    draft: LeadDraft,
) -> Lead:
    """File the lead, reset the conversation, then thank the contact and notify the owner.

    Both writes are committed before anything is sent.
    """
    lead = save_lead(db, phone=phone, name=name, draft=draft)
    complete_conversation(db, phone)
    db.commit()

    logger.info(
        "Lead saved",
        extra={"context": {"lead_id": lead.id, "phone": mask_phone(phone), "item_type": draft.item_type}},
    )

    gateway.send_text(chat_address or format_chat_address(phone), MSG_THANK_YOU)

    owner_chat = format_chat_address(settings.owner_phone)
    notification = render_owner_notification(
        name=name,
        phone=phone,
        location=draft.location,
        item_type=draft.item_type,
        item_details=draft.item_details,
        photos=draft.photos,
    )
    if not gateway.send_text(owner_chat, notification):
        logger.error("Owner notification failed", extra={"context": {"lead_id": lead.id}})

    caption = photo_caption(name)
    for photo_url in draft.photos:
        if not gateway.send_image(owner_chat, photo_url, caption):
            logger.warning("Photo forward failed", extra={"context": {"lead_id": lead.id, "url": photo_url}})

    return lead
