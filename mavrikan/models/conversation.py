from sqlalchemy import JSON, Column, String
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP

from mavrikan.database import Base


class Conversation(Base):
    __tablename__ = "conversations"

    phone = Column(String(50), primary_key=True)  # digits only
    display_name = Column(String(255))
    state = Column(String(50), nullable=False, default="idle")
    # location, chat_address, per-item answers, item queue, owner_contacted, completed_at
    data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, index=True)
