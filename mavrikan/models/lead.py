from sqlalchemy import JSON, Column, Integer, String, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP

from mavrikan.database import Base


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone = Column(String(50), nullable=False)
    name = Column(String(255))
    location = Column(String(255))
    item_type = Column(String(50), nullable=False)  # sofa, mattress, carpet, multiple
    item_details = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)
    photos = Column(JSON().with_variant(ARRAY(Text), "postgresql"), nullable=False, default=list)
    status = Column(String(20), nullable=False, default="new", index=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
