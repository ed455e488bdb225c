import uuid

from sqlalchemy import TIMESTAMP, Boolean, Column, String, Text

from orderbot.database import Base


class WhatsAppAccount(Base):
    __tablename__ = "whatsapp_accounts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), nullable=False, index=True)
    phone_number_id = Column(String(64), nullable=False, unique=True)
    access_token = Column(Text)
    business_name = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True))
