import uuid

from sqlalchemy import TIMESTAMP, Column, ForeignKey, Integer, String, Text, UniqueConstraint

from orderbot.database import Base


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (UniqueConstraint("owner_id", "provider_message_id", name="uq_messages_owner_provider_id"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"))
    phone = Column(String(32), nullable=False)
    direction = Column(String(8), nullable=False)  # inbound, outbound
    provider_message_id = Column(String(128))
    message_type = Column(String(16), nullable=False, default="text")  # text, media, other
    content = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
    processed_at = Column(TIMESTAMP(timezone=True))


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), nullable=False, index=True)
    name = Column(Text)
    delivered_count = Column(Integer, nullable=False, default=0)
    read_count = Column(Integer, nullable=False, default=0)
    failed_count = Column(Integer, nullable=False, default=0)


class QueuedMessage(Base):
    __tablename__ = "message_queue"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), nullable=False, index=True)
    campaign_id = Column(String(36), ForeignKey("campaigns.id"))
    recipient = Column(String(32), nullable=False)
    content = Column(Text)
    provider_message_id = Column(String(128), unique=True)
    delivery_status = Column(String(16), nullable=False, default="queued")  # queued, sent, delivered, read, failed
    sent_at = Column(TIMESTAMP(timezone=True))
    delivered_at = Column(TIMESTAMP(timezone=True))
    read_at = Column(TIMESTAMP(timezone=True))
    failed_at = Column(TIMESTAMP(timezone=True))
    error_code = Column(String(32))
    error_message = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True))
