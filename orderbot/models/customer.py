import uuid

from sqlalchemy import JSON, TIMESTAMP, Column, ForeignKey, String, Text, UniqueConstraint

from orderbot.database import Base


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (UniqueConstraint("owner_id", "phone", name="uq_customers_owner_phone"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), nullable=False)
    phone = Column(String(32), nullable=False)
    name = Column(Text)
    status = Column(String(16), nullable=False, default="active")
    conversation_state = Column(String(32), nullable=False, default="browsing")  # browsing, collecting_order_details
    conversation_context = Column(JSON)
    last_message_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True))


class Lead(Base):
    __tablename__ = "leads"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False)
    phone = Column(String(32), nullable=False)
    name = Column(Text)
    source = Column(String(32), nullable=False, default="whatsapp")
    status = Column(String(16), nullable=False, default="new")
    created_at = Column(TIMESTAMP(timezone=True))
