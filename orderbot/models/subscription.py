import uuid

from sqlalchemy import TIMESTAMP, Column, String

from orderbot.database import Base


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), nullable=False, unique=True)
    plan_id = Column(String(32), nullable=False, default="trial")
    status = Column(String(16), nullable=False, default="trial")  # trial, active, past_due, canceled, expired
    current_period_end = Column(TIMESTAMP(timezone=True))
    grace_period_ends_at = Column(TIMESTAMP(timezone=True))
