from sqlalchemy import JSON, TIMESTAMP, Boolean, Column, Integer, String

from orderbot.database import Base


class WebhookLog(Base):
    __tablename__ = "webhook_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String(255), nullable=False, unique=True)
    source = Column(String(32), nullable=False, default="whatsapp")
    raw_payload = Column(JSON)
    processed = Column(Boolean, nullable=False, default=False)
    processed_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
