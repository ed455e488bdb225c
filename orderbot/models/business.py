from sqlalchemy import JSON, Boolean, Column, Integer, String, Text

from orderbot.database import Base


class ChatbotSettings(Base):
    __tablename__ = "chatbot_settings"

    owner_id = Column(String(64), primary_key=True)
    enabled = Column(Boolean, nullable=False, default=False)
    auto_reply = Column(Boolean, nullable=False, default=True)
    language = Column(String(8), default="en")
    tone = Column(String(16), default="friendly")  # friendly, professional, casual, formal
    typing_delay = Column(Integer, default=0)  # milliseconds
    business_hours_only = Column(Boolean, nullable=False, default=False)
    welcome_message = Column(Text)
    keyword_triggers = Column(JSON, nullable=False, default=list)  # [{"keyword": ..., "response": ...}]


class BusinessSettings(Base):
    __tablename__ = "business_settings"

    owner_id = Column(String(64), primary_key=True)
    business_name = Column(Text)
    business_hours = Column(JSON)  # {"timezone": ..., "hours": {"mon": {"isOpen": ..., "shifts": [...]}}}


class PaymentSettings(Base):
    __tablename__ = "seller_payment_methods"

    owner_id = Column(String(64), primary_key=True)
    payment_preference = Column(String(16), nullable=False, default="both")  # online, cod, both
    razorpay_link = Column(Text)
    upi_id = Column(Text)
    qr_image_url = Column(Text)
    cod_notes = Column(Text)
