import uuid

from sqlalchemy import TIMESTAMP, Boolean, Column, Integer, String, Text

from orderbot.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), nullable=False, index=True)
    name = Column(Text, nullable=False)
    price = Column(Integer, nullable=False, default=0)  # minor units
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True))
