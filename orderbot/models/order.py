from sqlalchemy import TIMESTAMP, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from orderbot.database import Base


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String(64), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False)
    status = Column(String(16), nullable=False, default="pending")
    payment_status = Column(String(16), nullable=False, default="unpaid")  # unpaid, pending_cod, paid
    currency = Column(String(3), nullable=False, default="INR")
    subtotal = Column(Integer, nullable=False)  # minor units
    tax = Column(Integer, nullable=False)
    total = Column(Integer, nullable=False)
    customer_name = Column(Text)
    customer_phone = Column(String(32))
    customer_email = Column(Text)
    shipping_address = Column(Text)
    items_summary = Column(Text)
    invoice_number = Column(String(32))
    invoice_url = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)

    items = relationship("OrderItem", back_populates="order")
    payments = relationship("PaymentRecord", back_populates="order")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    product_id = Column(String(36))
    product_name = Column(Text, nullable=False)
    unit_price = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    line_total = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")


class PaymentRecord(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    owner_id = Column(String(64), nullable=False)
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    method = Column(String(16), nullable=False, default="PENDING")
    status = Column(String(16), nullable=False, default="PENDING")
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)

    order = relationship("Order", back_populates="payments")
