from sqlalchemy import TIMESTAMP, Column, Integer, String, UniqueConstraint

from orderbot.database import Base


class UsageCounter(Base):
    __tablename__ = "business_usage"
    __table_args__ = (
        UniqueConstraint("owner_id", "metric", "period", "period_key", name="uq_business_usage_period"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String(64), nullable=False)
    metric = Column(String(32), nullable=False)  # ai_replies, orders
    period = Column(String(8), nullable=False)  # daily, monthly
    period_key = Column(String(10), nullable=False)  # YYYY-MM-DD or YYYY-MM
    count = Column(Integer, nullable=False, default=0)
    usage_limit = Column(Integer, nullable=False, default=-1)  # -1 = unlimited
    updated_at = Column(TIMESTAMP(timezone=True))
