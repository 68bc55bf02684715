from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, Text
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from app.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String, nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False, default="")
    customer_phone = Column(String, nullable=False)
    delivery_address = Column(String, nullable=False)
    delivery_area = Column(String, nullable=False)  # inside, outside

    delivery_charge = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)

    payment_method = Column(String, nullable=False, default="cod")
    payment_status = Column(String, nullable=False, default="pending")  # pending, paid
    status = Column(String, nullable=False, default="pending")  # pending, processing, delivered, cancelled
    notes = Column(Text, nullable=True)

    #optimistic locking przy zmianie statusu
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
