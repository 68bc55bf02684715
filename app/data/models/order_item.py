from sqlalchemy import Column, Integer, ForeignKey, String, Numeric, JSON
from sqlalchemy.orm import relationship

from app.data.database import Base


class OrderItemModel(Base):
    """Zamrozona kopia linii koszyka z momentu zamowienia."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, nullable=False)

    title = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    image = Column(String, nullable=True)

    selected_color = Column(String, nullable=True)
    selected_size = Column(String, nullable=True)
    selected_variant = Column(JSON, nullable=True)
    custom_selections = Column(JSON, nullable=True)

    order = relationship("OrderModel", back_populates="items")
