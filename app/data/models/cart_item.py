from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, JSON, Index

from app.data.database import Base


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    product_id = Column(Integer, nullable=False)

    quantity = Column(Integer, nullable=False)

    #opcje linii - razem z product_id tworza klucz tozsamosci
    selected_color = Column(String, nullable=True)
    selected_size = Column(String, nullable=True)
    selected_variant = Column(JSON, nullable=True)
    custom_selections = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    #nie unique - opcje to nieuporzadkowany JSON, unikalnosc pilnuje CartService
    __table_args__ = (Index("ix_cart_items_user_product", "user_id", "product_id"),)
