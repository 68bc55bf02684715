# app/data/models/product.py
from sqlalchemy import Column, Integer, ForeignKey, String, Numeric, JSON
from sqlalchemy.orm import relationship

from app.data.database import Base


class ProductModel(Base):
    """
    Wiersz katalogu (wlasnosc katalogu, nie koszyka).
    Rdzen czyta title/price/images, a zapisuje wylacznie stock.
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)
    price = Column(Numeric(10, 2), nullable=False)
    images = Column(JSON, nullable=False, default=list)

    # bez dolnej granicy, moze spasc ponizej zera
    stock = Column(Integer, nullable=False, default=0)

    variants = relationship(
        "ProductVariantModel",
        back_populates="product",
        cascade="all, delete-orphan",
    )


class ProductVariantModel(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    image = Column(String, nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=True)

    product = relationship("ProductModel", back_populates="variants")
