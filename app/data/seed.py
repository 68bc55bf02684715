# app/data/seed.py
from decimal import Decimal

from app.data.database import SessionLocal
from app.data.models import ProductModel, ProductVariantModel, UserModel
from app.utils.logging import get_logger

logger = get_logger(__name__)


def seed(session_factory=SessionLocal):
    db = session_factory()
    try:
        # not forcing: only seed if empty
        if db.query(ProductModel).first():
            return

        db.add_all([
            UserModel(id=1, name="Demo Customer", email="customer@example.com"),
            UserModel(id=2, name="Demo Admin", email="admin@example.com", is_admin=True),
        ])

        tee = ProductModel(
            title="Oversized Tee",
            slug="oversized-tee",
            price=Decimal("10.00"),
            images=["/img/tee-black.jpg"],
            stock=50,
        )
        hoodie = ProductModel(
            title="Hoodie",
            slug="hoodie",
            price=Decimal("25.00"),
            images=["/img/hoodie.jpg"],
            stock=20,
            variants=[
                ProductVariantModel(name="Zip", image="/img/hoodie-zip.jpg", price=Decimal("30.00")),
                ProductVariantModel(name="Classic", image="/img/hoodie.jpg"),
            ],
        )
        db.add_all([tee, hoodie])
        db.commit()
        logger.info("Seeded demo users and products")
    finally:
        db.close()


if __name__ == "__main__":
    from app.main import init_db

    init_db()
    seed()
