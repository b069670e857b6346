"""
Seed a fresh database with a default administrator, a test client and a few
sample products.

Safe to run repeatedly: rows are matched by email or lot code and only the
missing ones are created.

Usage:
    python -m app.seed
"""
from decimal import Decimal
from sqlalchemy.orm import Session
import logging

from app.config import get_settings
from app.database import Base, SessionLocal, engine, transaction_scope
from app.models.product import Product, ProductStatus
from app.models.user import User, UserRole
from app.models import purchase  # noqa: F401

logger = logging.getLogger(__name__)

settings = get_settings()

SAMPLE_PRODUCTS = [
    {
        "lot_code": "LOT-001",
        "name": "Laptop Dell Inspiron 15",
        "price": Decimal("2500000.00"),
        "available_quantity": 15,
        "description": "Laptop Dell Inspiron 15 con procesador Intel i5, 8GB RAM, 256GB SSD",
    },
    {
        "lot_code": "LOT-002",
        "name": "Mouse Inalámbrico Logitech",
        "price": Decimal("200000.00"),
        "available_quantity": 50,
        "description": "Mouse inalámbrico Logitech MX Master 3 con precisión avanzada",
    },
    {
        "lot_code": "LOT-003",
        "name": "Teclado Mecánico RGB",
        "price": Decimal("89999.00"),
        "available_quantity": 25,
        "description": "Teclado mecánico gaming con retroiluminación RGB y switches Cherry MX",
    },
    {
        "lot_code": "LOT-004",
        "name": 'Monitor 24" Full HD',
        "price": Decimal("799000.00"),
        "available_quantity": 12,
        "description": "Monitor LED 24 pulgadas Full HD 1920x1080 con entrada HDMI",
    },
    {
        "lot_code": "LOT-005",
        "name": "Auriculares Bluetooth",
        "price": Decimal("150000.00"),
        "available_quantity": 30,
        "description": "Auriculares inalámbricos Bluetooth con cancelación de ruido",
    },
]


def _default_users():
    return [
        {
            "name": "Administrador Sistema",
            "email": settings.SEED_ADMIN_EMAIL,
            "phone": "1234567890",
            "role": UserRole.ADMIN,
        },
        {
            "name": "Cliente de Prueba",
            "email": settings.SEED_CLIENT_EMAIL,
            "phone": "0987654321",
            "role": UserRole.CLIENT,
        },
    ]


def seed_database(db: Session, with_products: bool = None) -> dict:
    """
    Create whatever default rows are missing.

    Returns:
        Counts of created users and products
    """
    if with_products is None:
        with_products = settings.SEED_SAMPLE_PRODUCTS
    created = {"users": 0, "products": 0}

    with transaction_scope(db):
        for data in _default_users():
            if db.query(User).filter(User.email == data["email"]).first():
                continue
            db.add(User(active=True, **data))
            created["users"] += 1
            logger.info(f"Created {data['role'].value} user {data['email']}")

        if with_products:
            for data in SAMPLE_PRODUCTS:
                if db.query(Product).filter(Product.lot_code == data["lot_code"]).first():
                    continue
                db.add(Product(status=ProductStatus.ACTIVE, **data))
                created["products"] += 1
                logger.info(f"Created product {data['lot_code']} ({data['name']})")

    return created


def main():
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        created = seed_database(db)
        admin = db.query(User).filter(User.email == settings.SEED_ADMIN_EMAIL).one()
        logger.info(
            f"Seeding finished: {created['users']} users, {created['products']} products created; "
            f"administrator is user #{admin.id} (send X-User-Id: {admin.id})"
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
