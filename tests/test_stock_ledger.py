"""Tests for the stock check-and-decrement guard."""
import pytest

from app.models.product import Product
from app.services.exceptions import InsufficientStockError, ValidationError
from app.services.stock_ledger import StockLedger


def test_has_stock(make_product):
    product = make_product(quantity=5)

    assert StockLedger.has_stock(product, 5)
    assert StockLedger.has_stock(product, 1)
    assert not StockLedger.has_stock(product, 6)
    assert not StockLedger.has_stock(product, 0)
    assert not StockLedger.has_stock(product, -1)


def test_decrement_persists(db_session, make_product):
    product = make_product(quantity=5)
    ledger = StockLedger(db_session)

    ledger.decrement(product, 3)
    db_session.commit()

    assert product.available_quantity == 2
    assert db_session.get(Product, product.id).available_quantity == 2


def test_decrement_rejects_more_than_available(db_session, make_product):
    product = make_product(quantity=2)

    with pytest.raises(InsufficientStockError) as exc_info:
        StockLedger(db_session).decrement(product, 5)

    assert exc_info.value.available == 2
    assert exc_info.value.requested == 5
    assert product.available_quantity == 2


def test_decrement_detects_stale_read(db_session, session_factory, make_product):
    """A decrement based on an outdated read can't overwrite a newer one."""
    product = make_product(quantity=5)

    # Another transaction sells 3 units after we loaded the product
    other = session_factory()
    try:
        other.get(Product, product.id).available_quantity = 2
        other.commit()
    finally:
        other.close()

    assert product.available_quantity == 5  # stale in-memory value

    with pytest.raises(InsufficientStockError) as exc_info:
        StockLedger(db_session).decrement(product, 3)

    assert exc_info.value.available == 2
    db_session.rollback()
    assert db_session.get(Product, product.id).available_quantity == 2


def test_increment(db_session, make_product):
    product = make_product(quantity=1)

    StockLedger(db_session).increment(product, 4)
    db_session.commit()

    assert product.available_quantity == 5


def test_increment_rejects_non_positive(db_session, make_product):
    product = make_product(quantity=1)

    with pytest.raises(ValidationError):
        StockLedger(db_session).increment(product, 0)
