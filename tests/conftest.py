import pytest
from decimal import Decimal

from pos_sales import create_app
from pos_sales.database import get_session, create_tables, drop_tables
from pos_sales.models import Product


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite)."""
    app = create_app('config.TestingConfig')
    return app


@pytest.fixture(autouse=True)
def fresh_schema(app):
    """Start every test from empty tables."""
    get_session().remove()
    drop_tables()
    create_tables()
    yield
    get_session().remove()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session():
    """Create database session for testing."""
    session = get_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope='function')
def make_product(session):
    """Factory for products with a given price and stock."""
    def _make(name='Product', price='5.00', stock=10):
        product = Product(
            name=name,
            sale_price=Decimal(price),
            stock_on_hand=stock
        )
        session.add(product)
        session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """Product P: stock 10, price 5.00."""
    return make_product(name='Product P', price='5.00', stock=10)
