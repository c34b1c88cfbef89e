import pytest
from datetime import date, datetime
from decimal import Decimal

import tunik.database as database
from tunik import create_app
from tunik.database import Base, get_session
from tunik.models import (
    Supplier, Product, ServiceCategory, Service, Vehicle, PaymentMethod
)


def _persist(session, obj):
    """Commit, reload and detach so later commits and request teardowns do not expire it."""
    session.add(obj)
    session.commit()
    session.refresh(obj)
    session.expunge(obj)
    return obj


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite)."""
    return create_app('config.TestConfig')


@pytest.fixture(autouse=True)
def _reset_database(app):
    """Fresh schema for every test."""
    database.db_session.remove()
    Base.metadata.drop_all(bind=database.engine)
    Base.metadata.create_all(bind=database.engine)
    yield
    database.db_session.remove()


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
def supplier(session):
    return _persist(session, Supplier(name='Repuestos Norte', company_name='Norte SAC'))


@pytest.fixture(scope='function')
def other_supplier(session):
    return _persist(session, Supplier(name='Lubricantes Sur'))


@pytest.fixture(scope='function')
def product(session, supplier):
    """Product with 10 units on hand, price 5.00."""
    return _persist(session, Product(
        supplier_id=supplier.id, name='Filtro de aceite', price=Decimal('5.00'), on_hand_qty=10
    ))


@pytest.fixture(scope='function')
def product2(session, supplier):
    """Product with 20 units on hand, price 12.50."""
    return _persist(session, Product(
        supplier_id=supplier.id, name='Pastillas de freno', price=Decimal('12.50'), on_hand_qty=20
    ))


@pytest.fixture(scope='function')
def other_product(session, other_supplier):
    """Product of a different supplier."""
    return _persist(session, Product(
        supplier_id=other_supplier.id, name='Aceite 10W40', price=Decimal('25.00'), on_hand_qty=4
    ))


@pytest.fixture(scope='function')
def category(session):
    return _persist(session, ServiceCategory(name='Mantenimiento'))


@pytest.fixture(scope='function')
def service(session, category):
    """Service priced 100.00."""
    return _persist(session, Service(name='Cambio de aceite', category_id=category.id, unit_price=Decimal('100.00')))


@pytest.fixture(scope='function')
def service2(session, category):
    """Service priced 50.00."""
    return _persist(session, Service(name='Alineamiento', category_id=category.id, unit_price=Decimal('50.00')))


@pytest.fixture(scope='function')
def vehicle(session):
    return _persist(session, Vehicle(plate='ABC123', model='Corolla', color='Rojo', owner_document='45678912'))


@pytest.fixture(scope='function')
def other_vehicle(session):
    return _persist(session, Vehicle(plate='XYZ789', model='Hilux', color='Blanco', owner_document='11122233'))


@pytest.fixture(scope='function')
def payment_method(session):
    return _persist(session, PaymentMethod(name='Efectivo'))


@pytest.fixture(scope='function')
def order_date():
    return date(2025, 3, 1)


@pytest.fixture(scope='function')
def scheduled_at():
    return datetime(2025, 3, 1, 10, 30)
