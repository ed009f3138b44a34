import pytest
from decimal import Decimal

from app import create_app
from app.database import Base, create_all, get_session
import app.database as database
from app.models import AppUser, CatalogItem, Customer, UserRole


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestingConfig')
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    return app


@pytest.fixture(autouse=True)
def _database(app):
    """Fresh schema for every test."""
    with app.app_context():
        create_all()
        yield
        get_session().remove()
        Base.metadata.drop_all(bind=database.engine)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session():
    """Database session for testing."""
    session = get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def user(session):
    """Admin staff user."""
    user = AppUser(
        username='admin',
        first_name='Admin',
        last_name='Användare',
        role=UserRole.ADMIN.value,
        active=True
    )
    user.set_password('password123')
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def technician(session):
    """Technician staff user."""
    user = AppUser(
        username='tekniker',
        first_name='Test',
        last_name='Tekniker',
        role=UserRole.TECHNICIAN.value,
        active=True
    )
    user.set_password('password123')
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def customer(session):
    """Private customer."""
    customer = Customer(
        customer_type='PRIVAT',
        first_name='Anna',
        last_name='Andersson',
        personal_number='19800101-1234',
        address='Storgatan 1, 111 22 Stockholm',
        phone='070-123 45 67',
    )
    session.add(customer)
    session.commit()
    return customer


@pytest.fixture(scope='function')
def company_customer(session):
    """Company customer."""
    customer = Customer(
        customer_type='FORETAG',
        company_name='Bygg AB',
        org_number='556000-0001',
        contact_first_name='Erik',
        contact_last_name='Berg',
        address='Industrivägen 5',
        invoice_address='Box 12, 222 33 Lund',
    )
    session.add(customer)
    session.commit()
    return customer


def _catalog_item(session, name, price, model, vat='25', article_number=None):
    item = CatalogItem(
        name=name,
        article_number=article_number,
        category='Glas' if model != 'TIM' else 'Arbete',
        unit_price_excl_tax=Decimal(price),
        vat_rate=Decimal(vat),
        pricing_model=model,
    )
    item.recompute_incl_tax()
    session.add(item)
    session.commit()
    return item


@pytest.fixture(scope='function')
def glass_item(session):
    """Area-priced glass: 1000 kr/m² excl. VAT."""
    return _catalog_item(session, 'Floatglas 4 mm', '1000', 'M2', article_number='GL-004')


@pytest.fixture(scope='function')
def labor_item(session):
    """Hourly labor: 500 kr/h excl. VAT."""
    return _catalog_item(session, 'Montering', '500', 'TIM', article_number='ARB-001')


@pytest.fixture(scope='function')
def unit_item(session):
    """Per-unit item: 200 kr excl. VAT."""
    return _catalog_item(session, 'Handtag', '200', 'ST', article_number='TB-010')


@pytest.fixture(scope='function')
def strip_item(session):
    """Length-priced strip: 80 kr/m excl. VAT."""
    return _catalog_item(session, 'Tätningslist', '80', 'M', article_number='LI-020')


@pytest.fixture(scope='function')
def authenticated_client(client, user):
    """Client logged in as the admin user."""
    with client.session_transaction() as sess:
        sess['user_id'] = user.id
    return client


@pytest.fixture(scope='function')
def technician_client(client, technician):
    """Client logged in as a technician."""
    with client.session_transaction() as sess:
        sess['user_id'] = technician.id
    return client
