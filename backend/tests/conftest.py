import os, sys, pytest
# Ensure backend directory is on path so 'repairdesk' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from sqlalchemy import delete
from repairdesk import create_app, get_db, remove_db_session
from repairdesk.models.base import Base
# Import all model modules to ensure tables are registered before create_all
from repairdesk.models.customer import Customer
from repairdesk.models.technician import Technician
from repairdesk.models.repair_ticket import RepairTicket, TicketSequence

TEST_CONFIG = {
    'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
    'JWT_SECRET_KEY': 'repairdesk-test-secret-key-0123456789abcdef',
    # one loader thread at a time over the shared in-memory connection
    'REPAIRDESK_LOAD_WORKERS': 1,
    'REPAIRDESK_REPORT_DAYS': 30,
}


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    app = create_app(TEST_CONFIG)
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture(autouse=True)
def clean_tables(app_instance):
    yield
    remove_db_session()
    session = get_db()
    # children first; customers are protected by ON DELETE RESTRICT
    for model in (RepairTicket, TicketSequence, Technician, Customer):
        session.execute(delete(model))
    session.commit()
    remove_db_session()
