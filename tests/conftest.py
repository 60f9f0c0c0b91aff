from contextlib import contextmanager
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MAIL_SUPPRESS_SEND"] = "true"
os.environ["PAYMENT_WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["PAYMENT_VERIFY_WITH_GATEWAY"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from talenthunt.database import Base, get_db
from talenthunt.main import app
from talenthunt.models.user import User
from talenthunt.services.email_service import get_email_dispatcher
from talenthunt.services.gateway_client import GatewayError, get_gateway_client
from talenthunt.services.location_service import LocationCache
from talenthunt.services.media_store import MediaStore, get_media_store
from talenthunt.services.identity_service import issue_token
from talenthunt.utils.hash import hash_password

STATES = [
    {
        "state": "Edo",
        "lgas": [
            {"name": "Oredo", "wards": [{"name": "GRA"}, {"name": "Ikpoba"}]},
            {"name": "Egor", "wards": [{"name": "Uselu"}]},
        ],
    },
    {"state": "Lagos", "lgas": [{"name": "Ikeja", "wards": [{"name": "Alausa"}]}]},
]


class FakeDispatcher:
    """Records outgoing emails instead of sending them."""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def send_code(self, email, code, purpose, name=None):
        self.sent.append({"kind": "code", "email": email, "code": code, "purpose": purpose})
        return not self.fail

    async def send_invitation(self, email, name, sponsor_name, bulk_registration_number, code):
        self.sent.append({"kind": "invitation", "email": email, "code": code, "number": bulk_registration_number})
        return not self.fail

    async def send_tickets(self, email, name, purchase_reference, ticket_numbers, items):
        self.sent.append({"kind": "tickets", "email": email, "reference": purchase_reference, "tickets": ticket_numbers})
        return not self.fail

    def last_code(self, email):
        for item in reversed(self.sent):
            if item["email"] == email and "code" in item:
                return item["code"]
        return None


class FakeGateway:
    def __init__(self):
        self.transactions = {}

    def fetch_transaction(self, reference):
        if reference not in self.transactions:
            raise GatewayError("gateway returned HTTP 404")
        return self.transactions[reference]


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)

    # let SQLAlchemy drive BEGIN so SAVEPOINTs behave
    @event.listens_for(engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    # fixture sessions and request sessions share the one StaticPool connection
    @event.listens_for(engine, "begin")
    def _begin(conn):
        if not conn.connection.dbapi_connection.in_transaction:
            conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def media_store(tmp_path):
    return MediaStore(root=str(tmp_path), base_url="/static/uploads")


@pytest.fixture
def client(session_factory, dispatcher, gateway, media_store):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    async def fake_fetch():
        return STATES

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_gateway_client] = lambda: gateway
    app.dependency_overrides[get_media_store] = lambda: media_store
    app.state.location_cache = LocationCache(fetch=fake_fetch)

    with TestClient(app) as test_client:
        app.state.location_cache = LocationCache(fetch=fake_fetch)
        yield test_client

    app.dependency_overrides.clear()


def make_user(db, email="ada@example.com", role="user", verified=True, password="Password123", first_name="Ada"):
    user = User(
        first_name=first_name,
        last_name="Obi",
        email=email,
        role=role,
        is_email_verified=verified,
        is_password_set=password is not None,
        password_hash=hash_password(password) if password else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {issue_token(user)}"}


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def admin(db):
    return make_user(db, email="admin@example.com", role="admin", first_name="Admin")


@contextmanager
def rival_commits_first(session, rival):
    """Run ``rival`` right before ``session`` issues its first conditional UPDATE."""
    fired = []

    def _before(state):
        if state.is_update and not fired:
            fired.append(True)
            rival()

    event.listen(session, "do_orm_execute", _before)
    try:
        yield fired
    finally:
        event.remove(session, "do_orm_execute", _before)
