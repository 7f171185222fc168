import os

# Settings are read at import time; keep tests off the local database file
# and out of the rate limiter.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SEED_ON_STARTUP", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from printy_admin.db import get_session_factory
from printy_admin.flows.state import FlowContext, Order, Service, Ticket
from printy_admin.main import create_app
from printy_admin.models import Base
from printy_admin.routes.chat import get_conversation_store, limiter
from printy_admin.seed import seed_records
from printy_admin.services.session import ConversationStore


class Recorder:
    """Collects mutator calls so tests can assert on the single write path."""

    def __init__(self):
        self.calls = []
        self.refreshes = 0
        self.created = []

    def update(self, entity_id, updates):
        self.calls.append((entity_id, updates))

    def create(self, service):
        self.created.append(service)

    def refresh(self):
        self.refreshes += 1


@pytest.fixture
def orders():
    return [
        Order(id="ORD-1", customer="Ana Reyes", status="Processing", total="₱1,000", date="May 1, 2025"),
        Order(id="ORD-2", customer="Ben Cruz", status="Awaiting Payment", total="₱2,500", date="May 2, 2025"),
        Order(id="ORD-3", customer="Cara Lim", status="Needs Quote", total="TBD", date="May 3, 2025"),
        Order(
            id="ORD-4",
            customer="Dino Tan",
            status="Verifying Payment",
            total="₱7,400",
            date="Apr 28, 2025",
            proof_of_payment_url="/proof-4.jpg",
            proof_uploaded_at="September 19, 2025 10:30 AM",
        ),
        Order(
            id="ORD-5",
            customer="Ella Sy",
            status="Verifying Payment",
            total="₱1,200",
            date="May 30, 2025",
            proof_of_payment_url="/proof-5.jpg",
            proof_uploaded_at="September 20, 2025 11:30 AM",
        ),
    ]


@pytest.fixture
def tickets():
    return [
        Ticket(
            id="TCK-3055",
            subject="Printing color mismatch on recent batch",
            status="Open",
            date="May 30",
            description="Colors look dull on batch #8421 compared to proof.",
            requester="Jorrel De Ocampo",
        ),
        Ticket(id="TCK-3052", subject="Delivery schedule inquiry", status="Open", date="May 25"),
        Ticket(id="TCK-2981", subject="Invoice correction", status="Pending", date="May 14"),
    ]


@pytest.fixture
def services():
    return [
        Service(id="SRV-CP001", name="Official Receipt", code="SRV-CP001", status="Active",
                category="BIR Registered Forms"),
        Service(id="SRV-CO002", name="Flyers", code="SRV-CO002", status="Active",
                category="Commercial Printing"),
        Service(id="SRV-PK004", name="Paper Bag", code="SRV-PK004", status="Inactive",
                category="Packaging"),
    ]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_context(orders, tickets, services, recorder):
    """Build a FlowContext over the sample entities with recording callbacks."""

    def _make(**fields):
        return FlowContext(
            orders=[o.model_copy() for o in orders],
            tickets=[t.model_copy() for t in tickets],
            services=[s.model_copy() for s in services],
            update_order=recorder.update,
            update_ticket=recorder.update,
            update_service=recorder.update,
            create_service=recorder.create,
            refresh_orders=recorder.refresh,
            refresh_tickets=recorder.refresh,
            refresh_services=recorder.refresh,
            **fields,
        )

    return _make


@pytest.fixture
def session_factory():
    """Session factory over a seeded in-memory SQLite DB.

    Uses StaticPool so all connections share the same in-memory database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    with TestingSessionLocal() as session:
        seed_records(session)
    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture
def store():
    return ConversationStore(ttl_seconds=3600, max_size=50)


@pytest.fixture
def client(session_factory, store):
    """Shared FastAPI TestClient over the seeded in-memory DB and a fresh store."""
    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_conversation_store] = lambda: store
    limiter.enabled = False

    # Not used as a context manager: the startup hook would touch the real DB.
    test_client = TestClient(app)
    yield test_client

    app.dependency_overrides.clear()
    store.clear_cache()
