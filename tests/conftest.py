import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("LOG_FORMAT", "text")

import uuid  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from unittest.mock import patch  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import docrouting.models  # noqa: E402,F401
from docrouting.db import Base  # noqa: E402
from docrouting.models.person import Department, Person, PersonRole  # noqa: E402
from docrouting.models.routing import DocumentType  # noqa: E402
from docrouting.schemas.routing import DocumentCreate  # noqa: E402
from docrouting.services.documents import documents  # noqa: E402
from docrouting.services.identity import Actor  # noqa: E402


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy drive it.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        join_transaction_mode="create_savepoint",
        autoflush=False,
    )
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(autouse=True)
def published():
    """Capture events instead of sending them to a broker."""
    with patch("docrouting.tasks.events.process_event.delay") as mock_delay:
        yield mock_delay


@pytest.fixture()
def make_department(db_session):
    def _make(code=None, name=None, is_presidential=False, is_active=True):
        code = code or f"D{uuid.uuid4().hex[:6].upper()}"
        department = Department(
            name=name or f"Department {code}",
            code=code,
            is_presidential=is_presidential,
            is_active=is_active,
        )
        db_session.add(department)
        db_session.commit()
        db_session.refresh(department)
        return department

    return _make


@pytest.fixture()
def make_person(db_session):
    def _make(department=None, role=PersonRole.user, is_active=True, first_name="Test"):
        person = Person(
            first_name=first_name,
            last_name="User",
            email=f"{first_name.lower()}-{uuid.uuid4().hex[:8]}@example.com",
            department_id=department.id if department is not None else None,
            role=role,
            is_active=is_active,
        )
        db_session.add(person)
        db_session.commit()
        db_session.refresh(person)
        return person

    return _make


@pytest.fixture()
def departments(make_department):
    """Origin A, waypoints B and D, final destination C, and a presidential office."""
    return SimpleNamespace(
        a=make_department("ACC", "Accounting"),
        b=make_department("BUD", "Budget"),
        c=make_department("REG", "Registrar"),
        d=make_department("HRM", "Human Resources"),
        president=make_department("OP", "Office of the President", is_presidential=True),
    )


@pytest.fixture()
def people(departments, make_person):
    return SimpleNamespace(
        owner=make_person(departments.a, first_name="Owner"),
        b_user=make_person(departments.b, first_name="Bea"),
        b_admin=make_person(departments.b, role=PersonRole.admin, first_name="Bart"),
        c_user=make_person(departments.c, first_name="Cora"),
        c_admin=make_person(departments.c, role=PersonRole.admin, first_name="Carl"),
        d_user=make_person(departments.d, first_name="Dana"),
        d_admin=make_person(departments.d, role=PersonRole.admin, first_name="Dirk"),
    )


@pytest.fixture()
def actor():
    return Actor.from_person


@pytest.fixture()
def submit(db_session):
    """Submit a document through the service layer and return the Transition."""

    def _submit(
        owner,
        recipients,
        through=(),
        document_type=DocumentType.order,
        files=None,
        **fields,
    ):
        payload = DocumentCreate(
            subject=fields.pop("subject", "Budget request"),
            document_type=document_type,
            recipient_department_ids=[d.id for d in recipients],
            through_department_ids=[d.id for d in through],
            **fields,
        )
        return documents.submit(
            db_session, Actor.from_person(owner), payload, files=files
        )

    return _submit


@pytest.fixture()
def client(db_session):
    from docrouting.api.deps import get_db
    from docrouting.main import app

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    def _headers(person):
        return {"X-User-Id": str(person.id)}

    return _headers
