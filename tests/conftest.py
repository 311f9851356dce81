import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import tasksync.models  # noqa: F401
from tasksync.database import Base
from tasksync.errors import RemoteApplicationError
from tasksync.main import app
from tasksync.routes.dependencies import get_db, get_remote_client
from tasksync.services.outbox import OutboxQueue
from tasksync.services.task_service import TaskService


class FakeRemote:
    """Stand-in for RemoteClient that records calls and fails on demand."""

    def __init__(self):
        self.calls = []
        self.failing_task_ids = set()
        self.connected = True
        self.on_apply = None

    def apply(self, operation, payload, task_id):
        self.calls.append((operation, payload, task_id))
        if self.on_apply is not None:
            self.on_apply(operation, payload, task_id)
        if task_id in self.failing_task_ids:
            raise RemoteApplicationError("API Error: rejected by remote", status_code=409)

    def probe_connectivity(self):
        return self.connected


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def outbox(db):
    return OutboxQueue(db)


@pytest.fixture
def task_service(db, outbox):
    return TaskService(db, outbox=outbox)


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def client(session_factory, remote):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_remote_client] = lambda: remote
    yield TestClient(app)
    app.dependency_overrides.clear()
