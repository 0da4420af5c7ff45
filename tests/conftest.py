import os

import pytest
from fastapi.testclient import TestClient

# Set test database before any imports
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

from app.config import get_settings
from app.main import create_app
from db.base import Base
from db.session import engine


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create all tables before tests run, drop after all tests complete."""
    # Import models to ensure they are registered with Base
    from db.models import Automation, Execution, ExecutionLog, ToolCall  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    """Clean tables between tests to ensure isolation."""
    yield
    from db.models import Automation, Execution, ExecutionLog, ToolCall
    from db.session import SessionLocal

    with SessionLocal() as db:
        db.query(ToolCall).delete()
        db.query(ExecutionLog).delete()
        db.query(Execution).delete()
        db.query(Automation).delete()
        db.commit()


@pytest.fixture(autouse=True)
def _no_signer(monkeypatch):
    monkeypatch.delenv("EXECUTOR_PRIVATE_KEY", raising=False)
    monkeypatch.setenv("SSE_KEEPALIVE_S", "0.5")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def client():
    app = create_app()
    with TestClient(app) as client:
        yield client
