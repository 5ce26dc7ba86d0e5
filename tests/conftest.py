import os
import tempfile

# Point the app at a throwaway SQLite file before tinylink is imported
_TMP_DIR = tempfile.mkdtemp(prefix="tinylink-tests-")
os.environ["ENVIRONMENT"] = "dev"
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP_DIR, "test.db")
os.environ.pop("PUBLIC_BASE_URL", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from tinylink import database, models
from tinylink.main import app


@pytest.fixture(autouse=True)
def reset_db():
    models.Base.metadata.drop_all(bind=database.engine)
    models.Base.metadata.create_all(bind=database.engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


class BrokenSession:
    """Stands in for a Session whose database is unreachable."""

    def _fail(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    execute = _fail
    query = _fail

    def close(self):
        pass


@pytest.fixture
def broken_db():
    app.dependency_overrides[database.get_db] = lambda: BrokenSession()
    yield
    app.dependency_overrides.pop(database.get_db, None)


def count_links():
    with database.SessionLocal() as session:
        return session.query(models.Link).count()
