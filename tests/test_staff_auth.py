"""Staff login."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from quillpress.backend.main import app
from quillpress.backend.deps import get_db
from quillpress.backend.database import Base, get_test_engine
from quillpress.backend.config import get_settings

client = TestClient(app)


@pytest.fixture
def test_db_session():
    engine = get_test_engine()
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def override_get_db(test_db_session):
    def _get_db():
        try:
            yield test_db_session
        finally:
            pass
    return _get_db


@pytest.mark.timeout(10)
def test_default_staff_can_log_in(override_get_db):
    s = get_settings()
    app.dependency_overrides[get_db] = override_get_db
    try:
        r = client.post("/v1/admin/auth/login", json={"email": s.staff_default_email, "password": s.staff_default_password})
        assert r.status_code == 200
        token = r.json()["access_token"]
        me = client.get("/v1/admin/auth/me", headers={"Authorization": f"Bearer {token}"})
        bad = client.post("/v1/admin/auth/login", json={"email": s.staff_default_email, "password": "wrong"})
    finally:
        app.dependency_overrides.pop(get_db, None)

    assert me.json()["email"] == s.staff_default_email
    assert bad.status_code == 401
