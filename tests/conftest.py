import os
import tempfile
import time

# Settings are read once at import of app.*: point them at a throwaway DB first.
_DB_PATH = os.path.join(tempfile.mkdtemp(prefix="cv_analysis_test_"), "test.sqlite3")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["ALGORITHM"] = "HS256"
os.environ["AUTH_MODE"] = "verified"
os.environ["REDIS_URL"] = ""
os.environ["CACHE_ERROR_POLICY"] = "fail-open"

import pytest  # noqa: E402
from jose import jwt  # noqa: E402

from app.database import Base, SessionLocal, engine  # noqa: E402
from app.models import CvAnalysis  # noqa: E402,F401

TEST_SECRET = "test-secret"


def make_token(sub: str = "u1", secret: str = TEST_SECRET, **claims) -> str:
    payload = {"sub": sub, "exp": int(time.time()) + 3600, **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(sub: str = "u1", **kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(sub, **kwargs)}"}


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
