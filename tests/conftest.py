import os

# Must be set before dentaldesk.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")
os.environ.setdefault("SECURITY_HEADERS_ENABLED", "true")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import sessionmaker

from dentaldesk.auth import create_session_token
from dentaldesk.database import Base, build_engine, get_db
from dentaldesk.main import app
from dentaldesk.models import User

ORG_ID = "org-smile"
OTHER_ORG_ID = "org-other"


@pytest.fixture
def db_engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def users(session_factory):
    """Staff of the test clinic, plus one user from another organization"""
    db = session_factory()
    people = {
        "owner": User(id="u-owner", organization_id=ORG_ID, email="owner@smile.test",
                      first_name="Olivia", last_name="Owner", role="ORGANIZATION_OWNER"),
        "manager": User(id="u-manager", organization_id=ORG_ID, email="manager@smile.test",
                        first_name="Mia", last_name="Manager", role="MANAGER"),
        "dentist": User(id="u-dentist", organization_id=ORG_ID, email="dentist@smile.test",
                        first_name="Dan", last_name="Molar", role="DENTIST"),
        "hygienist": User(id="u-hygienist", organization_id=ORG_ID, email="hygienist@smile.test",
                          first_name="Hana", last_name="Floss", role="HYGIENIST"),
        "outsider": User(id="u-outsider", organization_id=OTHER_ORG_ID, email="outsider@other.test",
                         first_name="Oscar", last_name="Other", role="MANAGER"),
    }
    db.add_all(people.values())
    db.commit()
    ids = {key: user.id for key, user in people.items()}
    db.close()
    return ids


def auth_headers(user_id: str, role: str, organization_id: str = ORG_ID) -> dict:
    token = create_session_token(user_id, organization_id, role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers(users):
    """Bearer headers keyed like the users fixture"""
    return {
        "owner": auth_headers(users["owner"], "ORGANIZATION_OWNER"),
        "manager": auth_headers(users["manager"], "MANAGER"),
        "dentist": auth_headers(users["dentist"], "DENTIST"),
        "hygienist": auth_headers(users["hygienist"], "HYGIENIST"),
        "outsider": auth_headers(users["outsider"], "MANAGER", OTHER_ORG_ID),
    }


@pytest_asyncio.fixture
async def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as async_client:
        yield async_client
    app.dependency_overrides.clear()
