import os

os.environ.setdefault("CRUD_USERS_ENVIRONMENT", "test")
os.environ.setdefault("CRUD_USERS_DATABASE_URL", "sqlite://")
os.environ.setdefault("CRUD_USERS_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("CRUD_USERS_BCRYPT_ROUNDS", "4")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402
from sqlmodel.pool import StaticPool  # noqa: E402

from crud_users.auth import hash_password  # noqa: E402
from crud_users.database import get_session  # noqa: E402
from crud_users.main import app  # noqa: E402
from crud_users.models.user import Role, User  # noqa: E402
from crud_users.store import UserStore  # noqa: E402


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        # Seed admin user
        admin = User(
            name="Admin",
            last_name="Root",
            phone_number="5550000000",
            email="admin@example.com",
            username="admin",
            password_hash=hash_password("adminpass"),
            role=Role.ADMIN,
        )
        session.add(admin)
        session.commit()
        yield session


@pytest.fixture
def store(session: Session) -> UserStore:
    return UserStore(session)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        yield session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_token(client: TestClient) -> str:
    response = client.post(
        "/api/v1/auth/login",
        json={"identifier": "admin", "password": "adminpass"},
    )
    return response.json()["token"]


@pytest.fixture
def regular_user(session: Session) -> User:
    user = User(
        name="Test",
        last_name="User",
        phone_number="5559876543",
        email="test@example.com",
        username="testuser",
        password_hash=hash_password("testpass1"),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def user_token(client: TestClient, regular_user: User) -> str:
    response = client.post(
        "/api/v1/auth/login",
        json={"identifier": "testuser", "password": "testpass1"},
    )
    return response.json()["token"]


@pytest.fixture
def registration() -> dict:
    return {
        "name": "Ana",
        "lastName": "Lopez",
        "phoneNumber": "5551234567",
        "email": "a@x.com",
        "username": "ana1",
        "password": "password1",
    }
