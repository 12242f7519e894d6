from datetime import timedelta

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from crud_users.auth import create_access_token
from crud_users.models.user import User


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_register_login_and_me(client: TestClient, registration: dict):
    response = client.post("/api/v1/auth/register", json=registration)
    assert response.status_code == 201
    data = response.json()
    assert data["user"]["username"] == "ana1"
    assert data["user"]["role"] == "user"
    assert data["user"]["isActive"] is True
    assert "password" not in data["user"]
    assert "passwordHash" not in data["user"]
    assert data["token"]

    login = client.post(
        "/api/v1/auth/login",
        json={"identifier": "ana1", "password": "password1"},
    )
    assert login.status_code == 200
    token = login.json()["token"]
    assert token

    me = client.get("/api/v1/users/me", headers=_auth(token))
    assert me.status_code == 200
    assert me.json()["username"] == "ana1"
    assert "password" not in me.json()


def test_register_stores_hash_not_plaintext(
    client: TestClient, session: Session, registration: dict
):
    client.post("/api/v1/auth/register", json=registration)
    user = session.exec(select(User).where(User.username == "ana1")).one()
    assert user.password_hash != "password1"
    assert user.password_hash.startswith("$2")


def test_register_reports_every_invalid_field(client: TestClient, registration: dict):
    del registration["email"]
    registration["phoneNumber"] = "12"
    response = client.post("/api/v1/auth/register", json=registration)
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert [e["field"] for e in body["errors"]] == ["phoneNumber", "email"]


def test_register_empty_body(client: TestClient):
    response = client.post("/api/v1/auth/register", json={})
    assert response.status_code == 400
    fields = [e["field"] for e in response.json()["errors"]]
    assert fields == ["name", "lastName", "phoneNumber", "email", "username", "password"]


def test_register_wrong_type_is_400(client: TestClient, registration: dict):
    registration["phoneNumber"] = 5551234567
    response = client.post("/api/v1/auth/register", json=registration)
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "phoneNumber"


def test_register_duplicate_email(client: TestClient, session: Session, registration: dict):
    assert client.post("/api/v1/auth/register", json=registration).status_code == 201
    second = dict(registration, username="ana2", phoneNumber="5551234568")
    response = client.post("/api/v1/auth/register", json=second)
    assert response.status_code == 409
    assert "email" in response.json()["error"]
    users = session.exec(select(User).where(User.email == "a@x.com")).all()
    assert len(users) == 1


def test_register_duplicate_username_and_phone(client: TestClient, registration: dict):
    client.post("/api/v1/auth/register", json=registration)
    response = client.post(
        "/api/v1/auth/register",
        json=dict(registration, email="b@x.com", phoneNumber="5551234568"),
    )
    assert response.status_code == 409
    assert "username" in response.json()["error"]

    response = client.post(
        "/api/v1/auth/register",
        json=dict(registration, email="b@x.com", username="ana2"),
    )
    assert response.status_code == 409
    assert "phoneNumber" in response.json()["error"]


def test_register_rejects_trailing_newlines(
    client: TestClient, session: Session, registration: dict
):
    assert client.post("/api/v1/auth/register", json=registration).status_code == 201
    lookalike = dict(
        registration,
        phoneNumber="555123456\n",
        email="a@x.com\n",
        username="ana1\n",
    )
    response = client.post("/api/v1/auth/register", json=lookalike)
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert [e["field"] for e in body["errors"]] == ["phoneNumber", "email", "username"]
    assert len(session.exec(select(User)).all()) == 2  # admin + ana1


def test_register_ignores_role(client: TestClient, registration: dict):
    registration["role"] = "admin"
    response = client.post("/api/v1/auth/register", json=registration)
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "user"


def test_login_with_email(client: TestClient, regular_user: User):
    response = client.post(
        "/api/v1/auth/login",
        json={"identifier": "test@example.com", "password": "testpass1"},
    )
    assert response.status_code == 200
    assert response.json()["user"]["username"] == "testuser"


def test_login_sets_last_login(client: TestClient, session: Session, regular_user: User):
    assert regular_user.last_login is None
    response = client.post(
        "/api/v1/auth/login",
        json={"identifier": "testuser", "password": "testpass1"},
    )
    assert response.json()["user"]["lastLogin"] is not None
    session.refresh(regular_user)
    assert regular_user.last_login is not None


def test_login_wrong_password(client: TestClient, regular_user: User):
    response = client.post(
        "/api/v1/auth/login",
        json={"identifier": "testuser", "password": "wrongpass"},
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"


def test_login_unknown_identifier_looks_the_same(client: TestClient):
    response = client.post(
        "/api/v1/auth/login",
        json={"identifier": "nobody", "password": "wrongpass"},
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"


def test_login_requires_identifier_and_password(client: TestClient):
    response = client.post("/api/v1/auth/login", json={})
    assert response.status_code == 400
    fields = [e["field"] for e in response.json()["errors"]]
    assert fields == ["identifier", "password"]


def test_login_skips_format_rules(client: TestClient):
    # A short, oddly formatted identifier is not a validation error at login
    response = client.post(
        "/api/v1/auth/login",
        json={"identifier": "x!", "password": "y"},
    )
    assert response.status_code == 401


def test_login_inactive_user(client: TestClient, session: Session, regular_user: User):
    regular_user.is_active = False
    session.add(regular_user)
    session.commit()
    response = client.post(
        "/api/v1/auth/login",
        json={"identifier": "testuser", "password": "testpass1"},
    )
    assert response.status_code == 401


def test_auth_me(client: TestClient, user_token: str):
    response = client.get("/api/v1/auth/me", headers=_auth(user_token))
    assert response.status_code == 200
    assert response.json()["email"] == "test@example.com"


def test_logout(client: TestClient, user_token: str):
    response = client.post("/api/v1/auth/logout", headers=_auth(user_token))
    assert response.status_code == 200


def test_logout_requires_token(client: TestClient):
    response = client.post("/api/v1/auth/logout")
    assert response.status_code == 401


def test_protected_endpoint_without_token(client: TestClient):
    response = client.get("/api/v1/users/me")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_protected_endpoint_with_wrong_scheme(client: TestClient, user_token: str):
    response = client.get(
        "/api/v1/users/me", headers={"Authorization": f"Token {user_token}"}
    )
    assert response.status_code == 401


def test_protected_endpoint_with_invalid_token(client: TestClient):
    response = client.get("/api/v1/users/me", headers=_auth("invalid.token.here"))
    assert response.status_code == 401


def test_protected_endpoint_with_expired_token(client: TestClient, regular_user: User):
    token = create_access_token(regular_user.id, expires_delta=timedelta(seconds=-10))
    response = client.get("/api/v1/users/me", headers=_auth(token))
    assert response.status_code == 401


def test_token_for_deleted_user(client: TestClient, session: Session, user_token: str):
    user = session.exec(select(User).where(User.username == "testuser")).one()
    session.delete(user)
    session.commit()
    response = client.get("/api/v1/users/me", headers=_auth(user_token))
    assert response.status_code == 401


def test_token_for_deactivated_user(
    client: TestClient, session: Session, regular_user: User, user_token: str
):
    regular_user.is_active = False
    session.add(regular_user)
    session.commit()
    response = client.get("/api/v1/users/me", headers=_auth(user_token))
    assert response.status_code == 401
    assert "deactivated" in response.json()["error"]


def test_password_never_in_any_response(
    client: TestClient, admin_token: str, registration: dict
):
    bodies = [
        client.post("/api/v1/auth/register", json=registration).json(),
        client.post(
            "/api/v1/auth/login",
            json={"identifier": "ana1", "password": "password1"},
        ).json(),
        client.get("/api/v1/users", headers=_auth(admin_token)).json(),
        client.get("/api/v1/auth/me", headers=_auth(admin_token)).json(),
    ]
    for body in bodies:
        text = str(body).lower()
        assert "password" not in text
        assert "$2b$" not in text
