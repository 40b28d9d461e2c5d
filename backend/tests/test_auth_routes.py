import psycopg2.errors
import pytest
from argon2.exceptions import VerifyMismatchError

from backend.auth_service.utils import create_token, verify_token
from backend.errors import StoreError


def test_signup_success(client, mock_db, mocker):
    mock_conn, mock_cursor = mock_db

    # RETURNING user_id, role
    mock_cursor.fetchone.return_value = {"user_id": 1, "role": "user"}

    # Mock PasswordHasher instance
    mock_ph = mocker.patch("backend.auth_service.routes.ph")
    mock_ph.hash.return_value = "hashed_secret"

    payload = {
        "email": "  Student@Campus.EDU ",
        "password": "password123",
    }

    response = client.post("/auth/signup", json=payload)

    assert response.status_code == 201
    data = response.get_json()
    assert data["user_id"] == 1
    assert data["role"] == "user"

    # Verify DB interaction
    args, _ = mock_cursor.execute.call_args
    assert args[1][0] == "student@campus.edu"  # email normalised
    assert args[1][1] == "hashed_secret"  # password hash


def test_signup_missing_fields(client):
    response = client.post("/auth/signup", json={})
    assert response.status_code == 400
    assert "Email and password required" in response.get_json()["error"]


@pytest.mark.parametrize("payload", [
    {"email": "no-at-sign", "password": "password123"},
    {"email": "a@b.edu", "password": "short"},
])
def test_signup_invalid_input(client, payload):
    response = client.post("/auth/signup", json=payload)
    assert response.status_code == 400


def test_signup_duplicate_email(client, mock_db):
    mock_conn, mock_cursor = mock_db
    mock_cursor.execute.side_effect = psycopg2.errors.UniqueViolation("duplicate key")

    response = client.post("/auth/signup", json={"email": "a@b.edu", "password": "password123"})

    assert response.status_code == 409
    assert response.get_json()["error"] == "Email already exists"


def test_signup_database_error(client, mock_db):
    mock_conn, mock_cursor = mock_db
    mock_cursor.execute.side_effect = psycopg2.OperationalError("connection lost")

    response = client.post("/auth/signup", json={"email": "a@b.edu", "password": "password123"})

    assert response.status_code == 500


def test_signup_database_busy(client, mocker):
    mocker.patch(
        "backend.auth_service.routes.get_db",
        side_effect=StoreError("Database is busy, try again later"),
    )

    response = client.post("/auth/signup", json={"email": "a@b.edu", "password": "password123"})

    assert response.status_code == 500
    assert response.get_json() == {"error": "Database is busy, try again later"}


def test_login_success(client, mock_db, mocker):
    mock_conn, mock_cursor = mock_db

    mock_cursor.fetchone.return_value = {
        "user_id": 1,
        "email": "test@example.com",
        "password_hash": "hashed_secret",
        "role": "user"
    }

    mock_ph = mocker.patch("backend.auth_service.routes.ph")
    mock_ph.verify.return_value = True

    response = client.post("/auth/login", json={"email": "test@example.com", "password": "password123"})

    assert response.status_code == 200
    data = response.get_json()
    assert data["user_id"] == 1
    assert data["email"] == "test@example.com"
    assert verify_token(data["token"]) == 1


def test_login_invalid_credentials(client, mock_db, mocker):
    mock_conn, mock_cursor = mock_db

    mock_cursor.fetchone.return_value = {
        "user_id": 1,
        "email": "test@example.com",
        "password_hash": "hashed_secret",
        "role": "user"
    }

    mock_ph = mocker.patch("backend.auth_service.routes.ph")
    mock_ph.verify.side_effect = VerifyMismatchError()

    response = client.post("/auth/login", json={"email": "test@example.com", "password": "wrongpassword"})

    assert response.status_code == 401
    assert "Invalid credentials" in response.get_json()["error"]


def test_login_unknown_email(client, mock_db):
    mock_conn, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = None

    response = client.post("/auth/login", json={"email": "ghost@example.com", "password": "password123"})

    assert response.status_code == 401


def test_update_password(client, mock_db, mocker):
    mock_conn, mock_cursor = mock_db
    mock_cursor.rowcount = 1
    mock_ph = mocker.patch("backend.auth_service.routes.ph")
    mock_ph.hash.return_value = "new_hash"

    token = create_token(5, "user")
    response = client.put(
        "/auth/password",
        json={"new_password": "longenough"},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 200
    args, _ = mock_cursor.execute.call_args
    assert args[1] == ("new_hash", 5)


def test_update_password_too_short(client):
    token = create_token(5, "user")
    response = client.put(
        "/auth/password",
        json={"new_password": "abc"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 400


def test_update_password_user_missing(client, mock_db):
    mock_conn, mock_cursor = mock_db
    mock_cursor.rowcount = 0

    token = create_token(5, "user")
    response = client.put(
        "/auth/password",
        json={"new_password": "longenough"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 404


def test_update_password_unauthenticated(client):
    response = client.put("/auth/password", json={"new_password": "longenough"})
    assert response.status_code == 401


def test_get_me_success(client, mock_db):
    mock_conn, mock_cursor = mock_db

    token = create_token(1, "user")

    mock_cursor.fetchone.return_value = {
        "user_id": 1,
        "email": "test@example.com",
        "role": "user",
        "created_at": None,
    }

    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.get_json()["email"] == "test@example.com"


def test_get_me_unauthorized(client):
    response = client.get("/auth/me")
    assert response.status_code == 401


def test_list_users_requires_admin(client):
    token = create_token(2, "user")
    response = client.get("/auth/users", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403


def test_list_users_as_admin(client, mock_db):
    mock_conn, mock_cursor = mock_db
    mock_cursor.fetchall.return_value = [
        {"user_id": 1, "email": "admin@email.com", "role": "admin", "created_at": None},
        {"user_id": 2, "email": "student@campus.edu", "role": "user", "created_at": None},
    ]

    token = create_token(1, "admin")
    response = client.get("/auth/users", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert [u["role"] for u in response.get_json()] == ["admin", "user"]
