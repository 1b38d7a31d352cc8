from datetime import datetime

from conftest import auth_headers, login, register


class TestRegister:
    def test_register_returns_public_user(self, client):
        res = client.post(
            "/api/v1/auth/register",
            json={"email": "a@b.com", "password": "password123", "name": "A"},
        )
        assert res.status_code == 201
        body = res.json()
        assert body["success"] is True
        user = body["data"]
        assert set(user.keys()) == {"id", "email", "name", "created_at"}
        assert user["email"] == "a@b.com"
        assert user["name"] == "A"
        assert "password" not in res.text
        assert "password_hash" not in res.text

    def test_register_duplicate_email(self, client):
        register(client)
        errors = []
        for attempt in range(3):
            res = client.post(
                "/api/v1/auth/register",
                json={"email": "a@b.com", "password": f"otherpass{attempt}", "name": "B"},
            )
            assert res.status_code == 409
            body = res.json()
            assert body["success"] is False
            errors.append(body["error"])
        assert errors[0] == {
            "code": "USER_EXISTS",
            "message": "User with this email already exists",
        }
        assert errors[1] == errors[0]
        assert errors[2] == errors[0]

    def test_register_reports_every_violation(self, client):
        res = client.post(
            "/api/v1/auth/register",
            json={"email": "bad", "password": "short", "name": ""},
        )
        assert res.status_code == 400
        error = res.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["message"] == "Validation failed"
        assert error["details"] == [
            "email: must be a valid email",
            "password: must be at least 8 characters",
            "name: is required",
        ]

    def test_register_missing_fields(self, client):
        res = client.post("/api/v1/auth/register", json={"email": "a@b.com"})
        assert res.status_code == 400
        details = res.json()["error"]["details"]
        assert "password: is required" in details
        assert "name: is required" in details

    def test_register_password_too_long(self, client):
        res = client.post(
            "/api/v1/auth/register",
            json={"email": "a@b.com", "password": "p" * 73, "name": "A"},
        )
        assert res.status_code == 400
        assert res.json()["error"]["details"] == ["password: must be at most 72 characters"]

    def test_register_malformed_json(self, client):
        res = client.post(
            "/api/v1/auth/register",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )
        assert res.status_code == 400
        error = res.json()["error"]
        assert error["code"] == "BAD_REQUEST"
        assert error["message"] == "Invalid JSON request body"
        assert "details" not in error


class TestLogin:
    def test_login_returns_token_and_user(self, client):
        created = register(client)
        res = client.post("/api/v1/auth/login", json={"email": "a@b.com", "password": "password123"})
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["token"]
        assert data["user"]["id"] == created["id"]
        assert data["user"]["email"] == "a@b.com"
        expires_at = datetime.fromisoformat(data["expires_at"].replace("Z", "+00:00"))
        assert expires_at.tzinfo is not None

    def test_wrong_password_and_unknown_email_are_indistinguishable(self, client):
        register(client)
        wrong = client.post("/api/v1/auth/login", json={"email": "a@b.com", "password": "wrongpass1"})
        unknown = client.post("/api/v1/auth/login", json={"email": "x@y.com", "password": "password123"})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()
        assert wrong.json()["error"] == {
            "code": "INVALID_CREDENTIALS",
            "message": "Invalid email or password",
        }

    def test_login_validation(self, client):
        res = client.post("/api/v1/auth/login", json={"email": "", "password": ""})
        assert res.status_code == 400
        assert res.json()["error"]["details"] == ["email: is required", "password: is required"]


class TestRefresh:
    def test_refresh_issues_new_token(self, client):
        register(client)
        token = login(client)["token"]
        res = client.post("/api/v1/auth/refresh", headers=auth_headers(token))
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["token"]
        assert data["user"]["email"] == "a@b.com"
        # The old token is not revoked.
        assert client.get("/api/v1/todos/", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/v1/todos/", headers=auth_headers(data["token"])).status_code == 200

    def test_refresh_requires_header(self, client):
        res = client.post("/api/v1/auth/refresh")
        assert res.status_code == 401
        assert res.json()["error"]["code"] == "UNAUTHORIZED"

    def test_refresh_rejects_garbage_token(self, client):
        res = client.post("/api/v1/auth/refresh", headers=auth_headers("not.a.token"))
        assert res.status_code == 401
        assert res.json()["error"]["message"] == "Invalid or expired token"

    def test_refresh_for_deleted_user(self, app, client):
        user = register(client)
        token = login(client)["token"]
        app.state.store.users.delete(user["id"])
        res = client.post("/api/v1/auth/refresh", headers=auth_headers(token))
        assert res.status_code == 404
        assert res.json()["error"] == {"code": "NOT_FOUND", "message": "User not found"}


class TestBearerHeader:
    def test_wrong_scheme(self, client, user_token):
        res = client.get("/api/v1/todos/", headers={"Authorization": f"Token {user_token}"})
        assert res.status_code == 401
        assert res.json()["error"]["code"] == "UNAUTHORIZED"

    def test_lowercase_scheme_rejected(self, client, user_token):
        res = client.get("/api/v1/todos/", headers={"Authorization": f"bearer {user_token}"})
        assert res.status_code == 401

    def test_extra_parts_rejected(self, client, user_token):
        res = client.get("/api/v1/todos/", headers={"Authorization": f"Bearer {user_token} extra"})
        assert res.status_code == 401

    def test_token_signed_with_other_secret(self, client):
        import jwt

        forged = jwt.encode(
            {"user_id": "x", "email": "x@y.com", "iss": "todo-api", "iat": 0, "nbf": 0, "exp": 4102444800},
            "another-secret-that-is-long-enough-too",
            algorithm="HS256",
        )
        res = client.get("/api/v1/todos/", headers=auth_headers(forged))
        assert res.status_code == 401
