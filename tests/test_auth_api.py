"""HTTP tests for the auth and users blueprints through the Flask test client."""
import pytest

from conftest import bearer
from models import storage
from models.user import Role, User

REGISTER = {"name": "John", "email": "JOHN@X.com", "password": "Abc123xx"}


def _register(client, **overrides):
    body = dict(REGISTER)
    body.update(overrides)
    return client.post("/api/v1/auth/register", json=body)


def _login(client, email="john@x.com", password="Abc123xx"):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})


@pytest.fixture
def admin_headers(app, client):
    app.extensions["auth_service"].create_user("Admin", "admin@x.com", "Admin123", role=Role.ADMIN)
    return bearer(_login(client, "admin@x.com", "Admin123").get_json()["data"]["accessToken"])


class TestRegister:
    def test_created(self, client):
        resp = _register(client)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["success"] is True
        user = body["data"]["user"]
        assert user["email"] == "john@x.com"
        assert user["role"] == "user"
        assert user["isActive"] is True
        assert "password" not in user and "password_hash" not in user
        assert body["data"]["accessToken"] and body["data"]["refreshToken"]

    def test_access_token_identifies_new_user(self, client, codec):
        data = _register(client).get_json()["data"]
        assert codec.verify_access_token(data["accessToken"]).user_id == data["user"]["id"]

    def test_duplicate_email(self, client):
        _register(client)
        resp = _register(client, email="john@x.com")
        assert resp.status_code == 400
        assert resp.get_json() == {
            "success": False,
            "error": "DUPLICATE_EMAIL",
            "message": "User with this email already exists",
        }

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"email": "not-an-email"}, "email"),
            ({"password": "abc"}, "password"),
            ({"password": "alllowercase1"}, "password"),
            ({"password": "NoDigitsHere"}, "password"),
            ({"name": ""}, "name"),
        ],
    )
    def test_validation(self, client, overrides, field):
        resp = _register(client, **overrides)
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["error"] == "VALIDATION_ERROR"
        assert field in body["details"]

    def test_empty_body(self, client):
        resp = client.post("/api/v1/auth/register")
        assert resp.status_code == 400
        assert set(resp.get_json()["details"]) == {"name", "email", "password"}


class TestLogin:
    def test_ok(self, client):
        _register(client)
        resp = client.post("/api/v1/auth/login", json={"email": "John@x.com", "password": "Abc123xx"})
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["user"]["email"] == "john@x.com"
        assert data["accessToken"] and data["refreshToken"]

    def test_wrong_password_indistinguishable_from_unknown_user(self, client):
        _register(client)
        wrong = client.post("/api/v1/auth/login", json={"email": "john@x.com", "password": "Nope1234"})
        missing = client.post("/api/v1/auth/login", json={"email": "ghost@x.com", "password": "Abc123xx"})

        assert wrong.status_code == missing.status_code == 401
        assert wrong.get_json() == missing.get_json()
        assert wrong.get_json()["error"] == "INVALID_CREDENTIALS"

    def test_inactive_indistinguishable_from_unknown_user(self, client):
        _register(client)
        session = storage.get_session()
        session.query(User).update({User.is_active: False})
        session.commit()

        inactive = client.post("/api/v1/auth/login", json={"email": "john@x.com", "password": "Abc123xx"})
        missing = client.post("/api/v1/auth/login", json={"email": "ghost@x.com", "password": "Abc123xx"})
        assert inactive.status_code == missing.status_code == 401
        assert inactive.get_json() == missing.get_json()


class TestRefresh:
    def test_rotation(self, client):
        old = _register(client).get_json()["data"]["refreshToken"]
        resp = client.post("/api/v1/auth/refresh", json={"refreshToken": old})
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert set(data) == {"accessToken", "refreshToken"}

        again = client.post("/api/v1/auth/refresh", json={"refreshToken": old})
        assert again.status_code == 403
        assert again.get_json()["error"] == "INVALID_TOKEN"

    def test_garbage(self, client):
        resp = client.post("/api/v1/auth/refresh", json={"refreshToken": "garbage"})
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "INVALID_TOKEN"

    def test_missing_field(self, client):
        resp = client.post("/api/v1/auth/refresh", json={})
        assert resp.status_code == 400
        assert "refreshToken" in resp.get_json()["details"]


class TestProfile:
    def test_ok(self, client):
        access = _register(client).get_json()["data"]["accessToken"]
        resp = client.get("/api/v1/auth/profile", headers=bearer(access))
        assert resp.status_code == 200
        assert resp.get_json()["data"]["email"] == "john@x.com"

    def test_missing_token(self, client):
        resp = client.get("/api/v1/auth/profile")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "MISSING_TOKEN"

    def test_invalid_token(self, client):
        resp = client.get("/api/v1/auth/profile", headers=bearer("garbage"))
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "INVALID_TOKEN"

    def test_refresh_token_rejected(self, client):
        refresh = _register(client).get_json()["data"]["refreshToken"]
        resp = client.get("/api/v1/auth/profile", headers=bearer(refresh))
        assert resp.status_code == 403

    def test_deleted_user(self, client):
        access = _register(client).get_json()["data"]["accessToken"]
        session = storage.get_session()
        session.delete(session.query(User).one())
        session.commit()

        resp = client.get("/api/v1/auth/profile", headers=bearer(access))
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "USER_NOT_FOUND"


class TestLogout:
    def test_idempotent(self, client):
        refresh = _register(client).get_json()["data"]["refreshToken"]
        first = client.post("/api/v1/auth/logout", json={"refreshToken": refresh})
        second = client.post("/api/v1/auth/logout", json={"refreshToken": refresh})
        assert first.status_code == second.status_code == 200
        assert first.get_json()["success"] is True

        resp = client.post("/api/v1/auth/refresh", json={"refreshToken": refresh})
        assert resp.status_code == 403

    def test_unknown_token(self, client):
        resp = client.post("/api/v1/auth/logout", json={"refreshToken": "never-issued"})
        assert resp.status_code == 200


class TestUsers:
    def test_list_requires_admin(self, client):
        access = _register(client).get_json()["data"]["accessToken"]
        resp = client.get("/api/v1/users", headers=bearer(access))
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "FORBIDDEN"

    def test_list_requires_token(self, client):
        assert client.get("/api/v1/users").status_code == 401

    def test_admin_lists_users(self, client, admin_headers):
        _register(client)

        resp = client.get("/api/v1/users?limit=1", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert len(body["data"]) == 1
        assert body["meta"] == {"page": 1, "limit": 1, "total": 2}

    def test_user_can_read_self_only(self, client):
        me = _register(client).get_json()["data"]
        other = _register(client, email="other@x.com").get_json()["data"]
        headers = bearer(me["accessToken"])

        assert client.get(f"/api/v1/users/{me['user']['id']}", headers=headers).status_code == 200
        assert client.get(f"/api/v1/users/{other['user']['id']}", headers=headers).status_code == 403


class TestUserManagement:
    def test_search_and_active_filters(self, client, admin_headers):
        _register(client)
        bob = _register(client, name="Bob", email="bob@x.com").get_json()["data"]["user"]
        client.put(f"/api/v1/users/{bob['id']}", json={"isActive": False}, headers=admin_headers)

        by_name = client.get("/api/v1/users?search=JOH", headers=admin_headers).get_json()
        assert [u["email"] for u in by_name["data"]] == ["john@x.com"]

        by_email = client.get("/api/v1/users?search=bob@", headers=admin_headers).get_json()
        assert [u["id"] for u in by_email["data"]] == [bob["id"]]

        inactive = client.get("/api/v1/users?isActive=false", headers=admin_headers).get_json()
        assert [u["id"] for u in inactive["data"]] == [bob["id"]]
        assert inactive["meta"]["total"] == 1

        active = client.get("/api/v1/users?isActive=true", headers=admin_headers).get_json()
        assert bob["id"] not in [u["id"] for u in active["data"]]

    def test_bad_filter(self, client, admin_headers):
        resp = client.get("/api/v1/users?isActive=maybe", headers=admin_headers)
        assert resp.status_code == 400
        assert "isActive" in resp.get_json()["details"]

    def test_deactivated_user_cannot_log_in(self, client, admin_headers):
        user = _register(client).get_json()["data"]["user"]

        resp = client.put(f"/api/v1/users/{user['id']}", json={"isActive": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["isActive"] is False

        inactive = _login(client)
        missing = _login(client, email="ghost@x.com")
        assert inactive.status_code == 401
        assert inactive.get_json()["error"] == "INVALID_CREDENTIALS"
        assert inactive.get_json() == missing.get_json()

        client.put(f"/api/v1/users/{user['id']}", json={"isActive": True}, headers=admin_headers)
        assert _login(client).status_code == 200

    def test_update_normalises_email(self, client, admin_headers):
        user = _register(client).get_json()["data"]["user"]
        resp = client.put(
            f"/api/v1/users/{user['id']}",
            json={"name": "  Johnny ", "email": " Johnny@X.com "},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert (data["name"], data["email"]) == ("Johnny", "johnny@x.com")
        assert _login(client, email="JOHNNY@x.com").status_code == 200

    def test_update_to_taken_email(self, client, admin_headers):
        user = _register(client).get_json()["data"]["user"]
        resp = client.put(f"/api/v1/users/{user['id']}", json={"email": "ADMIN@x.com"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "DUPLICATE_EMAIL"

    def test_update_keeping_own_email(self, client, admin_headers):
        user = _register(client).get_json()["data"]["user"]
        resp = client.put(f"/api/v1/users/{user['id']}", json={"email": "John@X.com"}, headers=admin_headers)
        assert resp.status_code == 200

    def test_empty_update(self, client, admin_headers):
        user = _register(client).get_json()["data"]["user"]
        resp = client.put(f"/api/v1/users/{user['id']}", json={}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "VALIDATION_ERROR"

    def test_update_unknown_user(self, client, admin_headers):
        resp = client.put("/api/v1/users/999", json={"name": "X"}, headers=admin_headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "USER_NOT_FOUND"

    def test_update_requires_admin(self, client):
        data = _register(client).get_json()["data"]
        resp = client.put(
            f"/api/v1/users/{data['user']['id']}", json={"isActive": True}, headers=bearer(data["accessToken"])
        )
        assert resp.status_code == 403

    def test_deleted_user_loses_tokens(self, client, admin_headers):
        data = _register(client).get_json()["data"]

        resp = client.delete(f"/api/v1/users/{data['user']['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"] is None

        # the still-valid access token no longer resolves to a user
        profile = client.get("/api/v1/auth/profile", headers=bearer(data["accessToken"]))
        assert profile.status_code == 404
        assert profile.get_json()["error"] == "USER_NOT_FOUND"
        # the ledger rows went with the user, so the refresh token is dead too
        refresh = client.post("/api/v1/auth/refresh", json={"refreshToken": data["refreshToken"]})
        assert refresh.status_code == 403
        assert refresh.get_json()["error"] == "INVALID_TOKEN"

    def test_delete_unknown_user(self, client, admin_headers):
        resp = client.delete("/api/v1/users/999", headers=admin_headers)
        assert resp.status_code == 404

    def test_admin_creates_admin(self, client, admin_headers):
        resp = client.post(
            "/api/v1/users",
            json={"name": "Grace", "email": "Grace@X.com", "password": "Grace123", "role": "admin"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["data"]["role"] == "admin"

        access = _login(client, "grace@x.com", "Grace123").get_json()["data"]["accessToken"]
        assert client.get("/api/v1/users", headers=bearer(access)).status_code == 200

    def test_create_defaults_to_user_role(self, client, admin_headers):
        resp = client.post(
            "/api/v1/users",
            json={"name": "Grace", "email": "grace@x.com", "password": "Grace123"},
            headers=admin_headers,
        )
        assert resp.get_json()["data"]["role"] == "user"
        assert "refreshToken" not in resp.get_json()["data"]

    def test_create_duplicate(self, client, admin_headers):
        resp = client.post(
            "/api/v1/users",
            json={"name": "Again", "email": "admin@X.com", "password": "Admin123"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "DUPLICATE_EMAIL"


class TestCreateAdminCommand:
    def test_creates_admin(self, app, client):
        result = app.test_cli_runner().invoke(
            args=["create-admin", "--name", "Ada", "--email", "Ada@Example.com", "--password", "Lovelace1"]
        )
        assert result.exit_code == 0, result.output
        assert "Created admin ada@example.com" in result.output

        access = _login(client, "ada@example.com", "Lovelace1").get_json()["data"]["accessToken"]
        assert client.get("/api/v1/users", headers=bearer(access)).status_code == 200

    def test_promotes_existing_user(self, app, client):
        _register(client)
        result = app.test_cli_runner().invoke(
            args=["create-admin", "--name", "John", "--email", "john@x.com", "--password", "ignored"]
        )
        assert result.exit_code == 0, result.output
        assert "Promoted" in result.output
        user = storage.get_session().query(User).filter(User.email == "john@x.com").one()
        assert user.role is Role.ADMIN

    def test_rejects_weak_password(self, app):
        result = app.test_cli_runner().invoke(
            args=["create-admin", "--name", "Ada", "--email", "ada@example.com", "--password", "weak"]
        )
        assert result.exit_code != 0
        assert storage.get_session().query(User).count() == 0


class TestApp:
    def test_root_anonymous(self, client):
        body = client.get("/").get_json()
        assert body["authenticated"] is False
        assert body["user"] is None

    def test_root_with_bad_token_is_still_anonymous(self, client):
        assert client.get("/", headers=bearer("garbage")).get_json()["authenticated"] is False

    def test_root_authenticated(self, client):
        access = _register(client).get_json()["data"]["accessToken"]
        body = client.get("/", headers=bearer(access)).get_json()
        assert body["authenticated"] is True
        assert body["user"]["email"] == "john@x.com"

    def test_health(self, client):
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.get_json()["database"] == "ok"

    def test_unknown_route(self, client):
        resp = client.get("/api/v1/nope")
        assert resp.status_code == 404
        assert resp.get_json()["success"] is False
        assert resp.get_json()["error"] == "NOT_FOUND"

    def test_configuration_fault_is_internal_error(self, app, client, monkeypatch):
        from utils.errors import AuthError, ErrorKind

        def broken(*args, **kwargs):
            raise AuthError(ErrorKind.INVALID_DURATION_FORMAT, "Invalid duration '7x'", details={"value": "7x"})

        monkeypatch.setattr(app.extensions["auth_service"], "login", broken)
        resp = client.post("/api/v1/auth/login", json={"email": "a@x.com", "password": "x"})
        assert resp.status_code == 500
        assert resp.get_json() == {
            "success": False,
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
        }

    def test_unavailable_storage_is_503(self, app, client, monkeypatch):
        from utils.errors import AuthError, ErrorKind

        def unavailable(*args, **kwargs):
            raise AuthError(ErrorKind.UNAVAILABLE)

        monkeypatch.setattr(app.extensions["auth_service"], "login", unavailable)
        resp = client.post("/api/v1/auth/login", json={"email": "a@x.com", "password": "x"})
        assert resp.status_code == 503
        assert resp.headers["Retry-After"] == "1"
        assert resp.get_json()["error"] == "UNAVAILABLE"
