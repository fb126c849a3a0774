from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from conftest import make_codec
from utils.decorators import authenticate, authorize, extract_bearer_token, optional_authenticate
from utils.errors import AuthError, ErrorKind
from utils.tokens import TokenPayload

codec = make_codec()
USER = SimpleNamespace(id=1, email="u@x.com", role="user")
ADMIN = SimpleNamespace(id=2, email="a@x.com", role="admin")


def _identity(role):
    now = datetime.now(timezone.utc)
    return TokenPayload(user_id=1, email="u@x.com", role=role, issued_at=now, expires_at=now)


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc", "abc"),
        ("bearer abc", "abc"),
        ("Bearer   abc  ", "abc"),
        ("Basic abc", None),
        ("Bearer", None),
        ("Bearer a b", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


class TestAuthenticate:
    def test_valid_token(self):
        identity = authenticate(f"Bearer {codec.issue_access_token(USER)}", codec)
        assert identity.user_id == 1
        assert identity.role == "user"

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer"])
    def test_missing_token(self, header):
        with pytest.raises(AuthError) as exc:
            authenticate(header, codec)
        assert exc.value.kind is ErrorKind.MISSING_TOKEN
        assert exc.value.kind.status == 401

    def test_invalid_token(self):
        with pytest.raises(AuthError) as exc:
            authenticate("Bearer nonsense", codec)
        assert exc.value.kind is ErrorKind.INVALID_TOKEN
        assert exc.value.kind.status == 403

    def test_refresh_token_is_not_an_access_token(self):
        with pytest.raises(AuthError) as exc:
            authenticate(f"Bearer {codec.issue_refresh_token(USER)}", codec)
        assert exc.value.kind is ErrorKind.INVALID_TOKEN


class TestOptionalAuthenticate:
    def test_valid_token(self):
        assert optional_authenticate(f"Bearer {codec.issue_access_token(ADMIN)}", codec).user_id == 2

    @pytest.mark.parametrize("header", [None, "Bearer nonsense", "Basic abc"])
    def test_never_rejects(self, header):
        assert optional_authenticate(header, codec) is None


class TestAuthorize:
    def test_allowed(self):
        identity = _identity("admin")
        assert authorize(identity, ["admin"]) is identity

    def test_any_listed_role_passes(self):
        assert authorize(_identity("user"), ["user", "admin"])

    def test_forbidden(self):
        with pytest.raises(AuthError) as exc:
            authorize(_identity("user"), ["admin"])
        assert exc.value.kind is ErrorKind.FORBIDDEN

    def test_unauthenticated(self):
        with pytest.raises(AuthError) as exc:
            authorize(None, ["admin"])
        assert exc.value.kind is ErrorKind.UNAUTHENTICATED
        assert exc.value.kind.status == 401
