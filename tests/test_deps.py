"""Authorization gate tests (decision function + FastAPI dependencies)."""
from datetime import datetime, timedelta, timezone

from sales_report.auth.deps import authorize
from sales_report.errors import ErrorCode
from sales_report.models import Identity


REGULAR = Identity(id=1, name="Taro Yamada", email="yamada@example.com", department="Sales 1", is_manager=False)
MANAGER = Identity(id=2, name="Hanako Tanaka", email="tanaka@example.com", department="Sales 1", is_manager=True)


class TestAuthorize:

    def test_missing_token(self, tokens):
        decision = authorize(None, tokens)
        assert decision.authenticated is False
        assert decision.error.status_code == 401
        assert decision.error.code == ErrorCode.AUTH_UNAUTHORIZED

    def test_garbage_token(self, tokens):
        decision = authorize("invalid-token", tokens)
        assert decision.error.code == ErrorCode.AUTH_UNAUTHORIZED

    def test_refresh_token_is_not_an_access_token(self, tokens):
        decision = authorize(tokens.issue_refresh_token(MANAGER), tokens, require_manager=True)
        # Unauthenticated, never evaluated for role.
        assert decision.error.status_code == 401

    def test_expired_token(self, tokens):
        token = tokens.issue_access_token(REGULAR, now=datetime.now(timezone.utc) - timedelta(hours=1, seconds=1))
        assert authorize(token, tokens).error.code == ErrorCode.AUTH_UNAUTHORIZED

    def test_valid_token(self, tokens):
        decision = authorize(tokens.issue_access_token(REGULAR), tokens)
        assert decision.authenticated is True
        assert decision.error is None
        assert decision.claims.user_id == 1

    def test_manager_required_but_regular_user(self, tokens):
        decision = authorize(tokens.issue_access_token(REGULAR), tokens, require_manager=True)
        assert decision.error.status_code == 403
        assert decision.error.code == ErrorCode.AUTH_FORBIDDEN

    def test_manager_required_and_manager(self, tokens):
        decision = authorize(tokens.issue_access_token(MANAGER), tokens, require_manager=True)
        assert decision.authenticated is True
        assert decision.claims.is_manager is True


class TestGateDependencies:

    def test_protected_without_session(self, client):
        resp = client.get("/api/protected")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "AUTH_UNAUTHORIZED"
        assert resp.json()["error"]["message"]

    def test_protected_with_bearer(self, client, tokens, people):
        token = tokens.issue_access_token(people["yamada"])
        resp = client.get("/api/protected", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["user"] == {"id": people["yamada"].id, "email": "yamada@example.com", "isManager": False}

    def test_protected_with_cookie(self, client, tokens, people):
        token = tokens.issue_access_token(people["yamada"])
        resp = client.get("/api/protected", headers={"Cookie": f"access_token={token}"})
        assert resp.status_code == 200

    def test_refresh_cookie_alone_does_not_authenticate(self, client, tokens, people):
        token = tokens.issue_refresh_token(people["yamada"])
        resp = client.get("/api/protected", headers={"Cookie": f"refresh_token={token}"})
        assert resp.status_code == 401

    def test_manager_route_with_regular_user(self, client, tokens, people):
        token = tokens.issue_access_token(people["yamada"])
        resp = client.get("/api/auth/check-admin", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "AUTH_FORBIDDEN"

    def test_manager_route_with_manager(self, client, tokens, people):
        token = tokens.issue_access_token(people["tanaka"])
        resp = client.get("/api/auth/check-admin", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["user"]["isManager"] is True

    def test_manager_route_without_session_is_401_not_403(self, client):
        resp = client.get("/api/auth/check-admin")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "AUTH_UNAUTHORIZED"

    def test_optional_auth_never_rejects(self, client, tokens, people):
        resp = client.get("/api/auth/session", headers={"Authorization": "Bearer invalid-token"})
        assert resp.status_code == 200
        assert resp.json() == {"authenticated": False, "user": None}

        token = tokens.issue_access_token(people["tanaka"])
        resp = client.get("/api/auth/session", headers={"Authorization": f"Bearer {token}"})
        assert resp.json()["authenticated"] is True
        assert resp.json()["user"]["id"] == people["tanaka"].id
