"""HTTP tests: FastAPI TestClient against an in-memory database."""

import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import jwt

from fastapi.testclient import TestClient

from tests.support import GOOD_PASSWORD, add_user, make_session, seed_roles
from useradmin.api.v1.auth import CSRF_HEADER, SESSION_COOKIE, get_mail_sender
from useradmin.core.config import settings
from useradmin.core.database import get_db
from useradmin.main import app
from useradmin.services.authorization import ADMIN, LIMITED_ADMIN, SUPER_ADMIN
from useradmin.services.store import AccountStore

PREFIX = "/api/v1"


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.session = make_session()
        self.sender = MagicMock()
        app.dependency_overrides[get_db] = self._get_db
        app.dependency_overrides[get_mail_sender] = lambda: self.sender
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.session.close()

    def _get_db(self):
        yield self.session

    def login(self, email: str, password: str = GOOD_PASSWORD) -> dict[str, str]:
        response = self.client.post(f"{PREFIX}/auth/login", json={"email": email, "password": password})
        self.assertEqual(response.status_code, 200, response.text)
        return {"Authorization": f"Bearer {response.json()['access_token']}"}


class TestSetupAndHealth(ApiTestCase):
    def test_bootstrap_once(self) -> None:
        status = self.client.get(f"{PREFIX}/setup/status")
        self.assertEqual(status.json(), {"available": True})
        body = {"username": "root", "email": "root@example.com", "password": GOOD_PASSWORD}
        created = self.client.post(f"{PREFIX}/setup/superadmin", json=body)
        self.assertEqual(created.status_code, 201, created.text)
        self.assertEqual(created.json()["roles"], [SUPER_ADMIN])

        again = self.client.post(
            f"{PREFIX}/setup/superadmin",
            json={"username": "x", "email": "x@example.com", "password": GOOD_PASSWORD},
        )
        self.assertEqual(again.status_code, 404)
        self.assertEqual(self.client.get(f"{PREFIX}/setup/status").json(), {"available": False})

    def test_health_reports_pending_bootstrap(self) -> None:
        response = self.client.get(f"{PREFIX}/health/")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["database"], "connected")
        self.assertTrue(data["bootstrap_required"])


class TestLogin(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        seed_roles(self.session)
        self.user = add_user(self.session, "alice", email="alice@example.com", password=GOOD_PASSWORD)

    def test_failed_login_message(self) -> None:
        for email, password in (("alice@example.com", "Wrong!77x"), ("ghost@example.com", GOOD_PASSWORD)):
            response = self.client.post(f"{PREFIX}/auth/login", json={"email": email, "password": password})
            self.assertEqual(response.status_code, 401)
            self.assertEqual(response.json()["detail"], "Login failed: Invalid email or password.")

    def test_login_sets_cookies_and_reports_roles(self) -> None:
        response = self.client.post(
            f"{PREFIX}/auth/login", json={"email": "alice@example.com", "password": GOOD_PASSWORD}
        )
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["has_roles"])
        self.assertIn("access_token", response.cookies)
        self.assertIn("csrf_token", response.cookies)

    def test_me_reads_current_roles(self) -> None:
        headers = self.login("alice@example.com")
        self.assertEqual(self.client.get(f"{PREFIX}/auth/me", headers=headers).json()["roles"], [])
        AccountStore(self.session).add_role(self.user, ADMIN)
        self.session.commit()
        self.assertEqual(
            self.client.get(f"{PREFIX}/auth/me", headers=headers).json()["roles"], [ADMIN]
        )

    def test_cookie_session_requires_csrf_header_on_writes(self) -> None:
        response = self.client.post(
            f"{PREFIX}/auth/login", json={"email": "alice@example.com", "password": GOOD_PASSWORD}
        )
        csrf = response.json()["csrf_token"]
        self.assertEqual(self.client.get(f"{PREFIX}/auth/me").status_code, 200)
        update = {"username": "alice", "email": "alice@example.com", "first_name": "Al"}
        path = f"{PREFIX}/users/{self.user.id}"
        self.assertEqual(self.client.put(path, json=update).status_code, 403)
        ok = self.client.put(path, json=update, headers={CSRF_HEADER: csrf})
        self.assertEqual(ok.status_code, 200, ok.text)

    def test_logout_clears_session(self) -> None:
        self.client.post(
            f"{PREFIX}/auth/login", json={"email": "alice@example.com", "password": GOOD_PASSWORD}
        )
        self.client.post(f"{PREFIX}/auth/logout")
        self.assertEqual(self.client.get(f"{PREFIX}/auth/me").status_code, 401)

    def test_deleted_session_user_is_unauthenticated(self) -> None:
        headers = self.login("alice@example.com")
        store = AccountStore(self.session)
        store.delete(self.user)
        self.session.commit()
        self.assertEqual(self.client.get(f"{PREFIX}/users", headers=headers).status_code, 401)

    def test_requests_without_session_are_rejected(self) -> None:
        self.assertEqual(self.client.get(f"{PREFIX}/users").status_code, 401)

    def test_expired_cookie_session_on_write_is_unauthenticated(self) -> None:
        expired = jwt.encode(
            {"sub": self.user.id, "exp": datetime.now(UTC) - timedelta(minutes=1)},
            settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
        )
        self.client.cookies.set(SESSION_COOKIE, expired)
        update = {"username": "alice", "email": "alice@example.com"}
        response = self.client.put(f"{PREFIX}/users/{self.user.id}", json=update)
        self.assertEqual(response.status_code, 401)


class TestUserAdministration(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        seed_roles(self.session)
        self.sa = add_user(self.session, "sa", roles=[SUPER_ADMIN], password=GOOD_PASSWORD)
        self.admin = add_user(self.session, "admin", roles=[ADMIN], password=GOOD_PASSWORD)
        self.la = add_user(self.session, "limited", roles=[LIMITED_ADMIN], password=GOOD_PASSWORD)

    def test_create_and_fetch(self) -> None:
        headers = self.login("sa@example.com")
        body = {
            "username": "carol",
            "email": "carol@example.com",
            "first_name": "Carol",
            "password": GOOD_PASSWORD,
            "roles": [LIMITED_ADMIN],
        }
        created = self.client.post(f"{PREFIX}/users", json=body, headers=headers)
        self.assertEqual(created.status_code, 201, created.text)
        data = created.json()
        self.assertEqual(data["user"]["roles"], [LIMITED_ADMIN])
        self.assertTrue(data["actions"]["can_delete"])
        self.assertNotIn("password_hash", data["user"])

        fetched = self.client.get(f"{PREFIX}/users/{data['user']['id']}", headers=headers)
        self.assertEqual(fetched.json()["user"]["username"], "carol")

    def test_rejected_form_echoes_input_without_password(self) -> None:
        headers = self.login("sa@example.com")
        body = {"username": "", "email": "nope", "password": "secret"}
        response = self.client.post(f"{PREFIX}/users", json=body, headers=headers)
        self.assertEqual(response.status_code, 422)
        data = response.json()
        self.assertIn("The Username field is required.", data["errors"])
        self.assertIn("The email is not valid.", data["errors"])
        self.assertEqual(data["input"]["email"], "nope")
        self.assertNotIn("password", data["input"])

    def test_denial_has_fixed_body(self) -> None:
        headers = self.login("limited@example.com")
        body = {"username": "x", "email": "x@example.com", "password": GOOD_PASSWORD}
        response = self.client.post(f"{PREFIX}/users", json=body, headers=headers)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["detail"], "Access denied.")

        view = self.client.get(f"{PREFIX}/users/{self.sa.id}", headers=headers)
        self.assertEqual(view.status_code, 403)
        self.assertEqual(view.json(), response.json())

    def test_unknown_user_is_not_found(self) -> None:
        headers = self.login("sa@example.com")
        response = self.client.get(f"{PREFIX}/users/missing", headers=headers)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "No user was found.")

    def test_list_hints_follow_decision_function(self) -> None:
        headers = self.login("admin@example.com")
        response = self.client.get(f"{PREFIX}/users", params={"sort": "username"}, headers=headers)
        self.assertEqual(response.status_code, 200)
        rows = {row["username"]: row for row in response.json()["items"]}
        self.assertTrue(rows["limited"]["can_delete"])
        self.assertFalse(rows["sa"]["can_edit"])
        self.assertFalse(rows["admin"]["can_delete"])
        self.assertTrue(rows["admin"]["can_edit"])

    def test_list_role_filter_is_repeatable(self) -> None:
        headers = self.login("sa@example.com")
        response = self.client.get(
            f"{PREFIX}/users",
            params=[("roles", ADMIN), ("roles", LIMITED_ADMIN)],
            headers=headers,
        )
        data = response.json()
        self.assertEqual(data["total"], 2)
        self.assertEqual(data["roles"], [ADMIN, LIMITED_ADMIN])

    def test_huge_page_number_returns_last_page(self) -> None:
        headers = self.login("sa@example.com")
        response = self.client.get(
            f"{PREFIX}/users", params={"page": "10000000000000000000"}, headers=headers
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["page"], 1)
        self.assertEqual(len(response.json()["items"]), 3)

    def test_edit_form_flags(self) -> None:
        headers = self.login("admin@example.com")
        response = self.client.get(f"{PREFIX}/users/{self.la.id}/edit", headers=headers)
        self.assertEqual(response.status_code, 200)
        rows = {r["name"]: r for r in response.json()["roles"]}
        self.assertTrue(rows[LIMITED_ADMIN]["selected"])
        self.assertTrue(rows[LIMITED_ADMIN]["editable"])
        self.assertFalse(rows[ADMIN]["editable"])

    def test_new_user_form_roles(self) -> None:
        headers = self.login("admin@example.com")
        rows = self.client.get(f"{PREFIX}/users/new", headers=headers).json()["roles"]
        editable = sorted(r["name"] for r in rows if r["editable"])
        self.assertEqual(editable, [LIMITED_ADMIN])

    def test_update_roles_and_delete(self) -> None:
        headers = self.login("sa@example.com")
        body = {"username": "limited", "email": "limited@example.com", "roles": [ADMIN]}
        updated = self.client.put(f"{PREFIX}/users/{self.la.id}", json=body, headers=headers)
        self.assertEqual(updated.status_code, 200, updated.text)
        self.assertEqual(updated.json()["user"]["roles"], [ADMIN])

        deleted = self.client.delete(f"{PREFIX}/users/{self.la.id}", headers=headers)
        self.assertEqual(deleted.status_code, 204)
        self.assertEqual(
            self.client.get(f"{PREFIX}/users/{self.la.id}", headers=headers).status_code, 404
        )

    def test_role_pages(self) -> None:
        headers = self.login("admin@example.com")
        roles = self.client.get(f"{PREFIX}/roles", headers=headers).json()["roles"]
        by_name = {r["name"]: r for r in roles}
        self.assertEqual(by_name[ADMIN]["members"], ["admin"])
        self.assertTrue(by_name[LIMITED_ADMIN]["editable"])

        target = by_name[LIMITED_ADMIN]["id"]
        response = self.client.post(
            f"{PREFIX}/roles/{target}/members",
            json={"add_ids": [self.sa.id], "delete_ids": [self.la.id]},
            headers=headers,
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual([m["username"] for m in response.json()["members"]], ["sa"])

        denied = self.client.post(
            f"{PREFIX}/roles/{by_name[ADMIN]['id']}/members",
            json={"add_ids": [self.la.id]},
            headers=headers,
        )
        self.assertEqual(denied.status_code, 403)


class TestPasswordResetApi(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        seed_roles(self.session)
        add_user(self.session, "alice", email="alice@example.com", password=GOOD_PASSWORD)

    def test_request_sends_mail_in_background(self) -> None:
        response = self.client.post(f"{PREFIX}/auth/password-reset", json={"email": "alice@example.com"})
        self.assertEqual(response.status_code, 200)
        self.sender.send.assert_called_once()
        to, _, body = self.sender.send.call_args[0]
        self.assertEqual(to, "alice@example.com")
        self.assertIn("/reset-password?token=", body)

    def test_unknown_email(self) -> None:
        response = self.client.post(f"{PREFIX}/auth/password-reset", json={"email": "ghost@example.com"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Invalid user email.")
        self.sender.send.assert_not_called()

    def test_confirm_mismatch(self) -> None:
        body = {
            "token": "t",
            "email": "alice@example.com",
            "password": "Moonlight!88",
            "confirm_password": "Moonlight!89",
        }
        response = self.client.post(f"{PREFIX}/auth/password-reset/confirm", json=body)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "The passwords did not match.")

    def test_confirm_invalid_token(self) -> None:
        body = {
            "token": "forged",
            "email": "alice@example.com",
            "password": "Moonlight!88",
            "confirm_password": "Moonlight!88",
        }
        response = self.client.post(f"{PREFIX}/auth/password-reset/confirm", json=body)
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["errors"], ["Invalid token."])
