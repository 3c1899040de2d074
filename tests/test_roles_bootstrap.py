"""Tests for the role registry: idempotent role seeding and the one-time SuperAdmin bootstrap."""

import unittest

from sqlalchemy import func, select

from tests.support import GOOD_PASSWORD, add_user, make_session, seed_roles
from useradmin.models import Role, SystemFlag
from useradmin.services.authorization import LIMITED_ADMIN, ROLE_TIERS, SUPER_ADMIN
from useradmin.services.errors import BootstrapUnavailable, ValidationFailure
from useradmin.services.roles import (
    BOOTSTRAP_FLAG,
    bootstrap_available,
    bootstrap_superadmin,
    ensure_default_roles,
    ensure_role_exists,
)
from useradmin.services.store import AccountStore


class TestEnsureRoleExists(unittest.TestCase):
    def setUp(self) -> None:
        self.session = make_session()
        self.store = AccountStore(self.session)

    def tearDown(self) -> None:
        self.session.close()

    def test_creates_missing_role(self) -> None:
        ensure_role_exists(self.store, LIMITED_ADMIN)
        self.assertTrue(self.store.role_exists(LIMITED_ADMIN))

    def test_second_call_is_a_noop(self) -> None:
        ensure_role_exists(self.store, LIMITED_ADMIN)
        ensure_role_exists(self.store, LIMITED_ADMIN)
        count = self.session.scalar(
            select(func.count()).select_from(Role).where(Role.name == LIMITED_ADMIN)
        )
        self.assertEqual(count, 1)

    def test_default_roles_are_the_three_tiers(self) -> None:
        ensure_default_roles(self.store)
        ensure_default_roles(self.store)
        names = sorted(r.name for r in self.store.all_roles())
        self.assertEqual(names, sorted(ROLE_TIERS))


class TestBootstrapSuperadmin(unittest.TestCase):
    def setUp(self) -> None:
        self.session = make_session()

    def tearDown(self) -> None:
        self.session.close()

    def test_first_call_creates_super_admin_and_seeds_roles(self) -> None:
        self.assertTrue(bootstrap_available(self.session))
        user = bootstrap_superadmin(self.session, "root", "root@example.com", GOOD_PASSWORD)
        store = AccountStore(self.session)
        self.assertEqual(store.roles_of(user), {SUPER_ADMIN})
        self.assertEqual(len(store.all_roles()), 3)
        self.assertTrue(store.check_password(user, GOOD_PASSWORD))
        self.assertIsNotNone(self.session.get(SystemFlag, BOOTSTRAP_FLAG))

    def test_second_call_is_rejected(self) -> None:
        bootstrap_superadmin(self.session, "root", "root@example.com", GOOD_PASSWORD)
        self.assertFalse(bootstrap_available(self.session))
        with self.assertRaises(BootstrapUnavailable):
            bootstrap_superadmin(self.session, "root2", "root2@example.com", GOOD_PASSWORD)

    def test_stays_closed_after_super_admin_is_deleted(self) -> None:
        user = bootstrap_superadmin(self.session, "root", "root@example.com", GOOD_PASSWORD)
        store = AccountStore(self.session)
        store.delete(user)
        self.session.commit()
        self.assertFalse(store.any_super_admin())
        with self.assertRaises(BootstrapUnavailable):
            bootstrap_superadmin(self.session, "again", "again@example.com", GOOD_PASSWORD)

    def test_closed_when_a_super_admin_already_exists(self) -> None:
        seed_roles(self.session)
        add_user(self.session, "existing", roles=[SUPER_ADMIN])
        self.assertFalse(bootstrap_available(self.session))

    def test_invalid_input_leaves_bootstrap_open(self) -> None:
        with self.assertRaises(ValidationFailure) as ctx:
            bootstrap_superadmin(self.session, "", "not-an-email", "")
        self.assertIn("The Username field is required.", ctx.exception.errors)
        self.assertIn("The email is not valid.", ctx.exception.errors)
        self.assertIn("The password field is required.", ctx.exception.errors)
        self.assertTrue(bootstrap_available(self.session))
