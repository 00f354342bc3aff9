"""Tests for app.services.users: account CRUD and scope grant reconciliation."""

import unittest

from app.core.errors import ConflictError, InvalidInputError, NotFoundError
from app.core.security import PasswordVerificationResult, get_password_hasher
from app.models import User, UserScope
from app.services import users as user_service
from tests.helpers import add_user, make_session_factory


class UsersServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.session = make_session_factory()()

    def tearDown(self) -> None:
        self.session.close()

    def held_scope_ids(self, user_id: int) -> list[int]:
        self.session.expire_all()
        rows = self.session.query(UserScope.scope_id).filter(UserScope.user_id == user_id).all()
        return sorted(r.scope_id for r in rows)


class TestScopeGrants(UsersServiceTestCase):
    def setUp(self) -> None:
        super().setUp()
        add_user(self.session, "bob", "pw", scope_ids=[1, 2], user_id=7)

    def test_add_then_noop_then_remove(self) -> None:
        result = user_service.add_scopes(self.session, 7, [3])
        self.assertTrue(result.changed)
        self.assertEqual(self.held_scope_ids(7), [1, 2, 3])

        again = user_service.add_scopes(self.session, 7, [1, 2, 3])
        self.assertFalse(again.changed)
        self.assertEqual(again.message, "User already has the requested scopes.")
        self.assertEqual(self.held_scope_ids(7), [1, 2, 3])

        removed = user_service.remove_scopes(self.session, 7, [3])
        self.assertTrue(removed.changed)
        self.assertEqual(removed.scope_ids, [1, 2])
        self.assertEqual(self.held_scope_ids(7), [1, 2])

    def test_add_only_inserts_missing(self) -> None:
        result = user_service.add_scopes(self.session, 7, [2, 3, 3])
        self.assertTrue(result.changed)
        self.assertEqual(result.scope_ids, [1, 2, 3])
        self.assertEqual(self.held_scope_ids(7), [1, 2, 3])

    def test_unknown_scope_rejects_whole_request(self) -> None:
        with self.assertRaises(InvalidInputError) as ctx:
            user_service.add_scopes(self.session, 7, [3, 99])
        self.assertIn("99", ctx.exception.message)
        self.assertEqual(ctx.exception.details, {"invalid_scope_ids": [99]})
        self.assertEqual(self.held_scope_ids(7), [1, 2])

    def test_empty_request_rejected(self) -> None:
        for method in (user_service.add_scopes, user_service.remove_scopes):
            with self.subTest(method=method.__name__):
                with self.assertRaises(InvalidInputError) as ctx:
                    method(self.session, 7, [])
                self.assertEqual(ctx.exception.message, "No scopes provided")

    def test_unknown_user_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            user_service.add_scopes(self.session, 404, [1])
        with self.assertRaises(NotFoundError):
            user_service.remove_scopes(self.session, 404, [1])

    def test_remove_skips_ungranted(self) -> None:
        result = user_service.remove_scopes(self.session, 7, [2, 4])
        self.assertTrue(result.changed)
        self.assertEqual(self.held_scope_ids(7), [1])

    def test_remove_nothing_matching_is_noop(self) -> None:
        result = user_service.remove_scopes(self.session, 7, [3, 4])
        self.assertFalse(result.changed)
        self.assertEqual(self.held_scope_ids(7), [1, 2])

    def test_remove_from_user_without_scopes(self) -> None:
        bare = add_user(self.session, "carol", "pw")
        result = user_service.remove_scopes(self.session, bare.id, [1])
        self.assertFalse(result.changed)
        self.assertEqual(result.message, "User has no scopes assigned.")


class TestCreateUser(UsersServiceTestCase):
    def test_create_with_role(self) -> None:
        user = user_service.create_user(self.session, "ops", "pw", role_id=2)
        self.assertEqual(user.role.name, "Administrator")
        self.assertIs(
            get_password_hasher().verify_password(user.password_hash, "pw"),
            PasswordVerificationResult.SUCCESS,
        )

    def test_create_defaults_to_user_role(self) -> None:
        user = user_service.create_user(self.session, "ops", "pw")
        self.assertEqual(user.role_id, 1)

    def test_invalid_fields_reported_together(self) -> None:
        with self.assertRaises(InvalidInputError) as ctx:
            user_service.create_user(self.session, "", " ", role_id=42)
        self.assertEqual(set(ctx.exception.details), {"username", "password", "role_id"})
        self.assertEqual(self.session.query(User).count(), 0)

    def test_duplicate_is_conflict(self) -> None:
        user_service.create_user(self.session, "ops", "pw")
        with self.assertRaises(ConflictError) as ctx:
            user_service.create_user(self.session, "ops", "pw")
        self.assertEqual(ctx.exception.status_code, 409)


class TestUpdateUser(UsersServiceTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.user = add_user(self.session, "dave", "old-pw")
        add_user(self.session, "erin", "pw")

    def test_partial_update_changes_only_given_fields(self) -> None:
        original_hash = self.user.password_hash
        user_service.update_user(self.session, self.user.id, {"role_id": 2})
        self.session.expire_all()
        stored = self.session.get(User, self.user.id)
        self.assertEqual(stored.role_id, 2)
        self.assertEqual(stored.username, "dave")
        self.assertEqual(stored.password_hash, original_hash)

    def test_password_is_rehashed(self) -> None:
        user_service.update_user(self.session, self.user.id, {"password": "new-pw"})
        self.session.expire_all()
        stored = self.session.get(User, self.user.id)
        hasher = get_password_hasher()
        self.assertIs(
            hasher.verify_password(stored.password_hash, "new-pw"),
            PasswordVerificationResult.SUCCESS,
        )
        self.assertIs(
            hasher.verify_password(stored.password_hash, "old-pw"),
            PasswordVerificationResult.FAILED,
        )

    def test_rename_to_taken_username_is_conflict(self) -> None:
        with self.assertRaises(ConflictError):
            user_service.update_user(self.session, self.user.id, {"username": "erin"})

    def test_rename_to_own_username_is_allowed(self) -> None:
        user_service.update_user(self.session, self.user.id, {"username": "dave"})

    def test_invalid_values_rejected(self) -> None:
        with self.assertRaises(InvalidInputError) as ctx:
            user_service.update_user(
                self.session, self.user.id, {"username": "", "role_id": 99, "is_admin": True}
            )
        self.assertEqual(set(ctx.exception.details), {"username", "role_id", "is_admin"})

    def test_missing_user_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            user_service.update_user(self.session, 9999, {"username": "x"})


class TestDeleteAndRead(UsersServiceTestCase):
    def test_delete_removes_scope_links(self) -> None:
        user = add_user(self.session, "frank", "pw", scope_ids=[1, 3])
        user_id = user.id
        user_service.delete_user(self.session, user_id)
        self.assertIsNone(self.session.get(User, user_id))
        self.assertEqual(self.held_scope_ids(user_id), [])

    def test_delete_missing_user_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            user_service.delete_user(self.session, 123)
        self.assertEqual(ctx.exception.message, "No user with id: 123 found.")

    def test_list_and_get(self) -> None:
        add_user(self.session, "gina", "pw", scope_ids=[4])
        add_user(self.session, "hank", "pw")
        users = user_service.list_users(self.session)
        self.assertEqual([u.username for u in users], ["gina", "hank"])
        gina = user_service.get_user(self.session, users[0].id)
        self.assertEqual(gina.scope_names, ["user.delete"])

    def test_reference_catalog(self) -> None:
        self.assertEqual(
            [r.name for r in user_service.list_roles(self.session)], ["User", "Administrator"]
        )
        self.assertEqual(
            [s.name for s in user_service.list_scopes(self.session)],
            ["user.read", "user.write", "user.create", "user.delete"],
        )


if __name__ == "__main__":
    unittest.main()
