"""Unit tests for app.services.policies: the fixed policy table and administrator override."""

import unittest

from app.core.tokens import Principal
from app.services.policies import POLICIES, Policy, is_authorized


def _principal(role: str = "User", *scopes: str) -> Principal:
    return Principal(username="caller", role=role, scopes=frozenset(scopes))


class TestPolicyTable(unittest.TestCase):
    """Every named policy has exactly one predicate."""

    def test_all_policies_registered(self) -> None:
        self.assertEqual(set(POLICIES), set(Policy))

    def test_policy_names(self) -> None:
        self.assertEqual(
            {p.value for p in Policy},
            {"UserRead", "UserWrite", "UserCreate", "UserDelete"},
        )


class TestAdministratorOverride(unittest.TestCase):
    """Administrator role satisfies every policy without any scope."""

    def test_admin_passes_all(self) -> None:
        admin = _principal("Administrator")
        for policy in Policy:
            with self.subTest(policy=policy):
                self.assertTrue(is_authorized(policy, admin))


class TestScopeRequirements(unittest.TestCase):
    def test_user_read_accepts_any_user_scope(self) -> None:
        for scope in ("user.read", "user.write", "user.create", "user.delete"):
            with self.subTest(scope=scope):
                self.assertTrue(is_authorized(Policy.USER_READ, _principal("User", scope)))

    def test_user_read_rejects_without_scope(self) -> None:
        self.assertFalse(is_authorized(Policy.USER_READ, _principal("User")))
        self.assertFalse(is_authorized(Policy.USER_READ, _principal("User", "other.read")))

    def test_write_create_delete_need_their_own_scope(self) -> None:
        cases = {
            Policy.USER_WRITE: "user.write",
            Policy.USER_CREATE: "user.create",
            Policy.USER_DELETE: "user.delete",
        }
        for policy, scope in cases.items():
            with self.subTest(policy=policy):
                self.assertTrue(is_authorized(policy, _principal("User", scope)))
                self.assertFalse(is_authorized(policy, _principal("User", "user.read")))
                others = {s for s in cases.values() if s != scope}
                self.assertFalse(is_authorized(policy, _principal("User", *others)))

    def test_role_name_is_case_sensitive(self) -> None:
        self.assertFalse(is_authorized(Policy.USER_DELETE, _principal("administrator")))


class TestFallbackPolicy(unittest.TestCase):
    """No named policy: authenticated is enough; unauthenticated never passes."""

    def test_authenticated_passes(self) -> None:
        self.assertTrue(is_authorized(None, _principal("User")))

    def test_unauthenticated_fails(self) -> None:
        self.assertFalse(is_authorized(None, None))
        self.assertFalse(is_authorized(Policy.USER_READ, None))


if __name__ == "__main__":
    unittest.main()
