"""Unit tests for app.core.tokens: claim composition, signing, validation and Principal parsing."""

import unittest
from datetime import UTC, datetime, timedelta

import jwt

from app.core.config import get_settings
from app.core.tokens import Principal, decode_token, issue_token


class TestIssueToken(unittest.TestCase):
    """issue_token refuses to mint tokens without identity or role."""

    def test_missing_username_or_role_returns_none(self) -> None:
        for username, role in [(None, "User"), ("", "User"), ("  ", "User"), ("alice", None), ("alice", ""), ("alice", " ")]:
            with self.subTest(username=username, role=role):
                self.assertIsNone(issue_token(username, role, ["user.read"]))

    def test_claims(self) -> None:
        settings = get_settings()
        token = issue_token("alice", "User", ["user.read", "", "  ", None, "user.write"])
        self.assertIsNotNone(token)
        claims = jwt.decode(
            token,
            settings.JWT_SECRET.get_secret_value(),
            algorithms=["HS256"],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
        self.assertEqual(claims["sub"], "alice")
        self.assertEqual(claims["name"], "alice")
        self.assertEqual(claims["role"], "User")
        self.assertEqual(claims["scope"], ["user.read", "user.write"])
        self.assertEqual(claims["iss"], settings.JWT_ISSUER)
        self.assertEqual(claims["aud"], settings.JWT_AUDIENCE)
        self.assertEqual(claims["exp"] - claims["iat"], settings.JWT_EXPIRE_MINUTES * 60)

    def test_default_lifetime_is_twenty_minutes(self) -> None:
        self.assertEqual(get_settings().JWT_EXPIRE_MINUTES, 20)

    def test_no_scopes(self) -> None:
        claims = decode_token(issue_token("bob", "User"))
        self.assertEqual(claims["scope"], [])

    def test_header_uses_hmac_sha256(self) -> None:
        header = jwt.get_unverified_header(issue_token("alice", "User"))
        self.assertEqual(header["alg"], "HS256")


class TestDecodeToken(unittest.TestCase):
    """decode_token rejects tampered, foreign or expired tokens."""

    def _encode(self, **overrides: object) -> str:
        settings = get_settings()
        now = datetime.now(UTC)
        payload = {
            "sub": "alice",
            "role": "User",
            "scope": [],
            "iss": settings.JWT_ISSUER,
            "aud": settings.JWT_AUDIENCE,
            "iat": now,
            "exp": now + timedelta(minutes=5),
        }
        payload.update(overrides)
        key = payload.pop("_key", settings.JWT_SECRET.get_secret_value())
        return jwt.encode(payload, key, algorithm="HS256")

    def test_valid_token_decodes(self) -> None:
        self.assertEqual(decode_token(self._encode())["sub"], "alice")

    def test_wrong_key_rejected(self) -> None:
        token = self._encode(_key="another-secret-key-that-is-long-enough-xyz")
        with self.assertRaises(jwt.InvalidSignatureError):
            decode_token(token)

    def test_expired_rejected(self) -> None:
        past = datetime.now(UTC) - timedelta(hours=1)
        token = self._encode(iat=past - timedelta(minutes=20), exp=past)
        with self.assertRaises(jwt.ExpiredSignatureError):
            decode_token(token)

    def test_wrong_audience_rejected(self) -> None:
        with self.assertRaises(jwt.InvalidAudienceError):
            decode_token(self._encode(aud="someone-else"))

    def test_wrong_issuer_rejected(self) -> None:
        with self.assertRaises(jwt.InvalidIssuerError):
            decode_token(self._encode(iss="someone-else"))

    def test_missing_role_rejected(self) -> None:
        token = self._encode()
        settings = get_settings()
        claims = jwt.decode(
            token,
            settings.JWT_SECRET.get_secret_value(),
            algorithms=["HS256"],
            audience=settings.JWT_AUDIENCE,
        )
        del claims["role"]
        stripped = jwt.encode(claims, settings.JWT_SECRET.get_secret_value(), algorithm="HS256")
        with self.assertRaises(jwt.MissingRequiredClaimError):
            decode_token(stripped)


class TestPrincipal(unittest.TestCase):
    def test_from_claims(self) -> None:
        principal = Principal.from_claims({"sub": "alice", "role": "User", "scope": ["user.read"]})
        self.assertEqual(principal.username, "alice")
        self.assertEqual(principal.role, "User")
        self.assertEqual(principal.scopes, frozenset({"user.read"}))

    def test_single_string_scope(self) -> None:
        principal = Principal.from_claims({"sub": "alice", "role": "User", "scope": "user.write"})
        self.assertTrue(principal.has_scope("user.write"))

    def test_missing_subject_or_role(self) -> None:
        with self.assertRaises(ValueError):
            Principal.from_claims({"role": "User"})
        with self.assertRaises(ValueError):
            Principal.from_claims({"sub": "alice"})

    def test_round_trip_through_issued_token(self) -> None:
        principal = Principal.from_claims(decode_token(issue_token("carol", "Administrator", ["user.delete"])))
        self.assertEqual(principal, Principal("carol", "Administrator", frozenset({"user.delete"})))


if __name__ == "__main__":
    unittest.main()
