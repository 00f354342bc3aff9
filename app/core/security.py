"""Password hashing and verification (PBKDF2, versioned binary format)."""

import base64
import binascii
import enum
import hashlib
import hmac
import secrets
import struct

import bcrypt

from app.core.config import get_settings

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 1
PASSWORD_MAX_LEN = 1024

SALT_SIZE = 16
SUBKEY_SIZE = 32

# Format markers (first byte of the decoded hash).
FORMAT_V2 = 0x00
FORMAT_V3 = 0x01

# PRF identifiers stored in V3 headers.
PRF_SHA1 = 0
PRF_SHA256 = 1
PRF_SHA512 = 2
PRF_NAMES = {PRF_SHA1: "sha1", PRF_SHA256: "sha256", PRF_SHA512: "sha512"}

CURRENT_PRF = PRF_SHA512
V2_ITERATIONS = 1000
V3_HEADER = struct.Struct(">BIII")  # marker, prf, iterations, salt length

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


class PasswordVerificationResult(enum.Enum):
    FAILED = "failed"
    SUCCESS = "success"
    SUCCESS_REHASH_NEEDED = "success_rehash_needed"


class PasswordHasher:
    """
    Salted PBKDF2 hasher. New hashes use HMAC-SHA512 with the configured iteration count.

    Stored value is base64 of: 0x01 | prf (u32 BE) | iterations (u32 BE) | salt length (u32 BE)
    | salt | 32-byte subkey. Older PBKDF2-SHA1 (0x00) and bcrypt hashes still verify but
    report SUCCESS_REHASH_NEEDED, as do V3 hashes with fewer iterations or a weaker PRF.
    """

    def __init__(self, iterations: int) -> None:
        if iterations < 1:
            raise ValueError("iterations must be positive")
        self.iterations = iterations

    def hash_password(self, raw_password: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        salt = secrets.token_bytes(SALT_SIZE)
        subkey = hashlib.pbkdf2_hmac(
            PRF_NAMES[CURRENT_PRF],
            raw_password.encode("utf-8"),
            salt,
            self.iterations,
            dklen=SUBKEY_SIZE,
        )
        blob = V3_HEADER.pack(FORMAT_V3, CURRENT_PRF, self.iterations, len(salt)) + salt + subkey
        return base64.b64encode(blob).decode("ascii")

    def verify_password(self, hashed: str | None, raw_password: str) -> PasswordVerificationResult:
        """Verify a plain password against a stored hash of any supported format."""
        if not hashed:
            return PasswordVerificationResult.FAILED
        if hashed.startswith(BCRYPT_PREFIXES):
            return self._verify_bcrypt(hashed, raw_password)
        try:
            blob = base64.b64decode(hashed, validate=True)
        except (binascii.Error, ValueError):
            return PasswordVerificationResult.FAILED
        if not blob:
            return PasswordVerificationResult.FAILED
        if blob[0] == FORMAT_V2:
            return self._verify_v2(blob, raw_password)
        if blob[0] == FORMAT_V3:
            return self._verify_v3(blob, raw_password)
        return PasswordVerificationResult.FAILED

    def _verify_v2(self, blob: bytes, raw_password: str) -> PasswordVerificationResult:
        if len(blob) != 1 + SALT_SIZE + SUBKEY_SIZE:
            return PasswordVerificationResult.FAILED
        salt = blob[1 : 1 + SALT_SIZE]
        expected = blob[1 + SALT_SIZE :]
        actual = hashlib.pbkdf2_hmac(
            "sha1", raw_password.encode("utf-8"), salt, V2_ITERATIONS, dklen=SUBKEY_SIZE
        )
        if not hmac.compare_digest(actual, expected):
            return PasswordVerificationResult.FAILED
        return PasswordVerificationResult.SUCCESS_REHASH_NEEDED

    def _verify_v3(self, blob: bytes, raw_password: str) -> PasswordVerificationResult:
        if len(blob) < V3_HEADER.size:
            return PasswordVerificationResult.FAILED
        _, prf, iterations, salt_len = V3_HEADER.unpack_from(blob)
        if prf not in PRF_NAMES or iterations < 1 or salt_len < 16:
            return PasswordVerificationResult.FAILED
        salt_end = V3_HEADER.size + salt_len
        expected = blob[salt_end:]
        if len(expected) < 16:
            return PasswordVerificationResult.FAILED
        actual = hashlib.pbkdf2_hmac(
            PRF_NAMES[prf],
            raw_password.encode("utf-8"),
            blob[V3_HEADER.size : salt_end],
            iterations,
            dklen=len(expected),
        )
        if not hmac.compare_digest(actual, expected):
            return PasswordVerificationResult.FAILED
        if iterations < self.iterations or prf != CURRENT_PRF:
            return PasswordVerificationResult.SUCCESS_REHASH_NEEDED
        return PasswordVerificationResult.SUCCESS

    def _verify_bcrypt(self, hashed: str, raw_password: str) -> PasswordVerificationResult:
        # bcrypt only looks at the first 72 bytes.
        pw_bytes = raw_password.encode("utf-8")[:72]
        try:
            ok = bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return PasswordVerificationResult.FAILED
        if not ok:
            return PasswordVerificationResult.FAILED
        return PasswordVerificationResult.SUCCESS_REHASH_NEEDED


def get_password_hasher() -> PasswordHasher:
    """Hasher configured from the current settings snapshot."""
    return PasswordHasher(iterations=get_settings().PASSWORD_HASH_ITERATIONS)
