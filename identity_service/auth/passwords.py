"""
Password hashing.

This module provides functionality for:
- Generating salted bcrypt digests
- Verifying a plaintext password against a stored digest
"""
import bcrypt

from identity_service.auth.errors import PasswordHashError

# bcrypt log2 rounds; 10 costs tens of milliseconds on commodity hardware
DEFAULT_WORK_FACTOR = 10
MIN_WORK_FACTOR = 4
MAX_WORK_FACTOR = 31

# bcrypt only looks at the first 72 bytes of input
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """
    bcrypt password hasher with a fixed work factor.

    Holds no mutable state after construction, so a single instance is
    shared by all concurrent requests.
    """

    def __init__(self, work_factor: int = DEFAULT_WORK_FACTOR):
        if not MIN_WORK_FACTOR <= work_factor <= MAX_WORK_FACTOR:
            raise ValueError(
                f"work_factor must be between {MIN_WORK_FACTOR} and {MAX_WORK_FACTOR}"
            )
        self.work_factor = work_factor
        # Digest used to equalize timing for unknown accounts
        self._dummy_digest = bcrypt.hashpw(
            b"identity-service-dummy-password",
            bcrypt.gensalt(rounds=work_factor),
        )

    def hash(self, password: str) -> str:
        """
        Generate a password digest using bcrypt with a fresh random salt.

        Args:
            password: Plaintext password

        Returns:
            bcrypt digest string, safe to persist

        Raises:
            ValueError: If the password is longer than 72 bytes
            PasswordHashError: If the hashing engine fails
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        try:
            return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.work_factor)).decode("utf-8")
        except Exception as e:
            raise PasswordHashError(f"Password hashing failed: {e.__class__.__name__}") from e

    def verify(self, password: str, digest: str) -> bool:
        """
        Check if the password matches the stored digest.

        The comparison runs in constant time. A mismatch returns False;
        an unusable digest is an infrastructure error, not a mismatch.

        Raises:
            PasswordHashError: If the digest is not a valid bcrypt string
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            # hash() never accepts such input, so it cannot match
            return False
        try:
            return bcrypt.checkpw(encoded, digest.encode("utf-8"))
        except ValueError as e:
            raise PasswordHashError("Stored password digest is invalid") from e

    def verify_dummy(self, password: str) -> bool:
        """Run a full verification that always fails."""
        encoded = password.encode("utf-8")[:MAX_PASSWORD_BYTES]
        bcrypt.checkpw(encoded, self._dummy_digest)
        return False
