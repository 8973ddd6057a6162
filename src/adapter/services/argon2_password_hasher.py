import logging
import secrets

from argon2 import PasswordHasher, Type
from argon2.exceptions import HashingError, InvalidHashError, VerificationError

from src.app.services.password_hasher import IPasswordHasher
from src.domain.result import Error, Result, Return

logger = logging.getLogger(__name__)


class Argon2PasswordHasher(IPasswordHasher):
    """
    Argon2id password hasher (argon2-cffi).

    Defaults: 16 MiB memory, 3 iterations, 2 lanes, 64-byte output.
    """

    def __init__(
        self,
        memory_cost: int = 16384,
        time_cost: int = 3,
        parallelism: int = 2,
        hash_len: int = 64,
    ):
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=hash_len,
            type=Type.ID,
        )
        self._dummy_hash = self._hasher.hash(secrets.token_hex(16))

    def hash(self, plaintext: str) -> Result[str]:
        if not isinstance(plaintext, str) or not plaintext:
            return Return.err(Error("INVALID_PASSWORD", "Password must be a non-empty string"))
        try:
            return Return.ok(self._hasher.hash(plaintext))
        except HashingError as e:
            logger.error(f"Password hashing failed: {e}")
            return Return.err(Error("HASHING_FAILED", "Password could not be hashed"))

    def verify(self, password_hash: str, plaintext: str) -> Result[bool]:
        if not password_hash or not isinstance(plaintext, str):
            return Return.err(Error("INVALID_HASH", "Stored password hash is unreadable"))
        try:
            return Return.ok(self._hasher.verify(password_hash, plaintext))
        except InvalidHashError:
            return Return.err(Error("INVALID_HASH", "Stored password hash is unreadable"))
        except VerificationError:
            # Covers VerifyMismatchError
            return Return.ok(False)

    def needs_rehash(self, password_hash: str) -> bool:
        try:
            return self._hasher.check_needs_rehash(password_hash)
        except (InvalidHashError, ValueError):
            return False

    def verify_dummy(self, plaintext: str) -> None:
        self.verify(self._dummy_hash, plaintext)
