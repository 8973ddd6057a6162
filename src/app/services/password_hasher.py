from abc import ABC, abstractmethod

from src.domain.result import Result


class IPasswordHasher(ABC):
    """
    Password hashing port.

    Implementations never raise on malformed input: failures come back as
    Result errors because stored hashes are long-lived values.
    """

    @abstractmethod
    def hash(self, plaintext: str) -> Result[str]:
        """Hash a plaintext password"""
        pass

    @abstractmethod
    def verify(self, password_hash: str, plaintext: str) -> Result[bool]:
        """Ok(True) on match, Ok(False) on mismatch, Err on unreadable hash"""
        pass

    @abstractmethod
    def needs_rehash(self, password_hash: str) -> bool:
        """True when the hash was produced with outdated parameters"""
        pass

    @abstractmethod
    def verify_dummy(self, plaintext: str) -> None:
        """Spend one verification on a throwaway hash (unknown identifiers)"""
        pass
