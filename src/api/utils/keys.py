"""
RSA key pair used to sign access tokens.

The private key never leaves this service; the public key is published so
other services can verify tokens without a database round-trip.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from config import ApplicationConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyPair:
    private_pem: str
    public_pem: str


def ensure_key_pair(private_path: str, public_path: str, key_size: int = 2048) -> KeyPair:
    """Load the key pair from disk, generating it on first start."""
    if os.path.exists(private_path) and os.path.exists(public_path):
        with open(private_path, "r") as f:
            private_pem = f.read()
        with open(public_path, "r") as f:
            public_pem = f.read()
        return KeyPair(private_pem=private_pem, public_pem=public_pem)

    logger.info("Generating new RSA key pair for JWT signing...")
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()

    for path in (private_path, public_path):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
    with open(private_path, "w") as f:
        f.write(private_pem)
    os.chmod(private_path, 0o600)
    with open(public_path, "w") as f:
        f.write(public_pem)

    logger.info(f"RSA key pair written to {os.path.dirname(private_path) or '.'}")
    return KeyPair(private_pem=private_pem, public_pem=public_pem)


@lru_cache(maxsize=1)
def get_key_pair() -> KeyPair:
    return ensure_key_pair(
        ApplicationConfig.JWT_PRIVATE_KEY_PATH,
        ApplicationConfig.JWT_PUBLIC_KEY_PATH,
        ApplicationConfig.JWT_KEY_SIZE,
    )
