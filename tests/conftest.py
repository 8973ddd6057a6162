import pytest

from config import ApplicationConfig
from src.adapter.services.argon2_password_hasher import Argon2PasswordHasher
from src.api.utils.keys import get_key_pair


@pytest.fixture(scope="session", autouse=True)
def jwt_keys(tmp_path_factory):
    """Sign test tokens with a throwaway key pair instead of ./keys"""
    key_dir = tmp_path_factory.mktemp("keys")
    ApplicationConfig.JWT_PRIVATE_KEY_PATH = str(key_dir / "private.pem")
    ApplicationConfig.JWT_PUBLIC_KEY_PATH = str(key_dir / "public.pem")
    get_key_pair.cache_clear()
    yield get_key_pair()
    get_key_pair.cache_clear()


@pytest.fixture(scope="session")
def fast_hasher():
    """Argon2id with minimal cost so tests stay quick"""
    return Argon2PasswordHasher(memory_cost=8, time_cost=1, parallelism=1, hash_len=16)
