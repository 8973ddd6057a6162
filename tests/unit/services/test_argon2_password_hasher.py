from src.adapter.services.argon2_password_hasher import Argon2PasswordHasher


def test_hash_is_argon2id_and_not_plaintext(fast_hasher):
    result = fast_hasher.hash("P@ssw0rd1")

    assert result.is_ok()
    assert result.value != "P@ssw0rd1"
    assert result.value.startswith("$argon2id$")


def test_same_password_hashes_differently(fast_hasher):
    assert fast_hasher.hash("P@ssw0rd1").value != fast_hasher.hash("P@ssw0rd1").value


def test_verify_match_and_mismatch(fast_hasher):
    password_hash = fast_hasher.hash("P@ssw0rd1").value

    assert fast_hasher.verify(password_hash, "P@ssw0rd1").value is True
    mismatch = fast_hasher.verify(password_hash, "wrong")
    assert mismatch.is_ok()
    assert mismatch.value is False


def test_verify_unreadable_hash_is_an_error(fast_hasher):
    result = fast_hasher.verify("not-a-hash", "P@ssw0rd1")

    assert result.is_err()
    assert result.error.code == "INVALID_HASH"


def test_empty_password_is_rejected(fast_hasher):
    result = fast_hasher.hash("")

    assert result.is_err()
    assert result.error.code == "INVALID_PASSWORD"


def test_needs_rehash_when_parameters_change(fast_hasher):
    password_hash = fast_hasher.hash("P@ssw0rd1").value
    stronger = Argon2PasswordHasher(memory_cost=16, time_cost=2, parallelism=1, hash_len=16)

    assert not fast_hasher.needs_rehash(password_hash)
    assert stronger.needs_rehash(password_hash)
    assert not stronger.needs_rehash("garbage")
