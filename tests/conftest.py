from __future__ import annotations

from collections.abc import Iterator

import pytest

from qubit_commons.security import TruncatingBCryptPasswordEncoder, reset_password_encoder_cache

# Lowest cost bcrypt accepts; keeps the suite fast.
TEST_BCRYPT_STRENGTH = 4


@pytest.fixture
def encoder() -> TruncatingBCryptPasswordEncoder:
    return TruncatingBCryptPasswordEncoder(strength=TEST_BCRYPT_STRENGTH)


@pytest.fixture(autouse=True)
def _reset_password_encoder_cache() -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    reset_password_encoder_cache()
    yield
    reset_password_encoder_cache()
