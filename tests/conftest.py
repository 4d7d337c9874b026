import pytest

from agentgate.config import Settings
from agentgate.services.crypto import KeyProvider, TokenCodec

VALID_KEY = "key_0123456789abcdefghij"
OTHER_KEY = "key_zyxwvutsrqponmlkjihg"
DEFAULT_KEY = "key_global_default_000000"


def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment and any .env file."""
    values = {
        "TOKEN_SECRET": "test-secret-for-testing-purposes-only",
        "TOKEN_TTL_DAYS": 30,
        "AGENT_API_KEY": None,
        "AGENT_API_URL": "https://agents.test",
        "LOG_JSON": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def secret():
    return KeyProvider("test-secret-for-testing-purposes-only").get_secret()


@pytest.fixture
def codec(secret):
    return TokenCodec(secret, ttl_seconds=3600)
