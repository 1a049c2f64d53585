import pytest

from sealdrop_core.keystore import KeyStore
from sealdrop_core.session import Session
from sealdrop_core.storage import InMemoryStorage

# RSA generation is slow; share a couple of pairs across the run.


@pytest.fixture(scope="session")
def key_pair():
    return KeyStore(InMemoryStorage()).generate()


@pytest.fixture(scope="session")
def other_key_pair():
    return KeyStore(InMemoryStorage()).generate()


@pytest.fixture
def session():
    return Session(user_id="alice", access_token="tok-alice")
