"""Shared fixtures"""
import pytest

from authkeeper.backend.database import connect
from authkeeper.backend.store import UserStore

# Lowest cost factor bcrypt accepts; keeps the suite fast
TEST_BCRYPT_ROUNDS = 4


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep settings from reading the developer's environment or ~/.authkeeper"""
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("AUTHKEEPER_INSTANCE_PATH", str(tmp_path / "instance"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
async def database(database_url):
    db = await connect(database_url)
    assert db.is_connected
    yield db
    await db.dispose()


@pytest.fixture
def store(database):
    return UserStore(database, bcrypt_rounds=TEST_BCRYPT_ROUNDS)
