"""
Pytest configuration and fixtures.
"""

import os
import tempfile
from datetime import datetime, timezone

import pytest

# Entorno de pruebas: debe quedar fijado antes de importar `config.settings`
_TMP_DIR = tempfile.mkdtemp(prefix="truetouch-tests-")
os.environ["SECRET_KEY"] = "test_secret_key_for_jwt_signing_only"
os.environ["ALGORITHM"] = "HS256"
os.environ["ADMIN_MASTER_KEY"] = "test-master-key"
os.environ["ADMIN_TOKEN_EXPIRE_DAYS"] = "1"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'truetouch.db')}"
os.environ["STORE_TIMEOUT_SECONDS"] = "10"

from core.memory_store import InMemoryTagStore
from core.records import TagRecord
from core.signature import hash_secret_key
from core.verification import TagVerifier
from database.db import Base, engine
from database import models  # noqa: F401

Base.metadata.create_all(bind=engine)

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)
RAW_KEY = "a" * 64
SECRET = hash_secret_key(RAW_KEY)
UID = "04A1B2C3D4E5F6"


class FixedClock:
    """Reloj inyectable con hora fija."""
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_record(**overrides) -> TagRecord:
    values = dict(
        identifier=UID,
        product_id="MB-0001",
        secret=SECRET,
        product_name="Sérum Facial",
        batch_number="L2026-10",
        manufacturing_location="São Paulo",
    )
    values.update(overrides)
    return TagRecord(**values)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store() -> InMemoryTagStore:
    return InMemoryTagStore(timeout=5.0)


@pytest.fixture
def verifier(store, clock) -> TagVerifier:
    return TagVerifier(store, clock=clock, demo_ids=["04AABBCCDDDEEFF"], max_retries=50)
