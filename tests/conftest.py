from __future__ import annotations

import pytest

from leave_ledger import create_app
from leave_ledger.leave_service import LeaveLedger
from leave_ledger.storage import PersistenceStore


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def store(data_dir):
    return PersistenceStore(data_dir)


@pytest.fixture
def ledger(store):
    return LeaveLedger(store)


@pytest.fixture
def app(data_dir):
    return create_app({"TESTING": True, "DATA_DIR": str(data_dir)})


@pytest.fixture
def client(app):
    return app.test_client()
