from __future__ import annotations

import pytest

from quartermaster.db import DoctrineStore


@pytest.fixture
def store(tmp_path):
    doctrine_store = DoctrineStore.open(tmp_path / "repository.db")
    yield doctrine_store
    doctrine_store.close()
