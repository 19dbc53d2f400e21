# tests/conftest.py
"""Shared fixtures: a file store in a temp directory and two common instruments."""
import pytest

from pricewatch.adapters.persistence.file_store import FileDocumentStore
from pricewatch.domain.models import Instrument


@pytest.fixture
def store(tmp_path):
    return FileDocumentStore(tmp_path / "data")


@pytest.fixture
def gold():
    return Instrument.commodity("gold", "egypt")


@pytest.fixture
def usd_egp():
    return Instrument.fx("USD", "EGP")
