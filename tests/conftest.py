"""Pytest configuration and fixtures."""

import base64
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from api.main import app

FIXTURES = Path(__file__).parent / "fixtures"


def read_fixture(kind: str, name: str) -> bytes:
    """Read a fixture file from ``tests/fixtures/<kind>/<name>``."""
    return (FIXTURES / kind / name).read_bytes()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create test client."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def fountain_path() -> Path:
    return FIXTURES / "fountain" / "night_shift.fountain"


@pytest.fixture
def fdx_path() -> Path:
    return FIXTURES / "fdx" / "simple.fdx"


@pytest.fixture
def fountain_b64() -> str:
    """Base64 payload of the sample Fountain screenplay."""
    return base64.b64encode(read_fixture("fountain", "night_shift.fountain")).decode("ascii")


@pytest.fixture
def fdx_b64() -> str:
    """Base64 payload of the sample FDX screenplay."""
    return base64.b64encode(read_fixture("fdx", "simple.fdx")).decode("ascii")
