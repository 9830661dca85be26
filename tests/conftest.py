import os
import sys

import base58
import pytest

# Ensure repository root is on sys.path before importing project modules.
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

from amadeus_mcp.metrics import default_metrics  # noqa: E402


@pytest.fixture(autouse=True)
def reset_metrics():
    default_metrics.reset()
    yield
    default_metrics.reset()


@pytest.fixture
def address():
    """A well-formed account address (48 bytes, base58)."""
    return base58.b58encode(bytes(range(1, 49))).decode("ascii")


@pytest.fixture
def other_address():
    return base58.b58encode(bytes(range(100, 148))).decode("ascii")


@pytest.fixture
def tx_hash():
    return base58.b58encode(bytes(range(7, 39))).decode("ascii")
