"""
Pytest configuration and shared fixtures for verifier tests.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to the path so absolute imports work
# (tests/ is inside the project root, so parent is the root)
root_dir = Path(__file__).parent.parent
if str(root_dir) not in sys.path:
    sys.path.insert(0, str(root_dir))

from protocol.registry import InMemoryModelRegistry  # noqa: E402
from tests.proof_builder import prove_random_matmul  # noqa: E402

MODEL_ID = "test-model"


@pytest.fixture
def proven():
    """Accepting proof with k=4 (two sumcheck rounds)."""
    return prove_random_matmul(seed=7, m=3, k=4, n=5)


@pytest.fixture
def registry(proven):
    return InMemoryModelRegistry({MODEL_ID: proven.proof.a_commitment})
