import sys
from pathlib import Path

import numpy as np
import pytest


def pytest_configure():
    """Put the repository root on sys.path so the package and the
    applications/ scripts import without an install."""
    repo_root = str(Path(__file__).resolve().parents[1])
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def data_dense(rng):
    n = 200
    X = np.column_stack([np.ones(n), rng.standard_normal((n, 2))])
    y = X @ np.array([1.0, 2.0, -0.5]) + rng.standard_normal(n)
    return X, y
