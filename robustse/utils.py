"""
Shared utility functions used across all robustse modules.
"""

import numpy as np
import pandas as pd

from .exceptions import DimensionMismatchError, InvalidInputError

# |R_jj| below RANK_TOL * max|R_ii| counts as a zero pivot.
RANK_TOL = 1e-10
# Negative variances smaller than this (relative) are treated as round-off.
NEG_VAR_TOL = 1e-12


def add_const(x):
    """
    Prepend a column of ones (intercept) to the design matrix.

    Parameters
    ----------
    x : array_like
        1-d array or 2-d matrix of regressors.

    Returns
    -------
    X : ndarray, shape (n, k+1)
        Design matrix with leading ones column.
    """
    x = np.asarray(x, dtype=float)
    x = x.reshape(-1, 1) if x.ndim == 1 else x
    return np.column_stack([np.ones(x.shape[0]), x])


def as_design(X):
    """
    Copy X into a read-only 2-d float array, checking it is finite.

    A 1-d input is treated as a single column.
    """
    X = np.array(X, dtype=float, copy=True)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    if X.ndim != 2:
        raise InvalidInputError(f"X must be 1-d or 2-d, got {X.ndim} dimensions")
    if not np.all(np.isfinite(X)):
        raise InvalidInputError("X contains NaN or Inf values")
    X.setflags(write=False)
    return X


def as_response(y, n):
    """Copy y into a read-only 1-d float array of length n."""
    y = np.array(y, dtype=float, copy=True)
    if y.ndim == 2 and y.shape[1] == 1:
        y = y[:, 0]
    if y.ndim != 1:
        raise InvalidInputError(f"y must be 1-d, got shape {y.shape}")
    if y.shape[0] != n:
        raise DimensionMismatchError(
            f"y has {y.shape[0]} observations but X has {n} rows"
        )
    if not np.all(np.isfinite(y)):
        raise InvalidInputError("y contains NaN or Inf values")
    y.setflags(write=False)
    return y


def factorize_labels(labels, n):
    """
    Map group labels to integer codes in order of first appearance.

    Parameters
    ----------
    labels : array_like, shape (n,)
        Cluster or unit identifiers of any hashable type.
    n : int
        Expected number of observations.

    Returns
    -------
    codes : ndarray of int, shape (n,)
        codes[i] is the index of observation i's group; group 0 is the
        group of the first observation, group 1 the next new label, etc.
    n_groups : int
        Number of distinct labels.
    """
    labels = np.asarray(labels)
    if labels.ndim != 1:
        raise InvalidInputError(f"labels must be 1-d, got shape {labels.shape}")
    if labels.shape[0] != n:
        raise DimensionMismatchError(
            f"got {labels.shape[0]} labels for {n} observations"
        )
    codes, uniques = pd.factorize(labels, sort=False)
    if np.any(codes < 0):
        raise InvalidInputError(
            f"{int(np.sum(codes < 0))} observations have a missing label"
        )
    return codes, len(uniques)


def group_sums(values, codes, n_groups):
    """
    Sum rows of `values` within groups, returning one row per group.

    Rows are accumulated in observation order and groups come out in
    code order, so the result does not depend on hash ordering.
    """
    values = np.asarray(values, dtype=float)
    squeeze = values.ndim == 1
    values = values.reshape(len(codes), -1)
    sums = pd.DataFrame(values).groupby(codes, sort=True).sum().to_numpy()
    if sums.shape[0] != n_groups:
        raise DimensionMismatchError(
            f"expected {n_groups} groups, found {sums.shape[0]}"
        )
    return sums[:, 0] if squeeze else sums
