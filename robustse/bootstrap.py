"""
Section 5: Bootstrap Inference

Nonparametric pairs bootstrap and its clustered variant, which resamples
whole clusters with replacement. The cluster bootstrap makes no use of the
sandwich formula, so it is an independent check on cluster-robust
standard errors.
"""

import logging

import numpy as np

from .exceptions import InvalidInputError, SingularDesignError
from .ols import fit
from .utils import as_design, as_response, factorize_labels

logger = logging.getLogger(__name__)


def bootstrap_statistic(data_X, data_y, estimator, n_boot=999,
                        cluster_labels=None, seed=None):
    """
    Nonparametric (optionally clustered) bootstrap for an arbitrary estimator.

    Parameters
    ----------
    data_X : ndarray, shape (n, k)
        Design matrix.
    data_y : ndarray, shape (n,)
        Outcome vector.
    estimator : callable
        Function (X, y) -> scalar or 1-d array of estimates.
    n_boot : int
        Number of bootstrap replications.
    cluster_labels : ndarray, shape (n,), optional
        If given, whole clusters are drawn with replacement instead of
        individual observations.
    seed : int or None
        Random seed.

    Returns
    -------
    dict with keys:
        boot_estimates : array of bootstrap estimates, shape (B,) or (B, p)
        se             : bootstrap standard error(s)
        ci_lo, ci_hi   : 2.5th and 97.5th percentile CI
        mean           : mean of bootstrap distribution
        n_failed       : replications dropped because the resampled
                         design was singular
    """
    if n_boot < 2:
        raise InvalidInputError(f"n_boot must be >= 2, got {n_boot}")
    X = as_design(data_X)
    n = X.shape[0]
    y = as_response(data_y, n)
    rng = np.random.default_rng(seed)

    if cluster_labels is not None:
        codes, n_clusters = factorize_labels(cluster_labels, n)
        members = [np.flatnonzero(codes == g) for g in range(n_clusters)]

    boots = []
    n_failed = 0
    for _ in range(n_boot):
        if cluster_labels is None:
            idx = rng.integers(0, n, size=n)
        else:
            drawn = rng.integers(0, n_clusters, size=n_clusters)
            idx = np.concatenate([members[g] for g in drawn])
        try:
            boots.append(np.asarray(estimator(X[idx], y[idx]), dtype=float))
        except SingularDesignError:
            n_failed += 1

    if n_failed:
        logger.info("%d of %d bootstrap draws had a singular design", n_failed, n_boot)
    if len(boots) < 2:
        raise SingularDesignError(
            f"only {len(boots)} of {n_boot} bootstrap draws were estimable"
        )

    valid = np.stack(boots)
    ci = np.percentile(valid, [2.5, 97.5], axis=0)

    return dict(
        boot_estimates=valid,
        se=np.std(valid, axis=0, ddof=1),
        ci_lo=ci[0],
        ci_hi=ci[1],
        mean=np.mean(valid, axis=0),
        n_failed=n_failed,
    )


def cluster_bootstrap_se(X, y, cluster_labels, n_boot=999, seed=None):
    """
    Cluster (block) bootstrap standard errors for all OLS coefficients.

    Parameters
    ----------
    X : ndarray, shape (n, k)
        Design matrix (with constant).
    y : ndarray, shape (n,)
    cluster_labels : ndarray, shape (n,)
    n_boot : int
    seed : int or None

    Returns
    -------
    se : ndarray, shape (k,)
    """
    bs = bootstrap_statistic(
        X, y, lambda Xb, yb: fit(Xb, yb).beta,
        n_boot=n_boot, cluster_labels=cluster_labels, seed=seed,
    )
    return bs["se"]
