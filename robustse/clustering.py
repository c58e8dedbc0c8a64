"""
Section 3: Clustered Errors -- One-Way Cluster-Robust Standard Errors

When observations share a group (a player observed over many seasons, a
student within a school) their errors are typically correlated. Classical
and HC standard errors treat every observation as independent and are too
small. The cluster-robust (Liang-Zeger / Arellano) estimator sums the
scores within each cluster before forming the meat of the sandwich:

    V_CR = (X'X)^{-1} [sum_g s_g s_g'] (X'X)^{-1},   s_g = sum_{i in g} e_i x_i

It is consistent under arbitrary within-cluster correlation and
heteroskedasticity as the number of clusters grows.
"""

import logging
import warnings

import numpy as np

from .exceptions import FewClustersWarning, InsufficientClustersError
from .ols import CLUSTER, Covariance, sandwich
from .utils import factorize_labels, group_sums

logger = logging.getLogger(__name__)

# Below this many clusters cluster-robust t-tests over-reject noticeably.
FEW_CLUSTERS_THRESHOLD = 20


def cluster_scores(fitted, cluster_labels):
    """
    Per-cluster score vectors s_g = sum_{i in g} e_i x_i.

    Parameters
    ----------
    fitted : FittedModel
    cluster_labels : array_like, shape (n,)
        One cluster identifier per observation; clusters need not be
        contiguous or balanced.

    Returns
    -------
    scores : ndarray, shape (G, k)
        Rows ordered by first appearance of each label.
    n_clusters : int
    """
    codes, n_clusters = factorize_labels(cluster_labels, fitted.n)
    scores = fitted.X * fitted.residuals[:, np.newaxis]
    return group_sums(scores, codes, n_clusters), n_clusters


def cluster_robust_covariance(fitted, cluster_labels, small_sample_correction=True):
    """
    One-way cluster-robust covariance.

    Parameters
    ----------
    fitted : FittedModel
    cluster_labels : array_like, shape (n,)
        Cluster identifier for each row of X.
    small_sample_correction : bool
        Scale the meat by  G/(G-1) * (n-1)/(n-k). With singleton clusters
        this equals n/(n-k), so the estimator reduces to HC1.

    Returns
    -------
    Covariance
        kind='cluster', df = G - 1.

    Raises
    ------
    DimensionMismatchError
        If the number of labels differs from the number of observations.
    InsufficientClustersError
        If G <= k.
    """
    scores, n_clusters = cluster_scores(fitted, cluster_labels)
    if n_clusters <= fitted.k:
        raise InsufficientClustersError(
            f"cluster-robust covariance needs more clusters than coefficients: "
            f"G={n_clusters}, k={fitted.k}"
        )
    if n_clusters < FEW_CLUSTERS_THRESHOLD:
        logger.info("only %d clusters; cluster-robust SEs may be biased down", n_clusters)
        warnings.warn(
            f"Only {n_clusters} clusters. Cluster-robust standard errors are "
            f"unreliable with fewer than {FEW_CLUSTERS_THRESHOLD} clusters.",
            FewClustersWarning,
            stacklevel=2,
        )

    meat = scores.T @ scores

    n, k, G = fitted.n, fitted.k, n_clusters
    # Fixed effects absorbed within clusters do not enter k here.
    scale = (G / (G - 1)) * ((n - 1) / (n - k)) if small_sample_correction else 1.0
    logger.debug("cluster covariance: G=%d, n=%d, k=%d, scale=%.6g", G, n, k, scale)
    return Covariance(
        matrix=sandwich(fitted, meat, scale), kind=CLUSTER, df=G - 1,
        n_clusters=G,
    )


def cluster_summary(cluster_labels):
    """
    Count clusters and describe their sizes.

    Returns
    -------
    dict with keys:
        n_clusters : number of distinct labels
        n_obs      : number of observations
        min_size, max_size, mean_size : cluster size statistics
        balanced   : bool, True if all clusters have the same size
    """
    labels = np.asarray(cluster_labels)
    codes, n_clusters = factorize_labels(labels, labels.shape[0])
    sizes = np.bincount(codes, minlength=n_clusters)
    return dict(
        n_clusters=n_clusters,
        n_obs=int(sizes.sum()),
        min_size=int(sizes.min()),
        max_size=int(sizes.max()),
        mean_size=float(sizes.mean()),
        balanced=bool(sizes.min() == sizes.max()),
    )


def intracluster_correlation(values, cluster_labels):
    """
    One-way ANOVA estimate of the intra-cluster correlation of `values`.

    ICC = (MSB - MSW) / (MSB + (m0 - 1) MSW), with m0 the adjusted mean
    cluster size for unbalanced clusters. Applied to residuals it shows how
    far the independence assumption behind classical SEs is violated.

    Parameters
    ----------
    values : array_like, shape (n,)
    cluster_labels : array_like, shape (n,)

    Returns
    -------
    float
        Can be slightly negative in finite samples.
    """
    values = np.asarray(values, dtype=float)
    n = values.shape[0]
    codes, G = factorize_labels(cluster_labels, n)
    if G < 2 or G >= n:
        raise InsufficientClustersError(
            f"ICC needs 2 <= G < n, got G={G}, n={n}"
        )
    sizes = np.bincount(codes, minlength=G).astype(float)
    means = group_sums(values, codes, G) / sizes
    grand = values.mean()

    msb = np.sum(sizes * (means - grand) ** 2) / (G - 1)
    msw = np.sum((values - means[codes]) ** 2) / (n - G)
    m0 = (n - np.sum(sizes ** 2) / n) / (G - 1)
    denom = msb + (m0 - 1) * msw
    if denom == 0:
        return 0.0
    return float((msb - msw) / denom)
