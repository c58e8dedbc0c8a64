"""
Synthetic data for the heteroskedasticity and clustering sections.

Each generator draws every random component in a fixed order from one
seeded Generator, so two calls with the same seed that differ only in a
variance parameter share the same underlying shocks.
"""

import numpy as np
from scipy import stats

from .clustering import cluster_robust_covariance
from .exceptions import InvalidInputError
from .heteroskedasticity import heteroskedasticity_robust_covariance
from .ols import classical_covariance, fit, standard_errors
from .utils import add_const


def simulate_heteroskedastic(n=1000, intercept=1.0, slope=2.0, power=2.0,
                             sigma=1.0, seed=None):
    """
    Cross-section whose error standard deviation grows with the regressor.

    DGP:
        x   ~ Uniform(0, 1)
        eps = sigma * x^power * z,   z ~ N(0, 1)
        y   = intercept + slope * x + eps

    With power=0 the errors are homoskedastic.

    Returns
    -------
    dict with keys: X (with constant), y, x, beta (true coefficients)
    """
    rng = np.random.default_rng(seed)
    x = rng.uniform(0.0, 1.0, n)
    z = rng.standard_normal(n)
    y = intercept + slope * x + sigma * x ** power * z
    return dict(X=add_const(x), y=y, x=x, beta=np.array([intercept, slope]))


def simulate_clustered(n_clusters=50, cluster_size=20, rho=0.5, x_rho=0.5,
                       intercept=1.0, slope=0.5, seed=None):
    """
    Clustered sample with controlled intra-cluster correlation.

    DGP for observation i in cluster g:
        x_ig   = sqrt(x_rho) * z_g + sqrt(1 - x_rho) * v_ig
        eps_ig = sqrt(rho) * u_g + sqrt(1 - rho) * e_ig
        y_ig   = intercept + slope * x_ig + eps_ig

    z, v, u, e are independent N(0, 1), so Var(eps) = Var(x) = 1 for every
    rho and the within-cluster error correlation is exactly rho.
    Classical SEs understate the slope's variance roughly by the Moulton
    factor 1 + (m - 1) * rho * x_rho.

    Returns
    -------
    dict with keys: X (with constant), y, x, cluster_ids, beta
    """
    if not (0.0 <= rho <= 1.0 and 0.0 <= x_rho <= 1.0):
        raise InvalidInputError("rho and x_rho must lie in [0, 1]")
    rng = np.random.default_rng(seed)
    n = n_clusters * cluster_size
    cluster_ids = np.repeat(np.arange(n_clusters), cluster_size)

    z = rng.standard_normal(n_clusters)
    v = rng.standard_normal(n)
    u = rng.standard_normal(n_clusters)
    e = rng.standard_normal(n)

    x = np.sqrt(x_rho) * z[cluster_ids] + np.sqrt(1 - x_rho) * v
    eps = np.sqrt(rho) * u[cluster_ids] + np.sqrt(1 - rho) * e
    y = intercept + slope * x + eps
    return dict(
        X=add_const(x), y=y, x=x, cluster_ids=cluster_ids,
        beta=np.array([intercept, slope]),
    )


def monte_carlo_rejection_rates(n_sims=500, alpha=0.05, coef_idx=1, seed=None,
                                **dgp_kwargs):
    """
    Monte Carlo size of t-tests of a true null under each variance estimator.

    Draws `n_sims` clustered samples from simulate_clustered(**dgp_kwargs),
    tests H0: beta_j = true beta_j with classical, HC1 and cluster-robust
    standard errors, and records how often each rejects. A correctly
    sized test rejects about `alpha` of the time.

    Returns
    -------
    dict with keys:
        classical, hc1, cluster : rejection rates
        mean_se                 : dict of average SEs per estimator
        sd_beta                 : Monte Carlo SD of beta_hat_j (the truth
                                  the SEs try to estimate)
    """
    rng = np.random.default_rng(seed)
    rejections = dict(classical=0, hc1=0, cluster=0)
    se_sums = dict(classical=0.0, hc1=0.0, cluster=0.0)
    estimates = np.empty(n_sims)

    for sim in range(n_sims):
        data = simulate_clustered(seed=int(rng.integers(2 ** 32)), **dgp_kwargs)
        fitted = fit(data["X"], data["y"])
        covs = dict(
            classical=classical_covariance(fitted),
            hc1=heteroskedasticity_robust_covariance(fitted),
            cluster=cluster_robust_covariance(fitted, data["cluster_ids"]),
        )
        diff = fitted.beta[coef_idx] - data["beta"][coef_idx]
        estimates[sim] = fitted.beta[coef_idx]
        for name, cov in covs.items():
            se = standard_errors(cov)[coef_idx]
            crit = stats.t.ppf(1 - alpha / 2, cov.df)
            rejections[name] += int(abs(diff / se) > crit)
            se_sums[name] += se

    result = {name: count / n_sims for name, count in rejections.items()}
    result["mean_se"] = {name: total / n_sims for name, total in se_sums.items()}
    result["sd_beta"] = float(np.std(estimates, ddof=1))
    return result
