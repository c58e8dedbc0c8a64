import numpy as np
import pytest

from robustse import bootstrap, clustering, ols
from robustse.exceptions import InvalidInputError
from robustse.simulate import simulate_clustered


@pytest.fixture
def panel():
    return simulate_clustered(n_clusters=60, cluster_size=10, rho=0.4, seed=11)


def test_cluster_bootstrap_close_to_analytic(panel):
    boot_se = bootstrap.cluster_bootstrap_se(
        panel["X"], panel["y"], panel["cluster_ids"], n_boot=299, seed=1
    )
    fitted = ols.fit(panel["X"], panel["y"])
    analytic = ols.standard_errors(
        clustering.cluster_robust_covariance(fitted, panel["cluster_ids"])
    )
    np.testing.assert_allclose(boot_se, analytic, rtol=0.3)


def test_bootstrap_is_reproducible(panel):
    a = bootstrap.cluster_bootstrap_se(panel["X"], panel["y"], panel["cluster_ids"],
                                       n_boot=50, seed=3)
    b = bootstrap.cluster_bootstrap_se(panel["X"], panel["y"], panel["cluster_ids"],
                                       n_boot=50, seed=3)
    np.testing.assert_array_equal(a, b)


def test_bootstrap_statistic_scalar(data_dense):
    X, y = data_dense
    bs = bootstrap.bootstrap_statistic(
        X, y, lambda Xb, yb: ols.fit(Xb, yb).beta[1], n_boot=200, seed=0
    )
    assert bs["boot_estimates"].shape == (200,)
    assert bs["n_failed"] == 0
    assert bs["ci_lo"] < 2.0 < bs["ci_hi"]
    assert bs["se"] > 0


def test_bootstrap_counts_singular_draws():
    # a single observation carries all the variation in the second column
    n = 30
    x = np.zeros(n)
    x[0] = 1.0
    X = np.column_stack([np.ones(n), x])
    y = np.arange(n, dtype=float)
    bs = bootstrap.bootstrap_statistic(
        X, y, lambda Xb, yb: ols.fit(Xb, yb).beta, n_boot=100, seed=0
    )
    assert bs["n_failed"] > 0
    assert bs["boot_estimates"].shape == (100 - bs["n_failed"], 2)


def test_bootstrap_needs_replications(data_dense):
    X, y = data_dense
    with pytest.raises(InvalidInputError):
        bootstrap.bootstrap_statistic(X, y, lambda Xb, yb: 0.0, n_boot=1)
