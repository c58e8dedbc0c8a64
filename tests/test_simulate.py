import numpy as np
import pytest

from robustse import simulate
from robustse.exceptions import InvalidInputError


def test_simulate_heteroskedastic_shapes():
    data = simulate.simulate_heteroskedastic(n=50, seed=1)
    assert data["X"].shape == (50, 2)
    assert data["y"].shape == (50,)
    np.testing.assert_array_equal(data["X"][:, 0], 1.0)
    np.testing.assert_array_equal(data["beta"], [1.0, 2.0])


def test_simulate_clustered_layout():
    data = simulate.simulate_clustered(n_clusters=5, cluster_size=4, seed=1)
    assert data["X"].shape == (20, 2)
    np.testing.assert_array_equal(np.bincount(data["cluster_ids"]), [4] * 5)


def test_simulate_clustered_shares_shocks_across_rho():
    a = simulate.simulate_clustered(rho=0.0, seed=8)
    b = simulate.simulate_clustered(rho=0.9, seed=8)
    np.testing.assert_array_equal(a["x"], b["x"])
    assert not np.allclose(a["y"], b["y"])


def test_simulate_clustered_validates_rho():
    with pytest.raises(InvalidInputError):
        simulate.simulate_clustered(rho=1.5)


def test_classical_over_rejects_with_clustered_errors():
    rates = simulate.monte_carlo_rejection_rates(
        n_sims=200, seed=2024, n_clusters=50, cluster_size=20, rho=0.5, x_rho=0.5
    )
    assert rates["classical"] > 0.25
    assert rates["hc1"] > 0.25
    assert rates["cluster"] < 0.12
    assert rates["mean_se"]["cluster"] > 2 * rates["mean_se"]["classical"]
    assert rates["mean_se"]["cluster"] == pytest.approx(rates["sd_beta"], rel=0.3)
