import numpy as np
import pandas as pd
import pytest

from robustse import ols, panel_fe
from robustse.exceptions import SingularDesignError


@pytest.fixture
def fe_panel(rng):
    n_units, T = 100, 6
    unit = np.repeat(np.arange(n_units), T)
    alpha = rng.normal(0, 2, n_units)[unit]
    # regressors correlated with the unit effect
    x1 = 0.8 * alpha + rng.standard_normal(n_units * T)
    x2 = rng.standard_normal(n_units * T)
    y = alpha + 1.5 * x1 - 0.7 * x2 + rng.standard_normal(n_units * T)
    return dict(y=y, X=np.column_stack([x1, x2]), unit=unit)


def test_within_demean_removes_unit_means(fe_panel):
    dm = panel_fe.within_demean(fe_panel["y"], fe_panel["X"], fe_panel["unit"])
    df = pd.DataFrame(dm["X_demean"]).assign(y=dm["y_demean"], u=fe_panel["unit"])
    np.testing.assert_allclose(df.groupby("u").mean().to_numpy(), 0.0, atol=1e-12)
    assert dm["n_units"] == 100


def test_within_equals_dummy_variable_regression(fe_panel):
    y, X, unit = fe_panel["y"], fe_panel["X"], fe_panel["unit"]
    dummies = pd.get_dummies(unit).to_numpy(dtype=float)
    lsdv = ols.fit(np.column_stack([X, dummies]), y)
    fe = panel_fe.estimate_fe(y, X, unit)

    np.testing.assert_allclose(fe["beta_fe"], lsdv.beta[:2], rtol=1e-9)
    np.testing.assert_allclose(fe["residuals"], lsdv.residuals, atol=1e-9)
    assert fe["model"].df_resid == lsdv.df_resid

    lsdv_classical = ols.standard_errors(ols.classical_covariance(lsdv))[:2]
    np.testing.assert_allclose(fe["se_homosk"], lsdv_classical, rtol=1e-8)


def test_fe_recovers_slopes_and_pooled_is_biased(fe_panel):
    res = panel_fe.pooled_vs_within(fe_panel["y"], fe_panel["X"], fe_panel["unit"])
    np.testing.assert_allclose(res["beta_fe"], [1.5, -0.7], atol=0.2)
    assert res["gap"][0] > 0.2


def test_estimate_fe_covariances(fe_panel):
    fe = panel_fe.estimate_fe(fe_panel["y"], fe_panel["X"], fe_panel["unit"])
    assert fe["cov_homosk"].kind == "classical"
    assert fe["cov_robust"].kind == "HC1"
    assert fe["cov_cluster"].kind == "cluster"
    assert fe["cov_cluster"].n_clusters == 100
    assert fe["se_cluster"].shape == (2,)
    assert np.all(fe["se_cluster"] > 0)


def test_cluster_level_above_units(fe_panel):
    teams = fe_panel["unit"] // 2
    fe = panel_fe.estimate_fe(fe_panel["y"], fe_panel["X"], fe_panel["unit"],
                              cluster_ids=teams)
    assert fe["cov_cluster"].n_clusters == 50


def test_time_invariant_regressor_is_absorbed(fe_panel):
    unit = fe_panel["unit"]
    invariant = np.sin(unit.astype(float))
    X = np.column_stack([fe_panel["X"][:, 0], invariant])
    with pytest.raises(SingularDesignError):
        panel_fe.estimate_fe(fe_panel["y"], X, unit)
