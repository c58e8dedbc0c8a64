"""
Section 2: Heteroskedasticity -- Detection and Robust Standard Errors

Implements the Breusch-Pagan test for heteroskedasticity and
HC0 / HC1 (Huber-White) robust covariance matrices from scratch.
"""

import logging

import numpy as np
from scipy import stats

from .exceptions import InvalidInputError
from .ols import HC0, HC1, Covariance, classical_covariance, fit, sandwich, standard_errors
from .utils import as_design

logger = logging.getLogger(__name__)


def breusch_pagan_test(X, residuals, alpha=0.05):
    """
    Breusch-Pagan test for heteroskedasticity (Koenker's studentized form).

    Regresses squared OLS residuals on X. Under H0 (homoskedasticity),
    LM = n * R^2 of that auxiliary regression is chi^2 with k - 1
    degrees of freedom; the F form tests the same slopes jointly.

    Parameters
    ----------
    X : ndarray, shape (n, k)
        Design matrix used in the original regression, including the
        constant column.
    residuals : ndarray, shape (n,)
        OLS residuals.
    alpha : float
        Significance level for the `reject` flag.

    Returns
    -------
    dict with keys:
        lm_stat, lm_p_value : LM statistic and chi^2 p-value
        f_stat, f_p_value   : F-statistic and p-value
        reject              : bool, True if lm_p_value < alpha
    """
    X = as_design(X)
    n, k = X.shape
    if k < 2:
        raise InvalidInputError(
            "Breusch-Pagan test needs at least one regressor besides the constant"
        )
    esq = np.asarray(residuals, dtype=float) ** 2
    aux = fit(X, esq)
    r2 = aux.rsquared
    if np.isnan(r2):
        # e^2 constant: no variation for the regressors to explain
        r2 = 0.0

    r2 = min(r2, 1.0)

    lm_stat = n * r2
    lm_p_value = stats.chi2.sf(lm_stat, k - 1)
    if 1.0 - r2 <= 1e-12:
        # regressors explain e^2 exactly
        f_stat, f_p_value = np.inf, 0.0
    else:
        f_stat = (r2 / (k - 1)) / ((1 - r2) / (n - k))
        f_p_value = stats.f.sf(f_stat, k - 1, n - k)

    return dict(
        lm_stat=lm_stat,
        lm_p_value=lm_p_value,
        f_stat=f_stat,
        f_p_value=f_p_value,
        reject=bool(lm_p_value < alpha),
    )


def heteroskedasticity_robust_covariance(fitted, small_sample_correction=True):
    """
    HC (Huber-White) heteroskedasticity-consistent covariance.

    V_HC0 = (X'X)^{-1} * [sum_i e_hat_i^2 * x_i x_i'] * (X'X)^{-1}
    V_HC1 = (n/(n-k)) * V_HC0

    Consistent whether or not the error variance depends on the
    covariates; assumes only independence across observations.

    Parameters
    ----------
    fitted : FittedModel
    small_sample_correction : bool
        Apply the n/(n-k) degrees-of-freedom scaling (HC1, the usual
        default in applied work). Absorbed fixed effects count in k.

    Returns
    -------
    Covariance
    """
    X = fitted.X
    esq = fitted.residuals ** 2
    meat = (X.T * esq) @ X
    if small_sample_correction:
        kind, scale = HC1, fitted.n / fitted.df_resid
    else:
        kind, scale = HC0, 1.0
    logger.debug("%s covariance: scale=%.6g", kind, scale)
    return Covariance(
        matrix=sandwich(fitted, meat, scale), kind=kind, df=fitted.df_resid
    )


def hc1_robust_se(fitted):
    """HC1 robust standard errors of a FittedModel."""
    return standard_errors(heteroskedasticity_robust_covariance(fitted))


def estimate_with_robust_se(X, y):
    """
    OLS estimation with both homoskedastic and HC1 robust SEs.

    Parameters
    ----------
    X : ndarray, shape (n, k)
    y : ndarray, shape (n,)

    Returns
    -------
    dict with keys:
        beta          : coefficient vector
        se_classical  : homoskedastic SEs
        se_robust     : HC1 robust SEs
        residuals     : OLS residuals
        bp_test       : Breusch-Pagan test results
        model         : the FittedModel
    """
    fitted = fit(X, y)
    se_classical = standard_errors(classical_covariance(fitted))
    se_robust = hc1_robust_se(fitted)
    bp = breusch_pagan_test(fitted.X, fitted.residuals)

    return dict(
        beta=fitted.beta,
        se_classical=se_classical,
        se_robust=se_robust,
        residuals=fitted.residuals,
        bp_test=bp,
        model=fitted,
    )
