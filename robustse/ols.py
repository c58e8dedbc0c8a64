"""
Section 1: OLS -- Ordinary Least Squares

Fits OLS from scratch via a QR decomposition and provides the pieces
every variance estimator in this package shares: the fitted-model
container, the tagged covariance container, the classical (homoskedastic)
covariance, the bread-meat-bread sandwich product and standard errors.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd
from scipy import linalg, stats

from .exceptions import (
    DimensionMismatchError,
    InvalidInputError,
    NegativeVarianceError,
    SingularDesignError,
)
from .utils import NEG_VAR_TOL, RANK_TOL, as_design, as_response

logger = logging.getLogger(__name__)

CLASSICAL = "classical"
HC0 = "HC0"
HC1 = "HC1"
CLUSTER = "cluster"
COVARIANCE_KINDS = (CLASSICAL, HC0, HC1, CLUSTER)


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    Result of an OLS fit. Immutable; all arrays are read-only copies.

    Attributes
    ----------
    beta : ndarray, shape (k,)
        Coefficient estimates  beta_hat = (X'X)^{-1} X'y.
    residuals : ndarray, shape (n,)
        e = y - X @ beta_hat.
    X, y : ndarray
        The design matrix and outcome the model was fitted on.
    n, k : int
        Number of observations and of columns in X.
    n_absorbed : int
        Number of fixed effects swept out of X and y before fitting
        (0 for a plain regression). They use up residual degrees of
        freedom without appearing in beta.
    R : ndarray, shape (k, k)
        Upper-triangular factor of X = QR, so that X'X = R'R.
    """

    beta: np.ndarray
    residuals: np.ndarray
    X: np.ndarray
    y: np.ndarray
    n: int
    k: int
    n_absorbed: int
    R: np.ndarray

    @property
    def df_resid(self):
        return self.n - self.k - self.n_absorbed

    @property
    def fitted_values(self):
        return self.X @ self.beta

    @property
    def ssr(self):
        return float(self.residuals @ self.residuals)

    @property
    def sigma2(self):
        """Estimated error variance  e'e / (n - k - n_absorbed)."""
        return self.ssr / self.df_resid

    @property
    def xtx_inv(self):
        """(X'X)^{-1} = R^{-1} R^{-T}, built from the triangular factor."""
        r_inv = linalg.solve_triangular(self.R, np.eye(self.k))
        return r_inv @ r_inv.T

    @property
    def rsquared(self):
        """Centered R^2; NaN when the outcome has no variation."""
        tss = float(np.sum((self.y - self.y.mean()) ** 2))
        if tss == 0.0:
            return np.nan
        return 1.0 - self.ssr / tss


@dataclass(frozen=True, eq=False)
class Covariance:
    """
    A variance-covariance matrix of beta_hat tagged with its estimator.

    Attributes
    ----------
    matrix : ndarray, shape (k, k)
        Symmetric, read-only.
    kind : str
        One of 'classical', 'HC0', 'HC1', 'cluster'.
    df : int
        Degrees of freedom of the t reference distribution for Wald tests
        built on this matrix.
    n_clusters : int or None
        Number of clusters (cluster-robust estimator only).
    """

    matrix: np.ndarray
    kind: str
    df: int
    n_clusters: Optional[int] = None

    def __post_init__(self):
        if self.kind not in COVARIANCE_KINDS:
            raise InvalidInputError(
                f"kind must be one of {COVARIANCE_KINDS}, got {self.kind!r}"
            )
        matrix = np.array(self.matrix, dtype=float, copy=True)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            raise DimensionMismatchError(
                f"covariance matrix must be square, got shape {matrix.shape}"
            )
        matrix.setflags(write=False)
        object.__setattr__(self, "matrix", matrix)


def fit(X, y, n_absorbed=0):
    """
    OLS estimation: beta_hat = (X'X)^{-1} X'y.

    Solved as R beta = Q'y from the thin QR decomposition X = QR rather
    than by inverting X'X, which squares the condition number.

    Parameters
    ----------
    X : array_like, shape (n, k)
        Design matrix (include a constant column for an intercept).
    y : array_like, shape (n,)
        Outcome vector.
    n_absorbed : int
        Fixed effects already partialled out of X and y (see panel_fe).

    Returns
    -------
    FittedModel

    Raises
    ------
    DimensionMismatchError
        If y does not match X, or n <= k + n_absorbed.
    SingularDesignError
        If X is not of full column rank.
    """
    X = as_design(X)
    n, k = X.shape
    y = as_response(y, n)
    if n_absorbed < 0:
        raise InvalidInputError(f"n_absorbed must be >= 0, got {n_absorbed}")
    if k == 0:
        raise DimensionMismatchError("X has no columns")
    if n - k - n_absorbed <= 0:
        raise DimensionMismatchError(
            f"need more observations than parameters: n={n}, k={k}, "
            f"absorbed={n_absorbed}"
        )

    Q, R = np.linalg.qr(X, mode="reduced")
    pivots = np.abs(np.diag(R))
    scale = pivots.max()
    deficient = np.flatnonzero(pivots <= RANK_TOL * scale) if scale > 0 else np.arange(k)
    if deficient.size:
        raise SingularDesignError(
            f"design matrix is rank deficient (column(s) {deficient.tolist()} "
            "are linear combinations of earlier columns); X'X is not invertible"
        )

    beta = linalg.solve_triangular(R, Q.T @ y)
    residuals = y - X @ beta
    for arr in (beta, residuals, R):
        arr.setflags(write=False)

    logger.debug("OLS fit: n=%d, k=%d, absorbed=%d", n, k, n_absorbed)
    return FittedModel(
        beta=beta, residuals=residuals, X=X, y=y,
        n=n, k=k, n_absorbed=int(n_absorbed), R=R,
    )


def sandwich(fitted, meat, scale=1.0):
    """
    Sandwich product  scale * (X'X)^{-1} meat (X'X)^{-1}.

    With X'X = R'R the bread is R^{-1} R^{-T}; each side is applied with
    triangular solves instead of forming the inverse.

    Parameters
    ----------
    fitted : FittedModel
    meat : ndarray, shape (k, k)
        Symmetric middle matrix.
    scale : float
        Small-sample correction factor applied to the meat.

    Returns
    -------
    ndarray, shape (k, k)
    """
    meat = np.asarray(meat, dtype=float)
    if meat.shape != (fitted.k, fitted.k):
        raise DimensionMismatchError(
            f"meat must be {fitted.k}x{fitted.k}, got shape {meat.shape}"
        )
    R = fitted.R
    # inner = R^{-T} meat R^{-1}
    left = linalg.solve_triangular(R, meat, trans="T")
    inner = linalg.solve_triangular(R, left.T, trans="T").T
    # V = R^{-1} inner R^{-T}
    half = linalg.solve_triangular(R, inner)
    V = linalg.solve_triangular(R, half.T).T
    V = scale * V
    return (V + V.T) / 2.0


def classical_covariance(fitted):
    """
    Homoskedastic covariance  sigma_hat^2 (X'X)^{-1}.

    sigma_hat^2 = e'e / (n - k) is degrees-of-freedom corrected. Valid only
    when errors are homoskedastic and uncorrelated.
    """
    V = fitted.sigma2 * fitted.xtx_inv
    logger.debug("classical covariance: sigma2=%.6g", fitted.sigma2)
    return Covariance(matrix=(V + V.T) / 2.0, kind=CLASSICAL, df=fitted.df_resid)


def standard_errors(cov):
    """
    Square roots of the diagonal of a covariance matrix.

    Parameters
    ----------
    cov : Covariance or array_like, shape (k, k)

    Returns
    -------
    se : ndarray, shape (k,)

    Raises
    ------
    NegativeVarianceError
        If a diagonal entry is negative beyond round-off.
    """
    matrix = cov.matrix if isinstance(cov, Covariance) else np.asarray(cov, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise DimensionMismatchError(
            f"covariance matrix must be square, got shape {matrix.shape}"
        )
    var = np.diag(matrix).copy()
    tol = NEG_VAR_TOL * max(1.0, float(np.max(np.abs(var), initial=0.0)))
    bad = np.flatnonzero(var < -tol)
    if bad.size:
        raise NegativeVarianceError(
            f"negative variance on diagonal entries {bad.tolist()}: "
            f"{var[bad].tolist()}"
        )
    var[var < 0] = 0.0
    return np.sqrt(var)


def coefficient_table(fitted, cov, names=None, alpha=0.05):
    """
    Coefficients with standard errors, t-statistics, p-values and CIs.

    Uses the t distribution with cov.df degrees of freedom (n - k for
    classical and HC, G - 1 for cluster-robust).

    Returns
    -------
    pandas.DataFrame indexed by coefficient name with columns
    coef, std_err, t, p_value, ci_lower, ci_upper.
    """
    if not 0.0 < alpha < 1.0:
        raise InvalidInputError(f"alpha must be in (0, 1), got {alpha}")
    if cov.matrix.shape != (fitted.k, fitted.k):
        raise DimensionMismatchError(
            f"covariance is {cov.matrix.shape}, model has {fitted.k} coefficients"
        )
    if names is None:
        names = [f"x{j}" for j in range(fitted.k)]
    if len(names) != fitted.k:
        raise DimensionMismatchError(f"got {len(names)} names for {fitted.k} coefficients")

    se = standard_errors(cov)
    with np.errstate(divide="ignore", invalid="ignore"):
        t_stat = fitted.beta / se
    p_value = 2 * stats.t.sf(np.abs(t_stat), cov.df)
    crit = stats.t.ppf(1 - alpha / 2, cov.df)
    return pd.DataFrame(
        {
            "coef": fitted.beta,
            "std_err": se,
            "t": t_stat,
            "p_value": p_value,
            "ci_lower": fitted.beta - crit * se,
            "ci_upper": fitted.beta + crit * se,
        },
        index=pd.Index(names, name="term"),
    )


def estimate(X, y):
    """
    OLS estimation with classical standard errors.

    Parameters
    ----------
    X : ndarray, shape (n, k)
        Design matrix (include a constant column for intercept).
    y : ndarray, shape (n,)
        Outcome vector.

    Returns
    -------
    dict with keys:
        beta      : coefficient vector
        se        : standard errors (homoskedastic)
        residuals : OLS residuals
        s2        : estimated error variance
        fitted    : fitted values X @ beta
        model     : the FittedModel
    """
    fitted = fit(X, y)
    se = standard_errors(classical_covariance(fitted))
    return dict(
        beta=fitted.beta,
        se=se,
        residuals=fitted.residuals,
        s2=fitted.sigma2,
        fitted=fitted.fitted_values,
        model=fitted,
    )
