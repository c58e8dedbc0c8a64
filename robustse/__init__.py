"""
robustse -- robust standard errors for OLS, from scratch.

Classical, heteroskedasticity-consistent (HC0/HC1) and one-way
cluster-robust covariance estimators, the within estimator for group
fixed effects, and simulation helpers, using only numpy / scipy / pandas.
"""

from .exceptions import (
    DimensionMismatchError,
    FewClustersWarning,
    InsufficientClustersError,
    InvalidInputError,
    NegativeVarianceError,
    RobustSEError,
    RobustSEWarning,
    SingularDesignError,
)
from .utils import add_const
from .ols import (
    Covariance,
    FittedModel,
    classical_covariance,
    coefficient_table,
    fit,
    sandwich,
    standard_errors,
)
from .heteroskedasticity import breusch_pagan_test, heteroskedasticity_robust_covariance
from .clustering import cluster_robust_covariance, cluster_summary, intracluster_correlation
from . import ols
from . import heteroskedasticity
from . import clustering
from . import panel_fe
from . import bootstrap
from . import simulate

__version__ = "0.1.0"
