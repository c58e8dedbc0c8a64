"""
Error and warning classes raised by the robustse estimators.

Every error derives from RobustSEError so callers can catch the whole
family at once; most also derive from the matching builtin (ValueError,
LinAlgError, ArithmeticError) so generic handlers keep working.
"""

import numpy as np


class RobustSEError(Exception):
    """Base class for all robustse errors."""
    pass


class InvalidInputError(RobustSEError, ValueError):
    """
    Input validation failed: non-finite values, missing cluster labels,
    or an array with the wrong number of dimensions.
    """
    pass


class DimensionMismatchError(InvalidInputError):
    """
    X, y or cluster-label lengths disagree, or there are no residual
    degrees of freedom left (n <= k + absorbed effects).
    """
    pass


class SingularDesignError(RobustSEError, np.linalg.LinAlgError):
    """
    The design matrix is not of full column rank.

    Raised when X'X cannot be inverted within tolerance, i.e. some
    column of X is (numerically) a linear combination of the others.
    The coefficients are then not identified.
    """
    pass


class InsufficientClustersError(RobustSEError, ValueError):
    """
    Too few clusters for the cluster-robust covariance.

    With G clusters the meat matrix has rank at most G - 1 after the
    residuals are orthogonalised against X, so G must exceed the number
    of coefficients k.
    """
    pass


class NegativeVarianceError(RobustSEError, ArithmeticError):
    """A covariance matrix has a materially negative diagonal entry."""
    pass


class RobustSEWarning(UserWarning):
    """Base warning class for robustse."""
    pass


class FewClustersWarning(RobustSEWarning):
    """
    Cluster-robust inference with a small number of clusters.

    The sandwich estimator is consistent as G grows; with fewer than
    about 20 clusters the standard errors are biased downward and
    t-tests over-reject even after the G/(G-1) correction.
    """
    pass
