# src/cksim_core/simulation/solver.py
import logging
import warnings
import numpy as np
from typing import Optional, Tuple

from scipy.linalg import LinAlgWarning, lu_factor, lu_solve

from .exceptions import SingularMatrixError

logger = logging.getLogger(__name__)

LuFactorization = Tuple[np.ndarray, np.ndarray]

def factorize_mna_matrix(matrix: np.ndarray, group_id: Optional[str] = None) -> LuFactorization:
    """
    Factorizes a dense MNA matrix with partial-pivoting LU decomposition.

    Args:
        matrix: The square MNA matrix of one group.
        group_id: The group being solved, for diagnostics.

    Returns:
        The (lu, piv) pair produced by scipy.linalg.lu_factor.

    Raises:
        SingularMatrixError: If the matrix is singular or holds non-finite entries.
        ValueError: If the matrix is not square.
    """
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"MNA matrix must be square, got shape {matrix.shape}.")
    if not np.all(np.isfinite(matrix)):
        raise SingularMatrixError(details="MNA matrix contains NaN or Inf entries.", group_id=group_id)

    logger.debug(f"Factorizing MNA matrix {matrix.shape} for group '{group_id}'...")
    with warnings.catch_warnings():
        warnings.simplefilter("error", LinAlgWarning)
        try:
            lu, piv = lu_factor(matrix, check_finite=False)
        except LinAlgWarning as e:
            logger.error(f"LU factorization failed for group '{group_id}', matrix is singular: {e}")
            raise SingularMatrixError(details=str(e), group_id=group_id) from e

    if np.any(np.diag(lu) == 0.0):
        raise SingularMatrixError(details="Zero pivot found during LU factorization.", group_id=group_id)
    return lu, piv

def solve_mna_system(factorization: LuFactorization, rhs: np.ndarray, group_id: Optional[str] = None) -> np.ndarray:
    """
    Solves the MNA system using a pre-computed LU factorization.
    """
    solution = lu_solve(factorization, rhs, check_finite=False)

    if np.any(np.isnan(solution)) or np.any(np.isinf(solution)):
        logger.error("NaN or Inf detected in MNA solution vector.")
        raise SingularMatrixError(details="MNA system solve resulted in NaN/Inf values.", group_id=group_id)

    return solution
