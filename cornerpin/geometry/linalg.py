"""
Small dense linear solvers used by the homography engine.

The 8 x 8 corner-pin system is solved through the normal equations and
Gaussian elimination with partial pivoting.  Pivots smaller than *eps* are
skipped instead of raising, so near-singular corner configurations yield
an approximate answer rather than an exception.
"""

import numpy as np

EPS = 1e-10


def solve_least_squares(A, b, eps: float = EPS) -> np.ndarray:
    """Solve ``A x = b`` in the least-squares sense via the normal equations.

    Parameters
    ----------
    A : array_like
        M x N coefficient matrix.
    b : array_like
        Length-M right-hand side.
    eps : float
        Pivot magnitude below which elimination skips a column.

    Returns
    -------
    np.ndarray
        Length-N solution vector.
    """
    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float)
    AtA = A.T @ A
    Atb = A.T @ b
    return gaussian_elimination(AtA, Atb, eps=eps)


def gaussian_elimination(A, b, eps: float = EPS) -> np.ndarray:
    """Solve the square system ``A x = b`` with partial pivoting.

    At every column the remaining row with the largest absolute entry is
    swapped into place (the first such row on ties).  Rows are eliminated
    only when the pivot exceeds *eps*; during back-substitution an unknown
    whose pivot is too small is left undivided.

    The inputs are not modified.
    """
    A = np.array(A, dtype=float)
    b = np.array(b, dtype=float)
    n = A.shape[0]

    # Forward elimination
    for i in range(n):
        pivot = i + int(np.argmax(np.abs(A[i:, i])))
        if pivot != i:
            A[[i, pivot]] = A[[pivot, i]]
            b[[i, pivot]] = b[[pivot, i]]

        if abs(A[i, i]) < eps:
            continue

        factors = A[i + 1:, i] / A[i, i]
        A[i + 1:, i:] -= np.outer(factors, A[i, i:])
        b[i + 1:] -= factors * b[i]

    # Back substitution
    x = np.zeros(n)
    for i in range(n - 1, -1, -1):
        x[i] = b[i] - A[i, i + 1:] @ x[i + 1:]
        if abs(A[i, i]) > eps:
            x[i] /= A[i, i]

    return x
