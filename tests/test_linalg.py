import numpy as np
import pytest

from cornerpin.geometry.linalg import gaussian_elimination, solve_least_squares


def test_matches_numpy_solve():
    rng = np.random.default_rng(0)
    A = rng.normal(size=(8, 8)) + 8 * np.eye(8)
    b = rng.normal(size=8)
    np.testing.assert_allclose(gaussian_elimination(A, b), np.linalg.solve(A, b),
                               rtol=1e-10)


def test_zero_leading_entry_needs_pivot():
    A = [[0, 1], [1, 0]]
    b = [2, 3]
    np.testing.assert_allclose(gaussian_elimination(A, b), [3, 2])


def test_inputs_untouched():
    A = np.array([[0.0, 2.0], [4.0, 1.0]])
    b = np.array([1.0, 2.0])
    A_before, b_before = A.copy(), b.copy()
    gaussian_elimination(A, b)
    np.testing.assert_array_equal(A, A_before)
    np.testing.assert_array_equal(b, b_before)


def test_singular_system_skips_zero_pivot():
    # Second row is twice the first: the last pivot vanishes and that
    # unknown is left at its undivided value.
    x = gaussian_elimination([[1, 2], [2, 4]], [3, 6])
    np.testing.assert_allclose(x, [3, 0])


def test_least_squares_overdetermined():
    rng = np.random.default_rng(1)
    A = rng.normal(size=(12, 4))
    b = rng.normal(size=12)
    expected, *_ = np.linalg.lstsq(A, b, rcond=None)
    np.testing.assert_allclose(solve_least_squares(A, b), expected, rtol=1e-8)


def test_least_squares_square_is_exact():
    A = np.array([[2.0, 1.0], [1.0, 3.0]])
    b = np.array([3.0, 5.0])
    assert solve_least_squares(A, b) == pytest.approx([0.8, 1.4])
