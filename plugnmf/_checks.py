import numpy as np
from sklearn.utils.validation import check_array, check_non_negative


def check_data(X, whom):
    """Validate the data matrix: 2-D, finite, float64 and non-negative."""
    X = check_array(X, dtype=np.float64)
    check_non_negative(X, whom)
    return X


def check_rank(r, whom):
    if not isinstance(r, (int, np.integer)) or r < 1:
        raise ValueError(f"Rank passed to {whom} must be a positive integer, got {r!r}.")
    return int(r)


def check_shape(A, shape, name, whom):
    if A.ndim != 2:
        raise ValueError(f"{name} passed to {whom} must be 2-D, got {A.ndim} dimensions.")
    if shape[0] != "auto" and A.shape[0] != shape[0]:
        raise ValueError(
            f"Array {name} with wrong first dimension passed to {whom}. Expected {shape[0]}, "
            f"but got {A.shape[0]}."
        )
    if shape[1] != "auto" and A.shape[1] != shape[1]:
        raise ValueError(
            f"Array {name} with wrong second dimension passed to {whom}. Expected {shape[1]}, "
            f"but got {A.shape[1]}."
        )


def check_factors(X, U, V, whom):
    """
    Check X = UV shape consistency: U is n-by-r, V is r-by-m with X n-by-m.

    Raises ValueError before anything is touched.
    """
    if U.ndim != 2 or V.ndim != 2:
        raise ValueError(f"Factors passed to {whom} must be 2-D.")
    r = U.shape[1]
    check_shape(U, (X.shape[0], "auto"), "U", whom)
    check_shape(V, (r, X.shape[1]), "V", whom)
    return r


def check_init(A, shape, name, whom):
    A = check_array(A, dtype=np.float64)
    check_shape(A, shape, name, whom)
    check_non_negative(A, whom)
    if np.max(A) == 0:
        raise ValueError(f"Array {name} passed to {whom} is full of zeros.")
    return A
