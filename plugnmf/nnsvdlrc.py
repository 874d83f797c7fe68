import numpy as np
from scipy.linalg import svd
from scipy.sparse.linalg import svds

# Above this size the leading triplets come from an iterative solver
MAX_MATRIX_SIZE = 1600


def truncated_svd(X, p):
    """
    Leading p singular triplets of X, sorted by decreasing singular value.

    Returns:
    u  : n-by-p left singular vectors
    s  : p singular values
    vt : p-by-m right singular vectors
    """
    n, m = X.shape
    if min(n, m) > MAX_MATRIX_SIZE and p < min(n, m) - 1:
        u, s, vt = svds(X, k=p, which="LM")
        idx = np.argsort(-s)
        return u[:, idx], s[idx], vt[idx, :]
    u, s, vt = svd(X, full_matrices=False)
    return u[:, :p], s[:p], vt[:p, :]


def lra_hals_update(Y, Z, U, V, alphaparam=0.5, delta=0.01):
    """
    Solves min_{V >= 0} ||Y*Z - U*V||_F^2 using block-coordinate descent,
    without forming the product Y*Z.

    Parameters:
    Y, Z       : low-rank factors of the target M = Y @ Z
    U, V       : U defines the NNLS problem, V is the initialization (updated in place)
    alphaparam : controls the number of inner iterations (default: 0.5)
    delta      : convergence threshold (default: 0.01)

    Returns:
    V    : updated matrix
    UtU  : U.T @ U
    UtM  : U.T @ (Y @ Z)
    """
    KX = np.count_nonzero(Y) + np.count_nonzero(Z)
    n = V.shape[1]
    m, r = U.shape
    maxiter = int(np.floor(1 + alphaparam * (KX + m * r) / (n * r + n)))

    UtU = U.T @ U
    UtM = (U.T @ Y) @ Z

    eps0 = 0
    cnt = 1
    eps = 1
    while eps >= (delta**2) * eps0 and cnt <= maxiter:
        nodelta = 0
        for k in range(r):
            deltaV = (UtM[k, :] - UtU[k, :] @ V) / (UtU[k, k] + 1e-16)
            deltaV = np.maximum(deltaV, -V[k, :])
            V[k, :] += deltaV
            nodelta += np.sum(deltaV**2)
            if np.all(V[k, :] == 0):  # safety procedure
                V[k, :] = 1e-16 * max(np.max(V), 1)
        if cnt == 1:
            eps0 = nodelta
        eps = nodelta
        cnt += 1

    return V, UtU, UtM


def nnsvd_lrc(X, r, delta=0.05, maxiter=20):
    """
    Nonnegative SVD with low-rank correction (Atif, Qazi & Gillis 2019).

    Splits the leading floor(r/2) + 1 singular triplets of X into their
    positive and negative parts to get r non-negative rank-one terms, then
    refines them with a few HALS sweeps against the truncated SVD of X.

    Returns:
    U : n-by-r non-negative matrix
    V : r-by-m non-negative matrix
    e : relative errors ||YZ - UV||_F / ||YZ||_F after every refinement
    """
    n, m = X.shape
    p = int(np.floor(r / 2 + 1))
    if p > min(n, m):
        raise ValueError(
            f"NNSVD-LRC needs floor(r/2) + 1 <= min(n, m), got r={r} for X of shape {X.shape}."
        )

    u, s, vt = truncated_svd(X, p)
    Y = u * np.sqrt(s)
    Z = np.sqrt(s)[:, None] * vt

    U = np.zeros((n, r))
    V = np.zeros((r, m))
    U[:, 0] = np.abs(Y[:, 0])
    V[0, :] = np.abs(Z[0, :])

    i, j = 1, 1
    while i < r:
        if i % 2 == 1:
            U[:, i] = np.maximum(Y[:, j], 0)
            V[i, :] = np.maximum(Z[j, :], 0)
        else:
            U[:, i] = np.maximum(-Y[:, j], 0)
            V[i, :] = np.maximum(-Z[j, :], 0)
            j += 1
        i += 1

    UtYZ = (U.T @ Y) @ Z
    UtU = U.T @ U
    VVt = V @ V.T
    scaling = np.sum(UtYZ * V) / np.sum(UtU * VVt)
    U *= np.sqrt(scaling)
    V *= np.sqrt(scaling)
    UtYZ *= np.sqrt(scaling)
    UtU *= scaling
    VVt *= scaling

    nX = np.sqrt(np.sum((Y.T @ Y) * (Z @ Z.T)))
    e = [np.sqrt(max(0, nX**2 - 2 * np.sum(UtYZ * V) + np.sum(UtU * VVt))) / nX]

    k = 1
    while (k == 1 or e[-2] - e[-1] > delta * e[0]) and k <= maxiter:
        U = lra_hals_update(Z.T, Y.T, V.T, U.T)[0].T
        V, UtU, UtM = lra_hals_update(Y, Z, U, V)
        e.append(np.sqrt(max(0, nX**2 - 2 * np.sum(UtM * V) + np.sum(UtU * (V @ V.T)))) / nX)
        k += 1

    return U, V, e
