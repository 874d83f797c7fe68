import numpy as np
from plugnmf._checks import check_factors


class Updater:
    """
    Base class for one optimization step of X ~ UV.

    ``update`` mutates U and V in place and returns nothing. Shapes are checked
    first so a mismatch raises ValueError with U and V untouched.
    """

    name = "base"

    def update(self, X, U, V):
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}()"


class NullUpdater(Updater):
    name = "null"

    def update(self, X, U, V):
        check_factors(X, U, V, "NullUpdater")


class MUUpdater(Updater):
    """
    Lee & Seung multiplicative updates for the Frobenius norm

            U <- U .* (X V^T) ./ (U V V^T)
            V <- V .* (U^T X) ./ (U^T U V)

    U is updated first and the V update sees the new U. Zero denominators are
    left as they are (NaN/Inf propagate into the residual).
    """

    name = "MU"

    def update(self, X, U, V):
        check_factors(X, U, V, "MUUpdater")
        with np.errstate(divide="ignore", invalid="ignore"):
            VVt = V @ V.T
            U *= (X @ V.T) / (U @ VVt)
            UtU = U.T @ U
            V *= (U.T @ X) / (UtU @ V)


class HALSUpdater(Updater):
    """
    Hierarchical alternating least squares, one rank-one component at a time.

    Keeps the residual E = X - UV and, for k = 0..r-1, adds component k back,
    solves for U[:, k] then V[k, :] exactly (projected onto >= 0) and removes
    the new component again. Components 0..k-1 are already refreshed when
    component k is solved.
    """

    name = "HALS"

    def __init__(self):
        self.residual_ = None

    def update(self, X, U, V):
        r = check_factors(X, U, V, "HALSUpdater")
        E = X - U @ V
        with np.errstate(divide="ignore", invalid="ignore"):
            for k in range(r):
                # E holds X_k while component k is being solved
                E += np.outer(U[:, k], V[k, :])
                vk = V[k, :]
                U[:, k] = np.maximum(0, E @ vk / (vk @ vk))
                uk = U[:, k]
                V[k, :] = np.maximum(0, E.T @ uk / (uk @ uk))
                E -= np.outer(U[:, k], V[k, :])
        self.residual_ = E


class FastHALSUpdater(Updater):
    """
    Fast HALS (Cichocki & Phan 2009).

    Same block coordinate descent as HALS but works on the cached products
    A = X V^T, B = V V^T (U phase) and A = X^T U, B = U^T U (V phase) instead
    of the full residual. Entries are clamped at ``eps`` rather than 0 so a
    component never collapses to exactly zero.

    Parameters:
    eps : float
        Lower bound of every entry of U and V after an update.
    """

    name = "FastHALS"

    def __init__(self, eps=1e-8):
        if eps < 0:
            raise ValueError("eps must be non-negative.")
        self.eps = eps
        self.A_ = None
        self.B_ = None

    def __repr__(self):
        return f"FastHALSUpdater(eps={self.eps})"

    def _phase(self, W, A, B):
        # W is n-by-r, columns solved in place against A = X H^T, B = H H^T
        for k in range(W.shape[1]):
            W[:, k] = np.maximum(
                self.eps, (A[:, k] - W @ B[:, k] + W[:, k] * B[k, k]) / B[k, k]
            )

    def update(self, X, U, V):
        check_factors(X, U, V, "FastHALSUpdater")
        with np.errstate(divide="ignore", invalid="ignore"):
            self.A_ = X @ V.T
            self.B_ = V @ V.T
            self._phase(U, self.A_, self.B_)

            self.A_ = X.T @ U
            self.B_ = U.T @ U
            self._phase(V.T, self.A_, self.B_)


class GCDUpdater(Updater):
    """
    Greedy coordinate descent (Hsieh & Dhillon 2011).

    For the U phase, with B = V V^T and the gradient A = U B - X V^T, the
    optimal single-coordinate steps and the objective decrease they give are

            S = max(U - A ./ diag(B), 0) - U
            D = -A .* S - 1/2 diag(B) .* S^2

    Each row of U then repeatedly commits its best coordinate (arg-max of D),
    refreshes its gradient row and its candidates, and moves on once the best
    decrease drops to ``tol`` times the largest decrease at the start of the
    phase or after ``inner_loops`` commits (default r). V is handled the same
    way through V^T.

    Parameters:
    inner_loops : int or None
        Maximum number of coordinates committed per row per phase.
    tol : float
        Relative decrease under which a row stops.
    """

    name = "GCD"

    def __init__(self, inner_loops=None, tol=1e-3):
        if inner_loops is not None and inner_loops < 1:
            raise ValueError("inner_loops must be a positive integer or None.")
        if tol < 0:
            raise ValueError("tol must be non-negative.")
        self.inner_loops = inner_loops
        self.tol = tol
        self.gradient_ = None
        self.step_ = None
        self.decrease_ = None

    def __repr__(self):
        return f"GCDUpdater(inner_loops={self.inner_loops}, tol={self.tol})"

    @staticmethod
    def _steps(W, G, d):
        S = np.maximum(W - G / d, 0) - W
        D = -G * S - 0.5 * d * S**2
        return S, D

    def candidates(self, X, U, V):
        """
        Candidate steps S and decreases D for every entry of U, without
        committing anything.
        """
        check_factors(X, U, V, "GCDUpdater")
        with np.errstate(divide="ignore", invalid="ignore"):
            B = V @ V.T
            G = U @ B - X @ V.T
            return self._steps(U, G, np.diag(B))

    def _phase(self, W, G, B):
        n, r = W.shape
        d = np.diag(B)
        S, D = self._steps(W, G, d)
        inner_loops = self.inner_loops or r
        threshold = self.tol * np.max(D) if D.size else 0.0
        for i in range(n):
            for _ in range(inner_loops):
                j = np.argmax(D[i])
                if not D[i, j] > threshold:
                    break
                s = S[i, j]
                W[i, j] += s
                G[i, :] += s * B[j, :]
                S[i], D[i] = self._steps(W[i], G[i], d)
        self.gradient_, self.step_, self.decrease_ = G, S, D

    def update(self, X, U, V):
        check_factors(X, U, V, "GCDUpdater")
        with np.errstate(divide="ignore", invalid="ignore"):
            B = V @ V.T
            self._phase(U, U @ B - X @ V.T, B)

            B = U.T @ U
            self._phase(V.T, V.T @ B - X.T @ U, B)


UPDATERS = {
    "null": NullUpdater,
    "MU": MUUpdater,
    "HALS": HALSUpdater,
    "FastHALS": FastHALSUpdater,
    "GCD": GCDUpdater,
}


def make_updater(algo, **kwargs):
    if algo not in UPDATERS:
        raise ValueError(
            "Invalid algo parameter: got %r instead of one of %r" % (algo, tuple(UPDATERS))
        )
    return UPDATERS[algo](**kwargs)
