import numpy as np
from sklearn.utils import check_random_state
from sklearn.utils.extmath import randomized_svd

from plugnmf._checks import check_init
from plugnmf.nnsvdlrc import nnsvd_lrc


def _fill(A, shape, values):
    """Write values into A when it already has the right shape, else return them."""
    if A is not None and A.shape == shape and A.dtype == np.float64:
        A[...] = values
        return A
    return np.array(values, dtype=np.float64)


class Initializer:
    """
    Produces the starting pair (U, V) for X ~ UV with U n-by-r, V r-by-m.

    U and V may be passed in; arrays with the right shape are overwritten in
    place, anything else is replaced by freshly allocated arrays. The pair
    actually used is always returned.
    """

    def initialize(self, X, r, U=None, V=None):
        raise NotImplementedError


class RandomInitializer(Initializer):
    """Uniform samples on [-1, 1], made non-negative by taking absolute values."""

    def __init__(self, random_state=None):
        self.random_state = random_state

    def initialize(self, X, r, U=None, V=None):
        n, m = X.shape
        rng = check_random_state(self.random_state)
        U = _fill(U, (n, r), np.abs(rng.uniform(-1, 1, size=(n, r))))
        V = _fill(V, (r, m), np.abs(rng.uniform(-1, 1, size=(r, m))))
        return U, V

    def __repr__(self):
        return f"RandomInitializer(random_state={self.random_state!r})"


class NNDSVDInitializer(Initializer):
    """
    Nonnegative Double Singular Value Decomposition.

    C. Boutsidis, E. Gallopoulos: SVD based initialization: A head start for
    nonnegative matrix factorization - Pattern Recognition, 2008

    Parameters:
    variant : {'nndsvd', 'nndsvda', 'nndsvdar'}
        - 'nndsvd': zeros are kept (better for sparseness)
        - 'nndsvda': zeros are filled with the average of X
        - 'nndsvdar': zeros are filled with small random values
    eps : float
        Values below eps are truncated to zero before filling.
    random_state : int, RandomState instance or None
        Used by the randomized SVD and by 'nndsvdar'.
    """

    variants = ("nndsvd", "nndsvda", "nndsvdar")

    def __init__(self, variant="nndsvda", eps=1e-6, random_state=None):
        if variant not in self.variants:
            raise ValueError(
                "Invalid variant parameter: got %r instead of one of %r" % (variant, self.variants)
            )
        self.variant = variant
        self.eps = eps
        self.random_state = random_state

    def initialize(self, X, r, U=None, V=None):
        n, m = X.shape
        if r > min(n, m):
            raise ValueError(
                f"init = '{self.variant}' can only be used when r <= min(n, m), "
                f"got r={r} for X of shape {X.shape}."
            )
        L, S, R = randomized_svd(X, r, random_state=self.random_state)
        W = np.zeros((n, r))
        H = np.zeros((r, m))

        # The leading singular triplet is non-negative
        # so it can be used as is for initialization.
        W[:, 0] = np.sqrt(S[0]) * np.abs(L[:, 0])
        H[0, :] = np.sqrt(S[0]) * np.abs(R[0, :])

        for j in range(1, r):
            x, y = L[:, j], R[j, :]

            # extract positive and negative parts of column vectors
            x_p, y_p = np.maximum(x, 0), np.maximum(y, 0)
            x_n, y_n = np.abs(np.minimum(x, 0)), np.abs(np.minimum(y, 0))

            # and their norms
            x_p_nrm, y_p_nrm = np.linalg.norm(x_p), np.linalg.norm(y_p)
            x_n_nrm, y_n_nrm = np.linalg.norm(x_n), np.linalg.norm(y_n)

            m_p, m_n = x_p_nrm * y_p_nrm, x_n_nrm * y_n_nrm

            # choose update
            if m_p > m_n:
                u = x_p / x_p_nrm
                v = y_p / y_p_nrm
                sigma = m_p
            else:
                u = x_n / x_n_nrm
                v = y_n / y_n_nrm
                sigma = m_n

            lbd = np.sqrt(S[j] * sigma)
            W[:, j] = lbd * u
            H[j, :] = lbd * v

        W[W < self.eps] = 0
        H[H < self.eps] = 0

        if self.variant == "nndsvda":
            avg = X.mean()
            W[W == 0] = avg
            H[H == 0] = avg
        elif self.variant == "nndsvdar":
            rng = check_random_state(self.random_state)
            avg = X.mean()
            W[W == 0] = abs(avg * rng.standard_normal(size=len(W[W == 0])) / 100)
            H[H == 0] = abs(avg * rng.standard_normal(size=len(H[H == 0])) / 100)

        return _fill(U, (n, r), W), _fill(V, (r, m), H)

    def __repr__(self):
        return f"NNDSVDInitializer(variant={self.variant!r})"


class NNSVDLRCInitializer(Initializer):
    """NNSVD with low-rank correction, see plugnmf.nnsvdlrc."""

    def __init__(self, delta=0.05, maxiter=20):
        self.delta = delta
        self.maxiter = maxiter
        self.errors_ = None

    def initialize(self, X, r, U=None, V=None):
        n, m = X.shape
        W, H, self.errors_ = nnsvd_lrc(X, r, delta=self.delta, maxiter=self.maxiter)
        return _fill(U, (n, r), W), _fill(V, (r, m), H)


class CustomInitializer(Initializer):
    """
    Warm start from given factors U0 (n-by-r) and V0 (r-by-m).

    The factors are validated against X and r and copied, so the same
    initializer can seed several runs.
    """

    def __init__(self, U0, V0):
        self.U0 = U0
        self.V0 = V0

    def initialize(self, X, r, U=None, V=None):
        n, m = X.shape
        U0 = check_init(self.U0, (n, r), "U0", "CustomInitializer")
        V0 = check_init(self.V0, (r, m), "V0", "CustomInitializer")
        return _fill(U, (n, r), U0), _fill(V, (r, m), V0)


INITIALIZERS = ("random", "nndsvd", "nndsvda", "nndsvdar", "nnsvdlrc")


def make_initializer(init="random", random_state=None):
    if init == "random":
        return RandomInitializer(random_state=random_state)
    if init in NNDSVDInitializer.variants:
        return NNDSVDInitializer(variant=init, random_state=random_state)
    if init == "nnsvdlrc":
        return NNSVDLRCInitializer()
    raise ValueError(
        "Invalid init parameter: got %r instead of one of %r" % (init, INITIALIZERS)
    )
