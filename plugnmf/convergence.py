import numpy as np


def normalized_residual(X, U, V):
    """
    Normalized residual value ||X - UV||_F^2 / ||X||_F^2.

    For X = 0 the ratio is undefined: 0 is returned for an exact fit, inf
    otherwise.
    """
    with np.errstate(invalid="ignore", over="ignore"):
        R = X - U @ V
        err = np.sum(R * R)
        nX = np.sum(X * X)
    if nX == 0:
        return 0.0 if err == 0 else np.inf
    return float(err / nX)


class ConvergenceTester:
    """Decides after each step whether the iteration should stop."""

    def is_converged(self, X, U, V, loop_count):
        raise NotImplementedError


class MaxIterationConvergenceTester(ConvergenceTester):
    def __init__(self, max_loop_count=100):
        if max_loop_count < 0:
            raise ValueError("max_loop_count must be non-negative.")
        self.max_loop_count = max_loop_count

    def is_converged(self, X, U, V, loop_count):
        return loop_count >= self.max_loop_count

    def __repr__(self):
        return f"{type(self).__name__}(max_loop_count={self.max_loop_count})"


class DefaultConvergenceTester(MaxIterationConvergenceTester):
    """
    Stops once the iteration budget is spent or, failing that, once the
    normalized residual drops below ``eps``. ``eps <= 0`` turns the residual
    test off so exactly ``max_loop_count`` updates are run. A NaN residual
    never stops the loop early.
    """

    def __init__(self, max_loop_count=100, eps=1e-7):
        super().__init__(max_loop_count)
        self.eps = eps

    def is_converged(self, X, U, V, loop_count):
        if super().is_converged(X, U, V, loop_count):
            return True
        if self.eps <= 0:
            return False
        return normalized_residual(X, U, V) < self.eps

    def __repr__(self):
        return f"DefaultConvergenceTester(max_loop_count={self.max_loop_count}, eps={self.eps})"


class CancellableConvergenceTester(ConvergenceTester):
    """
    Wraps another tester and also stops as soon as ``event`` is set, e.g. a
    threading.Event flipped from another thread.
    """

    def __init__(self, tester, event):
        self.tester = tester
        self.event = event

    def is_converged(self, X, U, V, loop_count):
        if self.event.is_set():
            return True
        return self.tester.is_converged(X, U, V, loop_count)
