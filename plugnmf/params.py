import time
from dataclasses import dataclass
from typing import Callable, Literal, Optional

from plugnmf.convergence import DefaultConvergenceTester
from plugnmf.initializers import make_initializer
from plugnmf.progress import DefaultProgressReporter, NullProgressReporter


@dataclass
class NMFParams:
    """
    Parameters shared by the factorize_with_* entry points.

    Attributes:
        max_loop_count (int): Maximum number of updates (default: 100).
        eps (float): Stop once ||X - UV||_F^2 / ||X||_F^2 < eps. Values <= 0 disable the test.
        init (Literal["random", "nndsvd", "nndsvda", "nndsvdar", "nnsvdlrc"]): Initialization method.
        fast_hals_eps (float): Lower clamp used by Fast HALS instead of 0.
        gcd_inner_loops (Optional[int]): Coordinates committed per row per GCD phase (None: rank).
        gcd_tol (float): Relative decrease under which a GCD row stops.
        rngseed (Optional[int]): Seed for the random initializations.
        display (bool): If True, the default reporter prints the residual after every update.
        timer (Callable): Monotonic clock used for elapsed times.
    """

    max_loop_count: int = 100
    eps: float = 1e-7
    init: Literal["random", "nndsvd", "nndsvda", "nndsvdar", "nnsvdlrc"] = "random"
    fast_hals_eps: float = 1e-8
    gcd_inner_loops: Optional[int] = None
    gcd_tol: float = 1e-3
    rngseed: Optional[int] = None
    display: bool = False
    timer: Callable[[], float] = time.perf_counter

    def __post_init__(self):
        if self.max_loop_count < 0:
            raise ValueError("max_loop_count must be non-negative.")
        if self.fast_hals_eps < 0:
            raise ValueError("fast_hals_eps must be non-negative.")
        if self.gcd_inner_loops is not None and self.gcd_inner_loops < 1:
            raise ValueError("gcd_inner_loops must be a positive integer or None.")
        if self.gcd_tol < 0:
            raise ValueError("gcd_tol must be non-negative.")
        # fails early on an unknown method name
        make_initializer(self.init)

    def make_initializer(self):
        return make_initializer(self.init, random_state=self.rngseed)

    def make_convergence_tester(self):
        return DefaultConvergenceTester(max_loop_count=self.max_loop_count, eps=self.eps)

    def make_progress_reporter(self):
        if self.display:
            return DefaultProgressReporter(display=True, timer=self.timer)
        return NullProgressReporter()
