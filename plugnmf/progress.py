import time
import warnings
from dataclasses import dataclass, asdict
from typing import List, Tuple

import numpy as np
import pandas as pd

from plugnmf.convergence import normalized_residual


@dataclass(frozen=True)
class ProgressRecord:
    """
    Snapshot taken after initialization (iteration 0) and after every update.

    Attributes:
        iteration (int): Number of updates applied so far.
        residual (float): Normalized residual ||X - UV||_F^2 / ||X||_F^2.
        elapsed (float): Seconds since the reporter was initialized.
    """

    iteration: int
    residual: float
    elapsed: float


class ProgressReporter:
    """Observer of the factorization loop. Never touches X, U or V."""

    def initialize(self):
        pass

    def report(self, X, U, V, loop_count):
        raise NotImplementedError


class NullProgressReporter(ProgressReporter):
    def report(self, X, U, V, loop_count):
        pass


class DefaultProgressReporter(ProgressReporter):
    """
    Keeps one ProgressRecord per report call in call order.

    Parameters:
    display : bool
        If True, prints every record as it is taken.
    timer : callable
        Monotonic clock returning seconds.
    """

    def __init__(self, display=False, timer=time.perf_counter):
        self.display = display
        self.timer = timer
        self._records: List[ProgressRecord] = []
        self._start = None
        self._warned = False

    def initialize(self):
        self._records = []
        self._warned = False
        self._start = self.timer()

    def report(self, X, U, V, loop_count):
        if self._start is None:
            self.initialize()
        residual = normalized_residual(X, U, V)
        record = ProgressRecord(
            iteration=loop_count, residual=residual, elapsed=self.timer() - self._start
        )
        self._records.append(record)
        if not np.isfinite(residual) and not self._warned:
            warnings.warn(
                f"Non-finite residual at iteration {loop_count}; the factors have degenerated.",
                RuntimeWarning,
            )
            self._warned = True
        if self.display:
            print(
                f"iter={record.iteration} | residual={record.residual:.6e} | "
                f"elapsed={record.elapsed:.4f}s"
            )

    @property
    def records(self) -> Tuple[ProgressRecord, ...]:
        return tuple(self._records)

    def __len__(self):
        return len(self._records)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [asdict(r) for r in self._records], columns=["iteration", "residual", "elapsed"]
        )

    def to_csv(self, path):
        self.to_frame().to_csv(path, index=False)
