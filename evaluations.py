import multiprocessing
import time
from dataclasses import dataclass, asdict, replace
from typing import Dict, List, Literal, Optional, Tuple

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from plugnmf._checks import check_data
from plugnmf.NMF import factorize
from plugnmf.params import NMFParams
from plugnmf.progress import DefaultProgressReporter
from plugnmf.updaters import make_updater

Algo = Literal["MU", "HALS", "FastHALS", "GCD"]


@dataclass
class EvalRows:
    algo: str
    init: str
    rank: int
    iterations: int
    residual: float
    runtime: float


class NMFEvaluations:
    """
    Benchmarks updaters against each other on one data matrix.

    Every (algo, rank) run starts from the same initialization (the
    initializer is seeded through ``params.rngseed``) and works on its own
    factors, so runs are independent and can go through a process pool.
    """

    def __init__(
        self,
        X,
        params: Optional[NMFParams] = None,
        parallel: bool = False,
        processes: int = 4,
        seed: int = 123,
    ):
        self.X = check_data(X, "NMFEvaluations")
        if params is None:
            params = NMFParams()
        if params.rngseed is None:
            params = replace(params, rngseed=seed)
        self.params = params
        self.parallel = parallel
        self.processes = processes

        # null fields
        self.evals: List[EvalRows] = []
        self.progress: Dict[Tuple[str, int], pd.DataFrame] = {}

    def make_updater(self, algo: Algo):
        if algo == "FastHALS":
            return make_updater(algo, eps=self.params.fast_hals_eps)
        if algo == "GCD":
            return make_updater(
                algo, inner_loops=self.params.gcd_inner_loops, tol=self.params.gcd_tol
            )
        return make_updater(algo)

    def _evaluate_wrapper(self, args):
        return self._evaluate(*args)

    def _evaluate(self, algo: Algo, rank: int):
        reporter = DefaultProgressReporter(timer=self.params.timer)
        start = time.perf_counter()
        factorize(
            self.X,
            rank,
            initializer=self.params.make_initializer(),
            updater=self.make_updater(algo),
            convergence_tester=self.params.make_convergence_tester(),
            progress_reporter=reporter,
        )
        runtime = time.perf_counter() - start
        last = reporter.records[-1]
        row = EvalRows(
            algo=algo,
            init=self.params.init,
            rank=rank,
            iterations=last.iteration,
            residual=last.residual,
            runtime=runtime,
        )
        frame = reporter.to_frame()
        frame["algo"] = algo
        frame["rank"] = rank
        return row, frame

    def evaluate(self, algo: Algo, rank: int) -> EvalRows:
        row, frame = self._evaluate(algo, rank)
        self.evals.append(row)
        self.progress[(algo, rank)] = frame
        return row

    def evaluates(self, algos: List[Algo], ranks: List[int]) -> List[EvalRows]:
        args_list = [(algo, rank) for algo in algos for rank in ranks]
        if self.parallel:
            with multiprocessing.Pool(processes=self.processes) as pool:
                results = pool.map(self._evaluate_wrapper, args_list)
        else:
            results = [self._evaluate(*args) for args in args_list]
        rows = []
        for (algo, rank), (row, frame) in zip(args_list, results):
            self.evals.append(row)
            self.progress[(algo, rank)] = frame
            rows.append(row)
        return rows

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([asdict(e) for e in self.evals])

    def progress_frame(self) -> pd.DataFrame:
        if not self.progress:
            return pd.DataFrame(columns=["iteration", "residual", "elapsed", "algo", "rank"])
        return pd.concat(self.progress.values(), ignore_index=True)

    def plot_progress(self, rank: int, outfile: Optional[str] = None):
        """Normalized residual against iteration, one curve per algorithm."""
        plt.figure()
        for (algo, r), frame in self.progress.items():
            if r != rank:
                continue
            residual = np.maximum(frame["residual"].to_numpy(), np.finfo(float).tiny)
            plt.semilogy(frame["iteration"], residual, "o-", markersize=2, label=algo)
        plt.title(f"Convergence with rank={rank}")
        plt.xlabel("iteration")
        plt.ylabel("||X - UV||^2 / ||X||^2")
        plt.legend()
        plt.tight_layout()
        if outfile:
            plt.savefig(outfile)
        plt.close()
