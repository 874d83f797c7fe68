import os
import time

import numpy as np
import pandas as pd

from evaluations import NMFEvaluations
from plugnmf.params import NMFParams

p = time.time()

n, m = 200, 300
true_rank = 10
rng = np.random.default_rng(47)
X = rng.random((n, true_rank)) @ rng.random((true_rank, m))
X += 0.01 * rng.random((n, m))

algos = ["MU", "HALS", "FastHALS", "GCD"]
ranks = [5, 10, 15]
inits = ["random", "nndsvda"]
outdir = "./exports"


if __name__ == "__main__":
    os.makedirs(outdir, exist_ok=True)
    evaluations = []
    for init in inits:
        print("---------------> Next <---------------")
        params = NMFParams(max_loop_count=200, eps=1e-7, init=init, rngseed=47)
        nmf_evaluations = NMFEvaluations(X, params=params, parallel=False)
        for row in nmf_evaluations.evaluates(algos, ranks):
            print(
                f"collect: algo={row.algo} | init={row.init} | rank={row.rank} | "
                f"iterations={row.iterations} | residual={row.residual:.3e} | runtime={row.runtime:.3f}s"
            )
        for rank in ranks:
            nmf_evaluations.plot_progress(rank, f"{outdir}/progress_{init}_r{rank}.png")
        evaluations.append(nmf_evaluations)

    df_evals = pd.concat([e.to_frame() for e in evaluations], ignore_index=True)
    df_evals.to_csv(f"{outdir}/evals.csv", index_label="i")
    print(df_evals.head())
    print(f"Runtime: {round((time.time() - p)/60, 2)}mins")
