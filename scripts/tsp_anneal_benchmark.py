# Sequential versus process-parallel restarts on one instance

from pytspanneal import DistanceModel, multi_restart_search
import numpy as np
import os
import sys
import time


if __name__ == "__main__":
    n_nodes = int(sys.argv[1]) if len(sys.argv) > 1 else 64
    restart_count = int(sys.argv[2]) if len(sys.argv) > 2 else os.cpu_count()
    iter_max = int(sys.argv[3]) if len(sys.argv) > 3 else 500000
    alpha = float(sys.argv[4]) if len(sys.argv) > 4 else 0.5
    seed = int(sys.argv[5]) if len(sys.argv) > 5 else None

    rng = np.random.default_rng(seed)
    coords = rng.random((n_nodes, 2))
    prices = rng.random((n_nodes, n_nodes))
    prices = (prices + prices.T) / 2
    np.fill_diagonal(prices, 0.0)
    dtable, ptable = DistanceModel(coords, prices).tables()

    # First call pays for numba compilation
    multi_restart_search(dtable, ptable, alpha, 1, 0.1, 1000, seeds=0)

    results = {}
    for is_parallel in (False, True):
        start = time.perf_counter()
        result = multi_restart_search(dtable, ptable, alpha, restart_count, 0.1, iter_max, seeds=seed, is_parallel=is_parallel)
        results[is_parallel] = (time.perf_counter() - start, result)

    for is_parallel, (seconds, result) in results.items():
        label = "parallel" if is_parallel else "sequential"
        print(f"{label}: {seconds:.2f} s, best cost {result.best_cost:.6f} from restart {result.best_index}")
        print(f"    Costs: {[round(run.cost, 6) for run in result.runs]}")

    if seed is not None:
        print(f"Identical results: {results[False][1].best_cost == results[True][1].best_cost}")
