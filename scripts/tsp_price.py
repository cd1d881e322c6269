# Travelling salesman over a blend of distance and price
# Sweeps alpha from pure price (0) to pure distance (1) on one random instance

from pytspanneal import DistanceModel, multi_restart_search
import numpy as np
import sys


def generate_instance(n_nodes=32, seed=None):
    rng = np.random.default_rng(seed)
    coords = rng.random((n_nodes, 2)) * 100.0
    prices = rng.random((n_nodes, n_nodes)) * 250.0
    prices = (prices + prices.T) / 2
    np.fill_diagonal(prices, 0.0)

    return coords, prices


if __name__ == "__main__":
    n_nodes = int(sys.argv[1]) if len(sys.argv) > 1 else 32
    restart_count = int(sys.argv[2]) if len(sys.argv) > 2 else 8
    iter_max = int(sys.argv[3]) if len(sys.argv) > 3 else 200000
    seed = int(sys.argv[4]) if len(sys.argv) > 4 else 42

    coords, prices = generate_instance(n_nodes=n_nodes, seed=seed)
    model = DistanceModel(coords, prices)
    dtable, ptable = model.tables()

    print(f"Node count: {n_nodes}")
    print(f"Restarts: {restart_count}, iterations per restart: {iter_max}")
    for alpha in (0.0, 0.25, 0.5, 0.75, 1.0):
        result = multi_restart_search(dtable, ptable, alpha, restart_count, 0.1, iter_max, seeds=seed, is_parallel=True)
        length, price = model.raw_metrics(result.best_tour)
        best_run = result.runs[result.best_index]
        print(f"alpha={alpha:.2f}: cost={result.best_cost:.4f}, length={length:.1f}, price={price:.1f}, accepted={best_run.accepted}, final T={best_run.temperature:.3g}")
        print(f"    Path: {list(result.best_tour)}")
