from .anneal_util import anneal_context
from .errors import InvalidInputError
from .tour_cost import check_alpha, make_tour
from .tsp_anneal import AnnealingOptimizer, check_instance, check_run_parameters
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
import logging
import numpy as np


logger = logging.getLogger("pytspanneal.multi_restart")


@dataclass(frozen=True)
class SearchResult:
    best_tour: np.ndarray
    best_cost: float
    best_index: int
    runs: tuple
    seeds: tuple


def restart_seeds(restart_count, seeds=None):
    """
    One 32-bit seed per restart.

    An int (or None, for OS entropy) is expanded through numpy's SeedSequence
    into distinct per-restart seeds. An explicit sequence is used as given.
    """
    if seeds is None or isinstance(seeds, (int, np.integer)):
        entropy = None if seeds is None else int(seeds) % (2 ** 32)
        return tuple(int(s) for s in np.random.SeedSequence(entropy).generate_state(restart_count))

    try:
        seeds = tuple(int(s) % (2 ** 32) for s in seeds)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"Seeds must be integers: {exc}") from exc

    if len(seeds) != restart_count:
        raise InvalidInputError(f"Got {len(seeds)} seeds for {restart_count} restarts.")
    if len(set(seeds)) != len(seeds):
        logger.warning("Duplicate restart seeds; those restarts will repeat each other exactly.")

    return seeds


def restart_worker(args):
    dtable, ptable, alpha, T0, iter_max, seed, options = args
    rng = np.random.default_rng(seed)
    tour = make_tour(rng.permutation(len(dtable)))

    return AnnealingOptimizer(dtable, ptable, tour, alpha, T0, iter_max, seed=seed, **options).run()


def multi_restart_search(
    dtable,
    ptable,
    alpha,
    restart_count,
    T0,
    iter_max,
    seeds=None,
    is_parallel=False,
    max_workers=None,
    cooling_interval=None,
    decay=None,
    sample_interval=None,
    patience=0,
    delta_eval=True
):
    if cooling_interval is None:
        cooling_interval = anneal_context.cooling_interval
    if decay is None:
        decay = anneal_context.decay
    if sample_interval is None:
        sample_interval = anneal_context.sample_interval

    dtable, ptable = check_instance(dtable, ptable)
    alpha = check_alpha(alpha)
    T0, iter_max, cooling_interval, decay, sample_interval, patience = check_run_parameters(
        T0, iter_max, cooling_interval, decay, sample_interval, patience
    )
    if isinstance(restart_count, bool) or not isinstance(restart_count, (int, np.integer)) or restart_count <= 0:
        raise InvalidInputError(f"restart_count must be a positive integer, got {restart_count!r}.")

    seeds = restart_seeds(int(restart_count), seeds)
    options = {
        "cooling_interval": cooling_interval,
        "decay": decay,
        "sample_interval": sample_interval,
        "patience": patience,
        "delta_eval": delta_eval
    }
    jobs = [(dtable, ptable, alpha, T0, iter_max, seed, options) for seed in seeds]

    if is_parallel and len(jobs) > 1:
        workers = min(max_workers or anneal_context.max_workers, len(jobs))
        logger.info("Running %d restarts on %d worker processes", len(jobs), workers)
        with ProcessPoolExecutor(max_workers=workers) as executor:
            runs = tuple(executor.map(restart_worker, jobs))
    else:
        logger.info("Running %d restarts sequentially", len(jobs))
        runs = tuple(restart_worker(job) for job in jobs)

    # Reduce only after every restart has finished; ties keep the lowest index.
    best_index = 0
    for index in range(1, len(runs)):
        if runs[index].cost < runs[best_index].cost:
            best_index = index

    best = runs[best_index]
    logger.info("Best of %d restarts: index=%d, seed=%d, cost=%g", len(runs), best_index, best.seed, best.cost)

    return SearchResult(
        best_tour=best.tour,
        best_cost=best.cost,
        best_index=best_index,
        runs=runs,
        seeds=seeds
    )
