from .anneal_util import anneal_context
from .errors import InvalidInputError, InvalidTourError
import numpy as np
from numba import njit, prange


dtype = anneal_context.dtype


@njit
def path_length(path, G_m):
    tot_len = 0.0
    for i in range(len(path) - 1):
        tot_len += G_m[path[i], path[i + 1]]

    return tot_len


@njit
def edge_cost(dtable, ptable, a, b, alpha):
    if alpha >= 1.0:
        return dtable[a, b]
    if alpha <= 0.0:
        return ptable[a, b]

    return alpha * dtable[a, b] + (1.0 - alpha) * ptable[a, b]


@njit
def tour_cost_serial(dtable, ptable, tour, alpha):
    # The unused table is never read at the extremes, so it may hold sentinels.
    if alpha >= 1.0:
        return path_length(tour, dtable)
    if alpha <= 0.0:
        return path_length(tour, ptable)

    return alpha * path_length(tour, dtable) + (1.0 - alpha) * path_length(tour, ptable)


@njit(parallel=True)
def tour_cost_parallel(dtable, ptable, tour, alpha):
    n_edges = len(tour) - 1
    tot_len = 0.0
    tot_price = 0.0

    # prange reduces per-thread partial sums after the loop
    if alpha > 0.0:
        for i in prange(n_edges):
            tot_len += dtable[tour[i], tour[i + 1]]
    if alpha < 1.0:
        for i in prange(n_edges):
            tot_price += ptable[tour[i], tour[i + 1]]

    if alpha >= 1.0:
        return tot_len
    if alpha <= 0.0:
        return tot_price

    return alpha * tot_len + (1.0 - alpha) * tot_price


@njit
def city_after_swap(tour, pos, i, j):
    if pos == i:
        return tour[j]
    if pos == j:
        return tour[i]

    return tour[pos]


@njit
def edge_swap_delta(dtable, ptable, tour, k, i, j, alpha):
    before = edge_cost(dtable, ptable, tour[k], tour[k + 1], alpha)
    after = edge_cost(
        dtable,
        ptable,
        city_after_swap(tour, k, i, j),
        city_after_swap(tour, k + 1, i, j),
        alpha
    )

    return after - before


@njit
def swap_delta_kernel(dtable, ptable, tour, i, j, alpha):
    """
    Cost change from swapping the cities at interior positions i and j.

    Edge k joins positions k and k + 1, so only edges i - 1, i, j - 1 and j
    change. When the positions are adjacent, edges i and j - 1 are the same.
    """
    if i > j:
        i, j = j, i

    delta = edge_swap_delta(dtable, ptable, tour, i - 1, i, j, alpha)
    delta += edge_swap_delta(dtable, ptable, tour, i, i, j, alpha)
    if (j - 1) != i:
        delta += edge_swap_delta(dtable, ptable, tour, j - 1, i, j, alpha)
    delta += edge_swap_delta(dtable, ptable, tour, j, i, j, alpha)

    return delta


def check_alpha(alpha):
    try:
        alpha = float(alpha)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"alpha must be a real number, got {alpha!r}.") from exc
    if not (0.0 <= alpha <= 1.0):
        raise InvalidInputError(f"alpha must lie in [0, 1], got {alpha}.")

    return alpha


def check_tables(dtable, ptable):
    dtable = np.ascontiguousarray(dtable, dtype=dtype)
    ptable = np.ascontiguousarray(ptable, dtype=dtype)
    if dtable.ndim != 2 or dtable.shape[0] != dtable.shape[1]:
        raise InvalidInputError(f"Distance table must be square, got shape {dtable.shape}.")
    if ptable.shape != dtable.shape:
        raise InvalidInputError(f"Price table shape {ptable.shape} does not match distance table shape {dtable.shape}.")

    return dtable, ptable


def validate_tour(tour, n):
    """
    Check that a tour is a closed loop over all n cities.

    Returns:
        The tour as an int64 array of length n + 1.
    """
    try:
        tour = np.asarray(tour)
    except (TypeError, ValueError) as exc:
        raise InvalidTourError(f"Tour is not a flat sequence of city indices: {exc}") from exc

    if tour.ndim != 1 or len(tour) != n + 1:
        raise InvalidTourError(f"Tour must hold {n + 1} entries for {n} cities, got shape {tour.shape}.")
    if not np.issubdtype(tour.dtype, np.integer):
        if not np.issubdtype(tour.dtype, np.floating) or not np.all(np.mod(tour, 1) == 0):
            raise InvalidTourError("Tour entries must be integer city indices.")
    tour = tour.astype(np.int64)

    if tour[0] != tour[-1]:
        raise InvalidTourError(f"Tour must close on its starting city: first is {tour[0]}, last is {tour[-1]}.")
    if not np.array_equal(np.sort(tour[:-1]), np.arange(n)):
        raise InvalidTourError("Tour must visit every city 0..n-1 exactly once.")

    return tour


def make_tour(order):
    order = np.asarray(order, dtype=np.int64)

    return np.append(order, order[0])


def tour_cost(dtable, ptable, tour, alpha, is_parallel=False):
    alpha = check_alpha(alpha)
    dtable, ptable = check_tables(dtable, ptable)
    # The kernels do no bounds checking
    tour = validate_tour(tour, len(dtable))

    if is_parallel:
        return tour_cost_parallel(dtable, ptable, tour, alpha)

    return tour_cost_serial(dtable, ptable, tour, alpha)


def swap_delta(dtable, ptable, tour, i, j, alpha):
    """Cost change from swapping interior positions i and j of a valid tour."""
    alpha = check_alpha(alpha)
    dtable, ptable = check_tables(dtable, ptable)
    n = len(dtable)
    tour = validate_tour(tour, n)

    for name, pos in (("i", i), ("j", j)):
        if isinstance(pos, bool) or not isinstance(pos, (int, np.integer)) or not (1 <= pos <= n - 1):
            raise InvalidInputError(f"Swap position {name} must be an interior position in 1..{n - 1}, got {pos!r}.")
    if i == j:
        raise InvalidInputError(f"Swap positions must differ, got {i} twice.")

    return swap_delta_kernel(dtable, ptable, tour, int(i), int(j), alpha)
