from .anneal_util import anneal_context
from .errors import AnnealingError, DegenerateInstanceError, InvalidInputError
from .tour_cost import check_alpha, check_tables, swap_delta_kernel, tour_cost_serial, validate_tour
from dataclasses import dataclass, field
import logging
import math
import numpy as np
from numba import njit


logger = logging.getLogger("pytspanneal.tsp_anneal")

# math.exp() of anything below this is 0.0 in double precision
exp_underflow = -745.0

INITIALIZED = "initialized"
RUNNING = "running"
CONVERGED = "converged"
EXHAUSTED = "exhausted"


@njit
def acceptance_probability(delta, T):
    if delta <= 0.0:
        return 1.0
    if T <= 0.0:
        return 0.0

    x = -delta / T
    if x < exp_underflow:
        return 0.0

    return math.exp(x)


@njit
def anneal(dtable, ptable, tour, alpha, T0, iter_max, seed, cooling_interval, decay, sample_interval, patience, delta_eval):
    # Reseeds numba's own generator, which is separate per thread and per process.
    np.random.seed(seed)

    n_nodes = len(tour) - 1
    tour = tour.copy()
    cost = tour_cost_serial(dtable, ptable, tour, alpha)
    T = T0

    n_samples = iter_max // sample_interval + 1
    trace = np.empty(n_samples, dtype=np.float64)
    temperatures = np.empty(n_samples, dtype=np.float64)
    trace[0] = cost
    temperatures[0] = T
    n_sampled = 1

    best_sampled = cost
    stale = 0
    accepted = 0
    rejected = 0
    iterations = 0
    converged = False

    for k in range(iter_max):
        # Two distinct interior positions; 0 and n_nodes hold the closing city.
        i = np.random.randint(1, n_nodes)
        j = np.random.randint(1, n_nodes - 1)
        if j >= i:
            j += 1

        if delta_eval:
            delta = swap_delta_kernel(dtable, ptable, tour, i, j, alpha)
            candidate_cost = cost + delta
        else:
            tour[i], tour[j] = tour[j], tour[i]
            candidate_cost = tour_cost_serial(dtable, ptable, tour, alpha)
            tour[i], tour[j] = tour[j], tour[i]
            delta = candidate_cost - cost

        if delta <= 0.0:
            accept = True
        else:
            accept = np.random.random() < acceptance_probability(delta, T)

        if accept:
            tour[i], tour[j] = tour[j], tour[i]
            cost = candidate_cost
            accepted += 1
        else:
            rejected += 1

        iterations = k + 1

        if (iterations % cooling_interval) == 0:
            T *= decay

        if (iterations % sample_interval) == 0:
            trace[n_sampled] = cost
            temperatures[n_sampled] = T
            n_sampled += 1

            if patience > 0:
                if cost < best_sampled:
                    best_sampled = cost
                    stale = 0
                else:
                    stale += 1
                    if stale >= patience:
                        converged = True
                        break

    # Drop accumulated delta rounding from the reported cost
    cost = tour_cost_serial(dtable, ptable, tour, alpha)

    return tour, cost, trace[:n_sampled], temperatures[:n_sampled], T, accepted, rejected, iterations, converged


@dataclass
class AnnealingState:
    tour: np.ndarray
    cost: float
    temperature: float
    iteration: int = 0
    accepted: int = 0
    rejected: int = 0
    trace: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.float64))
    temperatures: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.float64))
    status: str = INITIALIZED


@dataclass(frozen=True)
class AnnealingResult:
    tour: np.ndarray
    cost: float
    trace: np.ndarray
    temperatures: np.ndarray
    temperature: float
    accepted: int
    rejected: int
    iterations: int
    status: str
    seed: int


def check_run_parameters(T0, iter_max, cooling_interval, decay, sample_interval, patience):
    try:
        T0 = float(T0)
        decay = float(decay)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"T0 and decay must be real numbers: {exc}") from exc

    if not (math.isfinite(T0) and T0 > 0.0):
        raise InvalidInputError(f"Initial temperature must be finite and positive, got {T0}.")
    if not (0.0 < decay <= 1.0):
        raise InvalidInputError(f"Cooling decay must lie in (0, 1], got {decay}.")

    for name, value in (("iter_max", iter_max), ("cooling_interval", cooling_interval), ("sample_interval", sample_interval)):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
            raise InvalidInputError(f"{name} must be a positive integer, got {value!r}.")
    if isinstance(patience, bool) or not isinstance(patience, (int, np.integer)) or patience < 0:
        raise InvalidInputError(f"patience must be a non-negative integer, got {patience!r}.")

    return T0, int(iter_max), int(cooling_interval), decay, int(sample_interval), int(patience)


def check_instance(dtable, ptable):
    dtable, ptable = check_tables(dtable, ptable)
    if len(dtable) < 3:
        raise DegenerateInstanceError(f"Swap moves need at least 3 cities, got {len(dtable)}.")

    return dtable, ptable


class AnnealingOptimizer:
    """
    Simulated annealing over closed tours with pairwise swap moves.

    Temperature is multiplied by decay after every cooling_interval
    iterations, and the current cost is sampled after every sample_interval
    iterations. With patience > 0 the run stops early once that many samples
    in a row fail to improve on the best sample.
    """

    def __init__(
        self,
        dtable,
        ptable,
        tour,
        alpha,
        T0,
        iter_max,
        seed=0,
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

        self.dtable, self.ptable = check_instance(dtable, ptable)
        self.n_nodes = len(self.dtable)
        self.alpha = check_alpha(alpha)
        self.T0, self.iter_max, self.cooling_interval, self.decay, self.sample_interval, self.patience = check_run_parameters(
            T0, iter_max, cooling_interval, decay, sample_interval, patience
        )
        self.seed = int(seed) % (2 ** 32)
        self.delta_eval = bool(delta_eval)

        tour = validate_tour(tour, self.n_nodes)
        self.state = AnnealingState(
            tour=tour,
            cost=float(tour_cost_serial(self.dtable, self.ptable, tour, self.alpha)),
            temperature=self.T0
        )

    def run(self):
        if self.state.status != INITIALIZED:
            raise AnnealingError(f"Optimizer has already run (status {self.state.status!r}); create a new one.")

        self.state.status = RUNNING
        logger.info(
            "Annealing %d cities: alpha=%g, T0=%g, iter_max=%d, seed=%d, initial cost=%g",
            self.n_nodes,
            self.alpha,
            self.T0,
            self.iter_max,
            self.seed,
            self.state.cost
        )

        tour, cost, trace, temperatures, T, accepted, rejected, iterations, converged = anneal(
            self.dtable,
            self.ptable,
            self.state.tour,
            self.alpha,
            self.T0,
            self.iter_max,
            self.seed,
            self.cooling_interval,
            self.decay,
            self.sample_interval,
            self.patience,
            self.delta_eval
        )

        self.state.tour = tour
        self.state.cost = float(cost)
        self.state.temperature = float(T)
        self.state.iteration = int(iterations)
        self.state.accepted = int(accepted)
        self.state.rejected = int(rejected)
        self.state.trace = trace
        self.state.temperatures = temperatures
        self.state.status = CONVERGED if converged else EXHAUSTED

        logger.info(
            "Annealing %s after %d iterations: cost=%g, T=%g, accepted=%d, rejected=%d",
            self.state.status,
            self.state.iteration,
            self.state.cost,
            self.state.temperature,
            self.state.accepted,
            self.state.rejected
        )

        return AnnealingResult(
            tour=tour,
            cost=self.state.cost,
            trace=trace,
            temperatures=temperatures,
            temperature=self.state.temperature,
            accepted=self.state.accepted,
            rejected=self.state.rejected,
            iterations=self.state.iteration,
            status=self.state.status,
            seed=self.seed
        )
