from .anneal_util import anneal_context
from .distance_model import DistanceModel, build, min_max_normalize, prices_from_triples
from .errors import AnnealingError, DegenerateInstanceError, InvalidInputError, InvalidTourError
from .multi_restart import SearchResult, multi_restart_search, restart_seeds
from .tour_cost import make_tour, path_length, swap_delta, tour_cost, tour_cost_parallel, validate_tour
from .tsp_anneal import AnnealingOptimizer, AnnealingResult, AnnealingState, acceptance_probability, anneal
