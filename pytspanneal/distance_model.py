from .anneal_util import anneal_context
from .errors import InvalidInputError
from .tour_cost import path_length, validate_tour
import logging
import networkx as nx
import numpy as np
from numba import njit
from scipy.spatial.distance import pdist, squareform


logger = logging.getLogger("pytspanneal.distance_model")

dtype = anneal_context.dtype
symmetry_tolerance = max(1e-9, 16 * anneal_context.epsilon)


@njit
def min_max_normalize(G_m):
    # One global min and max for the whole matrix, not per row
    lo = G_m.min()
    hi = G_m.max()
    span = hi - lo
    out = np.zeros_like(G_m)
    if span <= 0.0:
        return out, lo, hi

    n_rows, n_cols = G_m.shape
    for i in range(n_rows):
        for j in range(n_cols):
            out[i, j] = (G_m[i, j] - lo) / span

    return out, lo, hi


def coordinates_to_array(coordinates):
    if isinstance(coordinates, nx.Graph):
        coords = []
        for node, data in coordinates.nodes(data=True):
            if "pos" not in data:
                raise InvalidInputError(f"Node {node!r} has no 'pos' attribute.")
            coords.append(data["pos"])
    else:
        coords = coordinates

    try:
        coords = np.array(coords, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"Coordinates are not numeric: {exc}") from exc

    if coords.ndim != 2 or coords.shape[1] != 2:
        raise InvalidInputError(f"Coordinates must have shape (N, 2), got {coords.shape}.")
    if len(coords) < 2:
        raise InvalidInputError(f"At least 2 cities are required, got {len(coords)}.")
    if not np.all(np.isfinite(coords)):
        raise InvalidInputError("Coordinates contain non-finite values.")

    return coords


def graph_to_prices(G, nodelist):
    if G.number_of_nodes() != len(nodelist):
        raise InvalidInputError(f"Price graph has {G.number_of_nodes()} nodes, expected {len(nodelist)}.")
    for u, v, data in G.edges(data=True):
        if "price" not in data:
            raise InvalidInputError(f"Edge ({u!r}, {v!r}) has no 'price' attribute.")
        if not np.isfinite(data["price"]):
            raise InvalidInputError(f"Price on edge ({u!r}, {v!r}) is not finite.")

    try:
        P = nx.to_numpy_array(G, nodelist=nodelist, weight="price", nonedge=np.nan, dtype=np.float64)
    except nx.NetworkXError as exc:
        raise InvalidInputError(f"Price graph nodes do not match the cities: {exc}") from exc

    np.fill_diagonal(P, 0.0)
    if np.any(np.isnan(P)):
        i, j = np.argwhere(np.isnan(P))[0]
        raise InvalidInputError(f"No price given between {nodelist[i]!r} and {nodelist[j]!r}.")

    return P


def prices_from_triples(triples, n):
    """
    Build a symmetric price table from (origin, destination, price) triples.

    Each triple prices both directions. Every unordered pair of the n cities
    must appear at least once, and repeats must agree.
    """
    G = nx.Graph()
    G.add_nodes_from(range(n))
    for triple in triples:
        try:
            origin, destination, price = (float(x) for x in triple)
        except (TypeError, ValueError) as exc:
            raise InvalidInputError(f"Price triples must be (origin, destination, price), got {triple!r}.") from exc
        if not (origin.is_integer() and destination.is_integer()):
            raise InvalidInputError(f"Triple cities must be integer indices, got {triple!r}.")
        origin, destination = int(origin), int(destination)

        if not (0 <= origin < n and 0 <= destination < n):
            raise InvalidInputError(f"Triple ({origin}, {destination}) is outside cities 0..{n - 1}.")
        if origin == destination:
            raise InvalidInputError(f"Triple ({origin}, {destination}) prices a city to itself.")
        if not np.isfinite(price):
            raise InvalidInputError(f"Price between {origin} and {destination} is not finite.")
        if G.has_edge(origin, destination):
            known = G[origin][destination]["price"]
            if abs(known - price) > symmetry_tolerance * max(1.0, abs(known)):
                raise InvalidInputError(f"Conflicting prices {known} and {price} between {origin} and {destination}.")
            continue
        G.add_edge(origin, destination, price=price)

    return graph_to_prices(G, list(range(n)))


def check_prices(P, n):
    if P.shape != (n, n):
        raise InvalidInputError(f"Price table must have shape ({n}, {n}), got {P.shape}.")
    if not np.all(np.isfinite(P)):
        raise InvalidInputError("Prices contain non-finite values.")
    if np.any(P < 0.0):
        raise InvalidInputError("Prices must be non-negative.")
    if np.any(np.diag(P) != 0.0):
        raise InvalidInputError("Price table diagonal must be zero.")

    scale = max(1.0, float(np.abs(P).max()))
    if not np.allclose(P, P.T, rtol=0.0, atol=symmetry_tolerance * scale):
        raise InvalidInputError("Price table is not symmetric.")

    # Remove sub-tolerance asymmetry so the frozen table is exactly symmetric
    return (P + P.T) / 2


def prices_to_array(prices, n, G=None, nodelist=None, price_format=None):
    if price_format not in (None, "table", "triples"):
        raise InvalidInputError(f"price_format must be 'table', 'triples' or None, got {price_format!r}.")

    if prices is None:
        if G is None:
            raise InvalidInputError("Prices are required unless coordinates is a graph with 'price' edges.")
        prices = G

    if isinstance(prices, nx.Graph):
        return check_prices(graph_to_prices(prices, nodelist if nodelist is not None else list(range(n))), n)

    try:
        P = np.array(prices, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"Prices are not numeric: {exc}") from exc

    if price_format == "triples":
        return check_prices(prices_from_triples(P, n), n)
    if price_format == "table":
        return check_prices(P, n)

    if P.ndim == 2 and P.shape != (n, n) and P.shape[1] == 3:
        return check_prices(prices_from_triples(P, n), n)

    try:
        return check_prices(P, n)
    except InvalidInputError as table_error:
        # Three triples over three cities also have shape (3, 3)
        if P.shape != (3, 3):
            raise
        try:
            return check_prices(prices_from_triples(P, n), n)
        except InvalidInputError:
            raise table_error from None


def freeze(a):
    a = np.ascontiguousarray(a, dtype=dtype)
    a.setflags(write=False)

    return a


class DistanceModel:
    def __init__(self, coordinates, prices=None, price_format=None):
        G = coordinates if isinstance(coordinates, nx.Graph) else None
        self.coordinates = freeze(coordinates_to_array(coordinates))
        self.n_cities = len(self.coordinates)
        self.nodes = list(G.nodes()) if G is not None else list(range(self.n_cities))

        raw_distances = squareform(pdist(self.coordinates.astype(np.float64)))
        raw_prices = prices_to_array(prices, self.n_cities, G, self.nodes, price_format)

        dtable, d_min, d_max = min_max_normalize(raw_distances)
        ptable, p_min, p_max = min_max_normalize(raw_prices)

        self.d_min, self.d_max = float(d_min), float(d_max)
        self.p_min, self.p_max = float(p_min), float(p_max)
        self.raw_distances = freeze(raw_distances)
        self.raw_prices = freeze(raw_prices)
        self.dtable = freeze(dtable)
        self.ptable = freeze(ptable)

        if self.d_max <= self.d_min:
            logger.warning("All %d cities share one distance; normalized distances are all zero.", self.n_cities)
        if self.p_max <= self.p_min:
            logger.warning("All %d cities share one price; normalized prices are all zero.", self.n_cities)

        logger.debug(
            "Built tables for %d cities: distance range [%g, %g], price range [%g, %g]",
            self.n_cities,
            self.d_min,
            self.d_max,
            self.p_min,
            self.p_max
        )

    def tables(self):
        return self.dtable, self.ptable

    def raw_metrics(self, tour):
        """Un-normalized (length, price) of a tour, for reporting."""
        tour = validate_tour(tour, self.n_cities)

        return float(path_length(tour, self.raw_distances)), float(path_length(tour, self.raw_prices))

    def __repr__(self):
        return f"DistanceModel(n_cities={self.n_cities})"


def build(coordinates, prices=None, price_format=None):
    """
    Normalized (distance, price) tables for a set of cities.

    Args:
        coordinates: (N, 2) array-like, or nx.Graph with node attribute "pos"
        prices: (N, N) symmetric array-like, (origin, destination, price)
            triples, nx.Graph with edge attribute "price", or None when the
            coordinate graph carries the prices
        price_format: "table" or "triples" to fix how an array of prices is
            read; by default a square (N, N) array is a table and a (K, 3)
            array is triples

    Returns:
        (dtable, ptable), both read-only and min-max normalized to [0, 1]
    """
    model = DistanceModel(coordinates, prices, price_format)

    return model.dtable, model.ptable
