import logging

import numpy as np
import pytest

from pytspanneal import (
    AnnealingOptimizer,
    DegenerateInstanceError,
    InvalidInputError,
    make_tour,
    multi_restart_search,
    restart_seeds,
    validate_tour,
)

from conftest import is_perimeter


def search(model, **kwargs):
    params = {"alpha": 1.0, "restart_count": 4, "T0": 0.05, "iter_max": 2000, "seeds": 2024}
    params.update(kwargs)
    dtable, ptable = model.tables()
    return multi_restart_search(dtable, ptable, **params)


def test_unit_square_recovers_perimeter(square_model):
    result = search(square_model)
    validate_tour(result.best_tour, 4)
    assert is_perimeter(result.best_tour)
    assert result.best_cost == pytest.approx(4 * square_model.dtable[0, 1])
    assert square_model.raw_metrics(result.best_tour)[0] == pytest.approx(4.0)


def test_alpha_changes_the_optimum(inverse_square_model):
    by_distance = search(inverse_square_model, alpha=1.0)
    by_price = search(inverse_square_model, alpha=0.0)
    assert is_perimeter(by_distance.best_tour)
    assert not is_perimeter(by_price.best_tour)
    assert by_price.best_cost == pytest.approx(3.0)


def test_best_is_minimum_over_restarts(random_model):
    result = search(random_model, alpha=0.5, restart_count=5, T0=0.1, iter_max=3000, seeds=7)
    assert len(result.runs) == 5
    assert result.best_cost == min(run.cost for run in result.runs)
    assert result.runs[result.best_index].cost == result.best_cost
    assert np.array_equal(result.runs[result.best_index].tour, result.best_tour)


def test_restart_matches_standalone_run(random_model):
    result = search(random_model, alpha=0.5, restart_count=3, T0=0.1, iter_max=1000, seeds=[10, 20, 30])
    dtable, ptable = random_model.tables()
    tour = make_tour(np.random.default_rng(20).permutation(random_model.n_cities))
    single = AnnealingOptimizer(dtable, ptable, tour, 0.5, 0.1, 1000, seed=20).run()
    assert np.array_equal(single.tour, result.runs[1].tour)
    assert single.cost == result.runs[1].cost


def test_restart_order_does_not_matter(random_model):
    seeds = [3, 1, 4, 15, 9]
    forward = search(random_model, alpha=0.5, T0=0.1, iter_max=1500, restart_count=5, seeds=seeds)
    backward = search(random_model, alpha=0.5, T0=0.1, iter_max=1500, restart_count=5, seeds=seeds[::-1])

    assert forward.best_cost == backward.best_cost
    for run, mirrored in zip(forward.runs, backward.runs[::-1]):
        assert run.seed == mirrored.seed
        assert run.cost == mirrored.cost
        assert np.array_equal(run.tour, mirrored.tour)
        assert np.array_equal(run.trace, mirrored.trace)


def test_parallel_matches_sequential(random_model):
    sequential = search(random_model, alpha=0.5, T0=0.1, iter_max=1000, seeds=99)
    parallel = search(random_model, alpha=0.5, T0=0.1, iter_max=1000, seeds=99, is_parallel=True, max_workers=2)

    assert parallel.seeds == sequential.seeds
    assert parallel.best_index == sequential.best_index
    assert parallel.best_cost == sequential.best_cost
    assert [run.cost for run in parallel.runs] == [run.cost for run in sequential.runs]


def test_ties_keep_first_restart():
    dtable = np.array([[0.0, 1.0, 0.5], [1.0, 0.0, 0.2], [0.5, 0.2, 0.0]])
    result = multi_restart_search(dtable, dtable, 1.0, 4, 1.0, 200, seeds=[5, 6, 7, 8])
    assert result.best_index == 0
    assert result.best_cost == pytest.approx(1.7)


def test_restart_seeds_from_int_are_distinct_and_repeatable():
    seeds = restart_seeds(16, 42)
    assert len(seeds) == 16
    assert len(set(seeds)) == 16
    assert seeds == restart_seeds(16, 42)
    assert all(0 <= s < 2 ** 32 for s in seeds)


def test_restart_seeds_from_entropy():
    assert len(restart_seeds(3)) == 3


def test_restart_seed_count_must_match():
    with pytest.raises(InvalidInputError):
        restart_seeds(3, [1, 2])


def test_duplicate_seeds_warn(caplog):
    with caplog.at_level(logging.WARNING, logger="pytspanneal.multi_restart"):
        assert restart_seeds(2, [5, 5]) == (5, 5)
    assert "Duplicate" in caplog.text


@pytest.mark.parametrize("restart_count", [0, -2, 2.5, True])
def test_bad_restart_count(square_model, restart_count):
    with pytest.raises(InvalidInputError):
        search(square_model, restart_count=restart_count)


def test_degenerate_search():
    dtable = np.array([[0.0, 1.0], [1.0, 0.0]])
    with pytest.raises(DegenerateInstanceError):
        multi_restart_search(dtable, dtable, 1.0, 2, 1.0, 100)
