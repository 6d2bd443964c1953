"""Tests for the local cube method."""

import numpy as np
import pytest

from sampleframe.errors import InfeasibleDesignError
from sampleframe.sampling.cube import (
    balancing_matrix,
    cube_sample,
    inclusion_probabilities,
    target_sample_size,
)


def _grid_population(side: int):
    ys, xs = np.mgrid[0:side, 0:side]
    return xs.ravel().astype(float), ys.ravel().astype(float)


def _clustered_population(seed: int = 1):
    rng = np.random.default_rng(seed)
    centres = np.array([[0.0, 0.0], [50.0, 10.0], [20.0, 60.0]])
    points = np.vstack(
        [c + rng.normal(scale=s, size=(400, 2)) for c, s in zip(centres, (3, 8, 5))]
    )
    return points[:, 0], points[:, 1]


def _balanced(x, y, n, seed):
    prob = inclusion_probabilities(x.size, n)
    return cube_sample(
        prob, balancing_matrix(prob, x, y), np.column_stack([x, y]), seed=seed
    )


def test_target_sample_size_uses_area_divisor() -> None:
    assert target_sample_size(1600, 1.0) == 100
    assert target_sample_size(1600, 0.5, area_divisor=8) == 100
    assert target_sample_size(40, 2.0) == 5


def test_inclusion_probabilities_equal() -> None:
    prob = inclusion_probabilities(8, 2)
    np.testing.assert_allclose(prob, 0.25)
    assert prob.sum() == pytest.approx(2)


@pytest.mark.parametrize("n", [1, 7, 40, 99])
def test_sample_size_within_one_of_target(n: int) -> None:
    x, y = _grid_population(20)
    for seed in range(5):
        sample = _balanced(x, y, n, seed)
        assert abs(sample.size - n) <= 1
        assert np.unique(sample).size == sample.size


def test_same_seed_same_sample() -> None:
    """Identical (N, n, B, seed) gives an identical index set."""
    x, y = _clustered_population()
    first = _balanced(x, y, 30, seed=6405)
    second = _balanced(x, y, 30, seed=6405)
    np.testing.assert_array_equal(first, second)

    other = _balanced(x, y, 30, seed=6406)
    assert not np.array_equal(first, other)


def test_global_random_state_untouched() -> None:
    x, y = _grid_population(10)
    np.random.seed(3)
    expected = np.random.random()
    np.random.seed(3)
    _balanced(x, y, 10, seed=1)
    assert np.random.random() == expected


@pytest.mark.parametrize("population", ["uniform", "clustered"])
def test_balanced_sample_mean_beats_simple_random(population: str) -> None:
    """Sample-mean bias of the cube method is well below simple random sampling."""
    if population == "uniform":
        x, y = _grid_population(40)
    else:
        x, y = _clustered_population()
    n = 40
    pop_mean = np.array([x.mean(), y.mean()])

    cube_bias, srs_bias = [], []
    for seed in range(20):
        cube = _balanced(x, y, n, seed)
        cube_bias.append(np.abs(np.array([x[cube].mean(), y[cube].mean()]) - pop_mean))

        srs = np.random.default_rng(seed).choice(x.size, n, replace=False)
        srs_bias.append(np.abs(np.array([x[srs].mean(), y[srs].mean()]) - pop_mean))

    assert np.mean(cube_bias) < 0.5 * np.mean(srs_bias)


def test_balanced_sample_is_spread() -> None:
    """Selected sites keep a larger nearest-neighbour distance than SRS."""
    from scipy.spatial import cKDTree

    x, y = _grid_population(40)
    coords = np.column_stack([x, y])

    def mean_nn(idx):
        d, _ = cKDTree(coords[idx]).query(coords[idx], k=2)
        return d[:, 1].mean()

    cube = np.mean([mean_nn(_balanced(x, y, 50, s)) for s in range(5)])
    srs = np.mean(
        [
            mean_nn(np.random.default_rng(s).choice(x.size, 50, replace=False))
            for s in range(5)
        ]
    )
    assert cube > srs


def test_full_inclusion_returns_everything() -> None:
    x, y = _grid_population(3)
    np.testing.assert_array_equal(_balanced(x, y, 9, seed=0), np.arange(9))


def test_sample_larger_than_population_fails() -> None:
    with pytest.raises(InfeasibleDesignError, match="exceeds"):
        inclusion_probabilities(5, 6)


def test_zero_sample_size_fails() -> None:
    with pytest.raises(InfeasibleDesignError, match="at least 1"):
        inclusion_probabilities(5, 0)


def test_non_finite_balancing_values_fail() -> None:
    x, y = _grid_population(4)
    y[3] = np.nan
    prob = inclusion_probabilities(x.size, 4)
    with pytest.raises(InfeasibleDesignError, match="non-finite"):
        cube_sample(prob, balancing_matrix(prob, x, y), seed=1)


def test_collinear_candidates_are_sampled(caplog) -> None:
    """A single row of cells makes the y column redundant, not infeasible."""
    x = np.arange(1, 11, dtype=float)
    y = np.full(10, 5.0)
    prob = inclusion_probabilities(10, 3)
    with caplog.at_level("WARNING", logger="sampleframe.sampling.cube"):
        sample = cube_sample(prob, balancing_matrix(prob, x, y), seed=1)
    assert abs(sample.size - 3) <= 1
    assert "redundant constraints" in caplog.text


@pytest.mark.parametrize(
    "x, y, n",
    [
        ([15.0], [25.0], 1),
        ([15.0, 25.0], [35.0, 35.0], 1),
        ([15.0, 25.0, 35.0, 45.0], [5.0, 5.0, 5.0, 5.0], 2),
        ([5.0, 5.0, 5.0, 5.0], [15.0, 25.0, 35.0, 45.0], 2),
    ],
    ids=["single-cell", "two-cells", "row-strip", "column-strip"],
)
def test_tiny_and_degenerate_populations(x, y, n) -> None:
    x = np.asarray(x)
    y = np.asarray(y)
    prob = inclusion_probabilities(x.size, n)
    for seed in range(5):
        sample = cube_sample(prob, balancing_matrix(prob, x, y), seed=seed)
        assert abs(sample.size - n) <= 1
        assert set(sample.tolist()) <= set(range(x.size))


def test_probabilities_outside_unit_interval_fail() -> None:
    prob = np.array([0.5, 0.0, 0.5])
    with pytest.raises(InfeasibleDesignError, match=r"\(0, 1\]"):
        cube_sample(prob, np.column_stack([prob, [1.0, 2.0, 4.0]]), seed=1)


def test_unequal_probabilities_are_respected() -> None:
    """Units with probability one are always selected."""
    x, y = _grid_population(6)
    prob = np.full(x.size, 0.2)
    prob[:4] = 1.0
    prob[4:] = (10 - 4) / (x.size - 4)
    for seed in range(5):
        sample = cube_sample(prob, balancing_matrix(prob, x, y), seed=seed)
        assert set(range(4)) <= set(sample.tolist())
        assert abs(sample.size - 10) <= 1
