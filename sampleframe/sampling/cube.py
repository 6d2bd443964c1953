"""Local cube method for spatially balanced sampling.

The cube method (Deville & Tillé, 2004) selects a sample whose
Horvitz-Thompson totals of the balancing variables match the population
totals. The local cube method (Grafström & Tillé, 2013) runs the flight phase
on small groups of spatially close units, which additionally spreads the
sample over the study area.

Flight phase: pick an undecided unit and its q nearest undecided neighbours
(q = number of balancing variables). The inclusion probabilities of this group
of q + 1 units move along a direction in the null space of their balancing
constraints until at least one of them reaches 0 or 1. The move is randomised
so that the expected probabilities are unchanged.

Landing phase: when fewer than q + 1 units are undecided, the last balancing
column is dropped and the flight phase resumes with groups of q units. With no
column left every remaining unit is decided by a Bernoulli draw.
"""

import logging
from typing import List, Optional

import numpy as np
from scipy.linalg import null_space
from scipy.spatial import cKDTree

from sampleframe.errors import InfeasibleDesignError

logger = logging.getLogger("sampleframe.sampling.cube")

EPS = 1e-10

# Rebuild the neighbour tree once fewer than this share of its points are
# still undecided.
REBUILD_RATIO = 0.5


def target_sample_size(
    population_size: int, scale_factor: float, area_divisor: float = 16.0
) -> int:
    """Sample size n = round(N / area_divisor * scale_factor).

    ``area_divisor`` converts a pixel count into reference area units.
    Rounding is half-to-even.
    """
    if area_divisor <= 0:
        raise InfeasibleDesignError("Area divisor must be greater than 0")
    return int(round(population_size / area_divisor * scale_factor))


def inclusion_probabilities(population_size: int, sample_size: int) -> np.ndarray:
    """Equal inclusion probabilities n / N.

    Raises:
        InfeasibleDesignError: If n < 1 or n > N
    """
    if population_size < 1:
        raise InfeasibleDesignError(
            "Population is empty", population_size, sample_size
        )
    if sample_size < 1:
        raise InfeasibleDesignError(
            "Sample size must be at least 1; increase the scale factor or relax the ROI thresholds",
            population_size,
            sample_size,
        )
    if sample_size > population_size:
        raise InfeasibleDesignError(
            "Sample size exceeds the number of candidate cells",
            population_size,
            sample_size,
        )
    return np.full(population_size, sample_size / population_size, dtype=float)


def balancing_matrix(prob: np.ndarray, x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Balancing variables (pi, x, y), one row per population unit."""
    return np.column_stack([prob, x, y]).astype(float)


def check_design(prob: np.ndarray, balance: np.ndarray) -> None:
    """Validate inclusion probabilities and balancing matrix.

    Redundant balancing columns (fewer than three candidates, or candidates
    on a single row or column) only remove constraints, so they are logged
    and sampling proceeds.

    Raises:
        InfeasibleDesignError: On malformed or non-finite input
    """
    if prob.ndim != 1:
        raise InfeasibleDesignError("Inclusion probabilities must be a vector")
    n_units = prob.shape[0]
    if n_units == 0:
        raise InfeasibleDesignError("Population is empty", 0)
    if balance.ndim != 2 or balance.shape[0] != n_units:
        raise InfeasibleDesignError(
            f"Balancing matrix shape {balance.shape} does not match {n_units} units"
        )
    if not np.all(np.isfinite(prob)):
        raise InfeasibleDesignError("Inclusion probabilities contain non-finite values")
    if np.any(prob <= 0) or np.any(prob > 1):
        raise InfeasibleDesignError("Inclusion probabilities must lie in (0, 1]")
    if not np.all(np.isfinite(balance)):
        raise InfeasibleDesignError("Balancing matrix contains non-finite values")

    norms = np.linalg.norm(balance, axis=0)
    if np.any(norms == 0):
        raise InfeasibleDesignError("Balancing matrix has an all-zero column")
    rank = np.linalg.matrix_rank(balance / norms)
    if rank < balance.shape[1]:
        logger.warning(
            f"Balancing matrix has rank {rank} for {balance.shape[1]} columns "
            f"(N={n_units}); redundant constraints are ignored"
        )


class _UndecidedPool:
    """Set of undecided units with O(1) removal and random draw."""

    def __init__(self, p: np.ndarray, eps: float):
        self.items: List[int] = np.flatnonzero((p > eps) & (p < 1 - eps)).tolist()
        self.pos = np.full(p.shape[0], -1, dtype=np.int64)
        self.pos[self.items] = np.arange(len(self.items))

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, unit: int) -> bool:
        return self.pos[unit] >= 0

    def draw(self, rng: np.random.Generator) -> int:
        return self.items[int(rng.integers(len(self.items)))]

    def discard(self, unit: int) -> None:
        i = self.pos[unit]
        if i < 0:
            return
        last = self.items.pop()
        if last != unit:
            self.items[i] = last
            self.pos[last] = i
        self.pos[unit] = -1


class _NeighbourSearch:
    """Nearest undecided neighbours in spread space."""

    def __init__(self, spread: np.ndarray, pool: _UndecidedPool):
        self.spread = spread
        self.rebuild(pool)

    def rebuild(self, pool: _UndecidedPool) -> None:
        self.ids = np.array(sorted(pool.items), dtype=np.int64)
        self.tree = cKDTree(self.spread[self.ids]) if self.ids.size else None

    def nearest(self, unit: int, k: int, pool: _UndecidedPool) -> List[int]:
        if len(pool) < REBUILD_RATIO * self.ids.size:
            self.rebuild(pool)

        n_query = k + 1
        while True:
            n_query = min(n_query, self.ids.size)
            _, found = self.tree.query(self.spread[unit], k=n_query)
            found = np.atleast_1d(found)
            candidates = [
                int(g) for g in self.ids[found] if g != unit and g in pool
            ]
            if len(candidates) >= k:
                return candidates[:k]
            if n_query >= self.ids.size:
                self.rebuild(pool)
                n_query = k + 1
                continue
            n_query *= 2


def _direction(amat: np.ndarray, group: List[int]) -> np.ndarray:
    """Unit vector u with amat[group].T @ u == 0."""
    if amat.shape[1] == 0:
        return np.ones(len(group))
    basis = null_space(amat[group].T)
    return basis[:, 0]


def _step_lengths(p: np.ndarray, u: np.ndarray):
    """Largest steps along +u and -u keeping p inside [0, 1]."""
    up = u > EPS
    down = u < -EPS
    with np.errstate(divide="ignore"):
        plus = np.concatenate([(1 - p[up]) / u[up], p[down] / -u[down]])
        minus = np.concatenate([p[up] / u[up], (1 - p[down]) / -u[down]])
    return plus.min(), minus.min()


def _flight(
    p: np.ndarray,
    amat: np.ndarray,
    pool: _UndecidedPool,
    neighbours: _NeighbourSearch,
    rng: np.random.Generator,
    eps: float,
) -> int:
    """Run the flight phase for the columns of ``amat``; return step count."""
    q = amat.shape[1]
    steps = 0
    while len(pool) >= q + 1:
        unit = pool.draw(rng)
        group = [unit] + (neighbours.nearest(unit, q, pool) if q else [])

        u = _direction(amat, group)
        pg = p[group]
        lam_plus, lam_minus = _step_lengths(pg, u)
        if rng.random() * (lam_plus + lam_minus) < lam_minus:
            pg = pg + lam_plus * u
        else:
            pg = pg - lam_minus * u

        pg = np.clip(pg, 0.0, 1.0)
        pg[pg < eps] = 0.0
        pg[pg > 1 - eps] = 1.0
        p[group] = pg
        for g, value in zip(group, pg):
            if value == 0.0 or value == 1.0:
                pool.discard(g)
        steps += 1
    return steps


def cube_sample(
    prob: np.ndarray,
    balance: np.ndarray,
    spread: Optional[np.ndarray] = None,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
    eps: float = EPS,
) -> np.ndarray:
    """Select a balanced, spatially spread sample with the local cube method.

    Args:
        prob: Inclusion probabilities, shape (N,), values in (0, 1]
        balance: Balancing variables, shape (N, q). Columns are relaxed from
            last to first during landing, so put the most important ones first
        spread: Coordinates used to find neighbours, shape (N, d). Defaults to
            the balancing columns after the first one
        rng: Random generator; created from ``seed`` when omitted
        seed: Seed for a new generator when ``rng`` is None
        eps: Tolerance under which a probability counts as decided

    Returns:
        Sorted indices of the selected units

    Raises:
        InfeasibleDesignError: If the design is malformed
    """
    prob = np.asarray(prob, dtype=float)
    balance = np.asarray(balance, dtype=float)
    if balance.ndim == 1:
        balance = balance[:, None]
    check_design(prob, balance)

    n_units = prob.shape[0]
    if spread is None:
        spread = balance[:, 1:] if balance.shape[1] > 1 else np.arange(n_units)
    spread = np.asarray(spread, dtype=float).reshape(n_units, -1)
    if not np.all(np.isfinite(spread)):
        raise InfeasibleDesignError("Spread coordinates contain non-finite values")

    if rng is None:
        rng = np.random.default_rng(seed)

    p = prob.copy()
    p[p > 1 - eps] = 1.0
    amat = balance / prob[:, None]

    pool = _UndecidedPool(p, eps)
    neighbours = _NeighbourSearch(spread, pool)
    logger.debug(
        f"Cube method: N={n_units}, expected n={prob.sum():.2f}, "
        f"{balance.shape[1]} balancing variables"
    )

    for q in range(amat.shape[1], -1, -1):
        if not len(pool):
            break
        steps = _flight(p, amat[:, :q], pool, neighbours, rng, eps)
        if q == amat.shape[1]:
            logger.debug(f"Flight phase: {steps} steps, {len(pool)} units undecided")
        elif steps:
            logger.debug(f"Landing with {q} constraints: {steps} steps")

    selected = np.flatnonzero(p == 1.0)
    logger.info(f"Cube method selected {selected.size} of {n_units} units")
    return selected
