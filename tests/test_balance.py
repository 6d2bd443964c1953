"""Tests for balance diagnostics."""

import math

import numpy as np
import pytest
from rasterio.transform import from_origin

from sampleframe.scripts.balance import balance_summary, nearest_neighbour_distance
from sampleframe.scripts.frame import extract_sample_frame


@pytest.fixture
def frame():
    return extract_sample_frame(np.ones((4, 4), dtype=bool), from_origin(0.0, 40.0, 10.0, 10.0))


def test_corner_sample_is_balanced(frame) -> None:
    # Cells (0, 0), (0, 3), (3, 0), (3, 3)
    summary = balance_summary(frame, [0, 3, 12, 15])
    assert list(summary.index) == ["x", "y"]
    assert summary.loc["x", "population_mean"] == pytest.approx(20.0)
    assert summary.loc["y", "population_mean"] == pytest.approx(20.0)
    np.testing.assert_allclose(summary["relative_bias"], 0.0, atol=1e-12)


def test_one_sided_sample_is_biased(frame) -> None:
    summary = balance_summary(frame, [0, 1, 2, 3])
    assert summary.loc["x", "relative_bias"] == pytest.approx(0.0)
    assert summary.loc["y", "relative_bias"] > 1.0


def test_nearest_neighbour_distance(frame) -> None:
    assert nearest_neighbour_distance(frame, [0, 3, 12, 15]) == pytest.approx(30.0)
    assert math.isnan(nearest_neighbour_distance(frame, [5]))
