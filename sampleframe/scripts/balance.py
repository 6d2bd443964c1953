import numpy as np
import pandas as pd
from scipy.spatial import cKDTree

from sampleframe.scripts.frame import SampleFrame


def balance_summary(frame: SampleFrame, indices) -> pd.DataFrame:
    """Compare sample and population means of the coordinates.

    Relative bias is (sample mean - population mean) divided by the population
    standard deviation, so it is comparable between axes.

    Returns:
        DataFrame indexed by axis with columns: population_mean, sample_mean,
        relative_bias
    """
    indices = np.asarray(indices, dtype=int)
    rows = []
    for axis, values in (("x", frame.x), ("y", frame.y)):
        population_mean = float(values.mean())
        sample_mean = float(values[indices].mean()) if indices.size else np.nan
        spread = float(values.std())
        bias = (sample_mean - population_mean) / spread if spread > 0 else 0.0
        rows.append(
            {
                "axis": axis,
                "population_mean": population_mean,
                "sample_mean": sample_mean,
                "relative_bias": bias,
            }
        )
    return pd.DataFrame(rows).set_index("axis")


def nearest_neighbour_distance(frame: SampleFrame, indices) -> float:
    """Mean distance from each sampled cell to its nearest sampled neighbour."""
    coords = frame.coordinates[np.asarray(indices, dtype=int)]
    if coords.shape[0] < 2:
        return float("nan")
    distances, _ = cKDTree(coords).query(coords, k=2)
    return float(distances[:, 1].mean())
