"""
PURPOSE: Tornado-style sensitivity analysis over the trials of a simulation run.

Identifies which tasks and risks drive the spread of total duration or total
cost. Each variable's per-trial realization is compared with the trial output
using Spearman rank correlation, an output swing, and a between-group share of
output variance.

SRP/DRY: Single responsibility = sensitivity analysis only.
         No result formatting, no simulation.
"""

from dataclasses import dataclass
from typing import Any, Dict, List

import numpy as np
from scipy.stats import spearmanr

from schedule_risk_internal.monte_carlo.config import TOP_N_DRIVERS
from schedule_risk_internal.monte_carlo.exceptions import InvalidInputError
from schedule_risk_internal.monte_carlo.simulation import TrialSet


@dataclass
class SensitivityDriver:
    """A single uncertainty driver and its tornado scores.

    Attributes:
        name (str): Variable name (e.g., "Task Piling Duration").
        correlation (float): Spearman rank correlation with the output [-1, 1].
        impact (float): Mean output above the driver's median minus mean output at or below it.
        variance_contribution (float): Share of output variance explained by the driver [0, 1].
        rank (int): Rank order (1 = most sensitive).
    """
    name: str
    correlation: float
    impact: float
    variance_contribution: float
    rank: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "correlation": round(self.correlation, 4),
            "impact": round(self.impact, 2),
            "variance_contribution": round(self.variance_contribution, 4),
            "rank": self.rank,
        }


class SensitivityAnalyzer:
    """
    Ranks simulation variables by their influence on duration or cost.

    Assumptions:
    - Variables are sampled independently (no correlation modelled between them).
    - Sufficient trials (typically 1000+) for stable rank correlations.
    """

    OUTPUTS = ("duration", "cost")

    def __init__(self, top_n: int = TOP_N_DRIVERS):
        self.top_n = top_n

    def analyze(self, trials: TrialSet, output: str = "duration") -> List[SensitivityDriver]:
        """
        Compute tornado scores for every variable recorded in the trial set.

        Args:
            trials: Trial set carrying per-variable contributions.
            output: "duration" or "cost".

        Returns:
            Up to top_n drivers sorted by absolute correlation (descending).

        Raises:
            InvalidInputError: If the trial set is empty or output is unknown.
        """
        if output not in self.OUTPUTS:
            raise InvalidInputError(f"output must be one of {self.OUTPUTS}, got {output!r}")
        if len(trials) == 0:
            raise InvalidInputError("trial set cannot be empty")

        output_vector = np.asarray(trials.durations if output == "duration" else trials.costs, dtype=float)
        drivers = sorted(trials.contributions)
        if not drivers:
            return []

        total_variance = float(np.var(output_vector))
        scored = []
        for name in drivers:
            values = np.asarray(trials.contributions[name], dtype=float)
            if total_variance < 1e-10 or np.ptp(values) == 0:
                # Constant output or constant driver: nothing to explain
                scored.append((name, 0.0, 0.0, 0.0))
                continue
            scored.append(
                (
                    name,
                    self._rank_correlation(values, output_vector),
                    self._swing(values, output_vector),
                    min(1.0, max(0.0, self._between_group_variance(values, output_vector) / total_variance)),
                )
            )

        scored.sort(key=lambda item: (-abs(item[1]), item[0]))
        return [
            SensitivityDriver(
                name=name,
                correlation=correlation,
                impact=impact,
                variance_contribution=variance_share,
                rank=rank,
            )
            for rank, (name, correlation, impact, variance_share) in enumerate(scored[: self.top_n], 1)
        ]

    @staticmethod
    def _rank_correlation(values: np.ndarray, output_vector: np.ndarray) -> float:
        rho, _ = spearmanr(values, output_vector)
        rho = float(rho)
        return 0.0 if np.isnan(rho) else rho

    @staticmethod
    def _swing(values: np.ndarray, output_vector: np.ndarray) -> float:
        median = np.median(values)
        high = values > median
        low = ~high
        if not np.any(high) or not np.any(low):
            return 0.0
        return float(np.mean(output_vector[high]) - np.mean(output_vector[low]))

    @staticmethod
    def _between_group_variance(values: np.ndarray, output_vector: np.ndarray) -> float:
        """
        Variance in output explained by a single driver.

        Partition trials by driver value, compute mean output per partition,
        and measure the between-group variance.
        """
        unique_vals = len(np.unique(values))
        if unique_vals > 20:
            # Likely continuous; bin into quartiles
            bins = np.unique(np.percentile(values, [0, 25, 50, 75, 100]))
            groups = np.digitize(values, bins[1:-1], right=True)
        else:
            # Discrete; use exact values as groups
            _, groups = np.unique(values, return_inverse=True)

        overall_mean = np.mean(output_vector)
        between_variance = 0.0
        for group_id in np.unique(groups):
            mask = groups == group_id
            between_variance += np.sum(mask) * (np.mean(output_vector[mask]) - overall_mean) ** 2
        return float(between_variance / len(output_vector))

    @staticmethod
    def to_tornado_rows(drivers: List[SensitivityDriver]) -> Dict[str, List]:
        """
        Convert drivers to column lists for charting or CSV export.

        Returns:
            Dictionary with keys as column names, values as lists (one per row).
        """
        return {
            "rank": [d.rank for d in drivers],
            "driver": [d.name for d in drivers],
            "correlation": [round(d.correlation, 4) for d in drivers],
            "impact": [round(d.impact, 2) for d in drivers],
            "variance_contribution": [round(d.variance_contribution, 4) for d in drivers],
        }
