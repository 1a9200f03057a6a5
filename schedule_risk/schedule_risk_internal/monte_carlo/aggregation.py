"""
PURPOSE: Reduce a set of trial outcomes to a SimulationResult.

RESPONSIBILITIES:
- Mean, extrema and population standard deviation of duration and cost
- Nearest-rank percentile ladder (no interpolation)
- Cumulative probability curves over duration (as calendar dates) and cost
- Histograms and per-task criticality frequency
- Pure function of the trial set: the same input always gives the same output
"""

import logging
import math
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple, Union

import numpy as np

from schedule_risk_internal.monte_carlo.config import SimulationSettings
from schedule_risk_internal.monte_carlo.exceptions import InvalidInputError
from schedule_risk_internal.monte_carlo.outputs import (
    CompletionProbability,
    CostProbability,
    HistogramBin,
    SimulationResult,
)
from schedule_risk_internal.monte_carlo.simulation import TrialSet

logger = logging.getLogger(__name__)


def round_half_up(value: float, digits: int = 0) -> Union[int, float]:
    """Round halves upward (2.5 -> 3, -2.5 -> -2). Returns an int when digits is 0."""
    if digits == 0:
        return int(math.floor(value + 0.5))
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def nearest_rank_percentile(sorted_values: np.ndarray, percentile: float) -> float:
    """
    Nearest-rank percentile of ascending values.

    index = ceil(p / 100 * N) - 1, clamped to [0, N - 1].
    """
    n = len(sorted_values)
    if n == 0:
        raise InvalidInputError("percentile of an empty set is undefined")
    index = math.ceil(percentile * n / 100) - 1
    index = min(max(index, 0), n - 1)
    return float(sorted_values[index])


def population_std(values: np.ndarray) -> float:
    """Standard deviation dividing by N, not N - 1."""
    if len(values) == 0:
        raise InvalidInputError("standard deviation of an empty set is undefined")
    return float(np.std(values, ddof=0))


def cumulative_curve(sorted_values: np.ndarray, bins: int, digits: int) -> List[Tuple[float, float]]:
    """
    Cumulative probability at bins + 1 equal-width edges from min to max.

    Returns:
        list of (edge, share of values <= edge rounded to `digits`)
    """
    n = len(sorted_values)
    if n == 0:
        raise InvalidInputError("cumulative curve of an empty set is undefined")
    edges = np.linspace(sorted_values[0], sorted_values[-1], bins + 1)
    counts = np.searchsorted(sorted_values, edges, side="right")
    return [(float(edge), round_half_up(count / n, digits)) for edge, count in zip(edges, counts)]


def histogram(values: np.ndarray, bins: int, digits: int) -> List[HistogramBin]:
    n = len(values)
    if n == 0:
        return []
    low = float(np.min(values))
    high = float(np.max(values))
    if low == high:
        return [HistogramBin(start=low, end=high, frequency=n, probability=1.0)]
    counts, edges = np.histogram(values, bins=bins, range=(low, high))
    return [
        HistogramBin(
            start=float(edges[i]),
            end=float(edges[i + 1]),
            frequency=int(counts[i]),
            probability=round_half_up(counts[i] / n, digits),
        )
        for i in range(len(counts))
    ]


def _percentile_key(percentile) -> str:
    return f"p{percentile:g}"


class StatisticsAggregator:
    """Builds the SimulationResult for a finished trial set."""

    def __init__(self, settings: Optional[SimulationSettings] = None):
        self.settings = settings or SimulationSettings()

    def aggregate(self, trials: TrialSet, project_start: Union[date, datetime]) -> SimulationResult:
        """
        Summarize all trials.

        Args:
            trials: Outcomes from the trial runner.
            project_start: Day zero for mapping durations onto calendar dates.

        Returns:
            SimulationResult with integer-rounded headline figures.

        Raises:
            InvalidInputError: If the trial set is empty.
        """
        n = len(trials)
        if n == 0:
            raise InvalidInputError("cannot aggregate an empty trial set")
        if isinstance(project_start, datetime):
            project_start = project_start.date()

        settings = self.settings
        digits = settings.round_probability
        durations = np.asarray(trials.durations, dtype=float)
        costs = np.asarray(trials.costs, dtype=float)
        sorted_durations = np.sort(durations)
        sorted_costs = np.sort(costs)

        percentiles = {
            _percentile_key(p): nearest_rank_percentile(sorted_durations, p) for p in settings.percentiles
        }
        cost_percentiles = {
            _percentile_key(p): nearest_rank_percentile(sorted_costs, p) for p in settings.percentiles
        }

        completion_probabilities = tuple(
            CompletionProbability(date=project_start + timedelta(days=round_half_up(edge)), probability=probability)
            for edge, probability in cumulative_curve(sorted_durations, settings.curve_bins, digits)
        )
        cost_probabilities = tuple(
            CostProbability(cost=round_half_up(edge), probability=probability)
            for edge, probability in cumulative_curve(sorted_costs, settings.curve_bins, digits)
        )

        critical_path_probability = {
            name: round_half_up(np.count_nonzero(hits) / n, digits) for name, hits in trials.critical_hits.items()
        }

        result = SimulationResult(
            iterations=n,
            expected_duration=round_half_up(float(np.mean(durations))),
            min_duration=round_half_up(float(sorted_durations[0])),
            max_duration=round_half_up(float(sorted_durations[-1])),
            standard_deviation=round_half_up(population_std(durations)),
            median_duration=round_half_up(nearest_rank_percentile(sorted_durations, 50)),
            expected_cost=round_half_up(float(np.mean(costs))),
            min_cost=round_half_up(float(sorted_costs[0])),
            max_cost=round_half_up(float(sorted_costs[-1])),
            cost_standard_deviation=round_half_up(population_std(costs)),
            percentiles=percentiles,
            cost_percentiles=cost_percentiles,
            completion_probabilities=completion_probabilities,
            cost_probabilities=cost_probabilities,
            critical_path_probability=critical_path_probability,
            duration_histogram=tuple(histogram(durations, settings.histogram_bins, digits)),
            cost_histogram=tuple(histogram(costs, settings.histogram_bins, digits)),
        )
        logger.debug(
            "Aggregated %s trials: expected duration %s days, expected cost %s",
            n,
            result.expected_duration,
            result.expected_cost,
        )
        return result
