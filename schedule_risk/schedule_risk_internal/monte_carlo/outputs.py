"""
PURPOSE: Result records for a Monte Carlo run and their human-readable summary.

This module holds the immutable SimulationResult produced by the statistics
aggregator, its JSON-ready form, and a plain English narrative of the key
figures (median and P90 finish, expected cost, most critical tasks).

SRP/DRY: Single responsibility = result structure and formatting.
         No simulation, no statistics computation.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Tuple


@dataclass(frozen=True)
class CompletionProbability:
    """Probability of finishing on or before a calendar date."""
    date: date
    probability: float

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date.isoformat(), "probability": self.probability}


@dataclass(frozen=True)
class CostProbability:
    """Probability of the total cost staying at or below a value."""
    cost: int
    probability: float

    def to_dict(self) -> Dict[str, Any]:
        return {"cost": self.cost, "probability": self.probability}


@dataclass(frozen=True)
class HistogramBin:
    start: float
    end: float
    frequency: int
    probability: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "frequency": self.frequency,
            "probability": self.probability,
        }


@dataclass(frozen=True)
class SimulationResult:
    """
    Aggregate forecast of one simulation run.

    Attributes:
        iterations (int): Number of trials aggregated.
        expected_duration (int): Mean duration in days, rounded.
        min_duration (int), max_duration (int): Trial extrema in days, rounded.
        standard_deviation (int): Population standard deviation of duration, rounded.
        median_duration (int): P50 duration, rounded.
        expected_cost (int), min_cost (int), max_cost (int): Cost figures, rounded.
        cost_standard_deviation (int): Population standard deviation of cost, rounded.
        percentiles (dict): Nearest-rank duration ladder keyed "p10" .. "p99", unrounded.
        cost_percentiles (dict): Nearest-rank cost ladder, unrounded.
        completion_probabilities (tuple): Cumulative curve over duration, as dates.
        cost_probabilities (tuple): Cumulative curve over cost.
        critical_path_probability (dict): Fraction of trials each task overran its threshold.
        duration_histogram (tuple), cost_histogram (tuple): Frequency bins.
    """
    iterations: int
    expected_duration: int
    min_duration: int
    max_duration: int
    standard_deviation: int
    median_duration: int
    expected_cost: int
    min_cost: int
    max_cost: int
    cost_standard_deviation: int
    percentiles: Mapping[str, float]
    cost_percentiles: Mapping[str, float]
    completion_probabilities: Tuple[CompletionProbability, ...]
    cost_probabilities: Tuple[CostProbability, ...]
    critical_path_probability: Mapping[str, float]
    duration_histogram: Tuple[HistogramBin, ...] = field(default_factory=tuple)
    cost_histogram: Tuple[HistogramBin, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Convert results to dictionary for JSON serialization."""
        return {
            "iterations": self.iterations,
            "expected_duration": self.expected_duration,
            "min_duration": self.min_duration,
            "max_duration": self.max_duration,
            "standard_deviation": self.standard_deviation,
            "median_duration": self.median_duration,
            "expected_cost": self.expected_cost,
            "min_cost": self.min_cost,
            "max_cost": self.max_cost,
            "cost_standard_deviation": self.cost_standard_deviation,
            "percentiles": dict(self.percentiles),
            "cost_percentiles": dict(self.cost_percentiles),
            "completion_probabilities": [p.to_dict() for p in self.completion_probabilities],
            "cost_probabilities": [p.to_dict() for p in self.cost_probabilities],
            "critical_path_probability": dict(self.critical_path_probability),
            "duration_histogram": [b.to_dict() for b in self.duration_histogram],
            "cost_histogram": [b.to_dict() for b in self.cost_histogram],
        }


class OutputFormatter:
    """Formats a SimulationResult into short summaries for reports."""

    @staticmethod
    def most_critical(result: SimulationResult, top_n: int = 3) -> List[Tuple[str, float]]:
        """Tasks ordered by how often they overran, ties broken by name."""
        ranked = sorted(result.critical_path_probability.items(), key=lambda item: (-item[1], item[0]))
        return [item for item in ranked[:top_n] if item[1] > 0]

    @staticmethod
    def completion_date_at(result: SimulationResult, probability: float):
        """Earliest curve date whose cumulative probability reaches `probability`, else None."""
        for point in result.completion_probabilities:
            if point.probability >= probability:
                return point.date
        return None

    @staticmethod
    def summarize(result: SimulationResult, currency: str = "RM") -> str:
        """
        Generate a plain English summary of key findings.

        Args:
            result: Aggregated simulation result.
            currency: Currency label for cost figures.

        Returns:
            Plain English narrative string.
        """
        p50 = result.percentiles.get("p50")
        p90 = result.percentiles.get("p90")
        narrative = f"{result.iterations} trials. "
        narrative += f"Expected duration: {result.expected_duration} days "
        narrative += f"(range {result.min_duration}-{result.max_duration}, std dev {result.standard_deviation}). "
        if p50 is not None and p90 is not None:
            narrative += f"P50: {p50:.1f} days, P90: {p90:.1f} days. "
        narrative += f"Expected cost: {currency} {result.expected_cost:,} "
        narrative += f"(range {currency} {result.min_cost:,}-{result.max_cost:,}). "

        critical = OutputFormatter.most_critical(result)
        if critical:
            listed = ", ".join(f"{name} ({share:.0%})" for name, share in critical)
            narrative += f"Most critical: {listed}."
        else:
            narrative += "No task exceeded its criticality threshold."
        return narrative
