"""
PURPOSE: The stochastic variable model fed into every simulation trial.

A StochasticVariable is built once per run from a task estimate or a risk
register entry, never mutated, and kept afterwards only as an audit record.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from schedule_risk_internal.monte_carlo.exceptions import InvalidInputError


class VariableKind(str, Enum):
    DURATION = "duration"
    COST_RISK = "risk"


class Distribution(str, Enum):
    UNIFORM = "uniform"
    TRIANGULAR = "triangular"
    NORMAL = "normal"
    PERT = "pert"


_BOUNDED_DISTRIBUTIONS = (Distribution.UNIFORM, Distribution.TRIANGULAR, Distribution.PERT)


@dataclass(frozen=True)
class StochasticVariable:
    """
    One uncertain quantity sampled once per trial.

    Attributes:
        name: Human-readable label, e.g. "Task Piling Duration" or "Risk: Flood".
        kind: How the sampled value is aggregated into the trial totals.
        distribution: Distribution family. Unknown strings are kept as-is
            so the sampler can fall back to a deterministic value.
        min_value, max_value: Bounds, required for uniform, triangular and PERT.
        most_likely: Mode for triangular and PERT; midpoint when absent.
        mean, std_dev: Normal parameters; midpoint and range/6 when absent.
        probability: Declared probability of a cost risk (0-1).
    """
    name: str
    kind: VariableKind
    distribution: Union[Distribution, str]
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    most_likely: Optional[float] = None
    mean: Optional[float] = None
    std_dev: Optional[float] = None
    probability: Optional[float] = None

    def __post_init__(self):
        try:
            object.__setattr__(self, "kind", VariableKind(self.kind))
        except ValueError as e:
            raise InvalidInputError(f"{self.name}: unknown variable kind {self.kind!r}") from e
        if not isinstance(self.distribution, Distribution):
            try:
                object.__setattr__(self, "distribution", Distribution(str(self.distribution).lower()))
            except ValueError:
                pass

    @property
    def has_bounds(self) -> bool:
        return self.min_value is not None and self.max_value is not None

    @property
    def midpoint(self) -> Optional[float]:
        if not self.has_bounds:
            return None
        return (self.min_value + self.max_value) / 2

    @property
    def mode(self) -> Optional[float]:
        """Most likely value, or the bound midpoint when it was not supplied."""
        if self.most_likely is not None:
            return self.most_likely
        return self.midpoint

    @property
    def resolved_mean(self) -> Optional[float]:
        if self.mean is not None:
            return self.mean
        return self.midpoint

    @property
    def resolved_std_dev(self) -> Optional[float]:
        if self.std_dev is not None:
            return self.std_dev
        if not self.has_bounds:
            return None
        return (self.max_value - self.min_value) / 6

    def criticality_threshold(self, factor: float) -> float:
        mode = self.mode
        return (mode if mode is not None else 0.0) * factor

    def validate(self) -> None:
        """Reject parameters that would make sampling produce NaN or nonsense."""
        for attr in ("min_value", "max_value", "most_likely", "mean", "std_dev", "probability"):
            value = getattr(self, attr)
            if value is not None and not math.isfinite(value):
                raise InvalidInputError(f"{self.name}: {attr} must be finite, got {value!r}")

        if self.distribution in _BOUNDED_DISTRIBUTIONS and not self.has_bounds:
            raise InvalidInputError(
                f"{self.name}: {self.distribution.value} distribution requires min_value and max_value"
            )
        if self.has_bounds and self.min_value > self.max_value:
            raise InvalidInputError(
                f"{self.name}: inverted range, min_value={self.min_value} > max_value={self.max_value}"
            )
        if self.most_likely is not None and self.has_bounds:
            if not (self.min_value <= self.most_likely <= self.max_value):
                raise InvalidInputError(
                    f"{self.name}: most_likely={self.most_likely} outside [{self.min_value}, {self.max_value}]"
                )
        if self.distribution == Distribution.NORMAL:
            if self.std_dev is not None and self.std_dev < 0:
                raise InvalidInputError(f"{self.name}: std_dev must be non-negative, got {self.std_dev}")
            if self.resolved_mean is None or self.resolved_std_dev is None:
                raise InvalidInputError(
                    f"{self.name}: normal distribution requires mean and std_dev, or bounds to derive them"
                )
        if not isinstance(self.distribution, Distribution) and self.mode is None:
            raise InvalidInputError(
                f"{self.name}: unknown distribution {self.distribution!r} needs most_likely or bounds to fall back on"
            )
        if self.probability is not None and not 0 <= self.probability <= 1:
            raise InvalidInputError(f"{self.name}: probability must be in [0, 1], got {self.probability}")

    def to_dict(self) -> Dict[str, Any]:
        distribution = self.distribution.value if isinstance(self.distribution, Distribution) else self.distribution
        return {
            "variable_name": self.name,
            "variable_type": self.kind.value,
            "distribution_type": distribution,
            "min_value": self.min_value,
            "most_likely": self.most_likely,
            "max_value": self.max_value,
            "mean": self.mean,
            "standard_dev": self.std_dev,
            "probability": self.probability,
        }
