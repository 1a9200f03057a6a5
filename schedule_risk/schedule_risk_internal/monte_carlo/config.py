"""
PURPOSE: Simulation configuration and domain constants for the Monte Carlo engine.

RESPONSIBILITIES:
- Define simulation hyperparameters (number of runs, random seed, parallelism)
- Input assembly factors (task duration spread, risk impact to cost conversion)
- Risk materialization and criticality parameters
- Output shape (percentile ladder, curve bins, rounding)
- Single responsibility: configuration only, no simulation logic
"""

import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional, Tuple

from schedule_risk_internal.monte_carlo.exceptions import InvalidInputError

# Simulation Parameters
NUM_RUNS = 10000  # Standard Monte Carlo sample size
RANDOM_SEED = None  # Set to int for reproducibility, None for random
NUM_WORKERS = 1  # Threads used to run trial chunks
CHUNK_SIZE = 2500  # Trials per independent random stream

# Input Assembly
TASK_DURATION_OPTIMISTIC_FACTOR = 0.8  # 20% optimistic
TASK_DURATION_PESSIMISTIC_FACTOR = 1.5  # 50% pessimistic
RISK_IMPACT_COST_MULTIPLIER = 10000.0  # RM exposure per point on the 1-5 impact scale

# Risk Materialization
# Every risk materializes with this fixed rate, whatever its declared probability.
RISK_MATERIALIZATION_PROBABILITY = 0.3
USE_DECLARED_RISK_PROBABILITY = False

# Criticality
CRITICALITY_THRESHOLD_FACTOR = 1.2  # Critical hit when sample > 1.2 * most likely

# Units
HOURS_PER_DAY = 24

# Percentile Outputs
PERCENTILES = [10, 25, 50, 75, 90, 95, 99]

# Distribution Curves
CURVE_BINS = 20  # 21 edges
HISTOGRAM_BINS = 20

# Output Configuration
ROUND_PROBABILITY = 2  # Decimal places for probabilities
CLAMP_NORMAL_TO_BOUNDS = True
DEFAULT_CONFIDENCE_LEVEL = 0.95  # Recorded with each run, not used by the computation

# Sensitivity Analysis (Tornado Chart)
TOP_N_DRIVERS = 5

ENV_PREFIX = "SCHEDULE_RISK_"


@dataclass(frozen=True)
class SimulationSettings:
    """Resolved configuration for one simulation run."""
    num_runs: int = NUM_RUNS
    random_seed: Optional[int] = RANDOM_SEED
    num_workers: int = NUM_WORKERS
    chunk_size: int = CHUNK_SIZE
    task_duration_optimistic_factor: float = TASK_DURATION_OPTIMISTIC_FACTOR
    task_duration_pessimistic_factor: float = TASK_DURATION_PESSIMISTIC_FACTOR
    risk_impact_cost_multiplier: float = RISK_IMPACT_COST_MULTIPLIER
    risk_materialization_probability: float = RISK_MATERIALIZATION_PROBABILITY
    use_declared_risk_probability: bool = USE_DECLARED_RISK_PROBABILITY
    criticality_threshold_factor: float = CRITICALITY_THRESHOLD_FACTOR
    hours_per_day: float = HOURS_PER_DAY
    percentiles: Tuple[int, ...] = field(default_factory=lambda: tuple(PERCENTILES))
    curve_bins: int = CURVE_BINS
    histogram_bins: int = HISTOGRAM_BINS
    round_probability: int = ROUND_PROBABILITY
    clamp_normal_to_bounds: bool = CLAMP_NORMAL_TO_BOUNDS
    top_n_drivers: int = TOP_N_DRIVERS

    def __post_init__(self):
        if self.num_runs <= 0:
            raise InvalidInputError(f"num_runs must be positive, got {self.num_runs}")
        if self.num_workers <= 0:
            raise InvalidInputError(f"num_workers must be positive, got {self.num_workers}")
        if self.chunk_size <= 0:
            raise InvalidInputError(f"chunk_size must be positive, got {self.chunk_size}")
        if not 0 <= self.risk_materialization_probability <= 1:
            raise InvalidInputError(
                f"risk_materialization_probability must be in [0, 1], got {self.risk_materialization_probability}"
            )
        if self.hours_per_day <= 0:
            raise InvalidInputError(f"hours_per_day must be positive, got {self.hours_per_day}")
        if self.curve_bins <= 0 or self.histogram_bins <= 0:
            raise InvalidInputError("curve_bins and histogram_bins must be positive")
        if any(not 0 < p <= 100 for p in self.percentiles):
            raise InvalidInputError(f"percentiles must be in (0, 100], got {self.percentiles}")

    def with_overrides(self, **changes) -> "SimulationSettings":
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SimulationSettings":
        """
        Build settings from SCHEDULE_RISK_* environment variables.

        Unset variables keep the module defaults. Example: SCHEDULE_RISK_NUM_RUNS=5000.
        """
        if environ is None:
            environ = os.environ
        overrides = {}
        for name, parser in _ENV_PARSERS.items():
            key = ENV_PREFIX + name.upper()
            raw = environ.get(key)
            if raw is None or raw.strip() == "":
                continue
            try:
                overrides[name] = parser(raw.strip())
            except ValueError as e:
                raise InvalidInputError(f"Invalid value for {key}: {raw!r}") from e
        return cls(**overrides)


def _parse_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def _parse_percentiles(raw: str) -> Tuple[int, ...]:
    return tuple(int(part) for part in raw.split(",") if part.strip())


_ENV_PARSERS = {
    "num_runs": int,
    "random_seed": int,
    "num_workers": int,
    "chunk_size": int,
    "task_duration_optimistic_factor": float,
    "task_duration_pessimistic_factor": float,
    "risk_impact_cost_multiplier": float,
    "risk_materialization_probability": float,
    "use_declared_risk_probability": _parse_bool,
    "criticality_threshold_factor": float,
    "hours_per_day": float,
    "percentiles": _parse_percentiles,
    "curve_bins": int,
    "histogram_bins": int,
    "round_probability": int,
    "clamp_normal_to_bounds": _parse_bool,
    "top_n_drivers": int,
}


def get_settings() -> SimulationSettings:
    """Return settings from module defaults and the process environment."""
    return SimulationSettings.from_env()


def get_assembly_parameters(settings: Optional[SimulationSettings] = None):
    """Return the factors used to turn tasks and risks into stochastic variables."""
    settings = settings or SimulationSettings()
    return {
        "optimistic_factor": settings.task_duration_optimistic_factor,
        "pessimistic_factor": settings.task_duration_pessimistic_factor,
        "risk_impact_cost_multiplier": settings.risk_impact_cost_multiplier,
    }
