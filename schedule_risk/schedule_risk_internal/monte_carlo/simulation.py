"""
PURPOSE: Core Monte Carlo trial runner for project schedule and cost risk.

Runs N independent trials (default 10,000). Each trial samples every stochastic
variable once, sums task durations, adds materialized risk costs to the
baseline budget and flags which tasks overran their criticality threshold.

SINGLE RESPONSIBILITY:
- Validate the trial count and variables before any trial runs
- Execute the trials in chunks, each chunk on its own random stream
- Return the raw per-trial results (no statistics, no I/O, no formatting)

CONSTRAINTS:
- Trials are independent; chunks may run on worker threads
- A seeded run gives the same trials whatever the worker count
- Does NOT modify the variables; reads only
"""

import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

import numpy as np

from schedule_risk_internal.monte_carlo.config import NUM_RUNS, RANDOM_SEED, SimulationSettings
from schedule_risk_internal.monte_carlo.distributions import DistributionSampler
from schedule_risk_internal.monte_carlo.exceptions import InvalidInputError, SimulationCancelledError
from schedule_risk_internal.monte_carlo.risk_events import sample_portfolio_risk
from schedule_risk_internal.monte_carlo.variables import StochasticVariable, VariableKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrialOutcome:
    """One trial: total duration in days, total cost, and critical hits per duration variable."""
    duration_days: float
    total_cost: float
    critical_hits: Mapping[str, bool] = field(default_factory=dict)


@dataclass
class TrialSet:
    """
    Columnar storage for the outcomes of many trials.

    Attributes:
        durations: Duration in days, one entry per trial.
        costs: Total cost, one entry per trial.
        critical_hits: Boolean array per duration variable name.
        contributions: Per-trial realized value per variable name (hours for
            durations, materialized cost for risks). Used by sensitivity analysis.
    """
    durations: np.ndarray
    costs: np.ndarray
    critical_hits: Dict[str, np.ndarray] = field(default_factory=dict)
    contributions: Dict[str, np.ndarray] = field(default_factory=dict)

    def __len__(self) -> int:
        return int(self.durations.shape[0])

    def outcome(self, index: int) -> TrialOutcome:
        return TrialOutcome(
            duration_days=float(self.durations[index]),
            total_cost=float(self.costs[index]),
            critical_hits={name: bool(hits[index]) for name, hits in self.critical_hits.items()},
        )

    def __iter__(self) -> Iterator[TrialOutcome]:
        for index in range(len(self)):
            yield self.outcome(index)

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[TrialOutcome]) -> "TrialSet":
        outcomes = list(outcomes)
        names = []
        for outcome in outcomes:
            for name in outcome.critical_hits:
                if name not in names:
                    names.append(name)
        return cls(
            durations=np.array([o.duration_days for o in outcomes], dtype=float),
            costs=np.array([o.total_cost for o in outcomes], dtype=float),
            critical_hits={
                name: np.array([bool(o.critical_hits.get(name, False)) for o in outcomes], dtype=bool)
                for name in names
            },
        )

    @classmethod
    def concatenate(cls, parts: Sequence["TrialSet"]) -> "TrialSet":
        if not parts:
            return cls(durations=np.zeros(0), costs=np.zeros(0))
        if len(parts) == 1:
            return parts[0]
        first = parts[0]
        return cls(
            durations=np.concatenate([p.durations for p in parts]),
            costs=np.concatenate([p.costs for p in parts]),
            critical_hits={
                name: np.concatenate([p.critical_hits[name] for p in parts]) for name in first.critical_hits
            },
            contributions={
                name: np.concatenate([p.contributions[name] for p in parts]) for name in first.contributions
            },
        )


def _validate_num_runs(num_runs) -> int:
    if isinstance(num_runs, bool) or not isinstance(num_runs, (int, np.integer)):
        raise InvalidInputError(f"num_runs must be an integer, got {num_runs!r}")
    if num_runs <= 0:
        raise InvalidInputError(f"num_runs must be positive, got {num_runs}")
    return int(num_runs)


class MonteCarloSimulation:
    """
    Monte Carlo trial runner for a project's stochastic variables.

    Each trial:
    - Starts from zero duration and the baseline cost
    - Adds every duration variable's sample, flagging a critical hit when the
      sample exceeds criticality_threshold_factor * most likely
    - Adds each cost risk's sampled impact when the risk materializes
    - Converts the summed hours to days
    """

    def __init__(
        self,
        num_runs=NUM_RUNS,
        random_seed=RANDOM_SEED,
        settings: Optional[SimulationSettings] = None,
        num_workers: Optional[int] = None,
        chunk_size: Optional[int] = None,
    ):
        """
        Initialize the trial runner.

        Args:
            num_runs: Number of trials (default 10,000). Validated when run() is called.
            random_seed: Seed for reproducibility (None = fresh entropy).
            settings: Criticality factor, hours per day, risk materialization rate.
            num_workers: Threads running chunks (default from settings).
            chunk_size: Trials per random stream (default from settings).
        """
        self.settings = settings or SimulationSettings()
        self.num_runs = num_runs
        self.random_seed = random_seed
        self.num_workers = num_workers if num_workers is not None else self.settings.num_workers
        self.chunk_size = chunk_size if chunk_size is not None else self.settings.chunk_size
        if self.num_workers <= 0:
            raise InvalidInputError(f"num_workers must be positive, got {self.num_workers}")
        if self.chunk_size <= 0:
            raise InvalidInputError(f"chunk_size must be positive, got {self.chunk_size}")

    def run(
        self,
        variables: Sequence[StochasticVariable],
        baseline_cost: float = 0.0,
        cancel_event: Optional[threading.Event] = None,
    ) -> TrialSet:
        """
        Execute all trials.

        Args:
            variables: Duration and cost-risk variables from the input assembler.
            baseline_cost: Planned budget every trial's cost starts from.
            cancel_event: Checked between chunks; when set the run stops with
                SimulationCancelledError and no partial result.

        Returns:
            TrialSet with one entry per trial.

        Raises:
            InvalidInputError: Non-positive trial count, invalid variable or baseline.
            SimulationCancelledError: cancel_event was set before the run finished.
        """
        num_runs = _validate_num_runs(self.num_runs)
        if baseline_cost is None:
            baseline_cost = 0.0
        if not math.isfinite(baseline_cost):
            raise InvalidInputError(f"baseline_cost must be finite, got {baseline_cost!r}")
        variables = list(variables)
        for variable in variables:
            variable.validate()

        chunk_sizes = self._chunk_sizes(num_runs)
        streams = np.random.SeedSequence(self.random_seed).spawn(len(chunk_sizes))
        workers = min(self.num_workers, len(chunk_sizes))

        logger.info(
            "Running %s trials over %s variables in %s chunks with %s workers",
            num_runs,
            len(variables),
            len(chunk_sizes),
            workers,
        )
        start_time = time.perf_counter()

        if workers == 1:
            parts = []
            for size, stream in zip(chunk_sizes, streams):
                self._raise_if_cancelled(cancel_event, sum(len(p) for p in parts), num_runs)
                parts.append(self._run_chunk(variables, baseline_cost, size, stream))
        else:
            parts = self._run_parallel(variables, baseline_cost, chunk_sizes, streams, workers, cancel_event, num_runs)

        trials = TrialSet.concatenate(parts)
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(f"Completed {len(trials)} trials in {duration_ms:.1f} ms")
        return trials

    def _run_parallel(self, variables, baseline_cost, chunk_sizes, streams, workers, cancel_event, num_runs) -> List[TrialSet]:
        def job(size, stream):
            if cancel_event is not None and cancel_event.is_set():
                return None
            return self._run_chunk(variables, baseline_cost, size, stream)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(job, size, stream) for size, stream in zip(chunk_sizes, streams)]
            parts = [future.result() for future in futures]

        if any(part is None for part in parts):
            completed = sum(len(part) for part in parts if part is not None)
            raise SimulationCancelledError(completed, num_runs)
        return parts

    @staticmethod
    def _raise_if_cancelled(cancel_event, completed: int, requested: int) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise SimulationCancelledError(completed, requested)

    def _chunk_sizes(self, num_runs: int) -> List[int]:
        full, remainder = divmod(num_runs, self.chunk_size)
        sizes = [self.chunk_size] * full
        if remainder:
            sizes.append(remainder)
        return sizes

    def _run_chunk(
        self,
        variables: Sequence[StochasticVariable],
        baseline_cost: float,
        size: int,
        stream: np.random.SeedSequence,
    ) -> TrialSet:
        """Run `size` trials on a private random stream."""
        sampler = DistributionSampler(
            np.random.default_rng(stream), clamp_normal=self.settings.clamp_normal_to_bounds
        )
        factor = self.settings.criticality_threshold_factor

        total_hours = np.zeros(size)
        critical_hits = {}
        contributions = {}
        for variable in variables:
            if variable.kind != VariableKind.DURATION:
                continue
            samples = sampler.sample(variable, size=size)
            total_hours += samples
            critical_hits[variable.name] = samples > variable.criticality_threshold(factor)
            contributions[variable.name] = samples

        risks = [v for v in variables if v.kind == VariableKind.COST_RISK]
        added_cost, per_risk = sample_portfolio_risk(risks, sampler, size, self.settings)
        contributions.update(per_risk)

        return TrialSet(
            durations=total_hours / self.settings.hours_per_day,
            costs=np.full(size, float(baseline_cost)) + added_cost,
            critical_hits=critical_hits,
            contributions=contributions,
        )
