"""
Run a schedule and cost risk simulation for a project and archive the result.

Usage:
python -m schedule_risk_internal.monte_carlo.service

Runs a demo project and prints the archived record as JSON.

Flow of one run: look up the project (NotFound aborts before any work),
assemble the stochastic variables, run the trials, aggregate statistics,
rank the sensitivity drivers and archive one immutable record.
"""
import json
import logging
import threading
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any, Callable, Dict, Iterable, Optional, Protocol, Tuple

from pydantic import BaseModel, Field, ValidationError

from schedule_risk_api.generate_simulation_id import generate_simulation_id
from schedule_risk_internal.monte_carlo.aggregation import StatisticsAggregator
from schedule_risk_internal.monte_carlo.config import (
    DEFAULT_CONFIDENCE_LEVEL,
    NUM_RUNS,
    SimulationSettings,
    get_settings,
)
from schedule_risk_internal.monte_carlo.exceptions import InvalidInputError, MonteCarloError, ProjectNotFoundError
from schedule_risk_internal.monte_carlo.inputs import ProjectRecord, ProjectTask, RiskEntry, assemble_project_variables
from schedule_risk_internal.monte_carlo.outputs import OutputFormatter, SimulationResult
from schedule_risk_internal.monte_carlo.sensitivity import SensitivityAnalyzer, SensitivityDriver
from schedule_risk_internal.monte_carlo.simulation import MonteCarloSimulation
from schedule_risk_internal.monte_carlo.store import SimulationStore, get_simulation_store
from schedule_risk_internal.monte_carlo.variables import StochasticVariable

logger = logging.getLogger(__name__)


class SimulationRequest(BaseModel):
    project_id: str = Field(
        ...,
        min_length=1,
        description="Project whose tasks and risk register feed the simulation.",
    )
    requested_by_user_id: str = Field(
        ...,
        min_length=1,
        description="User recorded as run_by on the archived simulation.",
    )
    iterations: int = Field(
        default=NUM_RUNS,
        gt=0,
        description="Number of independent trials to run.",
    )
    confidence_level: float = Field(
        default=DEFAULT_CONFIDENCE_LEVEL,
        gt=0,
        lt=1,
        description="Recorded with the run for reporting. The computation does not use it.",
    )


@dataclass(frozen=True)
class SimulationRecord:
    """One archived simulation run. Never updated after it is created."""
    simulation_id: str
    project_id: str
    name: str
    description: str
    iterations: int
    confidence_level: float
    run_at: datetime
    run_by: str
    inputs: Tuple[StochasticVariable, ...]
    result: SimulationResult
    duration_sensitivity: Tuple[SensitivityDriver, ...] = ()
    cost_sensitivity: Tuple[SensitivityDriver, ...] = ()

    def summary(self) -> str:
        return OutputFormatter.summarize(self.result)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.simulation_id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "iterations": self.iterations,
            "confidence_level": self.confidence_level,
            "run_at": self.run_at.isoformat(),
            "run_by": self.run_by,
            "inputs": [variable.to_dict() for variable in self.inputs],
            "results": self.result.to_dict(),
            "duration_sensitivity": [driver.to_dict() for driver in self.duration_sensitivity],
            "cost_sensitivity": [driver.to_dict() for driver in self.cost_sensitivity],
        }


class ProjectSource(Protocol):
    def get_project(self, project_id: str) -> Optional[ProjectRecord]:
        ...


class InMemoryProjectSource:
    """ProjectSource backed by a dict, for tests and the demo entry point."""

    def __init__(self, projects: Iterable[ProjectRecord] = ()):
        self._projects = {project.project_id: project for project in projects}

    def add(self, project: ProjectRecord) -> None:
        self._projects[project.project_id] = project

    def get_project(self, project_id: str) -> Optional[ProjectRecord]:
        return self._projects.get(project_id)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class MonteCarloService:
    def __init__(
        self,
        projects: ProjectSource,
        store: Optional[SimulationStore] = None,
        settings: Optional[SimulationSettings] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.projects = projects
        self.store = store if store is not None else get_simulation_store()
        self.settings = settings or get_settings()
        self.clock = clock

    def run_simulation(
        self,
        project_id: str,
        requested_by_user_id: str,
        iterations: Optional[int] = None,
        confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
        random_seed: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SimulationRecord:
        """
        Run and archive a simulation for one project.

        Args:
            project_id: Project to simulate.
            requested_by_user_id: User recorded as run_by.
            iterations: Number of trials (default: settings.num_runs, 10,000 unless
                SCHEDULE_RISK_NUM_RUNS overrides it).
            confidence_level: Recorded only (default 0.95).
            random_seed: Seed for a reproducible run (default from settings).
            cancel_event: Cooperative cancellation, checked between trial chunks.

        Returns:
            The archived SimulationRecord.

        Raises:
            InvalidInputError: Invalid request parameters or stochastic variables.
            ProjectNotFoundError: The project does not exist.
            SimulationCancelledError: cancel_event was set during the run.
        """
        try:
            request = SimulationRequest(
                project_id=project_id,
                requested_by_user_id=requested_by_user_id,
                iterations=iterations if iterations is not None else self.settings.num_runs,
                confidence_level=confidence_level,
            )
        except ValidationError as e:
            raise InvalidInputError(f"Invalid simulation request: {e}") from e

        project = self.projects.get_project(request.project_id)
        if project is None:
            raise ProjectNotFoundError(request.project_id)

        seed = random_seed if random_seed is not None else self.settings.random_seed
        try:
            variables = assemble_project_variables(project, self.settings)
            simulation = MonteCarloSimulation(
                num_runs=request.iterations,
                random_seed=seed,
                settings=self.settings,
            )
            trials = simulation.run(variables, baseline_cost=project.baseline_cost, cancel_event=cancel_event)
            result = StatisticsAggregator(self.settings).aggregate(trials, project.start_date)
            analyzer = SensitivityAnalyzer(top_n=self.settings.top_n_drivers)
            duration_sensitivity = analyzer.analyze(trials, output="duration")
            cost_sensitivity = analyzer.analyze(trials, output="cost")
        except MonteCarloError as e:
            logger.error(f"Monte Carlo simulation failed for project {request.project_id}: {e}", exc_info=True)
            raise

        run_at = self.clock()
        record = SimulationRecord(
            simulation_id=generate_simulation_id(),
            project_id=request.project_id,
            name=f"Simulation {run_at.isoformat()}",
            description=f"Monte Carlo simulation with {request.iterations} iterations",
            iterations=request.iterations,
            confidence_level=request.confidence_level,
            run_at=run_at,
            run_by=request.requested_by_user_id,
            inputs=tuple(variables),
            result=result,
            duration_sensitivity=tuple(duration_sensitivity),
            cost_sensitivity=tuple(cost_sensitivity),
        )
        self.store.save(record)
        logger.info(
            "Simulation %s for project %s: expected duration %s days, expected cost %s",
            record.simulation_id,
            record.project_id,
            result.expected_duration,
            result.expected_cost,
        )
        return record

    def get_simulation_results(self, simulation_id: str) -> SimulationRecord:
        return self.store.get(simulation_id)

    def get_project_simulations(self, project_id: str):
        """Archived runs of a project, newest first."""
        return self.store.list_for_project(project_id)


def _demo_project() -> ProjectRecord:
    return ProjectRecord(
        project_id="demo-project",
        name="Two-storey terrace house, Shah Alam",
        start_date=date(2025, 1, 6),
        estimated_budget=850000,
        tasks=[
            ProjectTask("Site clearing", 120),
            ProjectTask("Piling", 480),
            ProjectTask("Superstructure", 1440),
            ProjectTask("MEP installation", 720),
            ProjectTask("Finishes", 960),
            ProjectTask("Landscaping", None),
        ],
        risks=[
            RiskEntry("Monsoon flooding", probability=0.4, impact=4),
            RiskEntry("Steel price increase", probability=0.3, impact=3),
            RiskEntry("Authority approval delay", probability=0.2, impact=2),
        ],
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    service = MonteCarloService(InMemoryProjectSource([_demo_project()]), store=SimulationStore())
    record = service.run_simulation("demo-project", "demo-user", random_seed=42)
    print(json.dumps(record.to_dict(), indent=2))
    print(record.summary())
