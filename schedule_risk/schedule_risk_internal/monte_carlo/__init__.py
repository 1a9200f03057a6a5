"""
Monte Carlo simulation module for project schedule and cost risk.

PURPOSE:
    Forecast how long a construction project takes and what it costs by
    running 10,000 independent trials over its task estimates and risk
    register, then summarizing the trials as percentiles, cumulative
    probability curves and per-task criticality.

RESPONSIBILITIES:
    - Assemble stochastic variables from tasks and risks
    - Sample uniform, triangular, normal and PERT distributions
    - Run the trials (optionally in parallel chunks)
    - Aggregate statistics and rank sensitivity drivers
    - Archive one immutable record per run

SRP/DRY CHECK:
    Each submodule has a single responsibility:
    - inputs.py: Tasks and risks to stochastic variables only
    - distributions.py: Sampling from uncertainty distributions only
    - risk_events.py: Bernoulli materialization of cost risks only
    - simulation.py: Trial execution only
    - aggregation.py: Statistics over trials only
    - outputs.py: Result records and formatting only
    - sensitivity.py: Sensitivity analysis only
    - service.py: Orchestration and archiving only
"""

from .aggregation import StatisticsAggregator
from .distributions import DistributionSampler, sample_normal, sample_pert, sample_triangular, sample_uniform
from .exceptions import (
    InvalidInputError,
    MonteCarloError,
    ProjectNotFoundError,
    SimulationCancelledError,
    SimulationNotFoundError,
)
from .inputs import ProjectRecord, ProjectTask, RiskEntry, assemble_variables
from .outputs import OutputFormatter, SimulationResult
from .sensitivity import SensitivityAnalyzer, SensitivityDriver
from .service import InMemoryProjectSource, MonteCarloService, SimulationRecord
from .simulation import MonteCarloSimulation, TrialOutcome, TrialSet
from .variables import Distribution, StochasticVariable, VariableKind

__version__ = "0.1.0"

__all__ = [
    "assemble_variables",
    "sample_uniform",
    "sample_triangular",
    "sample_normal",
    "sample_pert",
    "Distribution",
    "DistributionSampler",
    "InMemoryProjectSource",
    "InvalidInputError",
    "MonteCarloError",
    "MonteCarloService",
    "MonteCarloSimulation",
    "OutputFormatter",
    "ProjectNotFoundError",
    "ProjectRecord",
    "ProjectTask",
    "RiskEntry",
    "SensitivityAnalyzer",
    "SensitivityDriver",
    "SimulationCancelledError",
    "SimulationNotFoundError",
    "SimulationRecord",
    "SimulationResult",
    "StatisticsAggregator",
    "StochasticVariable",
    "TrialOutcome",
    "TrialSet",
    "VariableKind",
]
