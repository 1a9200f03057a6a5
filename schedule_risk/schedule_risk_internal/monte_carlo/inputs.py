"""
PURPOSE: Turn a project's task estimates and risk register into stochastic variables.

RESPONSIBILITIES:
- Define the inbound project, task and risk records supplied by the caller
- Emit one triangular duration variable per task with a positive estimate
- Emit one uniform cost-risk variable per risk with positive probability and impact
- Pure function of its inputs: malformed entries are skipped, never raised
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, List, Optional

from schedule_risk_internal.monte_carlo.config import SimulationSettings, get_assembly_parameters
from schedule_risk_internal.monte_carlo.exceptions import InvalidInputError
from schedule_risk_internal.monte_carlo.variables import Distribution, StochasticVariable, VariableKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectTask:
    title: str
    estimated_hours: Optional[float] = None


@dataclass(frozen=True)
class RiskEntry:
    """A risk register entry: probability in [0, 1], impact on a 1-5 scale."""
    title: str
    probability: float
    impact: float


@dataclass(frozen=True)
class ProjectRecord:
    """The project data a simulation run reads before its trial loop."""
    project_id: str
    start_date: date
    estimated_budget: Optional[float] = None
    tasks: List[ProjectTask] = field(default_factory=list)
    risks: List[RiskEntry] = field(default_factory=list)
    name: Optional[str] = None

    @property
    def baseline_cost(self) -> float:
        """Planned budget every trial starts from. A missing budget counts as 0."""
        if self.estimated_budget is None:
            return 0.0
        try:
            return float(self.estimated_budget)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(
                f"estimated_budget of project {self.project_id!r} is not a number: {self.estimated_budget!r}"
            ) from e


def _as_positive_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number if number > 0 else None


class _NameRegistry:
    """Hands out unique names: a repeated title gets a ' (2)', ' (3)' suffix."""

    def __init__(self):
        self._seen = {}

    def claim(self, name: str) -> str:
        count = self._seen.get(name, 0) + 1
        self._seen[name] = count
        if count == 1:
            return name
        unique = f"{name} ({count})"
        while unique in self._seen:
            count += 1
            unique = f"{name} ({count})"
        self._seen[name] = count
        self._seen[unique] = 1
        return unique


def build_duration_variables(
    tasks: Iterable[ProjectTask],
    settings: Optional[SimulationSettings] = None,
    names: Optional[_NameRegistry] = None,
) -> List[StochasticVariable]:
    params = get_assembly_parameters(settings)
    names = names or _NameRegistry()
    variables = []
    for task in tasks:
        hours = _as_positive_number(getattr(task, "estimated_hours", None))
        if hours is None:
            logger.debug(f"Skipping task without a positive estimate: {getattr(task, 'title', task)!r}")
            continue
        variables.append(
            StochasticVariable(
                name=names.claim(f"Task {task.title} Duration"),
                kind=VariableKind.DURATION,
                distribution=Distribution.TRIANGULAR,
                min_value=hours * params["optimistic_factor"],
                most_likely=hours,
                max_value=hours * params["pessimistic_factor"],
            )
        )
    return variables


def build_risk_variables(
    risks: Iterable[RiskEntry],
    settings: Optional[SimulationSettings] = None,
    names: Optional[_NameRegistry] = None,
) -> List[StochasticVariable]:
    params = get_assembly_parameters(settings)
    names = names or _NameRegistry()
    variables = []
    for risk in risks:
        probability = _as_positive_number(getattr(risk, "probability", None))
        impact = _as_positive_number(getattr(risk, "impact", None))
        if probability is None or impact is None or probability > 1:
            logger.debug(f"Skipping risk without positive probability and impact: {getattr(risk, 'title', risk)!r}")
            continue
        variables.append(
            StochasticVariable(
                name=names.claim(f"Risk: {risk.title}"),
                kind=VariableKind.COST_RISK,
                distribution=Distribution.UNIFORM,
                min_value=0.0,
                max_value=impact * params["risk_impact_cost_multiplier"],
                probability=probability,
            )
        )
    return variables


def assemble_variables(
    tasks: Optional[Iterable[ProjectTask]],
    risks: Optional[Iterable[RiskEntry]],
    settings: Optional[SimulationSettings] = None,
) -> List[StochasticVariable]:
    """
    Build the stochastic variables for one simulation run.

    Args:
        tasks: Project tasks; entries without a positive estimated_hours are skipped.
        risks: Risk register entries; entries without positive probability and impact are skipped.
        settings: Assembly factors (duration spread, impact to cost multiplier).

    Returns:
        Duration variables first, in task order, then cost-risk variables in register order.
    """
    names = _NameRegistry()
    variables = build_duration_variables(tasks or [], settings, names)
    variables.extend(build_risk_variables(risks or [], settings, names))
    logger.debug(f"Assembled {len(variables)} stochastic variables")
    return variables


def assemble_project_variables(
    project: ProjectRecord,
    settings: Optional[SimulationSettings] = None,
) -> List[StochasticVariable]:
    return assemble_variables(project.tasks, project.risks, settings)
