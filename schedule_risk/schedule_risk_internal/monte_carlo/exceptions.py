"""
PURPOSE: Error taxonomy for the Monte Carlo engine.

Lookup and validation failures abort a run and reach the caller. Numeric
degenerate cases (zero-width ranges and the like) are recovered inside the
samplers and never show up here.
"""


class MonteCarloError(Exception):
    """Base class for every error raised by the simulation engine."""


class ProjectNotFoundError(MonteCarloError, LookupError):
    """The referenced project does not exist; the simulation never starts."""

    def __init__(self, project_id: str):
        super().__init__(f"Project not found: {project_id!r}")
        self.project_id = project_id


class SimulationNotFoundError(MonteCarloError, LookupError):
    def __init__(self, simulation_id: str):
        super().__init__(f"Simulation not found: {simulation_id!r}")
        self.simulation_id = simulation_id


class InvalidInputError(MonteCarloError, ValueError):
    """Non-positive iteration count, inverted range or other rejected input."""


class SimulationCancelledError(MonteCarloError):
    """Raised when a cancel event is observed between trial chunks."""

    def __init__(self, completed_trials: int, requested_trials: int):
        super().__init__(
            f"Simulation cancelled after {completed_trials} of {requested_trials} trials"
        )
        self.completed_trials = completed_trials
        self.requested_trials = requested_trials
