"""
Risk event sampling for Monte Carlo simulation.

PURPOSE:
    Model cost risks as Bernoulli trials layered over a sampled cost impact.
    A risk's impact is drawn every trial; it only reaches the trial's total
    cost when the risk materializes.

RESPONSIBILITIES:
    - Decide each risk's materialization rate (fixed rate or declared probability)
    - Sample Bernoulli occurrences and zero out impacts that did not occur
    - Sum the materialized impacts of several risks
    - NO aggregation into trial outcomes, NO statistics
"""

from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from schedule_risk_internal.monte_carlo.config import SimulationSettings
from schedule_risk_internal.monte_carlo.distributions import DistributionSampler
from schedule_risk_internal.monte_carlo.exceptions import InvalidInputError
from schedule_risk_internal.monte_carlo.variables import StochasticVariable


def materialization_probability(
    variable: StochasticVariable,
    settings: Optional[SimulationSettings] = None,
) -> float:
    """
    Probability that a cost risk materializes in a trial.

    By default every risk uses the fixed rate from the settings, ignoring the
    probability declared in the risk register. With
    use_declared_risk_probability the declared value is used instead, falling
    back to the fixed rate when a risk declares none.
    """
    settings = settings or SimulationSettings()
    if settings.use_declared_risk_probability and variable.probability is not None:
        return variable.probability
    return settings.risk_materialization_probability


def sample_bernoulli_impact(
    probability: float,
    impacts: np.ndarray,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Apply one Bernoulli draw per trial to pre-sampled impacts.

    Args:
        probability: Probability of the event occurring (0 to 1)
        impacts: Impact value sampled for each trial
        rng: Generator used for the occurrence draws

    Returns:
        ndarray: The impact where the event occurred, zero elsewhere.

    Raises:
        InvalidInputError: If probability not in [0, 1]
    """
    if not 0 <= probability <= 1:
        raise InvalidInputError(f"probability must be in [0, 1], got {probability}")
    impacts = np.asarray(impacts, dtype=float)
    occurred = rng.random(impacts.shape[0]) < probability
    return np.where(occurred, impacts, 0.0)


def sample_portfolio_risk(
    risks: Iterable[StochasticVariable],
    sampler: DistributionSampler,
    size: int,
    settings: Optional[SimulationSettings] = None,
) -> Tuple[np.ndarray, Dict[str, np.ndarray]]:
    """
    Sample several independent cost risks and sum their materialized impacts.

    Returns:
        tuple: (total added cost per trial, materialized cost per trial keyed by risk name)
    """
    total = np.zeros(size)
    per_risk = {}
    for risk in risks:
        impacts = sampler.sample(risk, size=size)
        materialized = sample_bernoulli_impact(
            materialization_probability(risk, settings), impacts, sampler.rng
        )
        per_risk[risk.name] = materialized
        total += materialized
    return total, per_risk
