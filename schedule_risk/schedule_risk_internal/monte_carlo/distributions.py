"""
PURPOSE: Probabilistic distribution samplers for task duration and risk cost uncertainty.

RESPONSIBILITIES:
- Sample uniform, triangular (inverse CDF), normal (Box-Muller) and PERT values
- Draw from an injected numpy Generator, never from the global random state
- Recover degenerate parameters locally (zero-width ranges return the mode)
- Single responsibility: only sampling, no I/O or aggregation

Every sampler returns a numpy array with one realization per trial, so a
chunk of trials is drawn in a single call.
"""

import logging
from typing import Optional, Tuple, Union

import numpy as np

from schedule_risk_internal.monte_carlo.config import CLAMP_NORMAL_TO_BOUNDS
from schedule_risk_internal.monte_carlo.variables import Distribution, StochasticVariable

logger = logging.getLogger(__name__)

RandomState = Union[int, np.random.Generator, np.random.SeedSequence, None]


def make_rng(random_state: RandomState = None) -> np.random.Generator:
    """Return a Generator; an existing Generator is passed through unchanged."""
    if isinstance(random_state, np.random.Generator):
        return random_state
    return np.random.default_rng(random_state)


def _open_unit_draws(rng: np.random.Generator, size: int) -> np.ndarray:
    """Uniform draws on (0, 1). Exact zeros are redrawn."""
    draws = rng.random(size)
    zeros = draws == 0.0
    while np.any(zeros):
        draws[zeros] = rng.random(int(np.count_nonzero(zeros)))
        zeros = draws == 0.0
    return draws


def pert_shape_parameters(min_val: float, mode_val: float, max_val: float) -> Tuple[float, float]:
    """
    PERT-to-Beta moment matching.

    mean  = (min + 4*mode + max) / 6
    alpha = (mean - min) / (max - min) * ((mean - min) * (max - mean) / ((max - min)^2 / 36) - 1)
    beta  = (max - mean) / (mean - min) * alpha

    Args:
        min_val: Lower bound, strictly below max_val.
        mode_val: Most likely value in [min_val, max_val].
        max_val: Upper bound.

    Returns:
        tuple: (alpha, beta)
    """
    span = max_val - min_val
    if span <= 0:
        raise ValueError(f"PERT shape needs max_val > min_val, got min={min_val}, max={max_val}")
    mean = (min_val + 4 * mode_val + max_val) / 6
    alpha = ((mean - min_val) / span) * (((mean - min_val) * (max_val - mean)) / (span ** 2 / 36) - 1)
    beta = ((max_val - mean) / (mean - min_val)) * alpha
    return alpha, beta


class DistributionSampler:
    """Samples StochasticVariable realizations from one random stream."""

    def __init__(self, rng: RandomState = None, clamp_normal: bool = CLAMP_NORMAL_TO_BOUNDS):
        self.rng = make_rng(rng)
        self.clamp_normal = clamp_normal

    def sample(self, variable: StochasticVariable, size: int = 1) -> np.ndarray:
        """
        Draw `size` realizations of a variable.

        Unknown distribution families fall back to the variable's mode
        (most likely value or bound midpoint) instead of raising.
        """
        distribution = variable.distribution
        if distribution == Distribution.UNIFORM:
            return self.uniform(variable.min_value, variable.max_value, size=size)
        if distribution == Distribution.TRIANGULAR:
            return self.triangular(variable.min_value, variable.mode, variable.max_value, size=size)
        if distribution == Distribution.NORMAL:
            return self.normal(
                variable.resolved_mean,
                variable.resolved_std_dev,
                size=size,
                low=variable.min_value,
                high=variable.max_value,
            )
        if distribution == Distribution.PERT:
            return self.pert(variable.min_value, variable.mode, variable.max_value, size=size)

        fallback = variable.mode if variable.mode is not None else 0.0
        logger.warning(
            f"Unknown distribution {distribution!r} for {variable.name!r}; using deterministic value {fallback}"
        )
        return np.full(size, float(fallback))

    def uniform(self, min_val: float, max_val: float, size: int = 1) -> np.ndarray:
        draws = self.rng.random(size)
        return min_val + draws * (max_val - min_val)

    def triangular(self, min_val: float, mode_val: float, max_val: float, size: int = 1) -> np.ndarray:
        """Inverse-CDF triangular sampling. A zero-width range returns the mode."""
        span = max_val - min_val
        if span == 0:
            return np.full(size, float(mode_val))
        draws = self.rng.random(size)
        fc = (mode_val - min_val) / span
        left = min_val + np.sqrt(draws * span * (mode_val - min_val))
        right = max_val - np.sqrt((1 - draws) * span * (max_val - mode_val))
        return np.where(draws < fc, left, right)

    def normal(
        self,
        mean: float,
        std_dev: float,
        size: int = 1,
        low: Optional[float] = None,
        high: Optional[float] = None,
    ) -> np.ndarray:
        """
        Box-Muller normal sampling.

        The tails are unbounded; when clamping is enabled and the variable
        declares bounds, samples are clipped to [low, high].
        """
        u1 = _open_unit_draws(self.rng, size)
        u2 = _open_unit_draws(self.rng, size)
        z = np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)
        samples = mean + z * std_dev
        if self.clamp_normal and (low is not None or high is not None):
            samples = np.clip(samples, low, high)
        return samples

    def pert(self, min_val: float, mode_val: float, max_val: float, size: int = 1) -> np.ndarray:
        """
        PERT sampling via the power-of-uniforms Beta approximation.

        x = U1^(1/alpha), y = U2^(1/beta), sample = min + (max - min) * x / (x + y).
        This is a biased approximation of Beta(alpha, beta), not an exact
        sampler; it keeps every sample inside [min, max] and weights the mode
        more than a triangular distribution would.
        """
        span = max_val - min_val
        if span == 0:
            return np.full(size, float(mode_val))
        alpha, beta = pert_shape_parameters(min_val, mode_val, max_val)
        # 1 - random() lies in (0, 1], which keeps x + y away from zero
        x = np.power(1.0 - self.rng.random(size), 1.0 / alpha)
        y = np.power(1.0 - self.rng.random(size), 1.0 / beta)
        return min_val + span * (x / (x + y))


# Module-level convenience functions for direct import
def sample_uniform(min_val, max_val, size=1, random_state=None):
    """Module-level wrapper for uniform sampling."""
    return DistributionSampler(random_state).uniform(min_val, max_val, size=size)


def sample_triangular(min_val, mode_val, max_val, size=1, random_state=None):
    """Module-level wrapper for triangular sampling."""
    return DistributionSampler(random_state).triangular(min_val, mode_val, max_val, size=size)


def sample_normal(mean, std_dev, size=1, low=None, high=None, random_state=None, clamp=CLAMP_NORMAL_TO_BOUNDS):
    """Module-level wrapper for Box-Muller normal sampling."""
    sampler = DistributionSampler(random_state, clamp_normal=clamp)
    return sampler.normal(mean, std_dev, size=size, low=low, high=high)


def sample_pert(min_val, mode_val, max_val, size=1, random_state=None):
    """Module-level wrapper for PERT sampling."""
    return DistributionSampler(random_state).pert(min_val, mode_val, max_val, size=size)
