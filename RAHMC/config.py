"""
Description:
    Validation of RA-HMC algorithm parameters.
    USE THE CORRECT ENVIRONMENT:  HMC-Research

Author: John Gallagher
Created: 2026-10-18
Last Modified: 2026-10-18
Version: 0.1
"""
import logging
import math
import numbers
from typing import Dict, Tuple

from datatypes import RAHMCConfig

logger = logging.getLogger(__name__)

# Recommended ranges (inclusive). Outside these a value is allowed but warned about.
PARAM_RANGES: Dict[str, Tuple[float, float]] = {
    "leapfrog_steps": (5, 100),
    "dt": (0.05, 0.5),
    "gamma": (0.1, 2.0),
    "steepness": (1.0, 20.0),
}


class ConfigError(ValueError):
    """Invalid algorithm parameters"""


def validate_config(config: RAHMCConfig, use_steepness: bool = True) -> RAHMCConfig:
    """
    Check hard constraints and warn about values outside PARAM_RANGES.

    Args:
        config: Parameters to check
        use_steepness: False for schedules that ignore steepness

    Returns:
        The same config, for chaining

    Raises:
        ConfigError: on non-positive leapfrog_steps/dt/steepness,
            negative gamma, or non-finite values
    """
    L = config.leapfrog_steps
    if isinstance(L, bool) or not isinstance(L, numbers.Integral):
        raise ConfigError(f"leapfrog_steps must be an integer, got {L!r}")
    if L < 1:
        raise ConfigError(f"leapfrog_steps must be >= 1, got {L}")

    names = ["dt", "gamma"] + (["steepness"] if use_steepness else [])
    for name in names:
        value = getattr(config, name)
        if not isinstance(value, numbers.Real) or not math.isfinite(value):
            raise ConfigError(f"{name} must be a finite real, got {value!r}")
    if config.dt <= 0:
        raise ConfigError(f"dt must be > 0, got {config.dt}")
    if config.gamma < 0:
        raise ConfigError(f"gamma must be >= 0, got {config.gamma}")
    if use_steepness and config.steepness <= 0:
        raise ConfigError(f"steepness must be > 0, got {config.steepness}")

    for name in ["leapfrog_steps"] + names:
        lo, hi = PARAM_RANGES[name]
        value = getattr(config, name)
        if not lo <= value <= hi:
            logger.warning(
                "%s=%s is outside the recommended range [%s, %s]", name, value, lo, hi
            )
    return config
