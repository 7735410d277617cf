"""
Description:
    Named RA-HMC variants for host applications.
    USE THE CORRECT ENVIRONMENT:  HMC-Research

Author: John Gallagher
Created: 2026-10-18
Last Modified: 2026-10-18
Version: 0.1

A host only needs reset(key, dim), step(key) and a config; this module maps
algorithm names to configured RAHMCSampler instances.
"""
import logging
from typing import Dict, NamedTuple, Tuple

from config import ConfigError
from datatypes import RAHMCConfig, FrictionFn
from friction import split_friction, sigmoid_friction
from sampler import RAHMCSampler
from target import TargetModel

logger = logging.getLogger(__name__)

class AlgorithmSpec(NamedTuple):
    name: str
    description: str
    friction: FrictionFn
    params: Tuple[str, ...] # config fields this variant exposes
    reference: str = "https://arxiv.org/abs/2403.04607v1"

    def defaults(self) -> Dict[str, float]:
        base = RAHMCConfig()
        return {name: getattr(base, name) for name in self.params}

ALGORITHMS: Dict[str, AlgorithmSpec] = {
    "RAHMC": AlgorithmSpec(
        name="RAHMC",
        description="Repelling-Attracting Hamiltonian Monte Carlo",
        friction=split_friction,
        params=("leapfrog_steps", "dt", "gamma"),
    ),
    "RAHMC-Sigmoid": AlgorithmSpec(
        name="RAHMC-Sigmoid",
        description="RA-HMC with Sigmoid Friction Schedule",
        friction=sigmoid_friction,
        params=("leapfrog_steps", "dt", "gamma", "steepness"),
    ),
}

def make_sampler(name: str, target: TargetModel, **kwargs) -> RAHMCSampler:
    """
    Build the named variant.

    Keyword arguments that name config fields set parameters, the rest
    (visualizer, momentum_source, uniform_source) go to RAHMCSampler.
    """
    try:
        spec = ALGORITHMS[name]
    except KeyError:
        raise KeyError(
            f"Unknown algorithm {name!r}, expected one of {sorted(ALGORITHMS)}"
        ) from None

    params = {k: kwargs.pop(k) for k in list(kwargs) if k in RAHMCConfig._fields}
    unsupported = set(params) - set(spec.params)
    if unsupported:
        raise ConfigError(f"{name} does not take parameters {sorted(unsupported)}")

    config = RAHMCConfig()._replace(**params)
    logger.info("building %s (%s) with %s", spec.name, spec.description, config)
    return RAHMCSampler(target, friction=spec.friction, config=config, **kwargs)
