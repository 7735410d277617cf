"""
Description:
    Friction schedules: sub-step index -> friction coefficient γ.
    USE THE CORRECT ENVIRONMENT:  HMC-Research

Author: John Gallagher
Created: 2026-10-18
Last Modified: 2026-10-18
Version: 0.1

Negative γ injects energy (repel), positive γ dissipates it (attract).
Every schedule is a pure function (step index, config) -> γ so both variants
drive the same integrator sub-step.
"""
from typing import Dict
import jax
import jax.numpy as jnp
from datatypes import RAHMCConfig, FrictionFn

def split_friction(step: jnp.ndarray, config: RAHMCConfig) -> jnp.ndarray:
    """
    Two-phase schedule.

    The first L1 = floor(L/2) sub-steps use -gamma, the remaining
    L2 = L - L1 use +gamma (odd L gives the extra step to the attracting phase).
    """
    L1 = config.leapfrog_steps // 2
    return jnp.where(step < L1, -config.gamma, config.gamma)

def sigmoid_gamma(
        t: jnp.ndarray,
        T: float,
        gamma: float,
        steepness: float
) -> jnp.ndarray:
    """
    γ(t) = gamma * (2/(1 + exp(-steepness*(t/T - 0.5))) - 1)

    Odd about t = T/2, ranging over (-gamma, +gamma).
    """
    u = steepness * (t / T - 0.5)
    return gamma * (2.0 / (1.0 + jnp.exp(-u)) - 1.0)

def sigmoid_friction(step: jnp.ndarray, config: RAHMCConfig) -> jnp.ndarray:
    """Sigmoid schedule sampled at t = step * dt"""
    t = step * config.dt
    return sigmoid_gamma(t, config.total_time, config.gamma, config.steepness)

def friction_schedule(friction: FrictionFn, config: RAHMCConfig) -> jnp.ndarray:
    """
    Per-sub-step friction for a whole trajectory.

    Returns:
        (L,) array, entry s is γ for sub-step s
    """
    steps = jnp.arange(config.leapfrog_steps)
    return jax.vmap(lambda s: friction(s, config))(steps)

def time_reversed(gammas: jnp.ndarray) -> jnp.ndarray:
    """
    Schedule that undoes `gammas` when run from the momentum-flipped end state.

    Reversing time swaps the order of the sub-steps and the sign of the friction.
    """
    return -gammas[::-1]

SCHEDULES: Dict[str, FrictionFn] = {
    "split": split_friction,
    "sigmoid": sigmoid_friction,
}

def get_schedule(name: str) -> FrictionFn:
    try:
        return SCHEDULES[name]
    except KeyError:
        raise KeyError(
            f"Unknown friction schedule {name!r}, expected one of {sorted(SCHEDULES)}"
        ) from None
