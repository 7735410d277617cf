"""
Description:
    Core data structures for RA-HMC.
    USE THE CORRECT ENVIRONMENT:  HMC-Research

Author: John Gallagher
Created: 2026-10-18
Last Modified: 2026-10-18
Version: 0.1

All modules import from here to ensure type consistency and avoid indexing bugs.
"""
from typing import NamedTuple, Callable
import jax
import jax.numpy as jnp

class QP(NamedTuple):
    """Phase space state(q,p)"""
    q: jnp.ndarray # position
    p: jnp.ndarray # momentum

    @property
    def dim(self) -> int:
        """Dimension of configuration space"""
        return self.q.shape[0]
    def flip(self) -> "QP":
        """Negate momentum, keep position"""
        return QP(q=self.q, p=-self.p)
    def to_array(self) -> jnp.ndarray:
        """Convert to flat array [q,p]"""
        return jnp.concatenate([self.q, self.p])
    @classmethod
    def from_array(cls, arr: jnp.ndarray):
        """Convert from flat array[q,p]"""
        dim = arr.shape[0]//2
        return cls(q=arr[:dim], p=arr[dim:])

class RAHMCConfig(NamedTuple):
    """Algorithm parameters, fixed for the duration of one step"""
    leapfrog_steps: int = 40 # L, sub-steps per proposal
    dt: float = 0.1 # integration step size
    gamma: float = 0.5 # friction magnitude
    steepness: float = 10.0 # sigmoid schedule only

    @property
    def total_time(self) -> float:
        """T = dt * L"""
        return self.dt * self.leapfrog_steps

class StepInfo(NamedTuple):
    """Everything one transition produced"""
    proposal: jnp.ndarray # q after the trajectory
    trajectory: jnp.ndarray # (L+1, dim), starts at q0
    initial_momentum: jnp.ndarray # p0
    log_accept_ratio: float # H0 - H
    accepted: bool

class SamplerOutput(NamedTuple):
    samples: jnp.ndarray # (n_samples, dim) - positions only
    log_accept_ratio: jnp.ndarray # H0 - H per step
    accepted: jnp.ndarray # (n_samples,) bool
    accept_rate: float

class ProposalEvent(NamedTuple):
    """Reported to the visualizer before the decision"""
    proposal: jnp.ndarray
    trajectory: jnp.ndarray
    initial_momentum: jnp.ndarray
    kind: str = "proposal"

class DecisionEvent(NamedTuple):
    """kind is "accept" or "reject"."""
    kind: str
    proposal: jnp.ndarray

# Type aliases for clarity
LogDensity = Callable[[jnp.ndarray], float]
GradLogDensity = Callable[[jnp.ndarray], jnp.ndarray]
FrictionFn = Callable[[jnp.ndarray, RAHMCConfig], jnp.ndarray] # (step index, config) -> gamma
MomentumSource = Callable[[jax.Array, int], jnp.ndarray] # (key, dim) -> p
UniformSource = Callable[[jax.Array], jnp.ndarray] # key -> u in [0,1)
PrecisionMatrix = jnp.ndarray
