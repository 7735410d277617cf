"""
Description:
    MCMC sampler: Repelling-Attracting HMC.
    USE THE CORRECT ENVIRONMENT:  HMC-Research

Author: John Gallagher
Created: 2026-10-18
Last Modified: 2026-10-18
Version: 0.1
"""
import logging
import jax
import jax.numpy as jnp
import jax.random as jr
from typing import Callable, Optional, Tuple

from datatypes import (
    QP, RAHMCConfig, StepInfo, SamplerOutput, ProposalEvent, DecisionEvent,
    FrictionFn, MomentumSource, UniformSource,
)
from chain import Chain
from config import validate_config
from events import EventQueue
from friction import friction_schedule, split_friction
from hamiltonian import rahmc_hamiltonian
from integrator import conformal_integrate
from target import TargetModel
from vector_ops import DimensionError, copy, check_dim

logger = logging.getLogger(__name__)

def standard_normal_momentum(key: jax.Array, dim: int) -> jnp.ndarray:
    """p ~ N(0, I)"""
    return jr.normal(key, shape=(dim,))

def standard_uniform(key: jax.Array) -> jnp.ndarray:
    return jr.uniform(key, shape=())

def accept_reject(log_accept_ratio: float, u: float) -> bool:
    """
    Metropolis-Hastings accept/reject step.
    
    Accept iff u < exp(log_accept_ratio). A non-finite ratio counts as -inf,
    so degenerate energies always reject.
    
    Args:
        log_accept_ratio: H0 - H
        u: Uniform(0,1) draw
        
    Returns:
        True if accepted, False otherwise
    """
    log_accept_ratio = jnp.where(
        jnp.isfinite(log_accept_ratio), log_accept_ratio, -jnp.inf
    )
    return u < jnp.exp(log_accept_ratio)

def gen_rahmc_kernel(
    target: TargetModel,
    friction: FrictionFn,
    config: RAHMCConfig,
    momentum_source: MomentumSource = standard_normal_momentum,
    uniform_source: UniformSource = standard_uniform
) -> Callable[[jnp.ndarray, jax.Array], Tuple[jnp.ndarray, StepInfo]]:
    """
    Generate RA-HMC kernel using the conformal leapfrog integrator.
    
    Args:
        target: log density and its gradient
        friction: schedule, (step index, config) -> γ
        config: algorithm parameters
        momentum_source: (key, dim) -> p0
        uniform_source: key -> u for the accept test
        
    Returns:
        kernel(q0, key) -> (q_next, StepInfo)
    """
    validate_config(config, use_steepness=friction is not split_friction)
    gammas = friction_schedule(friction, config)
    H = rahmc_hamiltonian(target)
    dim = target.dim

    def rahmc_kernel(q0, key):
        """
        Single RA-HMC step.
        
        Args:
            q0: current chain state
            key: Random key
            
        Returns:
            (q_next, StepInfo)
        """
        check_dim("q0", q0, dim)
        key_p, key_u = jr.split(key)

        # Resample momentum
        p0 = momentum_source(key_p, dim)
        check_dim("p0", p0, dim)

        # Integrate on working copies, then flip momentum
        qp0 = QP(q=copy(q0), p=copy(p0))
        qp_star, trajectory = conformal_integrate(
            qp0, target.grad_log_density, gammas, config.dt
        )
        qp_star = qp_star.flip()

        # Accept/reject
        log_accept_ratio = H.energy(QP(q=q0, p=p0)) - H.energy(qp_star)
        is_accepted = accept_reject(log_accept_ratio, uniform_source(key_u))

        q_next = jnp.where(is_accepted, qp_star.q, q0)
        info = StepInfo(
            proposal=qp_star.q,
            trajectory=trajectory,
            initial_momentum=p0,
            log_accept_ratio=log_accept_ratio,
            accepted=is_accepted,
        )
        return q_next, info

    return rahmc_kernel

def rahmc_sampler(
    initial_q: jnp.ndarray,
    keys: jax.Array,
    target: TargetModel,
    friction: FrictionFn,
    config: RAHMCConfig,
    momentum_source: MomentumSource = standard_normal_momentum,
    uniform_source: UniformSource = standard_uniform
) -> SamplerOutput:
    """
    Run RA-HMC sampler with scan, without events.
    
    Args:
        initial_q: starting state
        keys: Array of random keys (one per sample)
        target: log density and its gradient
        friction: schedule
        config: algorithm parameters
        
    Returns:
        SamplerOutput, samples excludes initial_q
    """
    kernel = gen_rahmc_kernel(target, friction, config, momentum_source, uniform_source)

    def body_fn(q, key):
        q_next, info = kernel(q, key)
        return q_next, (q_next, info.log_accept_ratio, info.accepted)

    _, (samples, log_accept_ratio, accepted) = jax.lax.scan(
        body_fn, jnp.asarray(initial_q), xs=keys
    )
    return SamplerOutput(
        samples=samples,
        log_accept_ratio=log_accept_ratio,
        accepted=accepted,
        accept_rate=jnp.mean(accepted),
    )

class RAHMCSampler:
    """
    Stateful RA-HMC chain with reset/step, reporting to an optional visualizer.

    Config may be changed between steps with configure(); it is fixed
    while a step runs.
    """
    def __init__(
        self,
        target: TargetModel,
        friction: FrictionFn = split_friction,
        config: RAHMCConfig = RAHMCConfig(),
        momentum_source: MomentumSource = standard_normal_momentum,
        uniform_source: UniformSource = standard_uniform,
        visualizer: Optional[EventQueue] = None
    ):
        self.target = target
        self.friction = friction
        self.momentum_source = momentum_source
        self.uniform_source = uniform_source
        self.visualizer = visualizer
        self.chain: Optional[Chain] = None
        self.last_info: Optional[StepInfo] = None
        self.configure(config)

    def configure(self, config: RAHMCConfig = None, **params) -> RAHMCConfig:
        """Replace the config (or some of its fields) and rebuild the kernel"""
        config = config if config is not None else self.config
        config = config._replace(**params)
        self._kernel = jax.jit(gen_rahmc_kernel(
            self.target, self.friction, config,
            self.momentum_source, self.uniform_source,
        ))
        self.config = config
        return config

    def reset(self, key: jax.Array, dim: int = None) -> Chain:
        """Start a new chain at a fresh draw from the momentum distribution"""
        dim = self.target.dim if dim is None else dim
        if dim != self.target.dim:
            raise DimensionError(
                f"chain dimension {dim} does not match target dimension {self.target.dim}"
            )
        self.chain = Chain(self.momentum_source(key, dim))
        self.last_info = None
        logger.info(
            "reset chain: dim=%d schedule=%s config=%s",
            dim, getattr(self.friction, "__name__", self.friction), self.config,
        )
        return self.chain

    def step(self, key: jax.Array) -> jnp.ndarray:
        """Advance the chain by one transition and return the new state"""
        if self.chain is None:
            raise RuntimeError("reset() must be called before step()")
        q0 = self.chain.last()
        q_next, info = self._kernel(q0, key)
        self.chain.append(q_next)
        self.last_info = info

        accepted = bool(info.accepted)
        logger.debug(
            "step %d: %s, log accept ratio %.4g",
            len(self.chain) - 1, "accept" if accepted else "reject",
            float(info.log_accept_ratio),
        )
        if self.visualizer is not None:
            self.visualizer.push(ProposalEvent(
                proposal=info.proposal,
                trajectory=info.trajectory,
                initial_momentum=info.initial_momentum,
            ))
            self.visualizer.push(DecisionEvent(
                kind="accept" if accepted else "reject",
                proposal=info.proposal,
            ))
        return q_next

    def run(self, key: jax.Array, n_steps: int) -> Chain:
        """n_steps calls to step(), one key each"""
        for step_key in jr.split(key, n_steps):
            self.step(step_key)
        return self.chain
