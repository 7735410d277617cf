"""
Description:
    Conformal (friction-scaled) leapfrog integrator for RA-HMC.
    USE THE CORRECT ENVIRONMENT:  HMC-Research

Author: John Gallagher
Created: 2026-10-18
Last Modified: 2026-10-18
Version: 0.1
"""
import jax
import jax.numpy as jnp
from typing import Tuple
from datatypes import QP, GradLogDensity
from vector_ops import copy, scale, increment

def lf_step(
        qp: QP,
        grad_log_density: GradLogDensity,
        dt: float
) -> QP:
    """
    Single lf integration step (kick-drift-kick), no friction.

    Does p-first 
    """
    q, p = qp
    # Half step momentum
    p = increment(p, scale(grad_log_density(q), dt / 2))
    # Full step position
    q = increment(q, scale(p, dt))
    # Half step momentum
    p = increment(p, scale(grad_log_density(q), dt / 2))
    return QP(q=q, p=p)

def conformal_lf_step(
        qp: QP,
        grad_log_density: GradLogDensity,
        gamma: float,
        dt: float
) -> QP:
    """
    Single conformal lf step with friction γ.

    The momentum is scaled by exp(-γ dt/2) before and after an ordinary
    leapfrog step. γ < 0 expands phase-space volume, γ > 0 contracts it,
    γ = 0 gives back lf_step exactly.
    """
    friction = jnp.exp(-gamma * dt / 2)
    q, p = qp
    p = scale(p, friction)
    q, p = lf_step(QP(q=q, p=p), grad_log_density, dt)
    p = scale(p, friction)
    return QP(q=q, p=p)

def conformal_integrate(
    qp: QP,
    grad_log_density: GradLogDensity,
    gammas: jnp.ndarray,
    dt: float
) -> Tuple[QP, jnp.ndarray]:
    """
    Conformal LF integration using scan, one sub-step per entry of gammas.
    
    Args:
        qp: Initial state
        grad_log_density: ∇ log π
        gammas: (L,) friction per sub-step
        dt: Step size
        
    Returns:
        (final state, (L+1, dim) positions starting with qp.q)
    """
    def body_fn(qp_state, gamma):
        qp_new = conformal_lf_step(qp_state, grad_log_density, gamma, dt)
        return qp_new, copy(qp_new.q)
    
    qp_final, positions = jax.lax.scan(body_fn, qp, gammas)
    trajectory = jnp.concatenate([copy(qp.q)[None, :], positions], axis=0)
    return qp_final, trajectory

def lf_integrate(
    qp: QP,
    grad_log_density: GradLogDensity,
    dt: float,
    N: int
) -> Tuple[QP, jnp.ndarray]:
    """
    Plain LF integration using scan, the γ = 0 reference.
    
    Returns:
        (final state, (N+1, dim) positions starting with qp.q)
    """
    def body_fn(qp_state, _):
        qp_new = lf_step(qp_state, grad_log_density, dt)
        return qp_new, qp_new.q
    
    qp_final, positions = jax.lax.scan(body_fn, qp, None, length=N)
    trajectory = jnp.concatenate([qp.q[None, :], positions], axis=0)
    return qp_final, trajectory
