"""
Description:
    Target distribution generators.
    USE THE CORRECT ENVIRONMENT:  HMC-Research

Author: John Gallagher
Created: 2026-10-18
Last Modified: 2026-10-18
Version: 0.1
"""
from typing import NamedTuple
import jax
import jax.numpy as jnp
from jax.scipy.special import logsumexp
from datatypes import LogDensity, GradLogDensity, PrecisionMatrix

class TargetModel(NamedTuple):
    """
    log π(q) and ∇ log π(q) over R^dim.

    Both must be deterministic. -inf log density marks zero-density regions.
    """
    log_density: LogDensity
    grad_log_density: GradLogDensity
    dim: int

def from_log_density(log_density: LogDensity, dim: int) -> TargetModel:
    """Build a TargetModel, taking the gradient with jax.grad"""
    return TargetModel(
        log_density=log_density,
        grad_log_density=jax.grad(log_density),
        dim=dim,
    )

def gen_gaussian(
        dim: int = 2,
        precision_matrix: PrecisionMatrix = None,
        cov: jnp.ndarray = None,
        mean: jnp.ndarray = None
) -> TargetModel:
    if precision_matrix is not None and cov is not None:
        raise ValueError(
            "Please supply either a precision_matrix or a cov, not both"
        )
    
    if precision_matrix is None and cov is not None:
        precision_matrix = jnp.linalg.inv(cov)
    
    if precision_matrix is None and cov is None:
        precision_matrix = jnp.eye(dim)

    dim = precision_matrix.shape[0]
    mean = jnp.zeros(dim) if mean is None else jnp.asarray(mean)

    def log_density(q: jnp.ndarray) -> float:
        """Gaussian log density (unnormalized)"""
        r = q - mean
        return -0.5 * jnp.dot(r, precision_matrix @ r)

    def grad_log_density(q: jnp.ndarray) -> jnp.ndarray:
        return -precision_matrix @ (q - mean)

    return TargetModel(log_density, grad_log_density, dim)

def gen_perturb_precision(
        dim: int = 2,
        perturbation: float = 0.05
) -> PrecisionMatrix:
    prec = jnp.diag(jnp.ones(dim))
    prec += perturbation * jnp.diag(jnp.ones(dim-1), k=-1 )
    prec += perturbation * jnp.diag(jnp.ones(dim-1), k=1 )
    return prec

def gen_gaussian_mixture(
        means: jnp.ndarray,
        sigma: float = 1.0,
        weights: jnp.ndarray = None
) -> TargetModel:
    """
    Isotropic Gaussian mixture, the multimodal case RA-HMC is aimed at.

    Args:
        means: (n_modes, dim) component means
        sigma: shared component standard deviation
        weights: (n_modes,) mixture weights, uniform if None
    """
    means = jnp.asarray(means)
    n_modes, dim = means.shape
    if weights is None:
        weights = jnp.ones(n_modes) / n_modes
    log_w = jnp.log(jnp.asarray(weights))

    def log_density(q: jnp.ndarray) -> float:
        sq = jnp.sum((q[None, :] - means)**2, axis=1)
        return logsumexp(log_w - 0.5 * sq / sigma**2)

    return from_log_density(log_density, dim)
