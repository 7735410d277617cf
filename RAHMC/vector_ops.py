"""
Description:
    Elementary operations on fixed-length real vectors.
    USE THE CORRECT ENVIRONMENT:  HMC-Research

Author: John Gallagher
Created: 2026-10-18
Last Modified: 2026-10-18
Version: 0.1

JAX arrays are immutable, so "in-place" updates return the new vector and the
caller rebinds its own name. Nothing returned here shares a buffer that the
caller could later mutate.
"""
import jax.numpy as jnp


class DimensionError(ValueError):
    """q, p and the chain dimension disagree"""


def copy(v: jnp.ndarray) -> jnp.ndarray:
    return jnp.array(v, copy=True)

def scale(v: jnp.ndarray, s: float) -> jnp.ndarray:
    return v * s

def increment(v: jnp.ndarray, delta: jnp.ndarray) -> jnp.ndarray:
    """v + delta (the rebinding form of v += delta)"""
    return v + delta

def norm2(v: jnp.ndarray) -> jnp.ndarray:
    """Squared L2 norm"""
    return jnp.dot(v, v)

def check_dim(name: str, v: jnp.ndarray, dim: int) -> None:
    """
    Fail fast if v is not a length-dim vector.

    Shapes are static under jit, so this runs at trace time.
    """
    shape = jnp.shape(v)
    if shape != (dim,):
        raise DimensionError(
            f"{name} has shape {shape}, expected ({dim},)"
        )
