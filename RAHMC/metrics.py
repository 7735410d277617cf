"""
Description:
    Simple summaries of sampler output.
    USE THE CORRECT ENVIRONMENT:  HMC-Research

Author: John Gallagher
Created: 2026-10-18
Last Modified: 2026-10-18
Version: 0.1
"""
import jax.numpy as jnp
import numpy as np

def cov(X):
    Xμ = jnp.mean(X, axis = 0)
    n=X.shape[0]
    return (X - Xμ).T@(X-Xμ)/(n-1)

def maxdiagdiff(X,Y):
    x = np.diag(X)
    y = np.diag(Y)
    return np.max(np.abs(x-y))

def compute_accept_rate(accepted) -> float:
    """Fraction of accepted proposals, in [0, 1]"""
    return float(jnp.mean(jnp.asarray(accepted)))
