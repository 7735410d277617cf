"""
Description:
    Hamiltonian structures for RA-HMC.
    USE THE CORRECT ENVIRONMENT:  HMC-Research

Author: John Gallagher
Created: 2026-10-18
Last Modified: 2026-10-18
Version: 0.1
"""
from typing import NamedTuple, Callable
import jax.numpy as jnp
from datatypes import QP
from target import TargetModel
from vector_ops import norm2

class Hamiltonian(NamedTuple):
    """
    Hamiltonian(q,p) = U(q) + K(p)
    For RA-HMC with identity mass: 
        U(q) = -log π(q)
        K(p) = 0.5 * |p|^2
    """
    potential: Callable[[jnp.ndarray], float] # U(q)
    kinetic: Callable[[jnp.ndarray], float] # K(p)

    def energy(self, qp:QP) -> float:
        """total energy H(q,p) = U(q) + K(p)"""
        return self.potential(qp.q) + self.kinetic(qp.p)

def rahmc_hamiltonian(target: TargetModel) -> Hamiltonian:
    def potential(q: jnp.ndarray) -> float:
        return -target.log_density(q)

    def kinetic(p: jnp.ndarray) -> float:
        return 0.5 * norm2(p)

    return Hamiltonian(potential=potential, kinetic=kinetic)
