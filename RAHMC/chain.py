"""
Description:
    Markov chain record: ordered, append-only accepted states.
    USE THE CORRECT ENVIRONMENT:  HMC-Research

Author: John Gallagher
Created: 2026-10-18
Last Modified: 2026-10-18
Version: 0.1
"""
from typing import List
import jax.numpy as jnp
import numpy as np
from vector_ops import copy, check_dim

class Chain:
    """
    States of one chain, starting with its initialization sample.

    Entries are stored as copies so later work on a state never reaches
    back into the history.
    """
    def __init__(self, initial: jnp.ndarray):
        initial = jnp.asarray(initial)
        if initial.ndim != 1:
            raise ValueError(f"initial state must be a vector, got shape {initial.shape}")
        self.dim: int = initial.shape[0]
        self._states: List[jnp.ndarray] = [copy(initial)]

    def append(self, q: jnp.ndarray) -> None:
        check_dim("state", q, self.dim)
        self._states.append(copy(q))

    def last(self) -> jnp.ndarray:
        return self._states[-1]

    def __len__(self) -> int:
        return len(self._states)

    def __getitem__(self, i):
        return self._states[i]

    def __iter__(self):
        return iter(self._states)

    def to_array(self) -> np.ndarray:
        """(len, dim) host array of all states"""
        return np.stack([np.asarray(q) for q in self._states])
