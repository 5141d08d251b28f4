from __future__ import annotations

from dataclasses import dataclass

import numpy as np

__all__ = ["Options", "options", "new_rng"]


@dataclass
class Options:
    """Process-wide options.

    rng_seed:
        Seed counter. Every RNG allocated on the caller's behalf (settings
        groups, copies) takes the current value and increments it, so runs are
        reproducible without two streams ever sharing a seed.
    strict:
        When True, problems that are normally reported through a warning and a
        sentinel return value (e.g. a likelihood asked of a model that has
        neither ``p`` nor ``log_likelihood``) raise instead.
    """

    rng_seed: int = 479901
    strict: bool = False

    def next_seed(self) -> int:
        seed = int(self.rng_seed)
        self.rng_seed = seed + 1
        return seed


options = Options()


def new_rng() -> np.random.Generator:
    """Return a fresh Generator seeded from the global seed counter."""
    return np.random.default_rng(options.next_seed())
