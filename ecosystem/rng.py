"""
ecosystem/rng.py - Injectable Random Sources

Every stochastic rule in the stepper draws from a RandomSource so the same
rules run against numpy's generator in production and scripted sequences in
tests.
"""

from typing import Iterable, List, Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


class RandomSource:
    """Interface consumed by the stepper."""

    def random(self) -> float:
        """Uniform float in [0, 1)."""
        raise NotImplementedError

    def randint(self, low: int, high: int) -> int:
        """Uniform integer in [low, high], both inclusive."""
        raise NotImplementedError

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise IndexError("choice from empty sequence")
        return items[self.randint(0, len(items) - 1)]

    def sign(self) -> int:
        """Coin flip returning +1 or -1."""
        return 1 if self.random() > 0.5 else -1


class NumpyRandom(RandomSource):
    """RandomSource backed by a numpy Generator (PCG64)."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._gen = np.random.default_rng(seed)

    def random(self) -> float:
        return float(self._gen.random())

    def randint(self, low: int, high: int) -> int:
        return int(self._gen.integers(low, high + 1))


class SequenceRandom(RandomSource):
    """Replays a scripted list of floats.

    Integers are derived from the next float the same way a uniform draw maps
    onto a range: ``low + floor(f * (high - low + 1))``. Once the script is
    exhausted every draw returns ``fallback``.
    """

    def __init__(self, values: Iterable[float] = (), fallback: float = 0.99):
        self._values: List[float] = [float(v) for v in values]
        self._index = 0
        self.fallback = float(fallback)

    @property
    def remaining(self) -> int:
        return len(self._values) - self._index

    def extend(self, values: Iterable[float]) -> None:
        self._values.extend(float(v) for v in values)

    def random(self) -> float:
        if self._index < len(self._values):
            value = self._values[self._index]
            self._index += 1
            return value
        return self.fallback

    def randint(self, low: int, high: int) -> int:
        value = low + int(np.floor(self.random() * (high - low + 1)))
        return min(value, high)
