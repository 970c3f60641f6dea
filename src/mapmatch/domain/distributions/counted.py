from collections.abc import Iterator
from typing import Generic, TypeVar

import numpy as np
from scipy.special import logsumexp

T = TypeVar("T")


class CountedDistribution(Generic[T]):
    """
    Multiset of values. Values are keyed by identity so unhashable or
    array-carrying objects can be counted; repeated draws of the same object
    raise its count instead of adding a new entry.
    """

    def __init__(self):
        self._values: dict[int, T] = {}
        self._counts: dict[int, int] = {}

    def increment(self, value: T, count: int = 1) -> None:
        k = id(value)
        self._values[k] = value
        self._counts[k] = self._counts.get(k, 0) + count

    def count(self, value: T) -> int:
        return self._counts.get(id(value), 0)

    @property
    def total_count(self) -> int:
        return sum(self._counts.values())

    def support(self) -> list[T]:
        return list(self._values.values())

    def items(self) -> Iterator[tuple[T, int]]:
        for k, v in self._values.items():
            yield v, self._counts[k]

    def __iter__(self) -> Iterator[T]:
        for v, n in self.items():
            for _ in range(n):
                yield v

    def __len__(self) -> int:
        return self.total_count

    def mode(self) -> T:
        if not self._values:
            raise ValueError("empty distribution has no mode")
        k = max(self._counts, key=self._counts.__getitem__)
        return self._values[k]

    def sample(self, rng: np.random.Generator) -> T:
        vals = self.support()
        counts = np.array([self._counts[id(v)] for v in vals], dtype=np.float64)
        return vals[int(rng.choice(len(vals), p=counts / counts.sum()))]


class LogWeightedSet(Generic[T]):
    """Values with unnormalised log weights, drawn in proportion to exp(weight)."""

    def __init__(self):
        self.values: list[T] = []
        self.log_weights: list[float] = []

    def add(self, value: T, log_weight: float) -> None:
        self.values.append(value)
        self.log_weights.append(float(log_weight))

    def __len__(self) -> int:
        return len(self.values)

    def probabilities(self) -> np.ndarray:
        lw = np.array(self.log_weights, dtype=np.float64)
        lw[np.isnan(lw)] = -np.inf
        total = logsumexp(lw) if len(lw) else -np.inf
        if not np.isfinite(total):
            raise RuntimeError(f"no candidate has a finite log weight: {self.log_weights}")
        return np.exp(lw - total)

    def sample(self, rng: np.random.Generator) -> T:
        p = self.probabilities()
        return self.values[int(rng.choice(len(p), p=p))]

    def resample(self, rng: np.random.Generator, n: int) -> CountedDistribution[T]:
        """Multinomial resampling of ``n`` draws."""
        p = self.probabilities()
        out: CountedDistribution[T] = CountedDistribution()
        for i in rng.choice(len(p), size=n, p=p):
            out.increment(self.values[int(i)])
        return out
