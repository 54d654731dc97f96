"""Observer/Monoid aggregation primitives.

An *observer* records a stream of numeric observations and can be merged
with another observer of the same kind. Two strategies are provided:

- ``Histogram``: fixed bucket array for values in ``[0, N)`` plus an overflow
  counter and the exact overflow values for anything ``>= N``.
- ``Unaggregated``: the raw list of observations.

Both are monoids: ``identity()`` is the neutral element and ``combine`` is
associative and commutative, so per-file results can be folded in any order
(and fanned in from parallel workers) without changing the result.

``ObserverGroup`` lets a metric family declare a dataclass whose fields are
observers; combining and serializing happen field by field.

Example:
    >>> h = Histogram(buckets=8)
    >>> for v in (1, 1, 3, 10):
    ...     h.observe(v)
    >>> h.to_json()
    {'count': 4, 'sum': 15, 'avg': 3.75, 'mode': 1}
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, fields
from typing import Any, Protocol, TypeVar, runtime_checkable

M = TypeVar("M", bound="Monoid")

Number = int | float


@runtime_checkable
class Monoid(Protocol):
    """Identity element plus an associative, commutative ``combine``."""

    def combine(self: M, other: M) -> M: ...

    def __add__(self: M, other: M) -> M: ...


def reduce_monoid(items: Iterable[M], identity: M) -> M:
    """Fold ``items`` into a single value starting from ``identity``.

    ``identity`` is never mutated because ``combine`` always returns a new
    value.
    """
    result = identity
    for item in items:
        result = result.combine(item)
    return result


class Observer:
    """Base class for observation strategies."""

    def observe(self, value: Number) -> None:
        raise NotImplementedError

    def combine(self, other: Any) -> Any:
        raise NotImplementedError

    def __add__(self, other: Any) -> Any:
        return self.combine(other)

    def count(self) -> int:
        raise NotImplementedError

    def sum(self) -> Number:
        raise NotImplementedError

    def to_json(self) -> Any:
        raise NotImplementedError


class Histogram(Observer):
    """Bucketed histogram of non-negative integer observations.

    Attributes:
        n_buckets: Number of in-range buckets (fixed for the lifetime)
        buckets: Count per value in ``[0, n_buckets)``
        overflow_count: Number of observations ``>= n_buckets``
        overflow_values: Exact overflow observations
    """

    __slots__ = ("n_buckets", "buckets", "overflow_count", "overflow_values")

    def __init__(self, buckets: int) -> None:
        if buckets < 1:
            raise ValueError(f"Histogram needs at least one bucket, got {buckets}")
        self.n_buckets = buckets
        self.buckets = [0] * buckets
        self.overflow_count = 0
        self.overflow_values: list[int] = []

    @classmethod
    def identity(cls, buckets: int) -> Histogram:
        return cls(buckets)

    def observe(self, value: Number) -> None:
        if value < 0:
            raise ValueError(f"Histogram observations must be non-negative: {value}")
        value = int(value)
        if value < self.n_buckets:
            self.buckets[value] += 1
        else:
            self.overflow_count += 1
            self.overflow_values.append(value)

    def combine(self, other: Histogram) -> Histogram:
        if not isinstance(other, Histogram):
            raise TypeError(f"Cannot combine Histogram with {type(other).__name__}")
        if other.n_buckets != self.n_buckets:
            raise ValueError(
                f"Cannot combine histograms with {self.n_buckets} "
                f"and {other.n_buckets} buckets"
            )
        result = Histogram(self.n_buckets)
        result.buckets = [a + b for a, b in zip(self.buckets, other.buckets)]
        result.overflow_count = self.overflow_count + other.overflow_count
        result.overflow_values = sorted(self.overflow_values + other.overflow_values)
        return result

    def count(self) -> int:
        return sum(self.buckets) + self.overflow_count

    def sum(self) -> int:
        in_range = sum(value * count for value, count in enumerate(self.buckets))
        return in_range + sum(self.overflow_values)

    def mean(self) -> float | None:
        count = self.count()
        if count == 0:
            return None
        return self.sum() / count

    def mode(self) -> int | None:
        """Most frequent in-range value.

        Ties resolve to the lowest value. ``None`` when the histogram is empty
        or when the overflow region holds at least as many observations as
        the modal bucket (the true mode may be among the overflow values).
        """
        if self.count() == 0:
            return None
        best_index = 0
        best_count = self.buckets[0]
        for index, count in enumerate(self.buckets):
            if count > best_count:
                best_index, best_count = index, count
        if self.overflow_count >= best_count:
            return None
        return best_index

    def values(self) -> list[int]:
        """All observations in ascending order."""
        expanded: list[int] = []
        for value, count in enumerate(self.buckets):
            expanded.extend([value] * count)
        expanded.extend(sorted(self.overflow_values))
        return expanded

    def to_json(self) -> dict[str, Any]:
        return {
            "count": self.count(),
            "sum": self.sum(),
            "avg": self.mean(),
            "mode": self.mode(),
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Histogram):
            return NotImplemented
        return (
            self.n_buckets == other.n_buckets
            and self.buckets == other.buckets
            and self.overflow_count == other.overflow_count
            and sorted(self.overflow_values) == sorted(other.overflow_values)
        )

    def __repr__(self) -> str:
        return (
            f"Histogram(buckets={self.n_buckets}, count={self.count()}, "
            f"overflow={self.overflow_count})"
        )


class Unaggregated(Observer):
    """Raw list of observations in the order they were recorded."""

    __slots__ = ("samples",)

    def __init__(self, samples: Iterable[Number] | None = None) -> None:
        self.samples: list[Number] = list(samples) if samples is not None else []

    @classmethod
    def identity(cls) -> Unaggregated:
        return cls()

    def observe(self, value: Number) -> None:
        self.samples.append(value)

    def combine(self, other: Unaggregated) -> Unaggregated:
        if not isinstance(other, Unaggregated):
            raise TypeError(f"Cannot combine Unaggregated with {type(other).__name__}")
        return Unaggregated(self.samples + other.samples)

    def count(self) -> int:
        return len(self.samples)

    def sum(self) -> Number:
        return sum(self.samples)

    def to_json(self) -> list[Number]:
        return list(self.samples)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Unaggregated):
            return NotImplemented
        return self.samples == other.samples

    def __repr__(self) -> str:
        return f"Unaggregated({self.samples!r})"


ObserverFactory = Callable[[int], Observer]


def histogram_factory(buckets: int) -> Observer:
    """Build a ``Histogram`` with ``buckets`` in-range buckets."""
    return Histogram(buckets)


def unaggregated_factory(buckets: int) -> Observer:
    """Build an ``Unaggregated`` observer (``buckets`` is ignored)."""
    return Unaggregated()


def get_observer_factory(kind: str) -> ObserverFactory:
    """Resolve an observer factory by its configuration name."""
    factories: dict[str, ObserverFactory] = {
        "histogram": histogram_factory,
        "unaggregated": unaggregated_factory,
    }
    try:
        return factories[kind]
    except KeyError:
        raise ValueError(
            f"Unknown observer kind {kind!r}, expected one of {sorted(factories)}"
        ) from None


@dataclass
class ObserverGroup:
    """Dataclass base whose fields are observers combined field by field.

    Subclasses declare observer fields and provide a ``create`` classmethod
    that builds each field from an observer factory.
    """

    def combine(self: M, other: M) -> M:
        if type(other) is not type(self):
            raise TypeError(
                f"Cannot combine {type(self).__name__} with {type(other).__name__}"
            )
        merged = {
            f.name: getattr(self, f.name).combine(getattr(other, f.name))
            for f in fields(self)
        }
        return type(self)(**merged)

    def __add__(self: M, other: M) -> M:
        return self.combine(other)

    def to_json(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name).to_json() for f in fields(self)}
