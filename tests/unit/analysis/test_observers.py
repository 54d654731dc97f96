"""Tests for the Observer/Monoid aggregation primitives."""

import random
from dataclasses import dataclass

import pytest

from corpus_metrics.analysis.observers import (
    Histogram,
    Observer,
    ObserverGroup,
    Unaggregated,
    get_observer_factory,
    histogram_factory,
    reduce_monoid,
    unaggregated_factory,
)


def histogram_of(values, buckets=8):
    histogram = Histogram(buckets)
    for value in values:
        histogram.observe(value)
    return histogram


class TestHistogram:
    """Histogram bookkeeping and summary statistics."""

    def test_empty_histogram(self):
        """An empty histogram has no mean and no mode."""
        histogram = Histogram(4)
        assert histogram.count() == 0
        assert histogram.sum() == 0
        assert histogram.mean() is None
        assert histogram.mode() is None
        assert histogram.to_json() == {"count": 0, "sum": 0, "avg": None, "mode": None}

    def test_in_range_and_overflow(self):
        """Values >= N land in the overflow bucket and keep their exact value."""
        histogram = histogram_of([0, 1, 1, 3, 10, 12], buckets=4)
        assert histogram.buckets == [1, 2, 0, 1]
        assert histogram.overflow_count == 2
        assert sorted(histogram.overflow_values) == [10, 12]
        assert histogram.count() == 6
        assert histogram.sum() == 27

    def test_summary_json(self):
        """JSON summary reports count, sum, avg and mode."""
        histogram = histogram_of([1, 1, 3, 10], buckets=8)
        assert histogram.to_json() == {"count": 4, "sum": 15, "avg": 3.75, "mode": 1}

    def test_mode_tie_goes_to_lowest_index(self):
        """Equal bucket counts resolve to the smallest value."""
        histogram = histogram_of([5, 2, 5, 2, 7], buckets=8)
        assert histogram.mode() == 2

    def test_mode_undefined_when_overflow_dominates(self):
        """Mode is None when overflow holds at least the modal count."""
        assert histogram_of([1, 9, 9], buckets=4).mode() is None
        assert histogram_of([1, 9], buckets=4).mode() is None
        assert histogram_of([20, 30], buckets=4).mode() is None
        assert histogram_of([1, 1, 9], buckets=4).mode() == 1

    def test_values_are_sorted_and_exact(self):
        """values() expands buckets and keeps overflow values exactly."""
        histogram = histogram_of([3, 0, 17, 3, 9], buckets=4)
        assert histogram.values() == [0, 3, 3, 9, 17]

    def test_rejects_negative_observation(self):
        """Observations must be non-negative."""
        with pytest.raises(ValueError):
            Histogram(4).observe(-1)

    def test_rejects_zero_buckets(self):
        """A histogram needs at least one bucket."""
        with pytest.raises(ValueError):
            Histogram(0)

    def test_combine_with_different_bucket_count_fails(self):
        """Combining histograms of different size raises ValueError."""
        with pytest.raises(ValueError):
            Histogram(4).combine(Histogram(8))

    def test_combine_with_other_observer_fails(self):
        """Combining a histogram with a raw list raises TypeError."""
        with pytest.raises(TypeError):
            Histogram(4).combine(Unaggregated())

    def test_combine_leaves_operands_unchanged(self):
        """combine returns a new histogram."""
        a = histogram_of([1, 2])
        b = histogram_of([2, 20])
        merged = a + b
        assert merged.count() == 4
        assert a.count() == 2
        assert b.count() == 2
        assert merged.buckets[2] == 2

    def test_identity_is_neutral(self):
        """Combining with identity() yields an equal histogram."""
        histogram = histogram_of([0, 4, 40])
        assert histogram.combine(Histogram.identity(8)) == histogram
        assert Histogram.identity(8).combine(histogram) == histogram


class TestHistogramProperties:
    """Seeded randomized checks of the monoid laws."""

    @pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
    def test_count_and_sum_match_inputs(self, seed):
        """count() and sum() equal the number and total of observations."""
        rng = random.Random(seed)
        values = [rng.randrange(0, 40) for _ in range(rng.randrange(0, 200))]
        histogram = histogram_of(values, buckets=16)
        assert histogram.count() == len(values)
        assert histogram.sum() == sum(values)

    @pytest.mark.parametrize("seed", [10, 11, 12, 13, 14])
    def test_split_and_combine_equals_whole(self, seed):
        """Histograms of disjoint parts combine to the histogram of the whole."""
        rng = random.Random(seed)
        values = [rng.randrange(0, 40) for _ in range(150)]
        cuts = sorted(rng.sample(range(1, len(values)), 4))
        parts = [values[i:j] for i, j in zip([0, *cuts], [*cuts, len(values)])]
        histograms = [histogram_of(part, buckets=16) for part in parts]

        whole = histogram_of(values, buckets=16)
        assert reduce_monoid(histograms, Histogram(16)) == whole

        shuffled = histograms[:]
        rng.shuffle(shuffled)
        assert reduce_monoid(shuffled, Histogram(16)) == whole

    @pytest.mark.parametrize("seed", [20, 21, 22])
    def test_associativity(self, seed):
        """(a + b) + c == a + (b + c)."""
        rng = random.Random(seed)
        a, b, c = (
            histogram_of([rng.randrange(0, 30) for _ in range(50)], buckets=16)
            for _ in range(3)
        )
        assert (a + b) + c == a + (b + c)

    @pytest.mark.parametrize("seed", [30, 31, 32, 33])
    def test_mode_is_permutation_invariant(self, seed):
        """Mode does not depend on observation order."""
        rng = random.Random(seed)
        values = [rng.choice([1, 2, 3, 5]) for _ in range(40)]
        expected = histogram_of(values).mode()
        for _ in range(5):
            rng.shuffle(values)
            assert histogram_of(values).mode() == expected


class TestUnaggregated:
    """Raw-sample observer."""

    def test_keeps_values_in_order(self):
        """Samples are kept in observation order."""
        observer = Unaggregated()
        for value in (3, 1, 2):
            observer.observe(value)
        assert observer.to_json() == [3, 1, 2]
        assert observer.count() == 3
        assert observer.sum() == 6

    def test_combine_concatenates(self):
        """combine appends the other observer's samples."""
        merged = Unaggregated([1, 2]) + Unaggregated([3])
        assert merged.to_json() == [1, 2, 3]

    def test_combine_is_commutative_as_multiset(self):
        """Both combine orders hold the same multiset of samples."""
        rng = random.Random(7)
        a = Unaggregated(rng.randrange(100) for _ in range(20))
        b = Unaggregated(rng.randrange(100) for _ in range(20))
        assert sorted((a + b).samples) == sorted((b + a).samples)

    def test_floats_are_accepted(self):
        """Float observations are stored unchanged."""
        observer = Unaggregated()
        observer.observe(1.5)
        assert observer.to_json() == [1.5]

    def test_combine_with_histogram_fails(self):
        """Combining with another observer type raises TypeError."""
        with pytest.raises(TypeError):
            Unaggregated().combine(Histogram(4))


class TestFactories:
    """Observer factory selection."""

    def test_histogram_factory(self):
        """histogram_factory builds a histogram with the requested size."""
        observer = histogram_factory(16)
        assert isinstance(observer, Histogram)
        assert observer.n_buckets == 16

    def test_unaggregated_factory_ignores_buckets(self):
        """unaggregated_factory builds an empty raw list."""
        observer = unaggregated_factory(16)
        assert isinstance(observer, Unaggregated)
        assert observer.samples == []

    def test_get_observer_factory(self):
        """Factories are resolved by configuration name."""
        assert get_observer_factory("histogram") is histogram_factory
        assert get_observer_factory("unaggregated") is unaggregated_factory

    def test_unknown_observer_kind(self):
        """Unknown names raise ValueError."""
        with pytest.raises(ValueError):
            get_observer_factory("median")


@dataclass
class _PairStats(ObserverGroup):
    left: Observer
    right: Observer

    @classmethod
    def create(cls, factory):
        return cls(left=factory(8), right=factory(8))


class TestObserverGroup:
    """Field-wise combination of observer groups."""

    def test_combine_field_by_field(self):
        """Each field is combined with the same field of the other group."""
        a = _PairStats.create(unaggregated_factory)
        b = _PairStats.create(unaggregated_factory)
        a.left.observe(1)
        b.left.observe(2)
        b.right.observe(3)
        merged = a + b
        assert merged.to_json() == {"left": [1, 2], "right": [3]}

    def test_histogram_group_json(self):
        """Histogram fields serialize as summaries."""
        group = _PairStats.create(histogram_factory)
        group.left.observe(2)
        assert group.to_json()["left"] == {"count": 1, "sum": 2, "avg": 2.0, "mode": 2}

    def test_reduce_from_identity(self):
        """reduce_monoid folds groups starting from a fresh identity."""
        groups = []
        for value in (1, 2, 3):
            group = _PairStats.create(unaggregated_factory)
            group.right.observe(value)
            groups.append(group)
        total = reduce_monoid(groups, _PairStats.create(unaggregated_factory))
        assert total.to_json() == {"left": [], "right": [1, 2, 3]}

    def test_combine_with_other_type_fails(self):
        """Groups of different types cannot be combined."""
        with pytest.raises(TypeError):
            _PairStats.create(unaggregated_factory).combine(Unaggregated())
