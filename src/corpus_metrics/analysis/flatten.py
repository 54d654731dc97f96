"""Flatten and count the nested metrics JSON.

Leaves are numbers, ``null``, arrays (raw samples) and histogram summaries
(objects with the key set ``{count, sum, avg|mean, mode}``). Any other
object is walked recursively. Booleans, strings and other shapes mean a
collector emitted something unexpected and raise ``MetricShapeError``.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from ..core.exceptions import MetricShapeError

_SUMMARY_KEY_SETS = (
    frozenset({"count", "sum", "avg", "mode"}),
    frozenset({"count", "sum", "mean", "mode"}),
    # summaries written without a count
    frozenset({"sum", "avg", "mode"}),
    frozenset({"sum", "mean", "mode"}),
)


def is_histogram_summary(value: Any) -> bool:
    return isinstance(value, dict) and frozenset(value) in _SUMMARY_KEY_SETS


def _is_leaf(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return (
        value is None
        or isinstance(value, (int, float, list))
        or is_histogram_summary(value)
    )


def iter_leaves(
    metrics: dict[str, Any], prefix: str = ""
) -> Iterator[tuple[str, Any]]:
    """Yield ``(dotted.path, leaf)`` pairs in key order.

    Raises:
        MetricShapeError: If a value is neither a leaf nor a nested object
    """
    if not isinstance(metrics, dict):
        raise MetricShapeError(
            "Metrics root must be an object", {"type": type(metrics).__name__}
        )
    stack: list[tuple[str, Any]] = [
        (f"{prefix}.{key}" if prefix else str(key), metrics[key])
        for key in sorted(metrics, reverse=True)
    ]
    while stack:
        path, value = stack.pop()
        if _is_leaf(value):
            yield path, value
            continue
        if isinstance(value, dict) and not is_histogram_summary(value):
            for key in sorted(value, reverse=True):
                child_path = f"{path}.{key}" if path else str(key)
                stack.append((child_path, value[key]))
            continue
        raise MetricShapeError(
            "Unexpected value in metrics tree",
            {"path": path, "type": type(value).__name__},
        )


def flatten_metrics(metrics: dict[str, Any]) -> dict[str, Any]:
    """Map every leaf to its dotted path, e.g. ``complexity.item_fn``."""
    return dict(iter_leaves(metrics))


def count_metrics(metrics: dict[str, Any]) -> int:
    """Number of leaf metrics (a histogram summary counts once)."""
    return sum(1 for _ in iter_leaves(metrics))


def get_metric_list(metrics: dict[str, Any]) -> list[str]:
    """Sorted dotted names of all leaf metrics."""
    return sorted(path for path, _ in iter_leaves(metrics))
