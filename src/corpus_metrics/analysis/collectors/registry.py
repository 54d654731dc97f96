"""Explicit collector registry.

``get_metric_collectors`` builds a fresh list on every call; there is no
module-level registry. The list is ordered by output key.
"""

from __future__ import annotations

from ..observers import ObserverFactory, unaggregated_factory
from .base import MetricCollector
from .code_analysis import make_code_analysis_collector
from .cohesion import make_lack_of_cohesion_collector
from .complexity import make_complexity_collector
from .counters import (
    make_if_count_collector,
    make_macro_collector,
    make_statement_size_collector,
)
from .functions import (
    make_fn_arg_count_collector,
    make_fn_arg_mutability_collector,
    make_fn_depth_collector,
)
from .structural import (
    make_enums_collector,
    make_per_file_collector,
    make_structs_collector,
    make_trait_def_collector,
)


def get_metric_collectors(
    observer_factory: ObserverFactory = unaggregated_factory,
    include_code_analysis: bool = False,
) -> list[MetricCollector]:
    """Build the list of metric collectors.

    Args:
        observer_factory: Builds the observer for each statistic
            (``histogram_factory`` or ``unaggregated_factory``)
        include_code_analysis: Append the conventional-metrics collector

    Returns:
        New list of collectors, ordered by name
    """
    collectors: list[MetricCollector] = [
        make_complexity_collector(observer_factory),
        make_enums_collector(observer_factory),
        make_fn_arg_count_collector(observer_factory),
        make_fn_arg_mutability_collector(observer_factory),
        make_fn_depth_collector(observer_factory),
        make_if_count_collector(),
        make_lack_of_cohesion_collector(observer_factory),
        make_macro_collector(observer_factory),
        make_per_file_collector(observer_factory),
        make_statement_size_collector(observer_factory),
        make_structs_collector(observer_factory),
        make_trait_def_collector(observer_factory),
    ]
    if include_code_analysis:
        collectors.append(make_code_analysis_collector())
    return sorted(collectors, key=lambda collector: collector.name)
