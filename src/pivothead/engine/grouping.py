"""Grouping engine: partition a record set into a tree of Groups.

At each depth the key is computed from *all* remaining grouping fields, then
the partition recurses with the first field dropped.  Every group aggregates
from its own ``items``; aggregates are never composed from child groups
because avg and custom formulas do not decompose that way.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from pivothead.engine.aggregator import compute_aggregates
from pivothead.engine.models import GroupConfig, Group, Measure, Record, join_group_key

logger = logging.getLogger(__name__)

ALL_KEY = "All"


def group_records(
    items: Sequence[Record],
    fields: Sequence[str],
    key_fn: Callable[[Record, list[str]], str] = join_group_key,
    level: int = 0,
) -> list[Group]:
    """Partition *items* recursively by *fields*.

    Groups appear in order of first occurrence, so a pre-sorted input gives
    pre-sorted groups and pre-sorted ``items`` inside each group.  With no
    fields the whole input is one ``"All"`` group.
    """
    fields = list(fields)
    if not fields:
        return [Group(key=ALL_KEY, items=list(items), level=level)]

    buckets: dict[str, Group] = {}
    for item in items:
        key = str(key_fn(item, fields))
        group = buckets.get(key)
        if group is None:
            group = buckets[key] = Group(key=key, level=level)
        group.items.append(item)

    if len(fields) > 1:
        for group in buckets.values():
            group.subgroups = group_records(group.items, fields[1:], key_fn, level + 1)

    return list(buckets.values())


def aggregate_groups(
    groups: Sequence[Group],
    measures: Sequence[Measure],
    default_aggregation: str = "sum",
) -> None:
    """Fill ``aggregates`` on every group of the tree, each from its own items."""
    for group in groups:
        group.aggregates = compute_aggregates(group.items, measures, default_aggregation)
        aggregate_groups(group.subgroups, measures, default_aggregation)


def is_valid_group_config(config: GroupConfig | None) -> bool:
    """A config needs both field lists and a callable key function."""
    if config is None:
        return False
    if config.row_fields is None or config.column_fields is None:
        return False
    return callable(config.key_fn)


def build_groups(
    items: Sequence[Record],
    config: GroupConfig | None,
    measures: Sequence[Measure],
    default_aggregation: str = "sum",
) -> list[Group]:
    """Group and aggregate *items* per *config*.

    A malformed config is logged and treated as "no grouping" (empty list).
    """
    if config is None:
        return []
    if not is_valid_group_config(config):
        logger.warning(
            "Invalid group config (row_fields=%r, column_fields=%r, key_fn=%r); grouping disabled",
            config.row_fields, config.column_fields, config.key_fn,
        )
        return []

    groups = group_records(items, config.fields, config.key_fn)
    aggregate_groups(groups, measures, default_aggregation)
    logger.debug("Grouped %d records into %d top-level groups by %s", len(items), len(groups), config.fields)
    return groups
