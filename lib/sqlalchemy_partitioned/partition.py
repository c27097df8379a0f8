# sqlalchemy_partitioned/partition.py
# Copyright (C) 2026 the sqlalchemy-partitioned authors and contributors
# <see AUTHORS file>
#
# This module is part of sqlalchemy-partitioned and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Partition key extraction, resolver functions and table routing.

Every code path that needs a physical table, whether building an INSERT,
an UPDATE, or a narrowed :class:`.Scope`, goes through the
:class:`.TableRouting` owned by the entity's :class:`.EntityDescriptor`.
Non-partitioned entities get the :class:`.LogicalTableRouting`, which
always answers with the logical table and never consults a resolver.

"""

from __future__ import annotations

from typing import Any
from typing import Collection
from typing import Dict
from typing import Mapping
from typing import Optional
from typing import Sequence
from typing import TYPE_CHECKING
from typing import Union

from sqlalchemy.sql.elements import ClauseElement
from typing_extensions import Protocol

from . import exc

if TYPE_CHECKING:
    from sqlalchemy import Table

    from .descriptor import EntityDescriptor


class PartitionResolver(Protocol):
    """Given the ordered partition key values of a row, return the name
    of the physical table the row belongs to.

    Resolvers must be deterministic, and should raise
    :class:`.UnresolvedPartition` for values outside of any known
    partition.

    """

    def __call__(self, partition_key: Mapping[str, Any]) -> str: ...


def extract_partition_key(
    descriptor: EntityDescriptor, values: Mapping[str, Any]
) -> Dict[str, Any]:
    """Return the partition key columns of ``values``, in the order
    declared by the descriptor."""

    partition_key = {}
    for column in descriptor.partition_keys:
        try:
            partition_key[column] = values[column]
        except KeyError as err:
            raise exc.MissingPartitionAttribute(
                descriptor.name, column
            ) from err
    return partition_key


def resolve_partition(
    descriptor: EntityDescriptor, partition_key: Mapping[str, Any]
) -> str:
    assert descriptor.resolver is not None
    name = descriptor.resolver(partition_key)
    if not isinstance(name, str) or not name:
        raise exc.UnresolvedPartition(
            "Resolver for %r returned %r for partition key %r; "
            "expected a table name" % (descriptor.name, name, partition_key),
            partition_key=dict(partition_key),
        )
    return name


def lookup_resolver(
    columns: Union[str, Sequence[str]], lookup: Mapping[Any, str]
) -> PartitionResolver:
    """Return a resolver which looks up the partition key in a fixed
    mapping of values to table names.

    For a single column, the keys of ``lookup`` are plain values::

        lookup_resolver("region", {"us": "orders_us", "eu": "orders_eu"})

    For several columns, the keys are tuples in column order::

        lookup_resolver(
            ("region", "year"),
            {("us", 2025): "orders_us_2025", ("us", 2026): "orders_us_2026"},
        )

    """
    lookup = dict(lookup)
    if isinstance(columns, str):
        single = columns

        def resolve(partition_key: Mapping[str, Any]) -> str:
            value = partition_key[single]
            try:
                return lookup[value]
            except (KeyError, TypeError) as err:
                raise exc.UnresolvedPartition(
                    "No partition for %s=%r" % (single, value),
                    partition_key=dict(partition_key),
                ) from err

    else:
        cols = tuple(columns)

        def resolve(partition_key: Mapping[str, Any]) -> str:
            value = tuple(partition_key[col] for col in cols)
            try:
                return lookup[value]
            except (KeyError, TypeError) as err:
                raise exc.UnresolvedPartition(
                    "No partition for %s"
                    % ", ".join(
                        "%s=%r" % (col, v) for col, v in zip(cols, value)
                    ),
                    partition_key=dict(partition_key),
                ) from err

    return resolve


def template_resolver(
    template: str, allowed: Optional[Mapping[str, Collection[Any]]] = None
) -> PartitionResolver:
    """Return a resolver which formats partition key values into a
    table naming scheme, e.g. ``template_resolver("orders_{region}")``.

    :param allowed: optional mapping of column name to the collection of
     values for which partitions exist; values outside of it raise
     :class:`.UnresolvedPartition` rather than producing the name of a
     table which isn't there.

    """

    def resolve(partition_key: Mapping[str, Any]) -> str:
        for column, value in partition_key.items():
            if value is None:
                raise exc.UnresolvedPartition(
                    "No partition for %s=None" % column,
                    partition_key=dict(partition_key),
                )
            if allowed is not None and column in allowed:
                if value not in allowed[column]:
                    raise exc.UnresolvedPartition(
                        "No partition for %s=%r" % (column, value),
                        partition_key=dict(partition_key),
                    )
        try:
            return template.format(**partition_key)
        except (KeyError, IndexError, ValueError) as err:
            raise exc.UnresolvedPartition(
                "Can't format table name %r from partition key %r"
                % (template, dict(partition_key)),
                partition_key=dict(partition_key),
            ) from err

    return resolve


def _is_scalar(value: Any) -> bool:
    # None renders as IS NULL and names no partition
    return value is not None and not isinstance(
        value, (list, tuple, set, frozenset, ClauseElement)
    )


class TableRouting:
    """Decide which table a statement for a given entity targets."""

    __slots__ = ("descriptor",)

    is_partitioned = False

    def __init__(self, descriptor: EntityDescriptor):
        self.descriptor = descriptor

    def partition_key(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError()

    def table_for_key(self, partition_key: Mapping[str, Any]) -> Table:
        raise NotImplementedError()

    def pinned_key(
        self, predicates: Mapping[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Return the partition key if every partition key column is
        pinned to a single value by ``predicates``, else ``None``."""
        raise NotImplementedError()

    def table_for(self, values: Mapping[str, Any]) -> Table:
        return self.table_for_key(self.partition_key(values))


class LogicalTableRouting(TableRouting):
    """Routing for entities which are not partitioned."""

    __slots__ = ()

    def partition_key(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        return {}

    def table_for_key(self, partition_key: Mapping[str, Any]) -> Table:
        return self.descriptor.table

    def pinned_key(
        self, predicates: Mapping[str, Any]
    ) -> Optional[Dict[str, Any]]:
        return None


class PartitionedTableRouting(TableRouting):
    """Routing for entities whose rows live in physical partitions."""

    __slots__ = ()

    is_partitioned = True

    def partition_key(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        return extract_partition_key(self.descriptor, values)

    def table_for_key(self, partition_key: Mapping[str, Any]) -> Table:
        return self.descriptor.partition_table(
            resolve_partition(self.descriptor, partition_key)
        )

    def pinned_key(
        self, predicates: Mapping[str, Any]
    ) -> Optional[Dict[str, Any]]:
        partition_key = {}
        for column in self.descriptor.partition_keys:
            if column not in predicates:
                return None
            value = predicates[column]
            if not _is_scalar(value):
                return None
            partition_key[column] = value
        return partition_key
