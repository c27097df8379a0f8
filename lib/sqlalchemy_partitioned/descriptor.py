# sqlalchemy_partitioned/descriptor.py
# Copyright (C) 2026 the sqlalchemy-partitioned authors and contributors
# <see AUTHORS file>
#
# This module is part of sqlalchemy-partitioned and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Per-entity-type routing metadata.

An :class:`.EntityDescriptor` is created once for each logical table at
startup, and holds everything the router needs to know in order to route
a statement: the logical :class:`_schema.Table`, its primary key column,
the ordered partition key columns, the resolver function and the primary
key allocation policy.

"""

from __future__ import annotations

import threading
from typing import Any
from typing import Dict
from typing import Iterator
from typing import Optional
from typing import Sequence as _Seq
from typing import TYPE_CHECKING
from typing import Union

from sqlalchemy import MetaData
from sqlalchemy import Sequence
from sqlalchemy import Table

from . import exc
from .partition import LogicalTableRouting
from .partition import PartitionedTableRouting

if TYPE_CHECKING:
    from .partition import PartitionResolver
    from .partition import TableRouting


class EntityDescriptor:
    """Describe how rows of one logical table are routed.

    E.g.::

        orders = Table(
            "orders",
            metadata,
            Column("id", Integer, primary_key=True),
            Column("region", String(2), nullable=False),
            Column("amount", Integer),
        )

        order_descriptor = EntityDescriptor(
            orders,
            partition_keys=["region"],
            resolver=lookup_resolver(
                "region", {"us": "orders_us", "eu": "orders_eu"}
            ),
        )

    :param table: the logical :class:`_schema.Table`.  Callers address
     the entity by this table only.

    :param partition_keys: ordered sequence of column names whose values
     select the physical partition.  An empty sequence means the entity
     is not partitioned and all statements target the logical table.

    :param resolver: callable receiving an ordered ``dict`` of partition
     key values and returning the name of the physical table.  Required
     when ``partition_keys`` is non-empty.

    :param primary_key: name of the primary key column; defaults to the
     single primary key column of ``table``.

    :param prefetch_primary_key: when ``True``, primary key values are
     allocated before the INSERT rather than generated by the database.

    :param sequence: a :class:`.Sequence` or sequence name used by the
     default allocator when ``prefetch_primary_key`` is set.  Defaults to
     a :class:`.Sequence` present as the primary key column's default.

    :param name: name used for logging and error messages; defaults to
     the logical table name.

    """

    routing: TableRouting

    def __init__(
        self,
        table: Table,
        partition_keys: _Seq[str] = (),
        resolver: Optional[PartitionResolver] = None,
        *,
        primary_key: Optional[str] = None,
        prefetch_primary_key: bool = False,
        sequence: Union[Sequence, str, None] = None,
        name: Optional[str] = None,
    ):
        self.table = table
        self.name = name or table.name

        if primary_key is None:
            pk_cols = list(table.primary_key)
            if len(pk_cols) != 1:
                raise exc.ArgumentError(
                    "Table %r must have exactly one primary key column, "
                    "or primary_key must be given explicitly" % table.name
                )
            primary_key = pk_cols[0].key
        elif primary_key not in table.c:
            raise exc.ArgumentError(
                "Primary key column %r is not present in table %r"
                % (primary_key, table.name)
            )
        self.primary_key = primary_key

        self.partition_keys = tuple(partition_keys)
        for key in self.partition_keys:
            if key not in table.c:
                raise exc.ArgumentError(
                    "Partition key column %r is not present in table %r"
                    % (key, table.name)
                )
        if len(set(self.partition_keys)) != len(self.partition_keys):
            raise exc.ArgumentError(
                "Duplicate partition key columns for table %r: %r"
                % (table.name, self.partition_keys)
            )

        self.is_partitioned = bool(self.partition_keys)
        if self.is_partitioned and resolver is None:
            raise exc.ArgumentError(
                "A resolver is required for partitioned table %r"
                % table.name
            )
        self.resolver = resolver

        self.prefetch_primary_key = prefetch_primary_key
        if isinstance(sequence, str):
            sequence = Sequence(sequence, metadata=table.metadata)
        elif sequence is None and prefetch_primary_key:
            default = table.c[primary_key].default
            if isinstance(default, Sequence):
                sequence = default
        self.sequence = sequence

        pk_col = table.c[primary_key]
        self.default_eligible = frozenset(
            c.key
            for c in table.c
            if c.default is not None
            or c.server_default is not None
            or (c is pk_col and table.autoincrement_column is c)
        )

        self._partition_metadata = MetaData()
        self._partition_tables: Dict[str, Table] = {}
        self._mutex = threading.Lock()

        if self.is_partitioned:
            self.routing = PartitionedTableRouting(self)
        else:
            self.routing = LogicalTableRouting(self)

    def __repr__(self) -> str:
        return "EntityDescriptor(%r, partition_keys=%r)" % (
            self.name,
            list(self.partition_keys),
        )

    @property
    def column_keys(self) -> frozenset[str]:
        return frozenset(self.table.c.keys())

    def partition_table(self, name: str) -> Table:
        """Return the physical :class:`_schema.Table` for the given
        resolved table name.

        A table of that name which is already present in the logical
        table's :class:`_schema.MetaData` is used as is, so that
        partitions may declare columns of their own.  Otherwise, a copy of
        the logical table is produced under the given name.

        """
        if name == self.table.name:
            return self.table

        try:
            return self._partition_tables[name]
        except KeyError:
            pass

        with self._mutex:
            if name in self._partition_tables:
                return self._partition_tables[name]

            if self.table.schema is None:
                key = name
            else:
                key = "%s.%s" % (self.table.schema, name)
            partition = self.table.metadata.tables.get(key)
            if partition is None:
                partition = self.table.to_metadata(
                    self._partition_metadata, name=name
                )
            self._partition_tables[name] = partition
            return partition


class PartitionRegistry:
    """A collection of :class:`.EntityDescriptor` objects keyed on the
    logical table name."""

    def __init__(self) -> None:
        self._descriptors: Dict[str, EntityDescriptor] = {}

    def register(self, descriptor: EntityDescriptor) -> EntityDescriptor:
        key = descriptor.table.fullname
        if key in self._descriptors:
            raise exc.ArgumentError(
                "An entity descriptor for table %r is already registered"
                % key
            )
        self._descriptors[key] = descriptor
        return descriptor

    def _key(self, key: Union[str, Table]) -> str:
        if isinstance(key, Table):
            return key.fullname
        return key

    def get(
        self, key: Union[str, Table], default: Any = None
    ) -> Optional[EntityDescriptor]:
        return self._descriptors.get(self._key(key), default)

    def __getitem__(self, key: Union[str, Table]) -> EntityDescriptor:
        try:
            return self._descriptors[self._key(key)]
        except KeyError as err:
            raise exc.InvalidRequestError(
                "No entity descriptor registered for %r" % (key,)
            ) from err

    def __contains__(self, key: Union[str, Table]) -> bool:
        return self._key(key) in self._descriptors

    def __iter__(self) -> Iterator[EntityDescriptor]:
        return iter(list(self._descriptors.values()))

    def __len__(self) -> int:
        return len(self._descriptors)

    def clear(self) -> None:
        self._descriptors.clear()


registry = PartitionRegistry()
"""The default :class:`.PartitionRegistry`."""


def register_entity(
    table: Table,
    partition_keys: _Seq[str] = (),
    resolver: Optional[PartitionResolver] = None,
    *,
    registry: PartitionRegistry = registry,
    **kw: Any,
) -> EntityDescriptor:
    """Construct an :class:`.EntityDescriptor` and add it to a
    :class:`.PartitionRegistry`, the default registry if none is given.

    Keyword arguments are passed to :class:`.EntityDescriptor`.

    """
    return registry.register(
        EntityDescriptor(table, partition_keys, resolver, **kw)
    )
