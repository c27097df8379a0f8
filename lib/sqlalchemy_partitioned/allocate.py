# sqlalchemy_partitioned/allocate.py
# Copyright (C) 2026 the sqlalchemy-partitioned authors and contributors
# <see AUTHORS file>
#
# This module is part of sqlalchemy-partitioned and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Primary key allocation ahead of INSERT.

Used for entities whose descriptor sets ``prefetch_primary_key``, where
the primary key must be known before the partition can be resolved,
typically because the primary key is itself a partition key column.

"""

from __future__ import annotations

from typing import Any
from typing import Callable
from typing import TYPE_CHECKING

from typing_extensions import Protocol

from . import exc

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

    from .descriptor import EntityDescriptor
    from .execute import StatementExecutor


class PrimaryKeyAllocator(Protocol):
    """Produce a new, unique primary key value for one row."""

    def allocate(
        self, descriptor: EntityDescriptor, executor: StatementExecutor
    ) -> Any: ...


class SequenceAllocator:
    """Allocate primary keys from the descriptor's :class:`.Sequence`,
    using the executor's ``next_value()``.

    This is the default allocator of a :class:`.PersistenceRouter`.

    """

    def allocate(
        self, descriptor: EntityDescriptor, executor: StatementExecutor
    ) -> Any:
        if descriptor.sequence is None:
            raise exc.ArgumentError(
                "Entity %r prefetches its primary key but has no sequence "
                "configured; pass sequence= to the descriptor or configure "
                "an allocator on the router" % descriptor.name
            )
        return executor.next_value(descriptor.sequence)


class CallableAllocator:
    """Allocate primary keys by calling a function with the current
    :class:`_engine.Connection` and the descriptor.

    Useful for backends without sequences, e.g. an id-generator table::

        def next_order_id(connection, descriptor):
            nextid = connection.scalar(
                select(ids.c.nextid).with_for_update()
            )
            connection.execute(ids.update().values(nextid=ids.c.nextid + 1))
            return nextid


        allocator = CallableAllocator(next_order_id)
        router = create_router(conn, allocator=allocator)

    """

    def __init__(
        self, fn: Callable[[Connection, EntityDescriptor], Any]
    ) -> None:
        self.fn = fn

    def allocate(
        self, descriptor: EntityDescriptor, executor: StatementExecutor
    ) -> Any:
        return self.fn(executor.connection, descriptor)
