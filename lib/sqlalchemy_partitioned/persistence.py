# sqlalchemy_partitioned/persistence.py
# Copyright (C) 2026 the sqlalchemy-partitioned authors and contributors
# <see AUTHORS file>
#
# This module is part of sqlalchemy-partitioned and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Route INSERT, UPDATE and DELETE of entities to their partitions.

Within one operation the steps always run in the same order: primary key
allocation, partition key extraction, partition resolution, forcing of the
partition key columns into the write set, and finally execution.  The
partition is resolved before any statement is emitted, so that a
resolution failure never leaves a partially written row; when a step
fails, the :class:`.Entity` is left unchanged.

"""

from __future__ import annotations

from collections import ChainMap
from typing import Any
from typing import Dict
from typing import Iterable
from typing import List
from typing import Mapping
from typing import Optional
from typing import TYPE_CHECKING
from typing import Union

from sqlalchemy import exc as sa_exc
from sqlalchemy import log
from sqlalchemy.engine import Connection
from sqlalchemy.engine import Engine

from . import exc
from .allocate import SequenceAllocator
from .entity import Entity
from .execute import ConnectionExecutor
from .scope import ScopeBuilder
from .writeset import WriteSet

if TYPE_CHECKING:
    from sqlalchemy.engine import Row

    from .allocate import PrimaryKeyAllocator
    from .descriptor import EntityDescriptor
    from .execute import StatementExecutor
    from .scope import Scope
    from .scope import _Criterion
    from .scope import _Projection


class PersistenceRouter(log.Identified):
    """Persist :class:`.Entity` objects to the physical table their
    partition key values resolve to.

    :param executor: the :class:`.StatementExecutor` statements are run
     with, typically a :class:`.ConnectionExecutor`.

    :param allocator: the :class:`.PrimaryKeyAllocator` used for entities
     which prefetch their primary key; defaults to
     :class:`.SequenceAllocator`.

    :param echo: if ``True``, routed statements are logged at INFO level
     with the entity name and the physical table; ``"debug"`` additionally
     logs partition keys, allocated primary keys and forced columns.

    :param logging_name: string identifier used within the "name" field of
     logging records generated within the
     ``sqlalchemy_partitioned.persistence.PersistenceRouter`` logger.

    """

    echo = log.echo_property()

    def __init__(
        self,
        executor: StatementExecutor,
        allocator: Optional[PrimaryKeyAllocator] = None,
        *,
        echo: log._EchoFlagType = None,
        logging_name: Optional[str] = None,
    ):
        self.executor = executor
        self.allocator = (
            allocator if allocator is not None else SequenceAllocator()
        )
        self.scopes = ScopeBuilder()
        if logging_name:
            self.logging_name = logging_name
        self.echo = echo

    def __repr__(self) -> str:
        return "PersistenceRouter(%r)" % (self.executor,)

    def _allocate(self, descriptor: EntityDescriptor) -> Any:
        try:
            value = self.allocator.allocate(descriptor, self.executor)
        except exc.ArgumentError:
            raise
        except Exception as err:
            raise exc.AllocationFailed(
                "Could not allocate a primary key for %r: %s"
                % (descriptor.name, err),
                entity_name=descriptor.name,
            ) from err
        if value is None:
            raise exc.AllocationFailed(
                "Allocator returned no primary key value for %r"
                % descriptor.name,
                entity_name=descriptor.name,
            )
        if self._should_log_debug():
            self.logger.debug(
                "Allocated primary key %s=%r for %s",
                descriptor.primary_key,
                value,
                descriptor.name,
            )
        return value

    def _check_partition_key(
        self, entity: Entity, partition_key: Mapping[str, Any]
    ) -> None:
        committed = entity.committed
        for column, value in partition_key.items():
            if column in committed and committed[column] != value:
                raise exc.PartitionKeyModified(
                    "Partition key column %r of %r changed from %r to %r; "
                    "rows can't be moved between partitions"
                    % (
                        column,
                        entity.descriptor.name,
                        committed[column],
                        value,
                    )
                )

    def _partition_defaults(
        self, descriptor: EntityDescriptor, values: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """Scalar column defaults of partition key columns the entity
        leaves unset."""

        defaults: Dict[str, Any] = {}
        for column in descriptor.partition_keys:
            if values.get(column) is not None:
                continue
            default = descriptor.table.c[column].default
            if default is not None and default.is_scalar:
                defaults[column] = default.arg
        return defaults

    def create(self, entity: Entity) -> Any:
        """INSERT ``entity`` into its partition and return its primary
        key value."""

        descriptor = entity.descriptor
        if entity.persisted:
            raise exc.InvalidRequestError(
                "%r is already persisted; use update()" % (entity,)
            )

        ws = WriteSet.for_create(descriptor, entity.values)
        defaulted = self._partition_defaults(descriptor, entity.values)
        ws.merge(defaulted)

        allocated = None
        if entity.primary_key is None and descriptor.prefetch_primary_key:
            allocated = self._allocate(descriptor)
            ws.add(descriptor.primary_key, allocated)

        routing = descriptor.routing
        partition_key = routing.partition_key(
            ChainMap(ws.as_dict(), dict(entity.values))
        )
        table = routing.table_for_key(partition_key)
        if routing.is_partitioned:
            ws.force_include(descriptor.partition_keys, partition_key)
            if self._should_log_debug():
                self.logger.debug(
                    "Partition key %r of %s resolved to %s",
                    partition_key,
                    descriptor.name,
                    table.name,
                )

        if self._should_log_info():
            self.logger.info(
                "INSERT %s into %s %r", descriptor.name, table.name, ws.columns
            )
        try:
            new_id = self.executor.execute_insert(table, ws.as_dict())
        except sa_exc.SQLAlchemyError as err:
            raise exc.InsertFailed(err, descriptor.name, table.name) from err

        entity.set(**defaulted)
        ident = entity.primary_key
        if ident is None:
            ident = allocated if allocated is not None else new_id
        entity.mark_persisted(ident)
        return ident

    def update(
        self,
        entity: Entity,
        changed_columns: Optional[Iterable[str]] = None,
        identity: Any = None,
    ) -> int:
        """UPDATE ``entity`` within its partition.

        :param changed_columns: the columns to write; defaults to the
         entity's :meth:`.Entity.changed_columns`.  Partition key columns
         are always added.

        :param identity: primary key value the UPDATE is filtered on;
         defaults to the primary key as persisted, so that the primary key
         itself may be written with a new value.

        Returns the number of matched rows; ``0`` without emitting a
        statement when there is nothing to write.

        """

        descriptor = entity.descriptor
        if not entity.persisted:
            raise exc.UnpersistedEntity(
                "Can't update %r; it has not been persisted" % (entity,)
            )
        if changed_columns is None:
            changed_columns = entity.changed_columns()

        ws = WriteSet.for_update(descriptor, entity.values, changed_columns)

        routing = descriptor.routing
        partition_key = routing.partition_key(entity.values)
        if routing.is_partitioned:
            self._check_partition_key(entity, partition_key)
            ws.force_include(descriptor.partition_keys, partition_key)

        if not ws:
            if self._should_log_debug():
                self.logger.debug(
                    "No columns to UPDATE for %s; skipping", descriptor.name
                )
            return 0

        table = routing.table_for_key(partition_key)

        if identity is None:
            identity = entity.identity
            if identity is None:
                identity = entity.primary_key

        if self._should_log_info():
            self.logger.info(
                "UPDATE %s in %s %r", descriptor.name, table.name, ws.columns
            )
        try:
            rowcount = self.executor.execute_update(
                table,
                table.c[descriptor.primary_key] == identity,
                ws.as_dict(),
            )
        except sa_exc.SQLAlchemyError as err:
            raise exc.UpdateFailed(err, descriptor.name, table.name) from err

        entity.mark_persisted()
        return rowcount

    def destroy(self, entity: Entity) -> int:
        """DELETE ``entity`` from its partition and return the number of
        deleted rows."""

        descriptor = entity.descriptor
        if not entity.persisted:
            raise exc.UnpersistedEntity(
                "Can't delete %r; it has not been persisted" % (entity,)
            )

        scope = self.scopes.for_destroy(entity)

        if self._should_log_info():
            self.logger.info(
                "DELETE %s from %s", descriptor.name, scope.table.name
            )
        try:
            rowcount = self.executor.execute_delete(scope)
        except sa_exc.SQLAlchemyError as err:
            raise exc.DeleteFailed(
                err, descriptor.name, scope.table.name
            ) from err

        entity.mark_deleted()
        return rowcount

    def save(self, entity: Entity) -> Any:
        """INSERT ``entity`` if it's not persisted, else UPDATE its
        changed columns.

        Returns the primary key value after an INSERT, the number of
        matched rows after an UPDATE.

        """
        if entity.persisted:
            return self.update(entity)
        else:
            return self.create(entity)

    def scope(
        self,
        descriptor: EntityDescriptor,
        predicates: Optional[Mapping[str, Any]] = None,
        *criteria: _Criterion,
    ) -> Scope:
        return self.scopes.for_query(descriptor, predicates, *criteria)

    def select(
        self, scope: Scope, columns: Optional[Iterable[_Projection]] = None
    ) -> List[Row[Any]]:
        """Execute ``scope`` and return its rows."""

        if columns is not None:
            scope = scope.with_columns(*columns)

        if self._should_log_info():
            self.logger.info(
                "SELECT %s from %s", scope.descriptor.name, scope.table.name
            )
        try:
            return self.executor.execute_select(scope)
        except sa_exc.SQLAlchemyError as err:
            raise exc.SelectFailed(
                err, scope.descriptor.name, scope.table.name
            ) from err

    def get(
        self, descriptor: EntityDescriptor, ident: Any, **partition_values: Any
    ) -> Optional[Entity]:
        """Load one entity by primary key.

        Partition key values passed as keyword arguments narrow the SELECT
        to the owning partition; when they don't pin every partition key
        column, the logical table is queried.

        """
        predicates = dict(partition_values)
        predicates[descriptor.primary_key] = ident
        rows = self.select(self.scopes.for_query(descriptor, predicates))
        if not rows:
            return None
        return Entity.from_row(descriptor, rows[0])


def create_router(
    bind: Union[Connection, StatementExecutor], **kw: Any
) -> PersistenceRouter:
    """Create a new :class:`.PersistenceRouter`.

    ``bind`` is a :class:`_engine.Connection`, within a transaction
    managed by the caller, or any :class:`.StatementExecutor`.  Keyword
    arguments are passed to :class:`.PersistenceRouter`::

        with engine.begin() as conn:
            router = create_router(conn, echo=True)

    """
    if isinstance(bind, Engine):
        raise exc.ArgumentError(
            "create_router() requires a Connection, "
            "e.g. ``with engine.begin() as conn:``"
        )
    elif isinstance(bind, Connection):
        executor: StatementExecutor = ConnectionExecutor(bind)
    else:
        executor = bind
    return PersistenceRouter(executor, **kw)
