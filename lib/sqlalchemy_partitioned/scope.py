# sqlalchemy_partitioned/scope.py
# Copyright (C) 2026 the sqlalchemy-partitioned authors and contributors
# <see AUTHORS file>
#
# This module is part of sqlalchemy-partitioned and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Read and delete scopes which target a resolved partition.

A :class:`.Scope` starts out against the logical table.  Once narrowed to
a physical partition, both its WHERE criteria and its projection are
rendered against the partition's columns; expressions written against the
logical table are re-targeted column by column, by key.

"""

from __future__ import annotations

from typing import Any
from typing import Callable
from typing import Iterable
from typing import List
from typing import Mapping
from typing import Optional
from typing import Tuple
from typing import TYPE_CHECKING
from typing import Union

from sqlalchemy import and_
from sqlalchemy import delete
from sqlalchemy import literal_column
from sqlalchemy import log
from sqlalchemy import select
from sqlalchemy import util
from sqlalchemy.sql import visitors
from sqlalchemy.sql.base import _generative
from sqlalchemy.sql.base import Generative
from sqlalchemy.sql.elements import ClauseElement
from sqlalchemy.sql.elements import ColumnClause
from typing_extensions import Self

from . import exc

if TYPE_CHECKING:
    from sqlalchemy import Delete
    from sqlalchemy import Select
    from sqlalchemy import Table
    from sqlalchemy.sql.elements import ColumnElement

    from .descriptor import EntityDescriptor
    from .entity import Entity

_Criterion = Union[
    "ColumnElement[bool]", Callable[["Table"], "ColumnElement[bool]"]
]
_Projection = Union[str, "ColumnElement[Any]"]


def _retarget(clause: Any, logical: Table, target: Table) -> Any:
    """Replace columns of ``logical`` in ``clause`` with the columns of
    the same key in ``target``."""

    if logical is target:
        return clause

    def replace(elem: Any, **kw: Any) -> Any:
        if isinstance(elem, ColumnClause) and elem.table is logical:
            try:
                return target.c[elem.key]
            except KeyError as err:
                raise exc.ArgumentError(
                    "Column %r is not present in table %r"
                    % (elem.key, target.name)
                ) from err
        return None

    return visitors.replacement_traverse(clause, {}, replace)


class Scope(Generative):
    """An immutable description of a set of rows of one entity:
    target table, predicates and projection.

    Equality predicates are kept by column name, independently of any
    table, so that narrowing to a partition re-binds them::

        scope = Scope(order_descriptor).where(region="eu", status="open")
        scope = scope.from_partition("eu")

        print(scope.select())
        # SELECT orders_eu.id, orders_eu.region, ... FROM orders_eu
        # WHERE orders_eu.region = :region_1 AND orders_eu.status = ...

    """

    def __init__(
        self,
        descriptor: EntityDescriptor,
        table: Optional[Table] = None,
        predicates: Optional[Mapping[str, Any]] = None,
        criteria: Iterable[_Criterion] = (),
        columns: Optional[Iterable[_Projection]] = None,
    ):
        self.descriptor = descriptor
        self.table = table if table is not None else descriptor.table
        self._predicates = util.immutabledict(predicates or {})
        self._criteria: Tuple[_Criterion, ...] = tuple(criteria)
        self._columns: Optional[Tuple[_Projection, ...]] = (
            tuple(columns) if columns is not None else None
        )

    def __repr__(self) -> str:
        return "<Scope %s on %s %r>" % (
            self.descriptor.name,
            self.table.name,
            dict(self._predicates),
        )

    @property
    def is_narrowed(self) -> bool:
        return self.table is not self.descriptor.table

    @property
    def predicates(self) -> Mapping[str, Any]:
        return self._predicates

    @property
    def columns(self) -> Optional[Tuple[_Projection, ...]]:
        return self._columns

    @_generative
    def where(self, **kw: Any) -> Self:
        """Add equality predicates.  A list, tuple or set value renders
        as IN; ``None`` renders as IS NULL."""
        self._predicates = self._predicates.union(kw)
        return self

    @_generative
    def filter(self, *criteria: _Criterion) -> Self:
        """Add criteria, either SQL expressions against the logical table
        or callables receiving the target table."""
        self._criteria += criteria
        return self

    @_generative
    def with_columns(self, *columns: _Projection) -> Self:
        self._columns = columns or None
        return self

    @_generative
    def narrow(self, table: Table) -> Self:
        self.table = table
        return self

    def from_partition(self, *values: Any) -> Self:
        """Narrow to the partition owning the given partition key values,
        given in the order of the descriptor's partition keys."""

        descriptor = self.descriptor
        if not descriptor.is_partitioned:
            raise exc.ArgumentError(
                "Entity %r is not partitioned" % descriptor.name
            )
        if len(values) != len(descriptor.partition_keys):
            raise exc.ArgumentError(
                "Expected %d partition key value(s) for %r (%s), got %d"
                % (
                    len(descriptor.partition_keys),
                    descriptor.name,
                    ", ".join(descriptor.partition_keys),
                    len(values),
                )
            )
        partition_key = dict(zip(descriptor.partition_keys, values))
        return self.narrow(descriptor.routing.table_for_key(partition_key))

    def predicates_for(self, table: Table) -> List[ColumnElement[bool]]:
        clauses = []
        for name, value in self._predicates.items():
            try:
                col = table.c[name]
            except KeyError as err:
                raise exc.ArgumentError(
                    "Column %r is not present in table %r"
                    % (name, table.name)
                ) from err
            if isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(col.in_(list(value)))
            elif value is None:
                clauses.append(col.is_(None))
            else:
                clauses.append(col == value)
        for criterion in self._criteria:
            if isinstance(criterion, ClauseElement):
                clauses.append(
                    _retarget(criterion, self.descriptor.table, table)
                )
            else:
                clauses.append(criterion(table))
        return clauses

    @property
    def whereclause(self) -> Optional[ColumnElement[bool]]:
        clauses = self.predicates_for(self.table)
        if not clauses:
            return None
        return and_(*clauses)

    def select(self) -> Select[Any]:
        stmt = select(*SelectProjector.project(self, self._columns))
        return stmt.select_from(self.table).where(
            *self.predicates_for(self.table)
        )

    def delete(self) -> Delete:
        return delete(self.table).where(*self.predicates_for(self.table))


class SelectProjector:
    """Decide the columns a scope's SELECT projects."""

    @classmethod
    def project(
        cls, scope: Scope, columns: Optional[Iterable[_Projection]] = None
    ) -> List[ColumnElement[Any]]:
        """Return the projection for ``scope``.

        With no ``columns``, all columns of the scope's target table, so a
        narrowed scope returns the partition's columns.  Otherwise, names
        and columns which match a column of the target table project that
        table's column; anything else is passed through, strings as
        :func:`_sql.literal_column`.

        """
        table = scope.table
        if not columns:
            return list(table.c)

        logical = scope.descriptor.table
        projected: List[ColumnElement[Any]] = []
        for col in columns:
            if isinstance(col, str):
                if col in table.c:
                    projected.append(table.c[col])
                else:
                    projected.append(literal_column(col))
            else:
                projected.append(_retarget(col, logical, table))
        return projected


@log.class_logger
class ScopeBuilder:
    """Build :class:`.Scope` objects for deletes and queries, narrowing
    them to a partition whenever the partition key is fully known."""

    logger: Any

    def for_destroy(self, entity: Entity) -> Scope:
        descriptor = entity.descriptor
        ident = entity.identity
        if ident is None:
            ident = entity.primary_key
        scope = Scope(descriptor, predicates={descriptor.primary_key: ident})
        if descriptor.is_partitioned:
            scope = scope.narrow(descriptor.routing.table_for(entity.values))
        return scope

    def for_query(
        self,
        descriptor: EntityDescriptor,
        predicates: Optional[Mapping[str, Any]] = None,
        *criteria: _Criterion,
    ) -> Scope:
        return self.narrow(Scope(descriptor, None, predicates, criteria))

    def narrow(self, scope: Scope) -> Scope:
        """Narrow ``scope`` to a partition if its equality predicates pin
        every partition key column to a single value; otherwise return
        it unchanged, against the logical table."""

        routing = scope.descriptor.routing
        partition_key = routing.pinned_key(scope.predicates)
        if partition_key is None:
            if routing.is_partitioned and self._should_log_debug():
                self.logger.debug(
                    "Partition key of %s not pinned by %r; "
                    "scope stays on logical table %s",
                    scope.descriptor.name,
                    dict(scope.predicates),
                    scope.descriptor.table.name,
                )
            return scope
        return scope.narrow(routing.table_for_key(partition_key))

    if TYPE_CHECKING:

        def _should_log_debug(self) -> bool: ...

        def _should_log_info(self) -> bool: ...
