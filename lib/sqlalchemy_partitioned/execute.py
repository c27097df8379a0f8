# sqlalchemy_partitioned/execute.py
# Copyright (C) 2026 the sqlalchemy-partitioned authors and contributors
# <see AUTHORS file>
#
# This module is part of sqlalchemy-partitioned and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Statement execution against an underlying store.

The router builds its statements against already-resolved tables and
hands them to a :class:`.StatementExecutor`.  :class:`.ConnectionExecutor`
is the implementation backed by a SQLAlchemy :class:`_engine.Connection`;
errors raised by the connection propagate unchanged and are wrapped by
the router.

Transaction scope is owned by the caller::

    with engine.begin() as conn:
        router = create_router(conn)
        router.create(order)

"""

from __future__ import annotations

from typing import Any
from typing import List
from typing import Mapping
from typing import TYPE_CHECKING

from sqlalchemy import insert
from sqlalchemy import select
from sqlalchemy import update
from typing_extensions import Protocol

if TYPE_CHECKING:
    from sqlalchemy import Sequence
    from sqlalchemy import Table
    from sqlalchemy.engine import Connection
    from sqlalchemy.engine import Row
    from sqlalchemy.sql.elements import ColumnElement

    from .scope import Scope


class StatementExecutor(Protocol):
    connection: Connection

    def execute_insert(self, table: Table, values: Mapping[str, Any]) -> Any:
        """INSERT ``values`` into ``table``; return the new primary key."""
        ...

    def execute_update(
        self,
        table: Table,
        predicate: ColumnElement[bool],
        values: Mapping[str, Any],
    ) -> int:
        """UPDATE ``table``; return the number of matched rows."""
        ...

    def execute_delete(self, scope: Scope) -> int:
        """DELETE the rows of ``scope``; return the number of rows."""
        ...

    def execute_select(self, scope: Scope) -> List[Row[Any]]: ...

    def next_value(self, sequence: Sequence) -> Any: ...


class ConnectionExecutor:
    """A :class:`.StatementExecutor` running statements on a
    :class:`_engine.Connection`."""

    def __init__(self, connection: Connection):
        self.connection = connection

    def __repr__(self) -> str:
        return "ConnectionExecutor(%r)" % (self.connection,)

    def execute_insert(self, table: Table, values: Mapping[str, Any]) -> Any:
        result = self.connection.execute(insert(table).values(dict(values)))
        inserted = result.inserted_primary_key
        if not inserted:
            return None
        return inserted[0]

    def execute_update(
        self,
        table: Table,
        predicate: ColumnElement[bool],
        values: Mapping[str, Any],
    ) -> int:
        result = self.connection.execute(
            update(table).where(predicate).values(dict(values))
        )
        return result.rowcount

    def execute_delete(self, scope: Scope) -> int:
        return self.connection.execute(scope.delete()).rowcount

    def execute_select(self, scope: Scope) -> List[Row[Any]]:
        return list(self.connection.execute(scope.select()).all())

    def next_value(self, sequence: Sequence) -> Any:
        return self.connection.scalar(select(sequence.next_value()))
