# sqlalchemy_partitioned/exc.py
# Copyright (C) 2026 the sqlalchemy-partitioned authors and contributors
# <see AUTHORS file>
#
# This module is part of sqlalchemy-partitioned and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Exceptions raised by sqlalchemy-partitioned.

The base exception class is :exc:`.PartitionError`, itself a subclass of
:exc:`sqlalchemy.exc.SQLAlchemyError`.  Exceptions which are raised as a
result of a failed INSERT, UPDATE, DELETE or SELECT are all subclasses of
:exc:`.StatementFailed`, and carry the original exception as
:attr:`.StatementFailed.orig` as well as ``__cause__``.

"""

from __future__ import annotations

from typing import Any
from typing import Optional

from sqlalchemy import exc as sa_exc


class PartitionError(sa_exc.SQLAlchemyError):
    """Generic error class."""


class ArgumentError(PartitionError):
    """Raised when an invalid or conflicting argument is supplied to
    an entity descriptor, scope or router.

    This error generally corresponds to construction time state errors.

    """


class InvalidRequestError(PartitionError):
    """The router was asked to do something it can't do.

    This error generally corresponds to runtime state errors.

    """


class MissingPartitionAttribute(KeyError, InvalidRequestError):
    """A partition key column named by an entity descriptor is not
    present among an entity's attributes."""

    def __init__(self, entity_name: str, column: str):
        InvalidRequestError.__init__(
            self,
            "Entity %r has no value for partition key column %r"
            % (entity_name, column),
        )
        self.entity_name = entity_name
        self.column = column

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return InvalidRequestError.__str__(self)

    def __reduce__(self) -> Any:
        return self.__class__, (self.entity_name, self.column)


class UnresolvedPartition(InvalidRequestError):
    """No physical table matches a given set of partition key values.

    Raised by partition resolvers; the router never substitutes a default
    table for it.

    """

    def __init__(
        self,
        message: str,
        partition_key: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.partition_key = partition_key

    def __reduce__(self) -> Any:
        return self.__class__, (self.args[0], self.partition_key)


class PartitionKeyModified(InvalidRequestError):
    """An UPDATE was requested for an entity whose partition key values
    differ from the ones it was persisted with.

    Moving a row between partitions is not supported; the row would
    otherwise be looked for in the wrong physical table.

    """


class UnpersistedEntity(InvalidRequestError):
    """An UPDATE or DELETE was requested for an entity which has not
    been persisted."""


class AllocationFailed(PartitionError):
    """A primary key value could not be allocated.

    The entity remains unpersisted and no statement has been issued.

    """

    def __init__(self, message: str, entity_name: Optional[str] = None):
        super().__init__(message)
        self.entity_name = entity_name

    def __reduce__(self) -> Any:
        return self.__class__, (self.args[0], self.entity_name)


class StatementFailed(PartitionError):
    """Wraps an exception raised while executing a routed statement.

    The original exception is available as :attr:`.orig`; the name of the
    entity and of the physical table which was targeted are available as
    :attr:`.entity_name` and :attr:`.table_name`.

    """

    operation = "statement"

    def __init__(
        self,
        orig: BaseException,
        entity_name: str,
        table_name: Optional[str],
    ):
        super().__init__(
            "%s for %r against table %r failed: (%s.%s) %s"
            % (
                self.operation,
                entity_name,
                table_name,
                orig.__class__.__module__,
                orig.__class__.__name__,
                orig,
            )
        )
        self.orig = orig
        self.entity_name = entity_name
        self.table_name = table_name

    def __reduce__(self) -> Any:
        return self.__class__, (self.orig, self.entity_name, self.table_name)


class InsertFailed(StatementFailed):
    """An INSERT against a resolved table failed."""

    operation = "INSERT"


class UpdateFailed(StatementFailed):
    """An UPDATE against a resolved table failed."""

    operation = "UPDATE"


class DeleteFailed(StatementFailed):
    """A DELETE against a resolved table failed."""

    operation = "DELETE"


class SelectFailed(StatementFailed):
    """A SELECT against a resolved table failed."""

    operation = "SELECT"
