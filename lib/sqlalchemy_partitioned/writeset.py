# sqlalchemy_partitioned/writeset.py
# Copyright (C) 2026 the sqlalchemy-partitioned authors and contributors
# <see AUTHORS file>
#
# This module is part of sqlalchemy-partitioned and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""The column/value pairs written by a routed INSERT or UPDATE."""

from __future__ import annotations

from typing import Any
from typing import Dict
from typing import Iterable
from typing import Iterator
from typing import List
from typing import Mapping
from typing import Tuple
from typing import TYPE_CHECKING

from . import exc

if TYPE_CHECKING:
    from .descriptor import EntityDescriptor


class WriteSet:
    """Ordered, duplicate-free collection of ``(column, value)`` pairs.

    Adding a column which is already present replaces its value in place;
    the column keeps its original position.

    """

    __slots__ = ("_values",)

    def __init__(self, values: Iterable[Tuple[str, Any]] = ()):
        self._values: Dict[str, Any] = {}
        for column, value in values:
            self._values[column] = value

    @classmethod
    def for_create(
        cls, descriptor: EntityDescriptor, values: Mapping[str, Any]
    ) -> WriteSet:
        """Build the write set for an INSERT.

        All of the entity's attributes are included, except ``None``
        values for columns which the database or the column default will
        fill in.

        """
        eligible = descriptor.default_eligible
        return cls(
            (column, value)
            for column, value in values.items()
            if not (value is None and column in eligible)
        )

    @classmethod
    def for_update(
        cls,
        descriptor: EntityDescriptor,
        values: Mapping[str, Any],
        changed_columns: Iterable[str],
    ) -> WriteSet:
        """Build the write set for an UPDATE from the changed columns
        only."""
        keys = descriptor.column_keys
        ws = cls()
        for column in changed_columns:
            if column not in keys:
                raise exc.ArgumentError(
                    "Column %r is not present in table %r"
                    % (column, descriptor.table.name)
                )
            if column not in values:
                raise exc.ArgumentError(
                    "Column %r of %r has no value to write"
                    % (column, descriptor.name)
                )
            ws.add(column, values[column])
        return ws

    def add(self, column: str, value: Any) -> None:
        self._values[column] = value

    def merge(self, values: Mapping[str, Any]) -> None:
        for column, value in values.items():
            self._values[column] = value

    def force_include(
        self, columns: Iterable[str], values: Mapping[str, Any]
    ) -> None:
        """Make sure each of ``columns`` is present, taking the value from
        ``values`` for those that are missing.

        Calling this more than once with the same arguments leaves the
        write set unchanged.

        """
        for column in columns:
            if column not in self._values:
                self._values[column] = values[column]

    @property
    def columns(self) -> List[str]:
        return list(self._values)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def __contains__(self, column: object) -> bool:
        return column in self._values

    def __getitem__(self, column: str) -> Any:
        return self._values[column]

    def __iter__(self) -> Iterator[Tuple[str, Any]]:
        return iter(self._values.items())

    def __len__(self) -> int:
        return len(self._values)

    def __bool__(self) -> bool:
        return bool(self._values)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, WriteSet):
            return list(self) == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return "WriteSet(%r)" % (list(self._values.items()),)
