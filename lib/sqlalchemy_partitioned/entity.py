# sqlalchemy_partitioned/entity.py
# Copyright (C) 2026 the sqlalchemy-partitioned authors and contributors
# <see AUTHORS file>
#
# This module is part of sqlalchemy-partitioned and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""In-memory row state passed to the :class:`.PersistenceRouter`."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any
from typing import Dict
from typing import List
from typing import Mapping
from typing import Optional
from typing import TYPE_CHECKING

from . import exc

if TYPE_CHECKING:
    from sqlalchemy.engine import Row

    from .descriptor import EntityDescriptor


class Entity:
    """A mapping of column name to value for one row of a logical table,
    along with its persisted state.

    The values last written to or loaded from the database are kept as
    :attr:`.committed`; :meth:`.changed_columns` compares against them.

    """

    def __init__(
        self,
        descriptor: EntityDescriptor,
        values: Optional[Mapping[str, Any]] = None,
        *,
        persisted: bool = False,
        **kw: Any,
    ):
        self.descriptor = descriptor
        self._values: Dict[str, Any] = {}
        self._committed: Dict[str, Any] = {}
        self.persisted = False
        self.deleted = False

        if values:
            self.set(**values)
        if kw:
            self.set(**kw)
        if persisted:
            self.mark_persisted()

    @classmethod
    def from_row(cls, descriptor: EntityDescriptor, row: Row[Any]) -> Entity:
        keys = descriptor.column_keys
        return cls(
            descriptor,
            {k: v for k, v in row._mapping.items() if k in keys},
            persisted=True,
        )

    def __repr__(self) -> str:
        return "<%s %s %r%s>" % (
            self.__class__.__name__,
            self.descriptor.name,
            self._values,
            "" if self.persisted else " (unpersisted)",
        )

    def __getitem__(self, column: str) -> Any:
        return self._values[column]

    def __setitem__(self, column: str, value: Any) -> None:
        self.set(**{column: value})

    def __contains__(self, column: object) -> bool:
        return column in self._values

    def get(self, column: str, default: Any = None) -> Any:
        return self._values.get(column, default)

    def set(self, **kw: Any) -> None:
        keys = self.descriptor.column_keys
        for column, value in kw.items():
            if column not in keys:
                raise exc.ArgumentError(
                    "Column %r is not present in table %r"
                    % (column, self.descriptor.table.name)
                )
            self._values[column] = value

    @property
    def values(self) -> Mapping[str, Any]:
        return MappingProxyType(self._values)

    @property
    def committed(self) -> Mapping[str, Any]:
        return MappingProxyType(self._committed)

    @property
    def primary_key(self) -> Any:
        return self._values.get(self.descriptor.primary_key)

    @property
    def identity(self) -> Any:
        """The primary key value as persisted, or ``None``."""
        if not self.persisted:
            return None
        return self._committed.get(self.descriptor.primary_key)

    def changed_columns(self) -> List[str]:
        if not self.persisted:
            return list(self._values)
        return [
            column
            for column, value in self._values.items()
            if column not in self._committed
            or self._committed[column] != value
        ]

    def mark_persisted(self, primary_key: Any = None) -> None:
        if primary_key is not None:
            self._values[self.descriptor.primary_key] = primary_key
        self._committed = dict(self._values)
        self.persisted = True
        self.deleted = False

    def mark_deleted(self) -> None:
        self.persisted = False
        self.deleted = True
