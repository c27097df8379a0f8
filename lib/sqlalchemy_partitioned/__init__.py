# sqlalchemy_partitioned/__init__.py
# Copyright (C) 2026 the sqlalchemy-partitioned authors and contributors
# <see AUTHORS file>
#
# This module is part of sqlalchemy-partitioned and is released under
# the MIT License: https://www.opensource.org/licenses/mit-license.php

"""Partition-aware persistence routing for SQLAlchemy Core tables.

Rows of a logical table are stored in physical partitions selected by the
values of one or more partition key columns; INSERT, UPDATE, DELETE and
SELECT are redirected to the one partition owning a given set of values.

"""

import logging

from . import exc as exc
from .allocate import CallableAllocator as CallableAllocator
from .allocate import PrimaryKeyAllocator as PrimaryKeyAllocator
from .allocate import SequenceAllocator as SequenceAllocator
from .descriptor import EntityDescriptor as EntityDescriptor
from .descriptor import PartitionRegistry as PartitionRegistry
from .descriptor import register_entity as register_entity
from .descriptor import registry as registry
from .entity import Entity as Entity
from .execute import ConnectionExecutor as ConnectionExecutor
from .execute import StatementExecutor as StatementExecutor
from .partition import extract_partition_key as extract_partition_key
from .partition import LogicalTableRouting as LogicalTableRouting
from .partition import lookup_resolver as lookup_resolver
from .partition import PartitionedTableRouting as PartitionedTableRouting
from .partition import PartitionResolver as PartitionResolver
from .partition import template_resolver as template_resolver
from .persistence import create_router as create_router
from .persistence import PersistenceRouter as PersistenceRouter
from .scope import Scope as Scope
from .scope import ScopeBuilder as ScopeBuilder
from .scope import SelectProjector as SelectProjector
from .writeset import WriteSet as WriteSet

__version__ = "0.1.0"

_rootlogger = logging.getLogger("sqlalchemy_partitioned")
if _rootlogger.level == logging.NOTSET:
    _rootlogger.setLevel(logging.WARN)
