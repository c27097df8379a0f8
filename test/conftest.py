#!/usr/bin/env python
"""
pytest plugin script.

Puts ./lib/ onto sys.path ahead of site-packages and provides the
fixtures shared across the suite: a logical ``orders`` table partitioned
by ``region`` into ``orders_us`` and ``orders_eu``, and an in-memory
SQLite connection with those partitions created.

"""
import os
import sys

import pytest

# this requires that sqlalchemy.testing was not already
# imported in order to work
pytest.register_assert_rewrite("sqlalchemy.testing.assertions")


if not sys.flags.no_user_site:
    # this is needed so that plain "pytest" works against the local
    # checkout of ./lib/.  We check no_user_site to honor the use of
    # this flag.
    sys.path.insert(
        0,
        os.path.abspath(
            os.path.join(
                os.path.dirname(os.path.abspath(__file__)), "..", "lib"
            )
        ),
    )

from sqlalchemy import Column  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy import Integer  # noqa: E402
from sqlalchemy import MetaData  # noqa: E402
from sqlalchemy import String  # noqa: E402
from sqlalchemy import Table  # noqa: E402

from sqlalchemy_partitioned import EntityDescriptor  # noqa: E402
from sqlalchemy_partitioned import lookup_resolver  # noqa: E402

REGIONS = {"us": "orders_us", "eu": "orders_eu"}


@pytest.fixture
def metadata():
    return MetaData()


@pytest.fixture
def orders(metadata):
    return Table(
        "orders",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("region", String(2), nullable=False),
        Column("amount", Integer),
        Column("status", String(20), server_default="open"),
    )


@pytest.fixture
def order_descriptor(orders):
    return EntityDescriptor(
        orders,
        partition_keys=["region"],
        resolver=lookup_resolver("region", REGIONS),
    )


@pytest.fixture
def engine():
    eng = create_engine("sqlite://")
    yield eng
    eng.dispose()


@pytest.fixture
def connection(engine, order_descriptor):
    with engine.begin() as conn:
        for name in REGIONS.values():
            order_descriptor.partition_table(name).create(conn)
        yield conn
