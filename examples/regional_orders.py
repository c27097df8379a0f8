"""Illustrates routing of an ``orders`` table which is partitioned by
region into ``orders_us`` and ``orders_eu``, using a single SQLite
database.

The logical ``orders`` table is never created; callers address it only
through its :class:`.EntityDescriptor`.

"""

from __future__ import annotations

from sqlalchemy import Column
from sqlalchemy import create_engine
from sqlalchemy import Integer
from sqlalchemy import MetaData
from sqlalchemy import String
from sqlalchemy import Table

from sqlalchemy_partitioned import create_router
from sqlalchemy_partitioned import Entity
from sqlalchemy_partitioned import exc
from sqlalchemy_partitioned import lookup_resolver
from sqlalchemy_partitioned import register_entity
from sqlalchemy_partitioned import registry

echo = True
engine = create_engine("sqlite://", echo=echo)

metadata = MetaData()

orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("region", String(2), nullable=False),
    Column("amount", Integer),
)

register_entity(
    orders,
    partition_keys=["region"],
    resolver=lookup_resolver("region", {"us": "orders_us", "eu": "orders_eu"}),
)


def main():
    descriptor = registry["orders"]

    with engine.begin() as conn:
        # the partitions themselves are normally created by migrations
        for name in ("orders_us", "orders_eu"):
            descriptor.partition_table(name).create(conn)

        router = create_router(conn, echo=echo)

        order = Entity(descriptor, region="eu", amount=10)
        router.create(order)

        order["amount"] = 20
        router.update(order)

        print(router.get(descriptor, order["id"], region="eu"))

        try:
            router.create(Entity(descriptor, region="jp", amount=5))
        except exc.UnresolvedPartition as err:
            print("not stored: %s" % err)

        router.destroy(order)


if __name__ == "__main__":
    main()
