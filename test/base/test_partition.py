from sqlalchemy import Column
from sqlalchemy import Integer
from sqlalchemy import MetaData
from sqlalchemy import Sequence
from sqlalchemy import String
from sqlalchemy import Table
from sqlalchemy.testing import assert_raises
from sqlalchemy.testing import assert_raises_message
from sqlalchemy.testing import eq_
from sqlalchemy.testing import in_
from sqlalchemy.testing import is_
from sqlalchemy.testing import is_false
from sqlalchemy.testing import is_true

from sqlalchemy_partitioned import EntityDescriptor
from sqlalchemy_partitioned import exc
from sqlalchemy_partitioned import extract_partition_key
from sqlalchemy_partitioned import LogicalTableRouting
from sqlalchemy_partitioned import lookup_resolver
from sqlalchemy_partitioned import PartitionedTableRouting
from sqlalchemy_partitioned import PartitionRegistry
from sqlalchemy_partitioned import register_entity
from sqlalchemy_partitioned import template_resolver


def _readings(metadata):
    return Table(
        "readings",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("site", String(10), nullable=False),
        Column("year", Integer, nullable=False),
        Column("value", Integer),
    )


class ExtractTest:
    def test_ordered_by_descriptor(self, metadata):
        descriptor = EntityDescriptor(
            _readings(metadata),
            partition_keys=["year", "site"],
            resolver=template_resolver("readings_{site}_{year}"),
        )
        key = extract_partition_key(
            descriptor, {"value": 1, "site": "oslo", "year": 2026}
        )
        eq_(list(key.items()), [("year", 2026), ("site", "oslo")])

    def test_missing(self, order_descriptor):
        assert_raises_message(
            exc.MissingPartitionAttribute,
            "Entity 'orders' has no value for partition key column 'region'",
            extract_partition_key,
            order_descriptor,
            {"amount": 5},
        )

    def test_none_is_extracted(self, order_descriptor):
        eq_(
            extract_partition_key(order_descriptor, {"region": None}),
            {"region": None},
        )


class ResolverTest:
    def test_lookup(self):
        resolve = lookup_resolver("region", {"us": "orders_us"})
        eq_(resolve({"region": "us"}), "orders_us")

    def test_lookup_unknown(self):
        resolve = lookup_resolver("region", {"us": "orders_us"})
        err = assert_raises(
            exc.UnresolvedPartition, resolve, {"region": "jp"}
        )
        eq_(err.partition_key, {"region": "jp"})

    def test_lookup_unhashable(self):
        resolve = lookup_resolver("region", {"us": "orders_us"})
        assert_raises(exc.UnresolvedPartition, resolve, {"region": ["us"]})

    def test_lookup_multiple_columns(self):
        resolve = lookup_resolver(
            ("site", "year"), {("oslo", 2026): "readings_oslo_2026"}
        )
        eq_(resolve({"site": "oslo", "year": 2026}), "readings_oslo_2026")
        assert_raises_message(
            exc.UnresolvedPartition,
            "No partition for site='oslo', year=2025",
            resolve,
            {"site": "oslo", "year": 2025},
        )

    def test_template(self):
        resolve = template_resolver("readings_{site}_{year}")
        eq_(resolve({"site": "oslo", "year": 2026}), "readings_oslo_2026")

    def test_template_none(self):
        resolve = template_resolver("orders_{region}")
        assert_raises_message(
            exc.UnresolvedPartition,
            "No partition for region=None",
            resolve,
            {"region": None},
        )

    def test_template_allowed(self):
        resolve = template_resolver(
            "orders_{region}", allowed={"region": {"us", "eu"}}
        )
        eq_(resolve({"region": "eu"}), "orders_eu")
        assert_raises_message(
            exc.UnresolvedPartition,
            "No partition for region='jp'",
            resolve,
            {"region": "jp"},
        )

    def test_template_missing_field(self):
        resolve = template_resolver("orders_{region}_{year}")
        assert_raises(exc.UnresolvedPartition, resolve, {"region": "eu"})


class DescriptorTest:
    def test_defaults(self, orders):
        descriptor = EntityDescriptor(orders)
        eq_(descriptor.name, "orders")
        eq_(descriptor.primary_key, "id")
        eq_(descriptor.partition_keys, ())
        is_false(descriptor.is_partitioned)
        is_true(isinstance(descriptor.routing, LogicalTableRouting))
        eq_(descriptor.default_eligible, frozenset(["id", "status"]))

    def test_partitioned(self, order_descriptor):
        is_true(order_descriptor.is_partitioned)
        is_true(
            isinstance(order_descriptor.routing, PartitionedTableRouting)
        )

    def test_resolver_required(self, orders):
        assert_raises_message(
            exc.ArgumentError,
            "A resolver is required for partitioned table 'orders'",
            EntityDescriptor,
            orders,
            ["region"],
        )

    def test_unknown_partition_key(self, orders):
        assert_raises_message(
            exc.ArgumentError,
            "Partition key column 'colour' is not present in table 'orders'",
            EntityDescriptor,
            orders,
            ["colour"],
            template_resolver("orders_{colour}"),
        )

    def test_duplicate_partition_key(self, orders):
        assert_raises(
            exc.ArgumentError,
            EntityDescriptor,
            orders,
            ["region", "region"],
            template_resolver("orders_{region}"),
        )

    def test_composite_pk(self, metadata):
        t = Table(
            "t",
            metadata,
            Column("a", Integer, primary_key=True),
            Column("b", Integer, primary_key=True),
        )
        assert_raises_message(
            exc.ArgumentError,
            "Table 't' must have exactly one primary key column",
            EntityDescriptor,
            t,
        )
        eq_(EntityDescriptor(t, primary_key="a").primary_key, "a")

    def test_sequence_from_column_default(self, metadata):
        seq = Sequence("events_id_seq")
        t = Table(
            "events",
            metadata,
            Column("id", Integer, seq, primary_key=True),
        )
        descriptor = EntityDescriptor(t, prefetch_primary_key=True)
        is_(descriptor.sequence, seq)

    def test_sequence_by_name(self, orders):
        descriptor = EntityDescriptor(
            orders, prefetch_primary_key=True, sequence="orders_id_seq"
        )
        eq_(descriptor.sequence.name, "orders_id_seq")

    def test_partition_table_copies_logical(self, order_descriptor, orders):
        t = order_descriptor.partition_table("orders_eu")
        eq_(t.name, "orders_eu")
        eq_(t.c.keys(), orders.c.keys())
        is_(t.metadata is orders.metadata, False)
        is_(order_descriptor.partition_table("orders_eu"), t)

    def test_partition_table_logical_name(self, order_descriptor, orders):
        is_(order_descriptor.partition_table("orders"), orders)

    def test_partition_table_declared(self, order_descriptor, metadata):
        declared = Table(
            "orders_eu",
            metadata,
            Column("id", Integer, primary_key=True),
            Column("region", String(2)),
            Column("amount", Integer),
            Column("status", String(20)),
            Column("vat", Integer),
        )
        is_(order_descriptor.partition_table("orders_eu"), declared)
        in_("vat", order_descriptor.partition_table("orders_eu").c)

    def test_partition_table_schema(self):
        m = MetaData()
        t = Table(
            "orders",
            m,
            Column("id", Integer, primary_key=True),
            Column("region", String(2)),
            schema="sales",
        )
        descriptor = EntityDescriptor(
            t, ["region"], template_resolver("orders_{region}")
        )
        eq_(
            descriptor.partition_table("orders_us").fullname,
            "sales.orders_us",
        )


class RoutingTest:
    def test_logical(self, orders):
        descriptor = EntityDescriptor(orders)
        is_(descriptor.routing.table_for({"region": "eu"}), orders)
        eq_(descriptor.routing.partition_key({"region": "eu"}), {})
        is_(descriptor.routing.pinned_key({"region": "eu"}), None)

    def test_partitioned(self, order_descriptor):
        t = order_descriptor.routing.table_for({"region": "eu", "id": 3})
        eq_(t.name, "orders_eu")

    def test_pinned_key(self, order_descriptor):
        routing = order_descriptor.routing
        eq_(routing.pinned_key({"region": "us", "id": 1}), {"region": "us"})
        is_(routing.pinned_key({"id": 1}), None)
        is_(routing.pinned_key({"region": ["us", "eu"]}), None)

    def test_resolver_returning_non_string(self, orders):
        descriptor = EntityDescriptor(
            orders, ["region"], lambda key: None
        )
        assert_raises_message(
            exc.UnresolvedPartition,
            "Resolver for 'orders' returned None",
            descriptor.routing.table_for,
            {"region": "eu"},
        )

    def test_resolver_errors_propagate(self, orders):
        def resolve(key):
            raise ZeroDivisionError("bad resolver")

        descriptor = EntityDescriptor(orders, ["region"], resolve)
        assert_raises(
            ZeroDivisionError, descriptor.routing.table_for, {"region": "eu"}
        )


class RegistryTest:
    def test_register(self, order_descriptor, orders):
        reg = PartitionRegistry()
        reg.register(order_descriptor)
        is_(reg["orders"], order_descriptor)
        is_(reg[orders], order_descriptor)
        is_true("orders" in reg)
        eq_(list(reg), [order_descriptor])
        eq_(len(reg), 1)

    def test_duplicate(self, order_descriptor):
        reg = PartitionRegistry()
        reg.register(order_descriptor)
        assert_raises_message(
            exc.ArgumentError,
            "An entity descriptor for table 'orders' is already registered",
            reg.register,
            order_descriptor,
        )

    def test_missing(self):
        reg = PartitionRegistry()
        is_(reg.get("orders"), None)
        assert_raises_message(
            exc.InvalidRequestError,
            "No entity descriptor registered for 'orders'",
            lambda: reg["orders"],
        )

    def test_register_entity(self, orders):
        reg = PartitionRegistry()
        descriptor = register_entity(
            orders,
            ["region"],
            template_resolver("orders_{region}"),
            registry=reg,
            name="Order",
        )
        is_(reg["orders"], descriptor)
        eq_(descriptor.name, "Order")
        reg.clear()
        eq_(len(reg), 0)
