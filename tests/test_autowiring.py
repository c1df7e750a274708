"""
Autowiring Tests

Tests for filling unassigned parameters by type, label and collection.
"""

import sys
import os
import unittest
from typing import List

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from wirebox import (
    AmbiguousMatchError,
    ArgumentError,
    CompilationError,
    FlexibleCollection,
    LabelMatch,
    Literal,
    NotFoundError,
    TypeMatch,
)
from conftest import WireboxTestCase, function, service
from fixtures import (
    Bar,
    CacheService,
    Database,
    Foo,
    LabelledConsumer,
    Plugin,
    PluginHost,
    Reporter,
    UserRepository,
    VariadicHost,
    make_plugins,
    migrate,
)


class TestTypeAutowiring(WireboxTestCase):
    """Tests for TypeMatch autowiring."""

    def test_foo_bar(self):
        """Bar is built with the Foo registered with a literal."""
        container = self.build(service(Foo, Literal("x")), service(Bar, id="bar"))

        bar = container.get("bar")
        self.assertIsInstance(bar.foo, Foo)
        self.assertEqual(bar.foo.s, "x")
        self.assertIs(container.get_by_type(Bar), bar)

    def test_autowired_slot_gets_type_match(self):
        """An empty slot of an autowired definition is filled with a TypeMatch."""
        repo = service(UserRepository, id="repo")
        self.build(service(Database), service(CacheService), repo)

        self.assertIsInstance(repo.factory.args.slots[0].argument, TypeMatch)

    def test_explicit_arguments_are_kept(self):
        """Autowiring only fills empty slots."""
        explicit = Database("postgres://")
        container = self.build(
            service(Database, id="db"),
            service(CacheService),
            service(UserRepository, explicit, id="repo"),
        )

        self.assertIs(container.get("repo").db, explicit)

    def test_autowiring_disabled(self):
        """A definition with autowired=False keeps its empty slots."""
        repo = service(UserRepository, id="repo", autowired=False)

        with self.assertRaises(CompilationError) as ctx:
            self.build(service(Database), service(CacheService), repo)

        self.assertEqual(ctx.exception.pass_name, "argument validation")
        self.assertIn("argument 0 (db) is not set", str(ctx.exception))
        self.assertIn("argument 1 (cache) is not set", str(ctx.exception))

    def test_defaults_are_not_autowired(self):
        """Parameters with defaults keep them."""
        container = self.build(service(Database, id="db"), service(Reporter, id="reporter"))

        reporter = container.get("reporter")
        self.assertEqual(reporter.retries, 3)
        self.assertFalse(reporter.verbose)
        self.assertEqual(container.get("db").url, "sqlite://")

    def test_missing_dependency(self):
        """A type nobody produces fails argument validation."""
        with self.assertRaises(CompilationError) as ctx:
            self.build(service(Bar, id="bar"))

        self.assertTrue(ctx.exception.errors_of(NotFoundError))
        self.assertIn("no services found for type fixtures.Foo", str(ctx.exception))

    def test_ambiguous_dependency(self):
        """Two producers for a single-valued slot is an error."""
        with self.assertRaises(CompilationError) as ctx:
            self.build(
                service(Foo, "a", id="foo-a"),
                service(Foo, "b", id="foo-b"),
                service(Bar, id="bar"),
            )

        ambiguous = ctx.exception.errors_of(AmbiguousMatchError)
        self.assertEqual(len(ambiguous), 1)
        self.assertEqual(ambiguous[0].candidates, ("foo-a", "foo-b"))

    def test_functions_are_autowired(self):
        """Function parameters are autowired like factory parameters."""
        container = self.build(service(Database, id="db"), function(migrate, id="migrate"))

        self.assertEqual(container.execute_function("migrate"), "migrated sqlite://")


class TestLabelAutowiring(WireboxTestCase):
    """Tests for Annotated[T, Label(...)] parameters."""

    def test_label_selects_among_producers(self):
        """A labelled parameter picks the labelled definition."""
        container = self.build(
            service(Database, "replica://", id="replica"),
            service(Database, "primary://", id="primary", labels=["primary"]),
            service(LabelledConsumer, id="consumer"),
        )

        consumer = container.get("consumer")
        self.assertEqual(consumer.primary.url, "primary://")

    def test_label_must_match_type(self):
        """The labelled definition must fit the parameter type."""
        with self.assertRaises(CompilationError) as ctx:
            self.build(
                service(CacheService, labels=["primary"]),
                service(LabelledConsumer, id="consumer"),
            )

        self.assertTrue(ctx.exception.errors_of(ArgumentError))
        self.assertIn("should be of type fixtures.Database", str(ctx.exception))

    def test_explicit_label_match(self):
        """LabelMatch arguments can gather every labelled definition."""
        def hosts(plugins: List[Plugin]) -> int:
            return len(plugins)

        container = self.build(
            service(Plugin, "a", labels=["core"]),
            service(Plugin, "b", labels=["core"]),
            service(Plugin, "c"),
            function(hosts, LabelMatch("core", of=Plugin, collection=True), id="count"),
        )

        self.assertEqual(container.execute_function("count"), 2)
        self.assertEqual([p.name for p in container.get_by_label("core")], ["a", "b"])


class TestCollectionAutowiring(WireboxTestCase):
    """Tests for collection parameters."""

    def test_gathers_every_producer_in_order(self):
        """Without an exact provider, every element producer is gathered."""
        container = self.build(
            service(Plugin, "first"),
            service(Plugin, "second"),
            service(PluginHost, id="host"),
        )

        host = container.get("host")
        self.assertEqual([p.name for p in host.plugins], ["first", "second"])
        self.assertIsInstance(
            self.builder.get_service_definition("host").factory.args.slots[0].argument,
            FlexibleCollection,
        )

    def test_exact_collection_provider_wins(self):
        """A provider of exactly list[T] beats gathering individual T."""
        container = self.build(
            service(Plugin, "single"),
            service(make_plugins),
            service(PluginHost, id="host"),
        )

        self.assertEqual([p.name for p in container.get("host").plugins], ["bundled"])

    def test_empty_collection_is_an_error(self):
        """A non-variadic collection needs at least one provider."""
        with self.assertRaises(CompilationError) as ctx:
            self.build(service(PluginHost, id="host"))

        self.assertIn("no services found for type list[fixtures.Plugin]", str(ctx.exception))

    def test_variadic_may_be_empty(self):
        """*args parameters accept an empty collection."""
        container = self.build(service(VariadicHost, id="host"))

        self.assertEqual(container.get("host").plugins, [])

    def test_variadic_gathers(self):
        """*args parameters receive every producer."""
        container = self.build(
            service(Plugin, "a"),
            service(Plugin, "b"),
            service(VariadicHost, id="host"),
        )

        self.assertEqual([p.name for p in container.get("host").plugins], ["a", "b"])

    def test_type_match_collection(self):
        """TypeMatch(collection=True) gathers exact producers."""
        def names(plugins: List[Plugin]) -> List[str]:
            return [p.name for p in plugins]

        container = self.build(
            service(Plugin, "a"),
            service(Plugin, "b"),
            function(names, TypeMatch(Plugin, collection=True), id="names"),
        )

        self.assertEqual(container.execute_function("names"), ["a", "b"])


if __name__ == '__main__':
    unittest.main()
