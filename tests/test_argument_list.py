"""
Argument List Tests

Tests for argument variants, slot assignment and argument collection.
"""

import sys
import os
import unittest
from typing import List

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from wirebox import (
    ArgumentError,
    Compound,
    DefinitionError,
    Factory,
    FlexibleCollection,
    Func,
    LabelMatch,
    Literal,
    Method,
    Positioned,
    Reference,
    TypeMatch,
)
from wirebox.slot import ArgumentList
from wirebox.typeinfo import inspect_callable
from conftest import service
from fixtures import Database, Foo, Plugin, PluginHost, Reporter, ServiceB, VariadicHost


def new_pair(name: str, port: int) -> Database:
    return Database(f"{name}:{port}")


def merge(first: List[str], second: str) -> str:
    return second


class TestArguments(unittest.TestCase):
    """Tests for argument variants."""

    def test_declared_types(self):
        """Every variant reports the type of the value it produces."""
        db = service(Database, id="db")

        self.assertIs(Literal("x").type, str)
        self.assertIs(Reference(db).type, Database)
        self.assertIs(TypeMatch(Database).type, Database)
        self.assertEqual(TypeMatch(Database, collection=True).type, list[Database])
        self.assertEqual(LabelMatch("main", of=Database, collection=True).type, list[Database])
        self.assertEqual(FlexibleCollection(Plugin).type, list[Plugin])
        self.assertEqual(Compound(Plugin).type, list[Plugin])
        self.assertIs(Positioned(Literal(1), 0).type, int)

    def test_literal_with_declared_type(self):
        """A literal may declare a wider type than its value."""
        self.assertIs(Literal(None, of=Database).type, Database)

    def test_compound_rejects_foreign_elements(self):
        """Compound elements must fit the element type."""
        with self.assertRaises(ArgumentError):
            Compound(Plugin, Literal("not a plugin"))

    def test_string_forms(self):
        """Arguments have short readable forms."""
        db = service(Database, id="db")

        self.assertEqual(str(Reference(db)), "@db")
        self.assertEqual(str(LabelMatch("main")), "#main")
        self.assertEqual(str(LabelMatch("main", collection=True)), "#main[]")

        a = service(Plugin, "a", id="a")
        b = service(Plugin, "b", id="b")
        self.assertEqual(str(Compound(Plugin, Reference(a), Reference(b))), "[@a, @b]")


class TestAssignment(unittest.TestCase):
    """Tests for assigning arguments to slots."""

    def args_of(self, fn, *arguments) -> ArgumentList:
        params, _ = inspect_callable(fn)
        args = ArgumentList(params)
        args.add(*arguments)
        return args

    def test_arguments_fill_first_fitting_slot(self):
        """Arguments go to the first free slot of a matching type."""
        args = self.args_of(new_pair, Literal(8080), Literal("db"))

        self.assertEqual(args.slots[0].argument.value, "db")
        self.assertEqual(args.slots[1].argument.value, 8080)

    def test_plain_values_become_literals(self):
        """Non-argument values are wrapped in Literal."""
        args = self.args_of(new_pair, "db", 1)

        self.assertIsInstance(args.slots[0].argument, Literal)
        self.assertEqual(args.missing(), [])

    def test_positioned_argument(self):
        """Positioned arguments go to the slot they name."""
        args = self.args_of(merge, Positioned(Literal("b"), 1), Literal("a"))

        self.assertEqual(args.slots[1].argument.value, "b")
        self.assertTrue(args.slots[0].is_appended)
        self.assertEqual(str(args.slots[0].argument), "['a']")

    def test_positioned_out_of_range(self):
        """An index past the last slot is an error."""
        with self.assertRaises(ArgumentError) as ctx:
            self.args_of(new_pair, Positioned(Literal("x"), 5))

        self.assertIn("is assigned to slot 5, but function has only 2 argument slots", str(ctx.exception))

    def test_set_wins_over_append(self):
        """A whole collection sets the slot; elements append to it."""
        bundle = Literal([Plugin("a")], of=List[Plugin])
        args = self.args_of(PluginHost, bundle)
        self.assertTrue(args.slots[0].is_set)

        args = self.args_of(PluginHost, Plugin("a"), Plugin("b"))
        self.assertTrue(args.slots[0].is_appended)
        self.assertEqual(len(args.slots[0].argument.arguments), 2)

    def test_set_clears_appended_elements(self):
        """Setting a collection slot drops previously appended elements."""
        args = self.args_of(PluginHost, Plugin("a"))
        args.override(Positioned(Literal([], of=List[Plugin]), 0))

        self.assertFalse(args.slots[0].is_appended)
        self.assertEqual(args.slots[0].argument.value, [])

    def test_unassignable_argument(self):
        """An argument that fits no slot is reported."""
        with self.assertRaises(ArgumentError) as ctx:
            self.args_of(Foo, Literal(42))

        self.assertIn("cannot be assigned to any parameter", str(ctx.exception))

    def test_every_failure_is_reported(self):
        """All failing arguments are listed in one error."""
        with self.assertRaises(ArgumentError) as ctx:
            self.args_of(Foo, Literal(1), Literal(2.5))

        self.assertIn("1 of type int", str(ctx.exception))
        self.assertIn("2.5 of type float", str(ctx.exception))

    def test_missing_required_argument(self):
        """Collecting with an empty required slot fails."""
        args = self.args_of(new_pair, "db")

        self.assertEqual([s.name for s in args.missing()], ["port"])
        with self.assertRaises(ArgumentError) as ctx:
            args.collect()
        self.assertIn("missing argument for parameter 'port' (index 1) of type int", str(ctx.exception))

    def test_defaults_and_variadic_are_optional(self):
        """Defaulted and *args slots may stay empty."""
        self.assertEqual(self.args_of(Reporter, Database()).missing(), [])

        args = self.args_of(VariadicHost)
        self.assertEqual(args.missing(), [])
        self.assertTrue(args.variadic)
        self.assertEqual(args.slots[0].argument.arguments, ())


class TestFunctions(unittest.TestCase):
    """Tests for Func, Factory and Method."""

    def test_execute_passes_defaults_and_variadics(self):
        """Empty positional slots get their default; *args are spread."""
        reporter = Func(Reporter, Database("x")).execute(lambda arg: arg.value)
        self.assertEqual(reporter.retries, 3)
        self.assertFalse(reporter.verbose)

        host = Func(VariadicHost, Plugin("a"), Plugin("b")).execute(
            lambda arg: [a.value for a in arg.arguments]
        )
        self.assertEqual([p.name for p in host.plugins], ["a", "b"])

    def test_keyword_only_argument(self):
        """Keyword-only slots are passed by name."""
        func = Func(Reporter, Database("x"), Positioned(True, 2))
        reporter = func.execute(lambda arg: arg.value)

        self.assertTrue(reporter.verbose)

    def test_add_args_prefixes_errors(self):
        """Argument failures name the callable."""
        func = Func(Foo)
        with self.assertRaises(ArgumentError) as ctx:
            func.add_args(Literal(3))

        self.assertIn("failed to add arguments of fixtures.Foo", str(ctx.exception))

    def test_not_callable(self):
        """Only callables can be wrapped."""
        with self.assertRaises(DefinitionError):
            Func("not callable")

    def test_factory_needs_a_return_type(self):
        """Factories must declare what they produce."""
        def untyped():
            return Database()

        def returns_none() -> None:
            pass

        with self.assertRaises(DefinitionError):
            Factory(untyped)
        with self.assertRaises(DefinitionError):
            Factory(returns_none)
        self.assertIs(Factory(untyped, produces=Database).creates, Database)

    def test_method_receiver_slot(self):
        """The first method parameter is the receiver and takes no arguments."""
        method = Method(ServiceB.set_a)

        self.assertTrue(method.args.slots[0].receiver)
        self.assertEqual(method.short_name, "set_a")
        self.assertEqual(len(method.args.missing()), 1)

    def test_method_must_exist_on_receiver(self):
        """Binding a method to a type without it fails."""
        with self.assertRaises(DefinitionError) as ctx:
            Method(ServiceB.set_a).bind(Database)

        self.assertIn("not found on receiver fixtures.Database", str(ctx.exception))


if __name__ == '__main__':
    unittest.main()
