"""
Interface Binding Tests

Tests for explicit bindings and the automatic binding of capability
types (Protocols and abstract classes) to their implementations.
"""

import sys
import os
import unittest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from wirebox import (
    AmbiguousMatchError,
    ArgumentError,
    CompilationError,
    InterfaceBinding,
    NotFoundError,
    Reference,
)
from conftest import WireboxTestCase, service
from fixtures import (
    AlertService,
    Database,
    DiskStorage,
    EmailNotifier,
    MemoryStorage,
    Notifier,
    ReadOnlyStorage,
    Storage,
    StorageHub,
    StorageUser,
)


class TestExplicitBindings(WireboxTestCase):
    """Tests for user-declared interface bindings."""

    def test_binding_selects_implementation(self):
        """An explicit binding resolves the capability."""
        disk = service(DiskStorage, id="disk")
        memory = service(MemoryStorage, id="memory")
        self.builder.add_bindings(InterfaceBinding(Storage, Reference(memory)))

        container = self.build(disk, memory, service(StorageUser, id="user"))

        self.assertIs(container.get("user").storage, container.get("memory"))
        self.assertIs(container.get_by_type(Storage), container.get("memory"))

    def test_binding_must_implement_capability(self):
        """Binding a type that lacks the capability is rejected."""
        with self.assertRaises(ArgumentError) as ctx:
            InterfaceBinding(Storage, Reference(service(ReadOnlyStorage)))

        self.assertIn("does not implement fixtures.Storage", str(ctx.exception))

    def test_binding_to_missing_service(self):
        """A binding to an unregistered service fails validation."""
        self.builder.add_bindings(InterfaceBinding(Storage, Reference(service(DiskStorage, id="ghost"))))

        with self.assertRaises(CompilationError) as ctx:
            self.build(service(StorageUser, id="user"))

        self.assertIn("service ghost not found", str(ctx.exception))

    def test_remove_binding(self):
        """Removed bindings no longer apply."""
        disk = service(DiskStorage, id="disk")
        self.builder.add_bindings(InterfaceBinding(Storage, Reference(disk)))
        self.builder.remove_bindings(Storage)

        self.assertEqual(self.builder.root.get_bindings(), [])


class TestAutomaticBinding(WireboxTestCase):
    """Tests for the interface binding pass."""

    def test_single_implementation_is_bound(self):
        """One implementation of a protocol is bound automatically."""
        container = self.build(
            service(DiskStorage, id="disk"),
            service(ReadOnlyStorage),
            service(StorageUser, id="user"),
        )

        self.assertIs(container.get("user").storage, container.get("disk"))
        binding = self.builder.root.get_binding(Storage)
        self.assertIsNotNone(binding)
        self.assertIs(binding.bound.definition, self.builder.get_service_definition("disk"))

    def test_abstract_class_is_a_capability(self):
        """Abstract base classes are bound like protocols."""
        container = self.build(service(EmailNotifier, id="email"), service(AlertService, id="alerts"))

        self.assertIs(container.get("alerts").notifier, container.get("email"))
        self.assertIs(container.get_by_type(Notifier), container.get("email"))

    def test_no_implementation(self):
        """Without implementations the capability stays unresolved."""
        with self.assertRaises(CompilationError) as ctx:
            self.build(service(Database), service(StorageUser, id="user"))

        self.assertTrue(ctx.exception.errors_of(NotFoundError))
        self.assertEqual(ctx.exception.pass_name, "argument validation")

    def test_two_implementations_are_ambiguous(self):
        """Two implementations for a single-valued slot is an error."""
        with self.assertRaises(CompilationError) as ctx:
            self.build(
                service(DiskStorage, id="disk"),
                service(MemoryStorage, id="memory"),
                service(StorageUser, id="user"),
            )

        self.assertEqual(ctx.exception.pass_name, "interface binding")
        ambiguous = ctx.exception.errors_of(AmbiguousMatchError)
        self.assertEqual(ambiguous[0].candidates, ("disk", "memory"))
        self.assertIn("could not bind argument 0 of service fixtures.StorageUser", str(ctx.exception))

    def test_collection_binds_every_implementation(self):
        """A collection of a capability receives every implementation in order."""
        container = self.build(
            service(MemoryStorage, id="memory"),
            service(DiskStorage, id="disk"),
            service(StorageHub, id="hub"),
        )

        hub = container.get("hub")
        self.assertEqual(hub.storages, [container.get("memory"), container.get("disk")])

    def test_explicit_binding_is_not_replaced(self):
        """An existing binding suppresses the automatic one and its ambiguity."""
        memory = service(MemoryStorage, id="memory")
        self.builder.add_bindings(InterfaceBinding(Storage, Reference(memory)))

        container = self.build(
            service(DiskStorage, id="disk"),
            memory,
            service(StorageUser, id="user"),
        )

        self.assertIs(container.get("user").storage, container.get("memory"))

    def test_exact_provider_is_not_bound(self):
        """A definition producing the capability type itself is used directly."""
        def new_storage() -> Storage:
            return MemoryStorage()

        container = self.build(
            service(DiskStorage, id="disk"),
            service(new_storage, id="storage"),
            service(StorageUser, id="user"),
        )

        self.assertIsNone(self.builder.root.get_binding(Storage))
        self.assertIsInstance(container.get("user").storage, MemoryStorage)

    def test_binding_goes_to_requesting_scope(self):
        """Bindings made for a definition live in its effective scope."""
        child = self.builder.new_scope("child")
        self.builder.add_service_definitions(
            service(DiskStorage, id="disk"),
            service(StorageUser, id="user"),
            scope=child,
        )
        self.build(service(Database, id="db"))

        self.assertIsNone(self.builder.root.get_binding(Storage))
        self.assertIsNotNone(child.get_binding(Storage))
        self.assertIs(child.get_service("user").storage, child.get_service("disk"))

    def test_implementations_are_searched_up_the_chain(self):
        """An implementation in a parent scope serves a child definition."""
        child = self.builder.new_scope("child")
        self.builder.add_service_definitions(service(StorageUser, id="user"), scope=child)
        container = self.build(service(DiskStorage, id="disk"))

        self.assertIs(child.get_service("user").storage, container.get("disk"))


if __name__ == '__main__':
    unittest.main()
