"""
Test Configuration and Utilities

Common base classes and helper functions for Wirebox tests
"""

import unittest
from typing import Any, Callable

from wirebox import (
    Container,
    ContainerBuilder,
    Factory,
    FunctionDefinition,
    Func,
    ServiceDefinition,
)


class WireboxTestCase(unittest.TestCase):
    """
    Base test case class for Wirebox tests.

    Provides a fresh ContainerBuilder as ``self.builder`` for each test.
    """

    def setUp(self):
        """Create a new builder before each test"""
        self.builder = ContainerBuilder()

    def register(self, *definitions) -> None:
        """Register service and function definitions in the root scope."""
        for definition in definitions:
            if isinstance(definition, FunctionDefinition):
                self.builder.add_function_definitions(definition)
            else:
                self.builder.add_service_definitions(definition)

    def build(self, *definitions) -> Container:
        """Register ``definitions`` and build the container."""
        self.register(*definitions)
        return self.builder.build()


def service(fn: Callable, *args: Any, produces: Any = None, methods=(), **kwargs: Any) -> ServiceDefinition:
    """
    Create a service definition for a factory.

    Args:
        fn: Class or factory function
        *args: Factory arguments
        produces: Explicit produced type
        methods: Method calls applied after construction
        **kwargs: ServiceDefinition keyword arguments (id, labels, lazy, ...)

    Returns:
        The ServiceDefinition

    Example:
        >>> service(Foo, "x", id="foo", labels=["primary"])
    """
    return ServiceDefinition(Factory(fn, *args, produces=produces), *methods, **kwargs)


def function(fn: Callable, *args: Any, **kwargs: Any) -> FunctionDefinition:
    """
    Create a function definition.

    Args:
        fn: The function
        *args: Function arguments
        **kwargs: FunctionDefinition keyword arguments (id, labels, lazy, ...)

    Returns:
        The FunctionDefinition
    """
    return FunctionDefinition(Func(fn, *args), **kwargs)
