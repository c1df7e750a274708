"""
Wirebox Exceptions

Custom exception hierarchy for the Wirebox DI toolkit
"""

import copy
from typing import Iterable, List, Optional, Sequence, Tuple, Type, TypeVar

E = TypeVar('E', bound='WireboxError')


class WireboxError(Exception):
    """
    Base exception for all Wirebox errors.

    All Wirebox-specific exceptions inherit from this class.
    You can catch this to handle any Wirebox error generically.

    Example:
        >>> try:
        ...     container = builder.build()
        ... except WireboxError as e:
        ...     print(f"DI error: {e}")
    """

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def prefixed(self: E, prefix: str) -> E:
        """Return a copy of this error with ``prefix`` prepended to its message.

        The copy keeps the concrete class and every extra attribute, so
        callers that aggregate errors can add context without losing the
        error's kind.

        Args:
            prefix: Context to prepend, e.g. the offending definition

        Returns:
            A new error of the same class
        """
        err = copy.copy(self)
        err.message = f"{prefix}: {self.message}"
        err.args = (err.message,)
        return err


class DefinitionError(WireboxError):
    """
    Raised when a factory, method or function cannot be turned into a definition.

    Common causes:
        - Passing something that is not callable as a factory
        - A factory without a return annotation (and no ``produces=``)
        - A factory annotated as returning ``None``
        - A method whose name does not exist on the produced type
        - An unresolvable forward reference in a parameter annotation

    Solution:
        Annotate the factory's return type, or pass it explicitly::

            def new_client(url: str) -> HttpClient:
                return HttpClient(url)

            Factory(new_client, Literal("https://example.org"))
            Factory(lambda: HttpClient("x"), produces=HttpClient)
    """

    pass


class ArgumentError(WireboxError):
    """
    Raised when an argument does not fit the parameter it is meant for.

    Common causes:
        - The argument's type is not assignable to the parameter type
        - An explicit position is out of range
        - An argument matches no remaining parameter
        - A required parameter is left without an argument
        - A labelled service has the wrong type for the parameter

    Solution:
        Check the callable's signature. Use ``Positioned`` to target a
        parameter explicitly::

            Factory(new_repo, Positioned(Literal("users"), 1))
    """

    pass


class AmbiguousMatchError(WireboxError):
    """
    Raised when more than one definition matches a single-valued request.

    The ``candidates`` attribute lists every matching definition id,
    sorted, so the message is stable between runs.

    Solution:
        Bind the type explicitly, ask for a collection, or label the
        definitions and use ``LabelMatch``/``Annotated[T, Label(...)]``::

            builder.add_bindings(InterfaceBinding(Storage, Reference(s3)))
    """

    def __init__(self, message: str = '', candidates: Sequence[str] = ()):
        super().__init__(message)
        self.candidates: Tuple[str, ...] = tuple(candidates)


class NotFoundError(WireboxError):
    """
    Raised when a requested definition does not exist.

    Common causes:
        - Retrieving an id that was never registered
        - An alias pointing to a missing service
        - No definition produces the requested type
        - Requesting a definition that lives in another (sibling) scope
    """

    pass


class CycleError(WireboxError):
    """
    Raised when constructor dependencies form a cycle.

    Factory arguments must form an acyclic graph. Method calls may close a
    loop only when a shared service sits on it. ``services`` holds the ids
    of the two definitions whose edge closed the cycle.

    Solution:
        Move one side of the cycle to a method call. Method-call
        dependencies are injected after construction and may be cyclic::

            class A:
                def __init__(self, b: B): ...

            class B:
                def set_a(self, a: A) -> None: ...

            b_def.add_method_calls(Method(B.set_a))
    """

    def __init__(self, message: str = '', services: Sequence[str] = ()):
        super().__init__(message)
        self.services: Tuple[str, ...] = tuple(services)


class InstantiationError(WireboxError):
    """
    Raised when a factory, method call or function fails at run time.

    The original exception is available as ``__cause__``, and
    ``definition_id`` names the definition that failed.
    """

    def __init__(self, message: str = '', definition_id: Optional[str] = None):
        super().__init__(message)
        self.definition_id = definition_id


class CompilationError(WireboxError):
    """
    Raised by ``ContainerBuilder.build()`` when a compiler pass fails.

    Passes collect every defect they find instead of stopping at the
    first one. ``errors`` is the flat list of those defects, each keeping
    its own class (``CycleError``, ``AmbiguousMatchError``, ...).

    Example::

        try:
            builder.build()
        except CompilationError as e:
            for cycle in e.errors_of(CycleError):
                print(cycle.services)
    """

    def __init__(
        self,
        message: str = '',
        errors: Iterable[Exception] = (),
        pass_name: Optional[str] = None,
    ):
        self.errors: List[Exception] = list(errors)
        self.pass_name = pass_name
        if self.errors:
            details = "\n".join(f"  - {err}" for err in self.errors)
            message = f"{message}:\n{details}"
        super().__init__(message)

    def errors_of(self, error_type: Type[E]) -> List[E]:
        """Return the aggregated errors that are instances of ``error_type``."""
        return [err for err in self.errors if isinstance(err, error_type)]


class AlreadyBuiltError(WireboxError):
    """
    Raised when a ContainerBuilder is used after ``build()``.

    A builder builds exactly one container. Once ``build()`` has been
    called, successfully or not, the builder is locked.

    Solution:
        Create a new ``ContainerBuilder`` for every container.
    """

    pass


class NotCompiledError(WireboxError):
    """
    Raised when an operation needs a compiled container but got one that
    has not been through ``ContainerBuilder.build()``.
    """

    pass


def flatten_errors(errors: Iterable[Exception]) -> List[Exception]:
    """Expand nested CompilationErrors into their leaf errors."""
    flat: List[Exception] = []
    for err in errors:
        if isinstance(err, CompilationError) and err.errors:
            flat.extend(flatten_errors(err.errors))
        else:
            flat.append(err)
    return flat
