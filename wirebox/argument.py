"""
Arguments

Typed descriptors of what a parameter slot receives. An argument is never
a value itself (except ``Literal``); it describes how the value is found
when the callable runs. The resolver module turns arguments into values.
"""

from typing import TYPE_CHECKING, Any, Optional, Tuple

from .exceptions import ArgumentError
from .typeinfo import canonical, collection_of, is_assignable, signature

if TYPE_CHECKING:
    from .definition import Definition


class Argument:
    """Base class of all argument variants.

    Subclasses expose ``type``, the declared type of the value the
    argument produces. Collection variants report ``list[T]``.
    """

    @property
    def type(self) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self})"


class Literal(Argument):
    """A fixed value.

    Args:
        value: The value passed to the parameter
        of: Declared type, when it should differ from ``type(value)``
            (for example ``Literal(None, of=Optional[Clock])``)
    """

    def __init__(self, value: Any, of: Any = None):
        self.value = value
        self._type = canonical(of) if of is not None else type(value)

    @property
    def type(self) -> Any:
        return self._type

    def __str__(self) -> str:
        return repr(self.value)


class Reference(Argument):
    """The instance (or result) of one specific definition."""

    def __init__(self, definition: 'Definition'):
        self.definition = definition

    @property
    def type(self) -> Any:
        return self.definition.type

    def __str__(self) -> str:
        return f"@{self.definition.id}"


class TypeMatch(Argument):
    """Whatever definition produces ``of``.

    With ``collection=True`` every definition producing ``of`` is gathered
    and the argument's type is ``list[of]``.
    """

    def __init__(self, of: Any, collection: bool = False):
        self.of = canonical(of)
        self.collection = collection

    @property
    def type(self) -> Any:
        return collection_of(self.of) if self.collection else self.of

    def __str__(self) -> str:
        return signature(self.type)


class LabelMatch(Argument):
    """The definition(s) carrying ``label``.

    Args:
        label: Label to look up
        of: Declared (element) type the labelled definitions must satisfy
        collection: Gather every labelled definition into a list
    """

    def __init__(self, label: str, of: Any = Any, collection: bool = False):
        self.label = label
        self.of = canonical(of)
        self.collection = collection

    @property
    def type(self) -> Any:
        return collection_of(self.of) if self.collection else self.of

    def __str__(self) -> str:
        suffix = '[]' if self.collection else ''
        return f"#{self.label}{suffix}"


class FlexibleCollection(Argument):
    """A ``list[element_type]`` from the best available source.

    An exact collection provider wins over gathering individual element
    providers. With ``allow_empty=True`` no provider at all yields ``[]``.
    """

    def __init__(self, element_type: Any, allow_empty: bool = False):
        self.element_type = canonical(element_type)
        self.allow_empty = allow_empty

    @property
    def type(self) -> Any:
        return collection_of(self.element_type)

    def __str__(self) -> str:
        return signature(self.type)


class Compound(Argument):
    """An ordered list of sub-arguments materialised as one list.

    Raises:
        ArgumentError: When a sub-argument is not assignable to
            ``element_type``

    Example::

        Compound(Plugin, Reference(auth_plugin), Reference(log_plugin))
    """

    def __init__(self, element_type: Any, *arguments: Argument):
        self.element_type = canonical(element_type)
        for arg in arguments:
            if not is_assignable(arg.type, self.element_type):
                raise ArgumentError(
                    f"argument {arg} of type {signature(arg.type)} cannot be "
                    f"assigned to type {signature(self.element_type)}"
                )
        self.arguments: Tuple[Argument, ...] = tuple(arguments)

    @property
    def type(self) -> Any:
        return collection_of(self.element_type)

    def __str__(self) -> str:
        return f"[{', '.join(str(arg) for arg in self.arguments)}]"


class Positioned(Argument):
    """An argument aimed at one explicit parameter index."""

    def __init__(self, argument: Any, index: int):
        self.argument = as_argument(argument)
        self.index = index

    @property
    def type(self) -> Any:
        return self.argument.type

    def __str__(self) -> str:
        return f"{self.index}={self.argument}"


def as_argument(value: Any) -> Argument:
    """Wrap a plain value in a ``Literal`` unless it already is an Argument."""
    if isinstance(value, Argument):
        return value
    return Literal(value)


def unwrap(argument: Argument) -> Tuple[Argument, Optional[int]]:
    """Split a possibly ``Positioned`` argument into (argument, index)."""
    if isinstance(argument, Positioned):
        return argument.argument, argument.index
    return argument, None
