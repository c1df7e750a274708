"""
Slots and Argument Lists

Per-parameter bookkeeping for a callable. Each parameter becomes a
``Slot``; an ``ArgumentList`` assigns supplied arguments to slots and
later collects the final argument of every slot for a call.

Assignment rules:

1. Positioned arguments go to the slot they name.
2. Every other argument, in order, goes to the first slot that has no
   replacing argument yet and can take it, either as the whole value
   (set) or as one element of a collection slot (append). Set wins
   over append.
3. An argument no slot can take is an error, as is a required slot left
   empty by the time arguments are collected.
"""

import inspect
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from .argument import Argument, Compound, Positioned, as_argument, unwrap
from .exceptions import ArgumentError
from .typeinfo import ParameterInfo, ParameterKind, element_type, is_assignable, signature


class Slot:
    """One parameter position of a callable.

    A slot holds either a single replacing argument or an ordered list of
    appended element arguments (collection slots only), never both.

    Attributes:
        index: Parameter position
        name: Parameter name
        type: Canonical declared type
        variadic: True for a ``*args`` slot
        keyword: True for a keyword-only parameter
        receiver: True for a method's ``self`` slot
        default: Parameter default, ``inspect.Parameter.empty`` if none
        label: Label requested through ``Annotated[T, Label(...)]``
    """

    def __init__(
        self,
        index: int,
        name: str,
        type: Any,
        variadic: bool = False,
        keyword: bool = False,
        receiver: bool = False,
        default: Any = inspect.Parameter.empty,
        label: Optional[str] = None,
    ):
        self.index = index
        self.name = name
        self.type = type
        self.variadic = variadic
        self.keyword = keyword
        self.receiver = receiver
        self.default = default
        self.label = label
        self._argument: Optional[Argument] = None
        self._appended: List[Argument] = []

    @classmethod
    def from_parameter(cls, param: ParameterInfo, receiver: bool = False) -> 'Slot':
        return cls(
            index=param.index,
            name=param.name,
            type=param.annotation,
            variadic=param.kind is ParameterKind.VARIADIC,
            keyword=param.kind is ParameterKind.KEYWORD,
            receiver=receiver,
            default=param.default,
            label=param.label,
        )

    @property
    def element_type(self) -> Optional[Any]:
        return element_type(self.type)

    @property
    def is_collection(self) -> bool:
        return self.element_type is not None

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    @property
    def optional(self) -> bool:
        """A slot that may stay empty: it has a default or it is ``*args``."""
        return self.has_default or self.variadic

    @property
    def is_set(self) -> bool:
        return self._argument is not None

    @property
    def is_appended(self) -> bool:
        return bool(self._appended)

    @property
    def is_filled(self) -> bool:
        return self.is_set or self.is_appended

    def settable_by(self, arg: Argument) -> bool:
        return is_assignable(arg.type, self.type)

    def appendable_by(self, arg: Argument) -> bool:
        elem = self.element_type
        return elem is not None and is_assignable(arg.type, elem)

    def fillable_by(self, arg: Argument) -> bool:
        if self.receiver:
            return False
        return self.settable_by(arg) or self.appendable_by(arg)

    def fill(self, arg: Argument) -> None:
        """Set ``arg`` when it fits the whole slot, else append it.

        Raises:
            ArgumentError: When the argument fits neither way
        """
        if self.settable_by(arg):
            self.set(arg)
        elif self.appendable_by(arg):
            self.append(arg)
        else:
            raise ArgumentError(
                f"argument {arg} of type {signature(arg.type)} cannot fill "
                f"parameter '{self.name}' (index {self.index}) of type {signature(self.type)}"
            )

    def set(self, arg: Argument) -> None:
        """Replace whatever the slot holds with ``arg``."""
        if not self.settable_by(arg):
            raise ArgumentError(
                f"argument {arg} of type {signature(arg.type)} cannot be assigned to "
                f"parameter '{self.name}' (index {self.index}) of type {signature(self.type)}"
            )
        self._argument = arg
        self._appended = []

    def append(self, *args: Argument) -> None:
        if not self.is_collection:
            raise ArgumentError(
                f"cannot add elements to parameter '{self.name}' (index {self.index}): "
                f"{signature(self.type)} is not a collection"
            )
        if self.is_set:
            raise ArgumentError(
                f"cannot add elements to parameter '{self.name}' (index {self.index}): "
                f"it already holds {self._argument}"
            )
        for arg in args:
            if not self.appendable_by(arg):
                raise ArgumentError(
                    f"argument {arg} of type {signature(arg.type)} cannot be added as an "
                    f"element of parameter '{self.name}' (index {self.index})"
                )
        self._appended.extend(args)

    def clear(self) -> None:
        self._argument = None
        self._appended = []

    @property
    def argument(self) -> Optional[Argument]:
        """The slot's final argument.

        Appended elements are materialised into a ``Compound``. An empty
        ``*args`` slot yields an empty ``Compound``; any other empty slot
        yields ``None``.
        """
        if self._argument is not None:
            return self._argument
        if self._appended:
            return Compound(self.element_type, *self._appended)
        if self.variadic:
            return Compound(self.element_type)
        return None

    def __repr__(self) -> str:
        return f"Slot({self.index}, {self.name}: {signature(self.type)})"


class ArgumentList:
    """The slots of one callable and the assignment algorithm over them.

    Args:
        parameters: Analysed parameters, in declaration order
        has_receiver: Treat the first parameter as a method receiver

    Example::

        args = ArgumentList(inspect_callable(new_repo)[0])
        args.add(Literal("users"), Positioned(Reference(db_def), 0))
    """

    def __init__(self, parameters: Sequence[ParameterInfo], has_receiver: bool = False):
        self.slots: List[Slot] = [
            Slot.from_parameter(param, receiver=has_receiver and param.index == 0)
            for param in parameters
        ]

    def __len__(self) -> int:
        return len(self.slots)

    def __iter__(self) -> Iterator[Slot]:
        return iter(self.slots)

    @property
    def variadic(self) -> bool:
        return any(slot.variadic for slot in self.slots)

    def add(self, *arguments: Any) -> None:
        """Assign arguments to slots, positioned ones first.

        Raises:
            ArgumentError: Listing every argument that could not be assigned
        """
        errors: List[str] = []
        arguments = tuple(as_argument(a) for a in arguments)
        positioned = [a for a in arguments if isinstance(a, Positioned)]
        others = [a for a in arguments if not isinstance(a, Positioned)]

        for arg in positioned:
            try:
                self._fill_positioned(arg)
            except ArgumentError as e:
                errors.append(e.message)
        for arg in others:
            try:
                self._assign(arg)
            except ArgumentError as e:
                errors.append(e.message)

        if errors:
            raise ArgumentError("; ".join(errors))

    def override(self, arg: Positioned) -> None:
        """Replace the content of the slot ``arg`` names.

        Raises:
            ArgumentError: When the index is out of range or the argument
                does not fit the slot as a whole
        """
        inner, index = unwrap(arg)
        self._slot_at(index, inner).set(inner)

    def _fill_positioned(self, arg: Positioned) -> None:
        inner, index = unwrap(arg)
        slot = self._slot_at(index, inner)
        if slot.receiver:
            raise ArgumentError(f"argument {inner} cannot be assigned to the method receiver")
        slot.fill(inner)

    def _slot_at(self, index: int, arg: Argument) -> Slot:
        if index < 0 or index >= len(self.slots):
            raise ArgumentError(
                f"argument {arg} is assigned to slot {index}, but function has only "
                f"{len(self.slots)} argument slots"
            )
        return self.slots[index]

    def _assign(self, arg: Argument) -> None:
        for slot in self.slots:
            if slot.is_set or not slot.fillable_by(arg):
                continue
            slot.fill(arg)
            return
        raise ArgumentError(
            f"argument {arg} of type {signature(arg.type)} cannot be assigned to any parameter"
        )

    def missing(self) -> List[Slot]:
        """Required slots that hold no argument."""
        return [
            slot for slot in self.slots
            if not slot.receiver and not slot.optional and not slot.is_filled
        ]

    def validate(self) -> List[ArgumentError]:
        return [
            ArgumentError(
                f"missing argument for parameter '{slot.name}' (index {slot.index}) "
                f"of type {signature(slot.type)}"
            )
            for slot in self.missing()
        ]

    def collect(self) -> List[Tuple[Slot, Optional[Argument]]]:
        """Pair every slot with its final argument.

        The receiver slot and empty optional slots pair with ``None``.

        Raises:
            ArgumentError: When a required slot is empty
        """
        errors = self.validate()
        if errors:
            raise ArgumentError("; ".join(e.message for e in errors))
        return [(slot, None if slot.receiver else slot.argument) for slot in self.slots]

    def arguments(self) -> List[Argument]:
        """Final arguments of all filled, non-receiver slots."""
        return [
            slot.argument for slot in self.slots
            if not slot.receiver and slot.argument is not None
        ]
