"""
Functions

Callables wrapped together with their argument lists:

- ``Func``: any callable plus its ``ArgumentList``
- ``Factory``: a callable producing a service instance
- ``Method``: a function called on a freshly produced instance
"""

import inspect
from typing import Any, Callable, Dict, List, Optional

from .argument import Argument
from .exceptions import ArgumentError, DefinitionError, InstantiationError
from .slot import ArgumentList
from .typeinfo import NoneType, canonical, callable_name, inspect_callable, signature

# Turns an argument into a value, bound to the scope resolving it.
Resolve = Callable[[Argument], Any]


class Func:
    """A callable and the arguments it will be called with.

    Args:
        fn: The callable (function, class, or any object with a signature)
        *args: Arguments assigned to its parameters, see ``ArgumentList.add``
        has_receiver: The first parameter is a method receiver

    Raises:
        DefinitionError: When ``fn`` is not callable or cannot be inspected
        ArgumentError: When an argument cannot be assigned
    """

    def __init__(self, fn: Callable, *args: Any, has_receiver: bool = False):
        if not callable(fn):
            raise DefinitionError(f"function must be callable, got {type(fn).__name__}")
        self.fn = fn
        self.name = callable_name(fn)
        parameters, self.returns = inspect_callable(fn)
        self.args = ArgumentList(parameters, has_receiver=has_receiver)
        try:
            self.args.add(*args)
        except ArgumentError as e:
            raise e.prefixed(f"failed to add arguments of {self.name}") from None

    def add_args(self, *args: Any) -> None:
        try:
            self.args.add(*args)
        except ArgumentError as e:
            raise e.prefixed(f"failed to add arguments of {self.name}") from None

    def execute(self, resolve: Resolve, receiver: Any = None) -> Any:
        """Resolve every argument and call the callable.

        Args:
            resolve: Turns an argument into its value
            receiver: Value passed to the receiver slot, if any

        Returns:
            Whatever the callable returns

        Raises:
            ArgumentError: When a required parameter has no argument
            InstantiationError: When the callable itself raises
        """
        positional: List[Any] = []
        keywords: Dict[str, Any] = {}

        for slot, arg in self.args.collect():
            if slot.receiver:
                positional.append(receiver)
                continue
            if arg is None:
                if not slot.keyword:
                    positional.append(slot.default)
                continue

            value = resolve(arg)
            if slot.variadic:
                positional.extend(value)
            elif slot.keyword:
                keywords[slot.name] = value
            else:
                positional.append(value)

        try:
            return self.fn(*positional, **keywords)
        except Exception as e:
            raise InstantiationError(f"{self.name} raised {e!r}") from e

    def __str__(self) -> str:
        return self.name


class Factory:
    """Produces a service instance.

    The produced type is ``produces`` when given, the class itself for a
    class, and the return annotation for any other callable.

    Raises:
        DefinitionError: When the produced type is unknown or ``None``

    Example::

        Factory(Database, Literal("sqlite://"))
        Factory(new_cache, produces=Cache)
    """

    def __init__(self, fn: Callable, *args: Any, produces: Any = None):
        self.func = Func(fn, *args)
        if produces is not None:
            produced = canonical(produces)
        else:
            produced = self.func.returns

        if produced is inspect.Parameter.empty:
            raise DefinitionError(
                f"factory {self.name} must return a value: "
                f"annotate its return type or pass produces="
            )
        if produced is NoneType:
            raise DefinitionError(f"factory {self.name} must return a value, not None")
        self.creates = produced

    @property
    def name(self) -> str:
        return self.func.name

    @property
    def args(self) -> ArgumentList:
        return self.func.args

    def add_args(self, *args: Any) -> None:
        self.func.add_args(*args)

    def execute(self, resolve: Resolve) -> Any:
        return self.func.execute(resolve)

    def __str__(self) -> str:
        return self.name


class Method:
    """A function called on a service instance after construction.

    ``fn`` is the plain function, taking the receiver as its first
    parameter. Its return value is ignored. Arguments are assigned to the
    parameters after the receiver.

    Example::

        class Engine:
            def set_logger(self, logger: Logger) -> None: ...

        definition.add_method_calls(Method(Engine.set_logger))
    """

    def __init__(self, fn: Callable, *args: Any):
        self.func = Func(fn, *args, has_receiver=True)
        if not len(self.func.args):
            raise DefinitionError(
                f"method {self.func.name} must take the receiver as its first parameter"
            )
        self.short_name: str = getattr(fn, '__name__', self.func.name)
        self.receiver_type: Optional[Any] = None

    @property
    def name(self) -> str:
        return self.func.name

    @property
    def args(self) -> ArgumentList:
        return self.func.args

    def bind(self, receiver_type: Any) -> None:
        """Attach the method to the type whose instances it is called on.

        Raises:
            DefinitionError: When the receiver type has no such attribute
        """
        if not hasattr(receiver_type, self.short_name):
            raise DefinitionError(
                f"method {self.name} not found on receiver {signature(receiver_type)}"
            )
        self.receiver_type = receiver_type
        self.func.args.slots[0].type = receiver_type

    def execute(self, resolve: Resolve, receiver: Any) -> None:
        self.func.execute(resolve, receiver=receiver)

    def __str__(self) -> str:
        return self.name
