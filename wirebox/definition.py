"""
Definitions

Registered descriptions of how to build a service or invoke a function,
plus interface bindings and aliases.
"""

import inspect
import uuid
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Optional

from .argument import Argument
from .exceptions import ArgumentError
from .function import Factory, Func, Method
from .typeinfo import canonical, is_assignable, signature

if TYPE_CHECKING:
    from .scope import Scope

# Defaults applied to definitions that do not set the flag explicitly.
DEFAULT_LAZY = True
DEFAULT_SHARED = True
DEFAULT_AUTOWIRED = True


def new_id() -> str:
    return str(uuid.uuid4())


class Definition:
    """Common state of service and function definitions.

    Attributes:
        id: Unique id, a uuid4 string unless given explicitly
        labels: Non-unique tags used for lookups
        lazy: Skip the eager resolution at build time
        autowired: Let the compiler fill unassigned parameters
        scope: The scope the definition is registered in
        child_scope: Private scope holding the definition's own dependencies
    """

    def __init__(
        self,
        id: Optional[str] = None,
        labels: Iterable[str] = (),
        lazy: Optional[bool] = None,
        autowired: Optional[bool] = None,
    ):
        self.id: str = id if id is not None else new_id()
        self.labels: List[str] = list(labels)
        self.lazy = DEFAULT_LAZY if lazy is None else lazy
        self.autowired = DEFAULT_AUTOWIRED if autowired is None else autowired
        self.scope: Optional['Scope'] = None
        self.child_scope: Optional['Scope'] = None

    @property
    def type(self) -> Any:
        raise NotImplementedError

    @property
    def effective_scope(self) -> Optional['Scope']:
        """Scope the definition's arguments are resolved in.

        The child scope when there is one, so that private dependencies
        are visible, else the owning scope.
        """
        return self.child_scope if self.child_scope is not None else self.scope

    def add_labels(self, *labels: str) -> 'Definition':
        self.labels.extend(labels)
        return self

    def remove_labels(self, *labels: str) -> 'Definition':
        self.labels = [label for label in self.labels if label not in labels]
        return self

    def _with_labels(self, head: str) -> str:
        if self.labels:
            return f"{head} ({', '.join(self.labels)})"
        return head


class ServiceDefinition(Definition):
    """How to build one service.

    Args:
        factory: The factory producing the instance
        *method_calls: Methods called on the instance after construction
        id: Explicit id; registering another definition under the same
            id replaces this one
        labels: Tags for label lookups
        lazy: Build on first use only (default ``DEFAULT_LAZY``)
        shared: Cache and reuse the instance (default ``DEFAULT_SHARED``)
        autowired: Fill unassigned parameters by type
            (default ``DEFAULT_AUTOWIRED``)

    Example::

        repo = ServiceDefinition(
            Factory(UserRepository, Literal("users")),
            Method(UserRepository.set_cache),
            id="users",
            labels=["repository"],
        )
    """

    def __init__(
        self,
        factory: Factory,
        *method_calls: Method,
        id: Optional[str] = None,
        labels: Iterable[str] = (),
        lazy: Optional[bool] = None,
        shared: Optional[bool] = None,
        autowired: Optional[bool] = None,
    ):
        super().__init__(id=id, labels=labels, lazy=lazy, autowired=autowired)
        self.factory = factory
        self.shared = DEFAULT_SHARED if shared is None else shared
        self._method_calls: List[Method] = []
        self.add_method_calls(*method_calls)

    @property
    def type(self) -> Any:
        return self.factory.creates

    @property
    def method_calls(self) -> List[Method]:
        """Method calls in declaration order."""
        return list(self._method_calls)

    def add_method_calls(self, *methods: Method) -> 'ServiceDefinition':
        """Attach method calls; a method with an existing name replaces it in place.

        Raises:
            DefinitionError: When the produced type has no such method
        """
        for method in methods:
            method.bind(self.type)
            for i, existing in enumerate(self._method_calls):
                if existing.name == method.name:
                    self._method_calls[i] = method
                    break
            else:
                self._method_calls.append(method)
        return self

    def remove_method_calls(self, *names: str) -> 'ServiceDefinition':
        """Detach method calls by full or short name."""
        self._method_calls = [
            m for m in self._method_calls
            if m.name not in names and m.short_name not in names
        ]
        return self

    def __str__(self) -> str:
        return self._with_labels(signature(self.type))

    def __repr__(self) -> str:
        return f"ServiceDefinition(id={self.id!r}, type={signature(self.type)})"


class FunctionDefinition(Definition):
    """A function executed on demand, and once at build time unless lazy.

    Nothing is cached: every execution calls the function again. The
    definition is indexed by the function's return type.
    """

    def __init__(
        self,
        func: Func,
        id: Optional[str] = None,
        labels: Iterable[str] = (),
        lazy: Optional[bool] = None,
        autowired: Optional[bool] = None,
    ):
        super().__init__(id=id, labels=labels, lazy=lazy, autowired=autowired)
        self.func = func

    @classmethod
    def of(cls, fn: Callable, *args: Any, **kwargs: Any) -> 'FunctionDefinition':
        """Shortcut for ``FunctionDefinition(Func(fn, *args), **kwargs)``."""
        return cls(Func(fn, *args), **kwargs)

    @property
    def type(self) -> Any:
        returns = self.func.returns
        return Any if returns is inspect.Parameter.empty else returns

    def __str__(self) -> str:
        return self._with_labels(self.func.name)

    def __repr__(self) -> str:
        return f"FunctionDefinition(id={self.id!r}, func={self.func.name})"


class InterfaceBinding:
    """Binds a (capability) type to the argument that provides it.

    Raises:
        ArgumentError: When the bound argument's type cannot be used as
            ``capability``

    Example::

        InterfaceBinding(Storage, Reference(s3_storage))
    """

    def __init__(self, capability: Any, bound: Argument):
        self.capability = canonical(capability)
        if not is_assignable(bound.type, self.capability):
            raise ArgumentError(
                f"invalid binding: {signature(bound.type)} does not implement "
                f"{signature(self.capability)}"
            )
        self.bound = bound

    def __repr__(self) -> str:
        return f"InterfaceBinding({signature(self.capability)} -> {self.bound})"


class Alias:
    """A second id for a service registered in the root scope."""

    def __init__(self, id: str, target: str):
        self.id = id
        self.target = target

    def __repr__(self) -> str:
        return f"Alias({self.id!r} -> {self.target!r})"
