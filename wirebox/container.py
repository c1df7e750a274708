"""
Container

The compiled, queryable result of ``ContainerBuilder.build()``.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

from .argument import TypeMatch
from .definition import Alias
from .exceptions import DefinitionError, NotCompiledError, NotFoundError
from .resolver import ArgumentResolver
from .scope import Scope

T = TypeVar('T')

ROOT_SCOPE = "root"


class Container:
    """The scope tree plus its compiled state.

    Container-level lookups search the root scope only. Definitions in
    child scopes are private to the definitions that use those scopes.
    Ids may be aliases; an alias is followed exactly once.

    Every lookup requires a compiled container; the builder compiles it.

    Example::

        container = builder.build()
        repo = container.get("users")
        clock = container.get_by_type(Clock)
    """

    def __init__(self):
        self._scopes: Dict[str, Scope] = {}
        self._aliases: Dict[str, Alias] = {}
        self._compiled = False
        self.resolver = ArgumentResolver()
        self._root = Scope(ROOT_SCOPE, self)

    def _register_scope(self, scope: Scope) -> None:
        if scope.name in self._scopes:
            raise DefinitionError(f"scope {scope.name} already exists")
        self._scopes[scope.name] = scope

    def _ensure_compiled(self) -> None:
        """Ensure the container has been built.

        Raises:
            NotCompiledError: When the container has not been built yet
        """
        if not self._compiled:
            raise NotCompiledError(
                "Container has not been compiled. "
                "Call ContainerBuilder.build() before retrieving services."
            )

    def _resolve_alias(self, id: str) -> str:
        alias = self._aliases.get(id)
        return alias.target if alias is not None else id

    @property
    def root(self) -> Scope:
        return self._root

    @property
    def is_compiled(self) -> bool:
        return self._compiled

    def scope(self, name: str) -> Scope:
        """Return the scope called ``name``.

        Raises:
            NotFoundError: When there is no such scope
        """
        scope = self._scopes.get(name)
        if scope is None:
            raise NotFoundError(f"scope {name} not found")
        return scope

    def scopes(self) -> List[Scope]:
        """All scopes, in creation order (the root first)."""
        return list(self._scopes.values())

    def aliases(self) -> List[Alias]:
        return list(self._aliases.values())

    def get(self, id: str) -> Any:
        """Retrieve a service of the root scope by id or alias.

        Args:
            id: Service id, or an alias of one

        Returns:
            The service instance; the cached one for shared services

        Raises:
            NotCompiledError: When the container has not been built
            NotFoundError: When no such service exists
            InstantiationError: When building the service fails
        """
        self._ensure_compiled()
        return self._root.get_service(self._resolve_alias(id))

    def get_by_type(self, tp: Type[T]) -> T:
        """Retrieve the single service of the root scope providing ``tp``.

        Interface bindings are honoured, so a capability type works as
        long as it is bound or has one implementation that was wired.

        Raises:
            NotFoundError: When nothing provides ``tp``
            AmbiguousMatchError: When several services provide ``tp``
        """
        self._ensure_compiled()
        return self._root.resolve(TypeMatch(tp))

    def get_all_by_type(self, tp: Type[T]) -> List[T]:
        """Every service of the root scope producing exactly ``tp``, in registration order."""
        self._ensure_compiled()
        return self._root.get_services_by_type(tp)

    def get_by_label(self, label: str) -> List[Any]:
        """Every service of the root scope labelled ``label``, in registration order."""
        self._ensure_compiled()
        return self._root.get_services_by_label(label)

    def has(self, id: str) -> bool:
        """Whether the root scope has a service ``id`` (aliases followed once)."""
        self._ensure_compiled()
        return self._root.has_service(self._resolve_alias(id))

    def initialised(self, id: str) -> bool:
        """Whether a shared instance of ``id`` has been created.

        Always False for non-shared services.
        """
        self._ensure_compiled()
        return self._root.is_initialised(self._resolve_alias(id))

    def execute_function(self, id: str) -> Any:
        """Execute a function of the root scope and return its result."""
        self._ensure_compiled()
        return self._root.execute_function(id)

    def execute_functions_by_label(self, label: str) -> List[Any]:
        self._ensure_compiled()
        return self._root.execute_functions_by_label(label)

    def alias(self, id: str) -> Optional[Alias]:
        return self._aliases.get(id)
