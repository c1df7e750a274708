"""
Scope

A node of the definition-visibility tree. Each scope holds its own
service and function registries, its interface bindings and a cache of
shared service instances.

Lookups ending in ``_in_chain`` walk from the scope up to the root and
never into sibling scopes.
"""

import logging
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Tuple

from .argument import Argument
from .definition import FunctionDefinition, InterfaceBinding, ServiceDefinition
from .exceptions import CycleError, DefinitionError, InstantiationError, NotFoundError, WireboxError
from .registry import DefinitionRegistry
from .resolver import resolve_argument
from .typeinfo import canonical

if TYPE_CHECKING:
    from .container import Container

logger = logging.getLogger(__name__)

_MISSING = object()


class Scope:
    """A scope of definitions and their shared instances.

    Shared instances are cached in the scope that owns the definition,
    under a per-scope re-entrant lock. The first thread to request a
    shared service builds it and runs its method calls; concurrent
    requests wait and then read the finished instance.

    Attributes:
        name: Scope name, unique within its container
        parent: Enclosing scope, ``None`` for the root
        _instances: Cache of fully built shared instances by definition id
        _constructing: Shared instances whose method calls are still
            running, visible only to the thread holding ``_lock``
        _lock: Guards ``_instances`` and ``_constructing`` during construction

    Example::

        private = builder.root.new_child("mailer-internals")
        private.add_service_definitions(smtp_transport)
        mailer.child_scope = private
    """

    def __init__(self, name: str, owner: 'Container', parent: Optional['Scope'] = None):
        self.name = name
        self.owner = owner
        self.parent = parent
        self._services: DefinitionRegistry[ServiceDefinition] = DefinitionRegistry()
        self._functions: DefinitionRegistry[FunctionDefinition] = DefinitionRegistry()
        self._bindings: Dict[Any, InterfaceBinding] = {}
        self._instances: Dict[str, Any] = {}
        self._constructing: Dict[str, Any] = {}
        self._lock = threading.RLock()
        owner._register_scope(self)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Scope({self.name!r})"

    def new_child(self, name: str) -> 'Scope':
        """Create a descendant scope.

        Raises:
            DefinitionError: When the container already has a scope named ``name``
        """
        return Scope(name, self.owner, self)

    def chain(self) -> Iterator['Scope']:
        """This scope followed by its ancestors, up to the root."""
        current: Optional[Scope] = self
        while current is not None:
            yield current
            current = current.parent

    @property
    def is_root(self) -> bool:
        return self.parent is None

    # Service definitions

    def add_service_definitions(self, *definitions: ServiceDefinition) -> 'Scope':
        for definition in definitions:
            definition.scope = self
        self._services.add(*definitions)
        return self

    def remove_service_definitions(self, *ids: str) -> 'Scope':
        self._services.remove(*ids)
        return self

    def clear_service_definitions(self) -> 'Scope':
        self._services.clear()
        return self

    def get_service_definition(self, id: str) -> Optional[ServiceDefinition]:
        return self._services.get(id)

    def get_service_definition_in_chain(self, id: str) -> Optional[ServiceDefinition]:
        for scope in self.chain():
            definition = scope.get_service_definition(id)
            if definition is not None:
                return definition
        return None

    def get_service_definitions(self) -> List[ServiceDefinition]:
        return list(self._services)

    def get_service_definitions_in_chain(self) -> List[ServiceDefinition]:
        return [d for scope in self.chain() for d in scope.get_service_definitions()]

    def get_service_definitions_by_type(self, tp: Any) -> List[ServiceDefinition]:
        return self._services.get_by_type(tp)

    def get_service_definitions_by_type_in_chain(self, tp: Any) -> List[ServiceDefinition]:
        return [d for scope in self.chain() for d in scope.get_service_definitions_by_type(tp)]

    def get_service_definitions_by_label(self, label: str) -> List[ServiceDefinition]:
        return self._services.get_by_label(label)

    def get_service_definitions_by_label_in_chain(self, label: str) -> List[ServiceDefinition]:
        return [d for scope in self.chain() for d in scope.get_service_definitions_by_label(label)]

    def get_service_ids_by_type_in_chain(self, tp: Any) -> List[str]:
        return [d.id for d in self.get_service_definitions_by_type_in_chain(tp)]

    def has_service(self, id: str) -> bool:
        return id in self._services

    def has_service_in_chain(self, id: str) -> bool:
        return any(scope.has_service(id) for scope in self.chain())

    # Function definitions

    def add_function_definitions(self, *definitions: FunctionDefinition) -> 'Scope':
        for definition in definitions:
            definition.scope = self
        self._functions.add(*definitions)
        return self

    def remove_function_definitions(self, *ids: str) -> 'Scope':
        self._functions.remove(*ids)
        return self

    def get_function_definition(self, id: str) -> Optional[FunctionDefinition]:
        return self._functions.get(id)

    def get_function_definition_in_chain(self, id: str) -> Optional[FunctionDefinition]:
        for scope in self.chain():
            definition = scope.get_function_definition(id)
            if definition is not None:
                return definition
        return None

    def get_function_definitions(self) -> List[FunctionDefinition]:
        return list(self._functions)

    def get_function_definitions_by_type(self, tp: Any) -> List[FunctionDefinition]:
        return self._functions.get_by_type(tp)

    def get_function_definitions_by_label(self, label: str) -> List[FunctionDefinition]:
        return self._functions.get_by_label(label)

    def get_function_definitions_by_label_in_chain(self, label: str) -> List[FunctionDefinition]:
        return [d for scope in self.chain() for d in scope.get_function_definitions_by_label(label)]

    def has_function(self, id: str) -> bool:
        return id in self._functions

    def has_function_in_chain(self, id: str) -> bool:
        return any(scope.has_function(id) for scope in self.chain())

    # Bindings

    def add_bindings(self, *bindings: InterfaceBinding) -> 'Scope':
        """Add bindings; a binding for an already bound type replaces it."""
        for binding in bindings:
            self._bindings[binding.capability] = binding
        return self

    def remove_bindings(self, *types: Any) -> 'Scope':
        for tp in types:
            self._bindings.pop(canonical(tp), None)
        return self

    def get_bindings(self) -> List[InterfaceBinding]:
        return list(self._bindings.values())

    def get_binding(self, tp: Any) -> Optional[InterfaceBinding]:
        return self._bindings.get(canonical(tp))

    def get_bound_argument_in_chain(self, tp: Any) -> Optional[Argument]:
        """The argument bound to ``tp`` by the closest scope that binds it."""
        for scope in self.chain():
            binding = scope.get_binding(tp)
            if binding is not None:
                return binding.bound
        return None

    # Instances

    def resolve(self, argument: Argument) -> Any:
        """Turn an argument into a value, looking definitions up from this scope."""
        return resolve_argument(argument, self)

    def get_service(self, id: str) -> Any:
        """Return the instance of a service registered in this scope.

        Raises:
            NotFoundError: When this scope has no service ``id``
            InstantiationError: When building the service fails
        """
        definition = self._services.get(id)
        if definition is None:
            raise NotFoundError(f"service {id} not found in scope {self.name}")
        return self._get_instance(definition)

    def get_service_in_chain(self, id: str) -> Any:
        definition = self.get_service_definition_in_chain(id)
        if definition is None:
            raise NotFoundError(f"service {id} not found in scope {self.name} or its parents")
        return instance_of(definition)

    def get_services(self, definitions: List[ServiceDefinition]) -> List[Any]:
        return [instance_of(d) for d in definitions]

    def get_services_by_type(self, tp: Any) -> List[Any]:
        return self.get_services(self.get_service_definitions_by_type(tp))

    def get_services_by_type_in_chain(self, tp: Any) -> List[Any]:
        return self.get_services(self.get_service_definitions_by_type_in_chain(tp))

    def get_services_by_label(self, label: str) -> List[Any]:
        return self.get_services(self.get_service_definitions_by_label(label))

    def get_services_by_label_in_chain(self, label: str) -> List[Any]:
        return self.get_services(self.get_service_definitions_by_label_in_chain(label))

    def is_initialised(self, id: str) -> bool:
        """Whether a shared instance of ``id`` is cached in this scope."""
        return id in self._instances

    def execute_function(self, id: str) -> Any:
        definition = self._functions.get(id)
        if definition is None:
            raise NotFoundError(f"function {id} not found in scope {self.name}")
        return self._execute(definition)

    def execute_function_in_chain(self, id: str) -> Any:
        definition = self.get_function_definition_in_chain(id)
        if definition is None:
            raise NotFoundError(f"function {id} not found in scope {self.name} or its parents")
        return definition.scope._execute(definition)

    def execute_functions_by_label(self, label: str) -> List[Any]:
        """Execute every function labelled ``label`` in this scope, in order.

        Raises:
            NotFoundError: When no function carries the label
        """
        definitions = self.get_function_definitions_by_label(label)
        if not definitions:
            raise NotFoundError(f"no functions labelled {label} in scope {self.name}")
        return [self._execute(d) for d in definitions]

    def _get_instance(self, definition: ServiceDefinition) -> Any:
        if not definition.shared:
            return self._instantiate(definition)

        instance = self._instances.get(definition.id, _MISSING)
        if instance is not _MISSING:
            return instance

        with self._lock:
            instance = self._instances.get(definition.id, _MISSING)
            if instance is not _MISSING:
                return instance
            # Only the thread holding the lock can find an entry here: it is
            # re-entering from a method call of the service it is building.
            instance = self._constructing.get(definition.id, _MISSING)
            if instance is not _MISSING:
                return instance
            return self._instantiate(definition)

    def _instantiate(self, definition: ServiceDefinition) -> Any:
        logger.debug(f"Instantiating service {definition} ({definition.id}) in scope {self.name}")
        scope = definition.effective_scope

        with _building(definition):
            try:
                instance = definition.factory.execute(scope.resolve)
            except WireboxError as e:
                raise _wrap(e, f"failed to instantiate service {definition}", definition.id)

        if not definition.shared:
            with _building(definition):
                self._call_methods(definition, instance)
            return instance

        cached = self._instances.get(definition.id, _MISSING)
        if cached is not _MISSING:
            # A method call further down the stack already built and
            # published this service; keep that instance.
            return cached

        self._constructing[definition.id] = instance
        _progress.set(_progress.get() + 1)
        try:
            self._call_methods(definition, instance)
        finally:
            del self._constructing[definition.id]
        self._instances[definition.id] = instance
        return instance

    def _call_methods(self, definition: ServiceDefinition, instance: Any) -> None:
        scope = definition.effective_scope
        for method in definition.method_calls:
            try:
                method.execute(scope.resolve, instance)
            except WireboxError as e:
                raise _wrap(
                    e, f"failed to execute method {method} of service {definition}", definition.id
                )

    def _execute(self, definition: FunctionDefinition) -> Any:
        logger.debug(f"Executing function {definition} ({definition.id}) in scope {self.name}")
        scope = definition.effective_scope
        try:
            return definition.func.execute(scope.resolve)
        except WireboxError as e:
            raise _wrap(e, f"failed to execute function {definition}", definition.id)


# Services the current thread is building, innermost last. Each entry
# records the value of _progress it was pushed with; _progress counts the
# shared instances whose method calls this thread has started. Meeting a
# definition again with an unchanged count means no cache changed in
# between, so building it again would recurse forever.
_build_stack: ContextVar[Tuple[Tuple[ServiceDefinition, int], ...]] = ContextVar(
    "wirebox_build_stack", default=()
)
_progress: ContextVar[int] = ContextVar("wirebox_build_progress", default=0)


@contextmanager
def _building(definition: ServiceDefinition) -> Iterator[None]:
    """Track ``definition`` on this thread's build stack.

    Raises:
        CycleError: When building ``definition`` would never end
    """
    stack = _build_stack.get()
    progress = _progress.get()
    for i, (entry, pushed_at) in enumerate(stack):
        if entry is definition and pushed_at == progress:
            path = " -> ".join(d.id for d, _ in stack[i:])
            raise CycleError(
                f"circular dependency while building service {definition}: "
                f"{path} -> {definition.id}",
                services=(stack[-1][0].id, definition.id),
            )
    token = _build_stack.set(stack + ((definition, progress),))
    try:
        yield
    finally:
        _build_stack.reset(token)


def instance_of(definition: ServiceDefinition) -> Any:
    """Instance of a definition, cached in the scope that owns it."""
    if definition.scope is None:
        raise DefinitionError(f"service {definition} is not registered in any scope")
    return definition.scope._get_instance(definition)


def _wrap(error: WireboxError, context: str, definition_id: str) -> InstantiationError:
    """Wrap a run-time failure with the identity of the failing definition.

    An error raised by the user callable itself (an InstantiationError
    not yet tied to a definition) keeps the original exception as cause.
    """
    wrapped = InstantiationError(f"{context}: {error.message}", definition_id=definition_id)
    if isinstance(error, InstantiationError) and error.definition_id is None:
        wrapped.__cause__ = error.__cause__
    else:
        wrapped.__cause__ = error
    wrapped.__suppress_context__ = True
    return wrapped
