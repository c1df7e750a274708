"""
Container Builder

Collects scopes, definitions, bindings, aliases and compiler passes,
then compiles them into a Container exactly once.
"""

import logging
from typing import Any, List, Optional

from .compiler import Compiler, CompilerConfig
from .container import Container
from .definition import Alias, FunctionDefinition, InterfaceBinding, ServiceDefinition
from .exceptions import AlreadyBuiltError, CompilationError
from .resolver import VariantResolver
from .scope import Scope

logger = logging.getLogger(__name__)


class ContainerBuilder:
    """Single-use builder of a Container.

    Definitions are registered into the root scope unless another scope
    is given. Compiler passes may keep modifying the builder while
    ``build()`` runs; once ``build()`` returns or raises, the builder is
    locked and every further mutation or build raises AlreadyBuiltError.

    Args:
        config: Compiler settings

    Example::

        builder = ContainerBuilder()
        builder.add_service_definitions(
            ServiceDefinition(Factory(Database, Literal("sqlite://"))),
            ServiceDefinition(Factory(UserRepository), id="users"),
        )
        container = builder.build()
        repo = container.get("users")
    """

    def __init__(self, config: Optional[CompilerConfig] = None):
        self._container = Container()
        self._compiler = Compiler(config)
        self._building = False
        self._built = False

    def _ensure_not_built(self) -> None:
        """Ensure the builder can still be modified.

        Raises:
            AlreadyBuiltError: When build() has already completed
        """
        if self._built:
            raise AlreadyBuiltError(
                "ContainerBuilder has already been built. "
                "Create a new ContainerBuilder to build another container."
            )

    @property
    def root(self) -> Scope:
        return self._container.root

    @property
    def container(self) -> Container:
        """The container under construction."""
        return self._container

    @property
    def compiler(self) -> Compiler:
        self._ensure_not_built()
        return self._compiler

    def scopes(self) -> List[Scope]:
        return self._container.scopes()

    def new_scope(self, name: str, parent: Optional[Scope] = None) -> Scope:
        """Create a scope under ``parent`` (the root by default).

        Raises:
            DefinitionError: When a scope with this name already exists
        """
        self._ensure_not_built()
        return (parent or self.root).new_child(name)

    def add_service_definitions(
        self, *definitions: ServiceDefinition, scope: Optional[Scope] = None
    ) -> 'ContainerBuilder':
        self._ensure_not_built()
        (scope or self.root).add_service_definitions(*definitions)
        return self

    def remove_service_definitions(self, *ids: str) -> 'ContainerBuilder':
        """Remove service definitions by id from every scope."""
        self._ensure_not_built()
        for scope in self.scopes():
            scope.remove_service_definitions(*ids)
        return self

    def get_service_definitions(self) -> List[ServiceDefinition]:
        """Service definitions of every scope, root scope first."""
        return [d for scope in self.scopes() for d in scope.get_service_definitions()]

    def get_service_definition(self, id: str) -> Optional[ServiceDefinition]:
        for scope in self.scopes():
            definition = scope.get_service_definition(id)
            if definition is not None:
                return definition
        return None

    def add_function_definitions(
        self, *definitions: FunctionDefinition, scope: Optional[Scope] = None
    ) -> 'ContainerBuilder':
        self._ensure_not_built()
        (scope or self.root).add_function_definitions(*definitions)
        return self

    def remove_function_definitions(self, *ids: str) -> 'ContainerBuilder':
        self._ensure_not_built()
        for scope in self.scopes():
            scope.remove_function_definitions(*ids)
        return self

    def get_function_definitions(self) -> List[FunctionDefinition]:
        return [d for scope in self.scopes() for d in scope.get_function_definitions()]

    def get_function_definition(self, id: str) -> Optional[FunctionDefinition]:
        for scope in self.scopes():
            definition = scope.get_function_definition(id)
            if definition is not None:
                return definition
        return None

    def add_bindings(
        self, *bindings: InterfaceBinding, scope: Optional[Scope] = None
    ) -> 'ContainerBuilder':
        self._ensure_not_built()
        (scope or self.root).add_bindings(*bindings)
        return self

    def remove_bindings(self, *types: Any, scope: Optional[Scope] = None) -> 'ContainerBuilder':
        self._ensure_not_built()
        (scope or self.root).remove_bindings(*types)
        return self

    def add_alias(self, alias_id: str, target_id: str) -> 'ContainerBuilder':
        """Make ``alias_id`` another id of the root-scope service ``target_id``.

        The target is checked when the container is built.
        """
        self._ensure_not_built()
        self._container._aliases[alias_id] = Alias(alias_id, target_id)
        return self

    def remove_aliases(self, *alias_ids: str) -> 'ContainerBuilder':
        self._ensure_not_built()
        for alias_id in alias_ids:
            self._container._aliases.pop(alias_id, None)
        return self

    def get_aliases(self) -> List[Alias]:
        return self._container.aliases()

    def register_argument(self, argument_type: type, resolver: VariantResolver) -> 'ContainerBuilder':
        """Teach this builder's container to resolve a custom argument variant.

        Args:
            argument_type: Argument subclass; its subclasses use the same resolver
            resolver: Validation and resolution logic for the variant
        """
        self._ensure_not_built()
        self._container.resolver.register(argument_type, resolver)
        return self

    def build(self) -> Container:
        """Run the compiler and return the compiled container.

        Returns:
            The compiled Container

        Raises:
            AlreadyBuiltError: When build() was called before
            CompilationError: When a compiler pass fails
        """
        if self._building or self._built:
            raise AlreadyBuiltError(
                "ContainerBuilder.build() can only be called once. "
                "Create a new ContainerBuilder to build another container."
            )
        self._building = True

        try:
            self._compiler.run(self)
        except CompilationError as e:
            logger.warning(
                f"Container build failed in pass '{e.pass_name}' with {len(e.errors)} error(s)"
            )
            raise
        finally:
            self._building = False
            self._built = True

        self._container._compiled = True
        logger.info(
            f"Container built: {len(self.scopes())} scope(s), "
            f"{len(self.get_service_definitions())} service(s), "
            f"{len(self.get_function_definitions())} function(s)"
        )
        return self._container
