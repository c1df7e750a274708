"""
Argument Resolver

Turns arguments into values against a scope. Every argument variant has
a resolver offering three operations:

- ``validate``: can the argument resolve? Returns the list of problems
  found, used at build time
- ``resolve``: produce the value, used at run time
- ``resolve_ids``: ids of the definitions the argument depends on, used
  for cycle detection

Type-based lookups search the scope and its ancestors. An interface
binding for the requested type always wins over a direct type match.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Sequence, Type

from .argument import (
    Argument,
    Compound,
    FlexibleCollection,
    LabelMatch,
    Literal,
    Positioned,
    Reference,
    TypeMatch,
)
from .exceptions import AmbiguousMatchError, ArgumentError, NotFoundError, WireboxError
from .typeinfo import collection_of, is_assignable, signature

if TYPE_CHECKING:
    from .definition import ServiceDefinition
    from .scope import Scope


def ambiguous(what: str, definitions: Sequence['ServiceDefinition']) -> AmbiguousMatchError:
    """Build the error for a single-valued request matching several definitions.

    Candidates are sorted by id so the message is stable between runs.
    """
    ordered = sorted(definitions, key=lambda d: d.id)
    names = ", ".join(f"{d.id} ({d})" for d in ordered)
    return AmbiguousMatchError(
        f"multiple services found for {what}: {names}",
        candidates=[d.id for d in ordered],
    )


class VariantResolver:
    """Resolution logic for one argument variant."""

    def validate(self, resolver: 'ArgumentResolver', scope: 'Scope', arg: Any) -> List[WireboxError]:
        return []

    def resolve(self, resolver: 'ArgumentResolver', scope: 'Scope', arg: Any) -> Any:
        raise NotImplementedError

    def resolve_ids(self, resolver: 'ArgumentResolver', scope: 'Scope', arg: Any) -> List[str]:
        return []


class LiteralResolver(VariantResolver):

    def resolve(self, resolver, scope, arg: Literal) -> Any:
        return arg.value


class ReferenceResolver(VariantResolver):

    def validate(self, resolver, scope, arg: Reference) -> List[WireboxError]:
        if not scope.has_service_in_chain(arg.definition.id):
            return [NotFoundError(f"service {arg.definition.id} not found")]
        return []

    def resolve(self, resolver, scope, arg: Reference) -> Any:
        return scope.get_service_in_chain(arg.definition.id)

    def resolve_ids(self, resolver, scope, arg: Reference) -> List[str]:
        return [arg.definition.id]


class TypeMatchResolver(VariantResolver):
    """Binding for the requested type first, then exact type providers.

    A collection request gathers every provider of the element type.
    """

    def validate(self, resolver, scope, arg: TypeMatch) -> List[WireboxError]:
        bound = scope.get_bound_argument_in_chain(arg.type)
        if bound is not None:
            return resolver.validate(bound, scope)
        definitions = scope.get_service_definitions_by_type_in_chain(arg.of)
        if not definitions:
            return [NotFoundError(f"no services found for type {signature(arg.of)}")]
        if not arg.collection and len(definitions) > 1:
            return [ambiguous(f"type {signature(arg.of)}", definitions)]
        return []

    def resolve(self, resolver, scope, arg: TypeMatch) -> Any:
        bound = scope.get_bound_argument_in_chain(arg.type)
        if bound is not None:
            return resolver.resolve(bound, scope)
        definitions = scope.get_service_definitions_by_type_in_chain(arg.of)
        if not definitions:
            raise NotFoundError(f"no services found for type {signature(arg.of)}")
        if arg.collection:
            return scope.get_services(definitions)
        if len(definitions) > 1:
            raise ambiguous(f"type {signature(arg.of)}", definitions)
        return scope.get_services(definitions)[0]

    def resolve_ids(self, resolver, scope, arg: TypeMatch) -> List[str]:
        bound = scope.get_bound_argument_in_chain(arg.type)
        if bound is not None:
            return resolver.resolve_ids(bound, scope)
        return scope.get_service_ids_by_type_in_chain(arg.of)


class LabelMatchResolver(VariantResolver):
    """Services carrying a label, each checked against the declared type."""

    def _definitions(self, scope, arg: LabelMatch) -> List['ServiceDefinition']:
        return scope.get_service_definitions_by_label_in_chain(arg.label)

    def validate(self, resolver, scope, arg: LabelMatch) -> List[WireboxError]:
        definitions = self._definitions(scope, arg)
        if not definitions:
            return [NotFoundError(f"no services found with label {arg.label}")]
        if not arg.collection and len(definitions) > 1:
            return [ambiguous(f"label {arg.label}", definitions)]
        return [
            ArgumentError(
                f"service labelled {arg.label} should be of type {signature(arg.of)}, "
                f"got {signature(d.type)}"
            )
            for d in definitions
            if not is_assignable(d.type, arg.of)
        ]

    def resolve(self, resolver, scope, arg: LabelMatch) -> Any:
        errors = self.validate(resolver, scope, arg)
        if errors:
            raise errors[0]
        values = scope.get_services(self._definitions(scope, arg))
        if arg.collection:
            return values
        return values[0]

    def resolve_ids(self, resolver, scope, arg: LabelMatch) -> List[str]:
        return [d.id for d in self._definitions(scope, arg)]


class FlexibleCollectionResolver(VariantResolver):
    """A list from the best available source, in this order:

    1. a binding for ``list[T]``
    2. a single service producing exactly ``list[T]``
    3. a binding for ``T`` (a single value is wrapped in a list)
    4. every service producing ``T``, in scope-chain and registration order
    5. an empty list, if allowed
    """

    def validate(self, resolver, scope, arg: FlexibleCollection) -> List[WireboxError]:
        bound = scope.get_bound_argument_in_chain(arg.type)
        if bound is not None:
            return resolver.validate(bound, scope)
        exact = scope.get_service_definitions_by_type_in_chain(arg.type)
        if len(exact) > 1:
            return [ambiguous(f"type {signature(arg.type)}", exact)]
        if exact:
            return []

        bound = scope.get_bound_argument_in_chain(arg.element_type)
        if bound is not None:
            return resolver.validate(bound, scope)
        if scope.get_service_definitions_by_type_in_chain(arg.element_type) or arg.allow_empty:
            return []
        return [NotFoundError(f"no services found for type {signature(arg.type)}")]

    def resolve(self, resolver, scope, arg: FlexibleCollection) -> Any:
        bound = scope.get_bound_argument_in_chain(arg.type)
        if bound is not None:
            return resolver.resolve(bound, scope)
        exact = scope.get_service_definitions_by_type_in_chain(arg.type)
        if len(exact) > 1:
            raise ambiguous(f"type {signature(arg.type)}", exact)
        if exact:
            return scope.get_services(exact)[0]

        bound = scope.get_bound_argument_in_chain(arg.element_type)
        if bound is not None:
            value = resolver.resolve(bound, scope)
            if is_assignable(bound.type, collection_of(arg.element_type)):
                return value
            return [value]
        definitions = scope.get_service_definitions_by_type_in_chain(arg.element_type)
        if definitions or arg.allow_empty:
            return scope.get_services(definitions)
        raise NotFoundError(f"no services found for type {signature(arg.type)}")

    def resolve_ids(self, resolver, scope, arg: FlexibleCollection) -> List[str]:
        bound = scope.get_bound_argument_in_chain(arg.type)
        if bound is not None:
            return resolver.resolve_ids(bound, scope)
        exact = scope.get_service_ids_by_type_in_chain(arg.type)
        if exact:
            return exact
        bound = scope.get_bound_argument_in_chain(arg.element_type)
        if bound is not None:
            return resolver.resolve_ids(bound, scope)
        return scope.get_service_ids_by_type_in_chain(arg.element_type)


class CompoundResolver(VariantResolver):

    def validate(self, resolver, scope, arg: Compound) -> List[WireboxError]:
        errors: List[WireboxError] = []
        for i, sub in enumerate(arg.arguments):
            errors.extend(
                e.prefixed(f"compound element {i}") for e in resolver.validate(sub, scope)
            )
        return errors

    def resolve(self, resolver, scope, arg: Compound) -> Any:
        return [resolver.resolve(sub, scope) for sub in arg.arguments]

    def resolve_ids(self, resolver, scope, arg: Compound) -> List[str]:
        return [id for sub in arg.arguments for id in resolver.resolve_ids(sub, scope)]


class PositionedResolver(VariantResolver):

    def validate(self, resolver, scope, arg: Positioned) -> List[WireboxError]:
        return resolver.validate(arg.argument, scope)

    def resolve(self, resolver, scope, arg: Positioned) -> Any:
        return resolver.resolve(arg.argument, scope)

    def resolve_ids(self, resolver, scope, arg: Positioned) -> List[str]:
        return resolver.resolve_ids(arg.argument, scope)


class ArgumentResolver:
    """Dispatches each argument to the resolver registered for its class.

    Subclasses of a registered argument class use the closest registered
    resolver in their MRO. Custom argument variants are supported by
    registering a ``VariantResolver`` for them::

        class EnvVar(Argument):
            ...

        class EnvVarResolver(VariantResolver):
            def resolve(self, resolver, scope, arg):
                return os.environ[arg.name]

        builder.register_argument(EnvVar, EnvVarResolver())

    Every container owns its resolver, so a variant registered with one
    builder is unknown to other containers.
    """

    def __init__(self):
        self._resolvers: Dict[type, VariantResolver] = {
            Literal: LiteralResolver(),
            Reference: ReferenceResolver(),
            TypeMatch: TypeMatchResolver(),
            LabelMatch: LabelMatchResolver(),
            FlexibleCollection: FlexibleCollectionResolver(),
            Compound: CompoundResolver(),
            Positioned: PositionedResolver(),
        }

    def register(self, argument_type: Type[Argument], resolver: VariantResolver) -> None:
        self._resolvers[argument_type] = resolver

    def _for(self, arg: Argument) -> VariantResolver:
        for cls in type(arg).__mro__:
            variant = self._resolvers.get(cls)
            if variant is not None:
                return variant
        raise ArgumentError(f"unsupported argument type {type(arg).__name__}")

    def validate(self, arg: Argument, scope: 'Scope') -> List[WireboxError]:
        try:
            variant = self._for(arg)
        except ArgumentError as e:
            return [e]
        return variant.validate(self, scope, arg)

    def resolve(self, arg: Argument, scope: 'Scope') -> Any:
        return self._for(arg).resolve(self, scope, arg)

    def resolve_ids(self, arg: Argument, scope: 'Scope') -> List[str]:
        try:
            variant = self._for(arg)
        except ArgumentError:
            return []
        return variant.resolve_ids(self, scope, arg)


def validate_argument(arg: Argument, scope: 'Scope') -> List[WireboxError]:
    """Validate with the resolver of the container owning ``scope``."""
    return scope.owner.resolver.validate(arg, scope)


def resolve_argument(arg: Argument, scope: 'Scope') -> Any:
    return scope.owner.resolver.resolve(arg, scope)


def resolve_argument_ids(arg: Argument, scope: 'Scope') -> List[str]:
    return scope.owner.resolver.resolve_ids(arg, scope)
