"""
Built-in Compiler Passes

Automation:
    InterfaceBindingPass, AutowiringPass
Validation:
    AliasValidationPass, ArgValidationPass, CycleValidationPass
Finalization:
    EagerInitPass

Every pass collects all the problems it finds and reports them together
in one CompilationError.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Set, Tuple, Union

from .argument import Compound, FlexibleCollection, LabelMatch, Reference, TypeMatch
from .definition import FunctionDefinition, InterfaceBinding, ServiceDefinition
from .exceptions import ArgumentError, CompilationError, CycleError, NotFoundError, WireboxError
from .resolver import ambiguous, resolve_argument_ids, validate_argument
from .slot import ArgumentList, Slot
from .typeinfo import collection_of, implements, is_capability, signature

if TYPE_CHECKING:
    from .builder import ContainerBuilder

logger = logging.getLogger(__name__)

AnyDefinition = Union[ServiceDefinition, FunctionDefinition]


def argument_lists(definition: AnyDefinition) -> Iterator[Tuple[str, ArgumentList]]:
    """Every argument list of a definition, with a description of its owner."""
    if isinstance(definition, ServiceDefinition):
        yield f"factory {definition.factory}", definition.factory.args
        for method in definition.method_calls:
            yield f"method {method}", method.args
    else:
        yield f"function {definition.func}", definition.func.args


def describe(definition: AnyDefinition) -> str:
    kind = "service" if isinstance(definition, ServiceDefinition) else "function"
    return f"{kind} {definition}"


def _raise_collected(errors: List[Exception], message: str) -> None:
    if errors:
        raise CompilationError(message, errors=errors)


def _is_wildcard(slot: Slot) -> bool:
    return slot.type is Any or slot.element_type is Any


class InterfaceBindingPass:
    """Binds capability types that have exactly one implementation.

    For every empty slot whose type (or element type, for a collection
    slot) is a capability, the implementations visible from the
    requesting definition are looked up. A single implementation is bound
    with a Reference; a collection slot binds a Compound of all of them.
    Two or more implementations for a single-valued slot is an error.
    Capabilities already bound, or with a definition producing exactly
    that type, are left alone.
    """

    def run(self, builder: 'ContainerBuilder') -> None:
        errors: List[Exception] = []
        definitions: List[AnyDefinition] = [
            *builder.get_service_definitions(),
            *builder.get_function_definitions(),
        ]
        for definition in definitions:
            for owner, args in argument_lists(definition):
                for slot in args:
                    try:
                        self._check_and_bind(definition, slot)
                    except WireboxError as e:
                        errors.append(e.prefixed(
                            f"could not bind argument {slot.index} of {describe(definition)}"
                        ))
        _raise_collected(errors, "interface binding failed")

    def _check_and_bind(self, definition: AnyDefinition, slot: Slot) -> None:
        if slot.is_filled or slot.receiver or slot.has_default or slot.label:
            return

        capability = slot.element_type if slot.is_collection else slot.type
        if not is_capability(capability):
            return

        key = collection_of(capability) if slot.is_collection else capability
        scope = definition.effective_scope
        if scope.get_bound_argument_in_chain(key) is not None:
            return
        if (scope.get_service_definitions_by_type_in_chain(key)
                or scope.get_service_definitions_by_type_in_chain(capability)):
            return

        implementations = [
            d for d in scope.get_service_definitions_in_chain()
            if d.id != definition.id and implements(d.type, capability)
        ]
        if not implementations:
            return

        if slot.is_collection:
            bound = Compound(capability, *(Reference(d) for d in implementations))
        elif len(implementations) > 1:
            raise ambiguous(f"capability {signature(capability)}", implementations)
        else:
            bound = Reference(implementations[0])

        scope.add_bindings(InterfaceBinding(key, bound))
        logger.debug(f"Bound {signature(key)} to {bound} in scope {scope.name}")


class AutowiringPass:
    """Fills the empty slots of autowired definitions.

    - ``Annotated[T, Label(...)]`` slot: LabelMatch
    - collection slot: FlexibleCollection, empty allowed for ``*args``
    - any other slot: TypeMatch

    Slots with a default value, receivers and ``Any`` slots are skipped.
    """

    def run(self, builder: 'ContainerBuilder') -> None:
        errors: List[Exception] = []
        definitions: List[AnyDefinition] = [
            *builder.get_service_definitions(),
            *builder.get_function_definitions(),
        ]
        for definition in definitions:
            if not definition.autowired:
                continue
            for owner, args in argument_lists(definition):
                for slot in args:
                    try:
                        self._autowire(slot)
                    except WireboxError as e:
                        errors.append(e.prefixed(
                            f"failed to autowire {describe(definition)}: {owner}"
                        ))
        _raise_collected(errors, "autowiring failed")

    @staticmethod
    def _autowire(slot: Slot) -> None:
        if slot.is_filled or slot.receiver or slot.has_default:
            return
        if slot.label is not None:
            of = slot.element_type if slot.is_collection else slot.type
            slot.fill(LabelMatch(slot.label, of=of, collection=slot.is_collection))
        elif _is_wildcard(slot):
            return
        elif slot.is_collection:
            slot.fill(FlexibleCollection(slot.element_type, allow_empty=slot.variadic))
        else:
            slot.fill(TypeMatch(slot.type))


class AliasValidationPass:
    """Every alias must point to a service of the root scope."""

    def run(self, builder: 'ContainerBuilder') -> None:
        errors: List[Exception] = [
            NotFoundError(f"alias {alias.id} points to a non-existing service {alias.target}")
            for alias in builder.get_aliases()
            if not builder.root.has_service(alias.target)
        ]
        _raise_collected(errors, "alias validation failed")


class ArgValidationPass:
    """Every required slot has an argument and every argument can resolve."""

    def run(self, builder: 'ContainerBuilder') -> None:
        errors: List[Exception] = []
        definitions: List[AnyDefinition] = [
            *builder.get_service_definitions(),
            *builder.get_function_definitions(),
        ]
        for definition in definitions:
            for owner, args in argument_lists(definition):
                prefix = f"invalid {describe(definition)}: invalid {owner}"
                errors.extend(self._validate(definition, args, prefix))
        _raise_collected(errors, "argument validation failed")

    @staticmethod
    def _validate(definition: AnyDefinition, args: ArgumentList, prefix: str) -> List[Exception]:
        errors: List[Exception] = []
        for slot in args:
            if slot.receiver:
                continue
            if not slot.is_filled and not slot.optional:
                errors.append(ArgumentError(
                    f"{prefix}: argument {slot.index} ({slot.name}) is not set"
                ))
                continue
            argument = slot.argument
            if argument is None:
                continue
            for e in validate_argument(argument, definition.effective_scope):
                errors.append(e.prefixed(f"{prefix}: invalid argument {slot.index} ({slot.name})"))
        return errors


class CycleValidationPass:
    """Constructor dependencies must form a directed acyclic graph.

    Edges come from factory arguments only. Method-call dependencies are
    applied once a shared instance exists, so they may form cycles as long
    as a shared service sits on the cycle. A loop made only of non-shared
    services would build new instances forever and is rejected too.
    """

    def run(self, builder: 'ContainerBuilder') -> None:
        definitions = builder.get_service_definitions()
        errors = self._find_cycles(definitions, with_methods=False)
        if not errors:
            errors = self._find_cycles(
                [d for d in definitions if not d.shared], with_methods=True
            )
        _raise_collected(errors, "cycle validation failed")

    def _find_cycles(
        self, definitions: List[ServiceDefinition], with_methods: bool
    ) -> List[Exception]:
        by_id: Dict[str, ServiceDefinition] = {d.id: d for d in definitions}
        edges: Dict[str, List[str]] = {d.id: [] for d in definitions}
        errors: List[Exception] = []

        for definition in definitions:
            scope = definition.effective_scope
            arguments = list(definition.factory.args.arguments())
            if with_methods:
                for method in definition.method_calls:
                    arguments.extend(method.args.arguments())
            for argument in arguments:
                for dep_id in resolve_argument_ids(argument, scope):
                    if dep_id not in by_id or dep_id in edges[definition.id]:
                        continue
                    if self._reaches(edges, dep_id, definition.id):
                        kind = "non-shared service" if with_methods else "service"
                        errors.append(CycleError(
                            f"{kind} {definition} has a circular dependency on {by_id[dep_id]}",
                            services=(definition.id, dep_id),
                        ))
                        continue
                    edges[definition.id].append(dep_id)
        return errors

    @staticmethod
    def _reaches(edges: Dict[str, List[str]], start: str, target: str) -> bool:
        """Depth-first search: is ``target`` reachable from ``start``?"""
        stack = [start]
        seen: Set[str] = set()
        while stack:
            node = stack.pop()
            if node == target:
                return True
            if node in seen:
                continue
            seen.add(node)
            stack.extend(edges.get(node, ()))
        return False


class EagerInitPass:
    """Builds every non-lazy service and executes every non-lazy function."""

    def run(self, builder: 'ContainerBuilder') -> None:
        errors: List[Exception] = []
        for definition in builder.get_service_definitions():
            if definition.lazy:
                continue
            try:
                definition.scope.get_service(definition.id)
            except WireboxError as e:
                errors.append(e.prefixed(f"failed to initialise eager service {definition}"))
        for definition in builder.get_function_definitions():
            if definition.lazy:
                continue
            try:
                definition.scope.execute_function(definition.id)
            except WireboxError as e:
                errors.append(e.prefixed(f"failed to execute eager function {definition}"))
        _raise_collected(errors, "eager initialization failed")
