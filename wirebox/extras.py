"""
Extras

Ready-made compiler passes for adjusting a configuration you do not own,
for example definitions registered by a library. All of them run in the
PRE_AUTOMATION stage, before anything is autowired.

Example::

    builder.compiler.add(
        override_service_argument("mailer", 0, "smtp://localhost:2525"),
        remove_service("metrics-exporter"),
    )
"""

from typing import Any, Union

from .argument import Positioned, as_argument
from .compiler import CompilerPass, CompilerStage
from .definition import Definition
from .exceptions import ArgumentError, NotFoundError

Ref = Union[str, Definition]


def _id_of(ref: Ref, what: str) -> str:
    id = ref.id if isinstance(ref, Definition) else ref
    if not id:
        raise ArgumentError(f"cannot {what}: empty reference")
    return id


def override_service_argument(ref: Ref, index: int, argument: Any) -> CompilerPass:
    """Pass replacing the factory argument at ``index`` of a service.

    Args:
        ref: Service id or definition
        index: Factory parameter index
        argument: An Argument, or a plain value used as a Literal
    """
    def op(builder) -> None:
        id = _id_of(ref, "override argument")
        definition = builder.get_service_definition(id)
        if definition is None:
            raise NotFoundError(f"cannot override argument of {id}: service not found")
        try:
            definition.factory.args.override(Positioned(as_argument(argument), index))
        except ArgumentError as e:
            raise e.prefixed(f"cannot override argument of {id}") from None

    return CompilerPass("override service argument", CompilerStage.PRE_AUTOMATION, op)


def override_function_argument(ref: Ref, index: int, argument: Any) -> CompilerPass:
    """Pass replacing the argument at ``index`` of a function."""
    def op(builder) -> None:
        id = _id_of(ref, "override argument")
        definition = builder.get_function_definition(id)
        if definition is None:
            raise NotFoundError(f"cannot override argument of {id}: function not found")
        try:
            definition.func.args.override(Positioned(as_argument(argument), index))
        except ArgumentError as e:
            raise e.prefixed(f"cannot override argument of {id}") from None

    return CompilerPass("override function argument", CompilerStage.PRE_AUTOMATION, op)


def remove_service(ref: Ref) -> CompilerPass:
    """Pass removing a service from the root scope; unknown ids are ignored."""
    def op(builder) -> None:
        builder.root.remove_service_definitions(_id_of(ref, "remove service"))

    return CompilerPass("remove service", CompilerStage.PRE_AUTOMATION, op)


def remove_function(ref: Ref) -> CompilerPass:
    """Pass removing a function from the root scope; unknown ids are ignored."""
    def op(builder) -> None:
        builder.root.remove_function_definitions(_id_of(ref, "remove function"))

    return CompilerPass("remove function", CompilerStage.PRE_AUTOMATION, op)
