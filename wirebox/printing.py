"""
Printing

Read-only debug views of a compiled container: a text dump of every
scope and a Graphviz DOT graph of the dependencies between services.
"""

import sys
from typing import List, Optional, TextIO

from .argument import Argument
from .container import Container
from .exceptions import NotCompiledError
from .resolver import resolve_argument_ids
from .scope import Scope
from .slot import ArgumentList
from .typeinfo import signature

RULE = "=" * 80
SEPARATOR = "-" * 80


def _ensure_compiled(container: Container) -> None:
    if not container.is_compiled:
        raise NotCompiledError("only a compiled container can be printed")


def _shown(scope: Scope, arg: Optional[Argument]) -> str:
    """The argument, or what it is bound to in the scope."""
    if arg is None:
        return "<default>"
    bound = scope.get_bound_argument_in_chain(arg.type)
    return str(bound if bound is not None else arg)


def _header(lines: List[str], title: str) -> None:
    lines.extend([RULE, f"\t{title}", RULE])


def _arguments(lines: List[str], scope: Scope, args: ArgumentList, prefix: str) -> None:
    for slot in args:
        if not slot.receiver:
            lines.append(f"{prefix}- {_shown(scope, slot.argument)}")


def format_scope(scope: Scope) -> str:
    lines: List[str] = []
    _header(lines, f"Scope: {scope}")

    bindings = scope.get_bindings()
    if bindings:
        _header(lines, "Interface bindings:")
    for binding in bindings:
        lines.append(f"{signature(binding.capability)} -> {binding.bound}")

    services = scope.get_service_definitions()
    if services:
        _header(lines, "Services:")
        lines.append(SEPARATOR)
    for definition in services:
        arg_scope = definition.effective_scope
        lines.append(f"ID:\t\t{definition.id}")
        lines.append(f"Type:\t\t{definition}")
        lines.append(f"Factory:\t{definition.factory}")
        lines.append(f"Autowire:\t{definition.autowired}")
        lines.append(f"Shared:\t\t{definition.shared}")
        lines.append(f"Lazy:\t\t{definition.lazy}")
        if len(definition.factory.args):
            lines.append("Arguments:")
            _arguments(lines, arg_scope, definition.factory.args, " ")
        if definition.method_calls:
            lines.append("Method calls:")
        for method in definition.method_calls:
            lines.append(f" - {method}:")
            _arguments(lines, arg_scope, method.args, "\t")
        lines.append(SEPARATOR)

    functions = scope.get_function_definitions()
    if functions:
        _header(lines, "Functions:")
        lines.append(SEPARATOR)
    for definition in functions:
        lines.append(f"ID:\t\t{definition.id}")
        lines.append(f"Name:\t\t{definition}")
        lines.append(f"Autowire:\t{definition.autowired}")
        lines.append(f"Lazy:\t\t{definition.lazy}")
        if len(definition.func.args):
            lines.append("Arguments:")
            _arguments(lines, definition.effective_scope, definition.func.args, " ")
        lines.append(SEPARATOR)

    return "\n".join(lines) + "\n"


def print_container(container: Container, stream: Optional[TextIO] = None) -> None:
    """Write a text dump of every scope of ``container``.

    Args:
        container: A compiled container
        stream: Destination, ``sys.stdout`` by default

    Raises:
        NotCompiledError: When the container has not been built
    """
    _ensure_compiled(container)
    out = stream if stream is not None else sys.stdout
    for scope in container.scopes():
        out.write(format_scope(scope))


def _quote(text: str) -> str:
    return '"' + text.replace('\\', '\\\\').replace('"', '\\"') + '"'


def export_dot(container: Container, stream: Optional[TextIO] = None) -> str:
    """Write the dependency graph of ``container`` in Graphviz DOT format.

    Each scope is a cluster. Solid edges are factory dependencies, dashed
    edges method-call dependencies. Functions are drawn as boxes.

    Args:
        container: A compiled container
        stream: Optional destination the graph is also written to

    Returns:
        The DOT source

    Raises:
        NotCompiledError: When the container has not been built
    """
    _ensure_compiled(container)
    lines = ["digraph container {", "  rankdir=LR;"]
    edges: List[str] = []

    for i, scope in enumerate(container.scopes()):
        lines.append(f"  subgraph cluster_{i} {{")
        lines.append(f"    label={_quote(scope.name)};")
        for definition in scope.get_service_definitions():
            lines.append(f"    {_quote(definition.id)} [label={_quote(str(definition))}];")
            arg_scope = definition.effective_scope
            for arg in definition.factory.args.arguments():
                for dep in resolve_argument_ids(arg, arg_scope):
                    edges.append(f"  {_quote(definition.id)} -> {_quote(dep)};")
            for method in definition.method_calls:
                for arg in method.args.arguments():
                    for dep in resolve_argument_ids(arg, arg_scope):
                        edges.append(
                            f"  {_quote(definition.id)} -> {_quote(dep)} "
                            f"[style=dashed, label={_quote(method.short_name)}];"
                        )
        for definition in scope.get_function_definitions():
            lines.append(
                f"    {_quote(definition.id)} [label={_quote(str(definition))}, shape=box];"
            )
            for arg in definition.func.args.arguments():
                for dep in resolve_argument_ids(arg, definition.effective_scope):
                    edges.append(f"  {_quote(definition.id)} -> {_quote(dep)};")
        lines.append("  }")

    lines.extend(edges)
    lines.append("}")
    source = "\n".join(lines) + "\n"
    if stream is not None:
        stream.write(source)
    return source
