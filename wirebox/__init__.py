# Public API
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
from .builder import ContainerBuilder
from .compiler import Compiler, CompilerConfig, CompilerPass, CompilerStage
from .container import Container
from .definition import (
    Alias,
    FunctionDefinition,
    InterfaceBinding,
    ServiceDefinition,
)
from .exceptions import (
    AlreadyBuiltError,
    AmbiguousMatchError,
    ArgumentError,
    CompilationError,
    CycleError,
    DefinitionError,
    InstantiationError,
    NotCompiledError,
    NotFoundError,
    WireboxError,
)
from .extras import (
    override_function_argument,
    override_service_argument,
    remove_function,
    remove_service,
)
from .function import Factory, Func, Method
from .printing import export_dot, print_container
from .resolver import ArgumentResolver, VariantResolver
from .scope import Scope
from .typeinfo import Label

__all__ = [
    "ContainerBuilder",
    "Container",
    "Scope",
    # Definitions
    "ServiceDefinition",
    "FunctionDefinition",
    "InterfaceBinding",
    "Alias",
    "Factory",
    "Method",
    "Func",
    "Label",
    # Arguments
    "Argument",
    "Literal",
    "Reference",
    "TypeMatch",
    "LabelMatch",
    "FlexibleCollection",
    "Compound",
    "Positioned",
    "VariantResolver",
    "ArgumentResolver",
    # Compiler
    "Compiler",
    "CompilerConfig",
    "CompilerPass",
    "CompilerStage",
    "override_service_argument",
    "override_function_argument",
    "remove_service",
    "remove_function",
    # Debugging
    "print_container",
    "export_dot",
    # Exceptions
    "WireboxError",
    "DefinitionError",
    "ArgumentError",
    "AmbiguousMatchError",
    "NotFoundError",
    "CycleError",
    "InstantiationError",
    "CompilationError",
    "AlreadyBuiltError",
    "NotCompiledError",
]

# Version will be dynamically set by poetry-dynamic-versioning
try:
    from ._version import __version__
except ImportError:
    # Fallback for development
    __version__ = '0.0.0'
