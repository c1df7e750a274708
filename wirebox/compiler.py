"""
Compiler

Runs the ordered pipeline of compiler passes that turns the builder's
mutable definition graph into a validated container.

Passes are grouped into stages executed strictly in order. Within a
stage, passes with a higher priority run first; passes with the same
priority run in the order they were added.
"""

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Union

from .exceptions import CompilationError, flatten_errors
from .passes import (
    AliasValidationPass,
    ArgValidationPass,
    AutowiringPass,
    CycleValidationPass,
    EagerInitPass,
    InterfaceBindingPass,
)

if TYPE_CHECKING:
    from .builder import ContainerBuilder

logger = logging.getLogger(__name__)


class CompilerStage(enum.IntEnum):
    """Stages of the compiler pipeline, in execution order"""
    PRE_AUTOMATION = 0
    AUTOMATION = 1
    PRE_VALIDATION = 2
    VALIDATION = 3
    PRE_FINALIZATION = 4
    FINALIZATION = 5
    POST_FINALIZATION = 6


# A pass operation: a callable taking the builder, or an object with run(builder).
CompilerOp = Union[Callable[['ContainerBuilder'], Any], Any]


@dataclass
class CompilerConfig:
    """Compiler settings.

    Attributes:
        skip_cycle_validation: Leave out the constructor cycle check.
            Building gets faster, but a cyclic configuration then fails
            only when the cycle is first resolved.
    """
    skip_cycle_validation: bool = False


@dataclass
class CompilerPass:
    """One named step of the pipeline"""
    name: str
    stage: CompilerStage
    op: CompilerOp
    priority: int = 0

    def run(self, builder: 'ContainerBuilder') -> None:
        run = getattr(self.op, 'run', None)
        if callable(run):
            run(builder)
        else:
            self.op(builder)

    def __str__(self) -> str:
        return self.name


def base_passes(config: CompilerConfig) -> List[CompilerPass]:
    """The built-in passes, in insertion order."""
    passes = [
        CompilerPass("interface binding", CompilerStage.AUTOMATION, InterfaceBindingPass()),
        CompilerPass("autowiring", CompilerStage.AUTOMATION, AutowiringPass()),
        CompilerPass("alias validation", CompilerStage.VALIDATION, AliasValidationPass()),
        CompilerPass("argument validation", CompilerStage.VALIDATION, ArgValidationPass()),
    ]
    if not config.skip_cycle_validation:
        passes.append(
            CompilerPass("cycle validation", CompilerStage.VALIDATION, CycleValidationPass())
        )
    passes.append(
        CompilerPass("eager initialization", CompilerStage.FINALIZATION, EagerInitPass())
    )
    return passes


class Compiler:
    """Holds the compiler passes and runs them over a builder.

    Example::

        def register_plugins(builder):
            for plugin in discover_plugins():
                builder.add_service_definitions(plugin)

        builder.compiler.add_pass(CompilerStage.PRE_AUTOMATION, 10, register_plugins)
    """

    def __init__(self, config: Optional[CompilerConfig] = None):
        self.config = config or CompilerConfig()
        self._passes: List[CompilerPass] = base_passes(self.config)

    def add_pass(
        self,
        stage: CompilerStage,
        priority: int,
        op: CompilerOp,
        name: Optional[str] = None,
    ) -> CompilerPass:
        """Register a pass.

        Args:
            stage: Stage the pass runs in
            priority: Higher runs earlier within the stage
            op: Callable taking the builder, or an object with ``run(builder)``
            name: Name used in errors and logs, defaults to the op's name

        Returns:
            The registered CompilerPass
        """
        if name is None:
            name = getattr(op, '__name__', None) or type(op).__name__
        compiler_pass = CompilerPass(name, CompilerStage(stage), op, priority)
        self._passes.append(compiler_pass)
        return compiler_pass

    def add(self, *passes: CompilerPass) -> None:
        self._passes.extend(passes)

    def passes(self) -> List[CompilerPass]:
        """Passes in execution order."""
        # sorted() is stable, so equal keys keep insertion order.
        return sorted(self._passes, key=lambda p: (p.stage, -p.priority))

    def run(self, builder: 'ContainerBuilder') -> None:
        """Run every pass in order, stopping at the first failing one.

        Raises:
            CompilationError: Naming the failing pass and carrying every
                error it reported
        """
        for compiler_pass in self.passes():
            logger.debug(
                f"Running compiler pass '{compiler_pass.name}' ({compiler_pass.stage.name})"
            )
            try:
                compiler_pass.run(builder)
            except Exception as e:
                raise CompilationError(
                    f"compiler pass ({compiler_pass.name}) returned an error",
                    errors=flatten_errors([e]),
                    pass_name=compiler_pass.name,
                ) from e
