"""Pipeline stage protocol and base types."""

from __future__ import annotations

from typing import Any, Protocol, TypeVar

from bundlefix.core.pipeline.context import PipelineContext
from bundlefix.core.pipeline.result import StageResult

T = TypeVar("T")


class PipelineStage(Protocol):
    """Protocol for pipeline stages.

    Uses Protocol pattern for structural subtyping (no inheritance required).

    Example:
        >>> class ScanStage:
        ...     @property
        ...     def name(self) -> str:
        ...         return "scan"
        ...
        ...     def execute(self, input: Package, context: PipelineContext) -> StageResult[Any]:
        ...         return success_result(scan_package(input), stage_name=self.name)
    """

    @property
    def name(self) -> str:
        """Stage name for logging and tracking."""
        ...

    def execute(
        self,
        input: Any,  # Use Any to avoid variance issues with Protocol
        context: PipelineContext,
    ) -> StageResult[Any]:
        """Execute stage with input and shared context.

        Args:
            input: Previous stage's output (or the pipeline's initial input)
            context: Shared pipeline context

        Returns:
            StageResult containing output or error

        Raises:
            EngineError: Stages may raise typed engine errors; the executor
                turns them into failure results
            OSError: Wrapped by the executor in the stage's ``error_type``
                attribute (``EngineError`` when the stage declares none)
        """
        ...


def resolve_typed_input(input: Any, model_type: type[T]) -> T:
    """Check that a stage received the upstream output it expects.

    Raises:
        TypeError: If ``input`` is not a ``model_type`` instance
    """
    if isinstance(input, model_type):
        return input
    raise TypeError(f"Expected {model_type.__name__}, got {type(input).__name__}")
