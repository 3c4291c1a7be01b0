"""Result types for pipeline execution.

Provides immutable result types with success/failure semantics.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from bundlefix.core.errors import EngineError

TOutput = TypeVar("TOutput")


class StageResult(BaseModel, Generic[TOutput]):
    """Result from a single stage execution.

    Attributes:
        success: Whether stage executed successfully
        output: Stage output (if success=True)
        error: Error message (if success=False)
        exception: Typed engine error behind the failure, if any
        stage_name: Name of stage that produced result
        metadata: Optional metadata (timing, counts, etc.)

    Example:
        >>> result = success_result(nodes, stage_name="scan")
        >>> if result.success:
        ...     print(f"Output: {result.output}")
    """

    success: bool = Field(description="Whether stage executed successfully")
    stage_name: str = Field(description="Name of stage that produced result")
    output: TOutput | None = Field(default=None, description="Stage output (if success)")
    error: str | None = Field(default=None, description="Error message (if failure)")
    exception: EngineError | None = Field(default=None, description="Typed error (if failure)")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Optional metadata (timing, counts, etc.)"
    )

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)


# Helper functions to create results (avoids Pydantic classmethod issues)


def success_result(
    output: TOutput,
    stage_name: str = "unknown",
    metadata: dict[str, Any] | None = None,
) -> StageResult[TOutput]:
    """Create success result.

    Args:
        output: Stage output
        stage_name: Name of stage
        metadata: Optional metadata

    Returns:
        StageResult with success=True
    """
    return StageResult(
        success=True,
        output=output,
        stage_name=stage_name,
        metadata=metadata or {},
    )


def failure_result(
    error: str | EngineError,
    stage_name: str = "unknown",
    metadata: dict[str, Any] | None = None,
) -> StageResult[Any]:
    """Create failure result.

    Args:
        error: Error message, or the engine error that caused the failure
        stage_name: Name of stage
        metadata: Optional metadata

    Returns:
        StageResult with success=False

    Example:
        >>> result = failure_result(ExtractionError("Archive not found"), stage_name="extract")
    """
    exception = error if isinstance(error, EngineError) else None
    return StageResult(
        success=False,
        error=str(error),
        exception=exception,
        stage_name=stage_name,
        metadata=metadata or {},
    )


class PipelineResult(BaseModel):
    """Result from complete pipeline execution.

    Attributes:
        success: Whether pipeline completed successfully
        outputs: Map of stage_id -> stage output
        stage_results: Map of stage_id -> StageResult
        failed_stages: List of stage IDs that failed
        total_duration_ms: Total pipeline duration
        metadata: Pipeline-level metadata
    """

    success: bool = Field(description="Whether pipeline completed successfully")
    outputs: dict[str, Any] = Field(default_factory=dict, description="Map of stage_id -> output")
    stage_results: dict[str, StageResult[Any]] = Field(
        default_factory=dict, description="Map of stage_id -> StageResult"
    )
    failed_stages: list[str] = Field(
        default_factory=list, description="List of stage IDs that failed"
    )
    total_duration_ms: float = Field(default=0.0, description="Total pipeline duration (ms)")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Pipeline-level metadata")

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    def get_output(self, stage_id: str) -> Any:
        """Get output from specific stage.

        Raises:
            KeyError: If stage ID not found or stage failed
        """
        if stage_id not in self.outputs:
            raise KeyError(f"Stage '{stage_id}' not found in outputs")
        return self.outputs[stage_id]

    @property
    def error(self) -> EngineError | None:
        """Typed error of the first failed stage, if any."""
        for stage_id in self.failed_stages:
            result = self.stage_results.get(stage_id)
            if result is not None and result.exception is not None:
                return result.exception
        return None

    def raise_for_failure(self) -> None:
        """Re-raise the first failed stage's engine error.

        Raises:
            EngineError: The typed error that stopped the pipeline
        """
        if self.success:
            return
        error = self.error
        if error is not None:
            raise error
        stages = ", ".join(self.failed_stages) or "unknown"
        messages = "; ".join(
            r.error or "" for r in self.stage_results.values() if not r.success
        )
        raise EngineError(f"Pipeline failed at {stages}: {messages or self.metadata}")
