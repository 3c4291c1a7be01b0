"""Pipeline definition models.

A pipeline is an ordered list of stages; each stage receives the previous
stage's output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


@dataclass
class StageDefinition:
    """Definition of a single pipeline stage.

    Attributes:
        id: Unique stage identifier
        stage: Stage implementation (must implement PipelineStage protocol)
        description: Optional human-readable description
    """

    id: str
    stage: Any  # PipelineStage - use Any to avoid Pydantic Protocol issues
    description: str | None = None


class PipelineDefinition(BaseModel):
    """Declarative pipeline definition.

    Attributes:
        name: Pipeline name (for logging/tracking)
        stages: Stage definitions, executed in order
        description: Optional human-readable description

    Example:
        >>> pipeline = PipelineDefinition(
        ...     name="resolve",
        ...     stages=[
        ...         StageDefinition("extract", ExtractStage()),
        ...         StageDefinition("scan", ScanStage()),
        ...     ],
        ... )
    """

    name: str = Field(description="Pipeline name")
    stages: list[StageDefinition] = Field(description="Ordered stage definitions")
    description: str | None = Field(default=None, description="Optional description")

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    def validate_pipeline(self) -> list[str]:
        """Validate pipeline definition.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not self.stages:
            errors.append("Pipeline has no stages")

        stage_ids = [s.id for s in self.stages]
        if len(stage_ids) != len(set(stage_ids)):
            duplicates = sorted({sid for sid in stage_ids if stage_ids.count(sid) > 1})
            errors.append(f"Duplicate stage IDs: {duplicates}")

        for stage_def in self.stages:
            if not callable(getattr(stage_def.stage, "execute", None)):
                errors.append(f"Stage '{stage_def.id}' has no execute() method")

        return errors
