"""Synchronous pipeline framework and the engine's stages."""

from bundlefix.core.pipeline.context import PipelineContext
from bundlefix.core.pipeline.definition import PipelineDefinition, StageDefinition
from bundlefix.core.pipeline.executor import PipelineExecutor
from bundlefix.core.pipeline.result import (
    PipelineResult,
    StageResult,
    failure_result,
    success_result,
)
from bundlefix.core.pipeline.stage import PipelineStage

__all__ = [
    "PipelineContext",
    "PipelineDefinition",
    "PipelineExecutor",
    "PipelineResult",
    "PipelineStage",
    "StageDefinition",
    "StageResult",
    "failure_result",
    "success_result",
]
