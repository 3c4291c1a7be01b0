"""Sequential pipeline executor.

Runs stages strictly one after another, feeding each stage the previous
stage's output, and stops at the first failure.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from bundlefix.core.errors import EngineError
from bundlefix.core.pipeline.context import PipelineContext
from bundlefix.core.pipeline.definition import PipelineDefinition, StageDefinition
from bundlefix.core.pipeline.result import PipelineResult, StageResult, failure_result

logger = logging.getLogger(__name__)


class PipelineExecutor:
    """Executes pipelines stage by stage, fail-fast.

    Example:
        >>> executor = PipelineExecutor()
        >>> result = executor.execute(pipeline, archive_path, context)
        >>> result.raise_for_failure()
        >>> report = result.get_output("verify")
    """

    def execute(
        self,
        pipeline: PipelineDefinition,
        initial_input: Any,
        context: PipelineContext,
    ) -> PipelineResult:
        """Execute every stage in order.

        Args:
            pipeline: Pipeline definition
            initial_input: Input for the first stage
            context: Shared pipeline context

        Returns:
            PipelineResult with all stage outputs; on failure, results up to
            and including the failed stage
        """
        start_time = time.perf_counter()

        errors = pipeline.validate_pipeline()
        if errors:
            logger.error(f"Pipeline validation failed: {errors}")
            return PipelineResult(
                success=False,
                failed_stages=["validation"],
                metadata={"validation_errors": errors},
            )

        logger.debug(f"Executing pipeline: {pipeline.name} ({len(pipeline.stages)} stages)")

        outputs: dict[str, Any] = {}
        stage_results: dict[str, StageResult[Any]] = {}
        current = initial_input

        for stage_def in pipeline.stages:
            result = self._execute_stage(stage_def, current, context)
            stage_results[stage_def.id] = result

            if not result.success:
                logger.error(f"  ✗ {stage_def.id} failed: {result.error}")
                return PipelineResult(
                    success=False,
                    outputs=outputs,
                    stage_results=stage_results,
                    failed_stages=[stage_def.id],
                    total_duration_ms=(time.perf_counter() - start_time) * 1000,
                    metadata={"failed_stage": stage_def.id, **context.metrics},
                )

            outputs[stage_def.id] = result.output
            current = result.output
            logger.debug(f"  ✓ {stage_def.id} completed")

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Pipeline completed in {duration_ms:.0f}ms")

        return PipelineResult(
            success=True,
            outputs=outputs,
            stage_results=stage_results,
            total_duration_ms=duration_ms,
            metadata=dict(context.metrics),
        )

    def _execute_stage(
        self,
        stage_def: StageDefinition,
        input: Any,
        context: PipelineContext,
    ) -> StageResult[Any]:
        stage_start = time.perf_counter()
        try:
            result = stage_def.stage.execute(input, context)
        except EngineError as e:
            result = failure_result(e, stage_name=stage_def.id)
        except OSError as e:
            # Filesystem failures the stage did not type itself
            error_type = getattr(stage_def.stage, "error_type", EngineError)
            path = e.filename if isinstance(e.filename, str) else None
            error = error_type(f"{type(e).__name__}: {e.strerror or e}", path=path)
            logger.debug(f"Stage {stage_def.id} raised {type(e).__name__}", exc_info=True)
            result = failure_result(error, stage_name=stage_def.id)
        finally:
            elapsed_ms = (time.perf_counter() - stage_start) * 1000
            context.add_metric(f"{stage_def.id}_duration_ms", round(elapsed_ms, 3))
        return result
