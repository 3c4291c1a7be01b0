"""Engine facade: runs the resolve and plan pipelines for one archive."""

from __future__ import annotations

from pathlib import Path

from bundlefix.core.bundle.identifiers import validate_main_identifier
from bundlefix.core.config.loader import load_engine_config
from bundlefix.core.config.models import EngineConfig
from bundlefix.core.errors import RepackageError
from bundlefix.core.package.workspace import working_directory
from bundlefix.core.pipeline.context import PipelineContext
from bundlefix.core.pipeline.definition import PipelineDefinition, StageDefinition
from bundlefix.core.pipeline.executor import PipelineExecutor
from bundlefix.core.pipeline.stages import (
    AllocateStage,
    CheckPlanStage,
    ExtractStage,
    PlanReportStage,
    PublishStage,
    RepackageStage,
    RewriteStage,
    ScanStage,
    VerifyStage,
)
from bundlefix.core.reporting.models import RunReport
from bundlefix.core.utils.logging import get_logger


def default_output_path(archive: Path | str, suffix: str = "_fixed") -> Path:
    """Output path next to the archive.

    Example:
        >>> default_output_path("build/App.ipa")
        PosixPath('build/App_fixed.ipa')
    """
    archive = Path(archive)
    return archive.with_name(f"{archive.stem}{suffix}{archive.suffix}")


def build_resolve_pipeline() -> PipelineDefinition:
    return PipelineDefinition(
        name="resolve",
        description="Extract, allocate, rewrite, repackage, verify and publish",
        stages=[
            StageDefinition("extract", ExtractStage()),
            StageDefinition("scan", ScanStage()),
            StageDefinition("allocate", AllocateStage()),
            StageDefinition("check", CheckPlanStage()),
            StageDefinition("rewrite", RewriteStage()),
            StageDefinition("repackage", RepackageStage()),
            StageDefinition("verify", VerifyStage()),
            StageDefinition("publish", PublishStage()),
        ],
    )


def build_plan_pipeline() -> PipelineDefinition:
    return PipelineDefinition(
        name="plan",
        description="Extract, allocate and check without writing anything",
        stages=[
            StageDefinition("extract", ExtractStage()),
            StageDefinition("scan", ScanStage()),
            StageDefinition("allocate", AllocateStage()),
            StageDefinition("check", CheckPlanStage()),
            StageDefinition("report", PlanReportStage()),
        ],
    )


def _run(
    pipeline: PipelineDefinition,
    archive: Path,
    main_identifier: str,
    config: EngineConfig,
    output: Path | None,
) -> RunReport:
    log = get_logger(__name__, archive=str(archive), pipeline=pipeline.name)
    with working_directory(config.work_dir_root) as work_dir:
        context = PipelineContext(
            config=config,
            main_identifier=main_identifier,
            work_dir=work_dir,
            output_path=output,
        )
        result = PipelineExecutor().execute(pipeline, archive, context)
        if not result.success:
            log.error(f"Run failed at {', '.join(result.failed_stages)}")
        result.raise_for_failure()
        log.info(f"Run finished in {result.total_duration_ms:.0f}ms")
        return result.get_output(pipeline.stages[-1].id)


def resolve_collisions(
    archive: Path | str,
    main_identifier: str | None = None,
    output: Path | str | None = None,
    config: EngineConfig | None = None,
) -> RunReport:
    """Produce a copy of ``archive`` where every identifier is unique.

    The input is never modified. The output path (and its report) is written
    only after the repackaged artifact has been reopened and verified.

    Args:
        archive: ``.ipa`` file or ``.xcarchive`` directory
        main_identifier: Identifier of the main application (falls back to
            ``config.main_identifier``)
        output: Output path (default ``<archive-name><suffix>.<ext>`` beside the input)
        config: Engine configuration (default: loaded from the environment)

    Returns:
        RunReport for the published artifact

    Raises:
        ConfigError: If the configuration is invalid
        ExtractionError: If the archive cannot be opened or has no single app root
        AllocationError: If the main identifier is invalid or allocation fails
        RewriteError: If metadata cannot be read or written
        RepackageError: If the output cannot be written
        VerificationError: If the produced artifact violates the invariants

    Example:
        >>> report = resolve_collisions("build/App.ipa", "com.example.app")
        >>> report.collisions_fixed
        2
    """
    config = config or load_engine_config()
    main_identifier = validate_main_identifier(main_identifier or config.main_identifier)
    archive = Path(archive)
    if output is None:
        output = default_output_path(archive, config.output_suffix)
    output = Path(output)
    if output.resolve() == archive.resolve():
        raise RepackageError("Output path must differ from the input archive", path=output)

    return _run(build_resolve_pipeline(), archive, main_identifier, config, output)


def plan_collisions(
    archive: Path | str,
    main_identifier: str | None = None,
    config: EngineConfig | None = None,
) -> RunReport:
    """Report what ``resolve_collisions`` would change, writing nothing.

    Raises:
        ExtractionError: If the archive cannot be opened or has no single app root
        AllocationError: If the main identifier is invalid or allocation fails
        VerificationError: If the planned identifiers violate the invariants
    """
    config = config or load_engine_config()
    main_identifier = validate_main_identifier(main_identifier or config.main_identifier)
    return _run(build_plan_pipeline(), Path(archive), main_identifier, config, None)
