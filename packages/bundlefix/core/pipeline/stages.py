"""Engine stages.

Each stage wraps one engine component behind the PipelineStage protocol.
Stages raise typed engine errors; the executor turns them into failure
results. Untyped filesystem errors are wrapped in the stage's ``error_type``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from bundlefix.core.bundle.allocator import AllocationResult, IdentifierAllocator
from bundlefix.core.bundle.models import BundleNode
from bundlefix.core.bundle.scanner import scan_package
from bundlefix.core.errors import (
    AllocationError,
    ExtractionError,
    RepackageError,
    RewriteError,
    VerificationError,
)
from bundlefix.core.metadata.rewriter import rewrite_metadata
from bundlefix.core.package.extractor import extract_package
from bundlefix.core.package.models import Package
from bundlefix.core.package.repackager import publish_artifact, repackage
from bundlefix.core.pipeline.context import PipelineContext
from bundlefix.core.pipeline.result import StageResult, success_result
from bundlefix.core.pipeline.stage import resolve_typed_input
from bundlefix.core.reporting.models import RunReport, build_report
from bundlefix.core.reporting.writer import report_path_for, write_report
from bundlefix.core.verify.verifier import verify_artifact, verify_nodes

logger = logging.getLogger(__name__)

STAGING_DIRNAME = "staging"


def _stage_timings(context: PipelineContext) -> dict[str, float]:
    suffix = "_duration_ms"
    return {
        key[: -len(suffix)]: value
        for key, value in context.metrics.items()
        if key.endswith(suffix)
    }


class ExtractStage:
    """Archive path -> Package."""

    error_type = ExtractionError

    @property
    def name(self) -> str:
        return "extract"

    def execute(self, input: Any, context: PipelineContext) -> StageResult[Package]:
        archive = resolve_typed_input(input, Path)
        package = extract_package(archive, context.work_dir)
        context.set_state("package", package)
        context.add_metric("entries", len(package.entries))
        return success_result(package, stage_name=self.name)


class ScanStage:
    """Package -> bundle nodes in scan order."""

    error_type = ExtractionError

    @property
    def name(self) -> str:
        return "scan"

    def execute(self, input: Any, context: PipelineContext) -> StageResult[list[BundleNode]]:
        package = resolve_typed_input(input, Package)
        nodes = scan_package(package, context.config.scan)
        context.add_metric("nodes", len(nodes))
        return success_result(nodes, stage_name=self.name)


class AllocateStage:
    """Bundle nodes -> AllocationResult."""

    error_type = AllocationError

    @property
    def name(self) -> str:
        return "allocate"

    def execute(self, input: Any, context: PipelineContext) -> StageResult[AllocationResult]:
        nodes = resolve_typed_input(input, list)
        package: Package = context.require_state("package")
        allocator = IdentifierAllocator(
            context.main_identifier, package.app_path, mode=context.config.mode
        )
        allocation = allocator.allocate(nodes)
        context.set_state("allocation", allocation)
        context.add_metric("changes_planned", len(allocation.changed_nodes))
        return success_result(allocation, stage_name=self.name)


class CheckPlanStage:
    """Checks the invariants on the allocation before anything is written."""

    error_type = VerificationError

    @property
    def name(self) -> str:
        return "check"

    def execute(self, input: Any, context: PipelineContext) -> StageResult[AllocationResult]:
        allocation = resolve_typed_input(input, AllocationResult)
        verify_nodes(allocation.nodes, context.main_identifier)
        return success_result(allocation, stage_name=self.name)


class RewriteStage:
    """Writes the assigned identifiers into the working tree."""

    error_type = RewriteError

    @property
    def name(self) -> str:
        return "rewrite"

    def execute(self, input: Any, context: PipelineContext) -> StageResult[AllocationResult]:
        allocation = resolve_typed_input(input, AllocationResult)
        package: Package = context.require_state("package")
        written = rewrite_metadata(package, allocation.nodes)
        context.add_metric("rewritten", len(written))
        return success_result(allocation, stage_name=self.name)


class RepackageStage:
    """Repackages the working tree into a staged artifact."""

    error_type = RepackageError

    @property
    def name(self) -> str:
        return "repackage"

    def execute(self, input: Any, context: PipelineContext) -> StageResult[Path]:
        resolve_typed_input(input, AllocationResult)
        package: Package = context.require_state("package")
        output = context.output_path or package.source
        staged = repackage(package, context.work_dir / STAGING_DIRNAME / output.name)
        context.set_state("staged", staged)
        return success_result(staged, stage_name=self.name)


class VerifyStage:
    """Reopens the staged artifact and checks it against the allocation."""

    error_type = VerificationError

    @property
    def name(self) -> str:
        return "verify"

    def execute(self, input: Any, context: PipelineContext) -> StageResult[Path]:
        staged = resolve_typed_input(input, Path)
        package: Package = context.require_state("package")
        allocation: AllocationResult = context.require_state("allocation")
        verify_artifact(
            package,
            staged,
            context.main_identifier,
            allocation.nodes,
            context.work_dir,
            context.config.scan,
        )
        return success_result(staged, stage_name=self.name)


class PublishStage:
    """Moves the verified artifact to the output path and writes the report."""

    error_type = RepackageError

    @property
    def name(self) -> str:
        return "publish"

    def execute(self, input: Any, context: PipelineContext) -> StageResult[RunReport]:
        staged = resolve_typed_input(input, Path)
        if context.output_path is None:
            raise ValueError("PublishStage requires an output path")
        package: Package = context.require_state("package")
        allocation: AllocationResult = context.require_state("allocation")

        output = context.output_path
        report = build_report(
            archive=str(package.source),
            main_identifier=context.main_identifier,
            nodes=allocation.nodes,
            mode=context.config.mode,
            scope=context.config.scan.scope,
            applied=True,
            output=str(output),
        ).model_copy(update={"stage_timings_ms": _stage_timings(context)})

        # Staged beside the artifact, published after it
        report_config = context.config.report
        staged_report = None
        if report_config.enabled:
            try:
                staged_report = write_report(
                    report, report_path_for(staged, report_config.format), report_config.format
                )
            except (OSError, yaml.YAMLError) as e:
                raise RepackageError(f"Could not write report: {e}", path=staged) from e

        publish_artifact(staged, output)
        if staged_report is not None:
            path = publish_artifact(staged_report, report_path_for(output, report_config.format))
            context.set_state("report_path", path)
        return success_result(report, stage_name=self.name)


class PlanReportStage:
    """Summarises a dry run without writing anything."""

    @property
    def name(self) -> str:
        return "report"

    def execute(self, input: Any, context: PipelineContext) -> StageResult[RunReport]:
        allocation = resolve_typed_input(input, AllocationResult)
        package: Package = context.require_state("package")
        report = build_report(
            archive=str(package.source),
            main_identifier=context.main_identifier,
            nodes=allocation.nodes,
            mode=context.config.mode,
            scope=context.config.scan.scope,
            applied=False,
        ).model_copy(update={"stage_timings_ms": _stage_timings(context)})
        return success_result(report, stage_name=self.name)
