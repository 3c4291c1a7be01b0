"""Pipeline context for shared state and dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bundlefix.core.config.models import EngineConfig


@dataclass
class PipelineContext:
    """Shared context across pipeline stages.

    Attributes:
        config: Engine configuration
        main_identifier: Validated main identifier for this run
        work_dir: Run-owned working directory (removed after the run)
        output_path: Where the verified artifact is published
        state: Mutable state dictionary for sharing data between stages
        metrics: Mutable metrics dictionary (timing, counts)

    Example:
        >>> context = PipelineContext(
        ...     config=EngineConfig(),
        ...     main_identifier="com.example.app",
        ...     work_dir=work_dir,
        ...     output_path=Path("build/App_fixed.ipa"),
        ... )
        >>> context.set_state("package", package)
    """

    config: EngineConfig
    main_identifier: str
    work_dir: Path
    output_path: Path | None = None

    state: dict[str, Any] = field(default_factory=dict)
    metrics: dict[str, Any] = field(default_factory=dict)

    def add_metric(self, key: str, value: Any) -> None:
        self.metrics[key] = value

    def require_state(self, key: str) -> Any:
        """Get state that an earlier stage must have set.

        Raises:
            KeyError: If the key is missing
        """
        if key not in self.state:
            raise KeyError(f"Pipeline state '{key}' not set by an earlier stage")
        return self.state[key]

    def set_state(self, key: str, value: Any) -> None:
        self.state[key] = value
