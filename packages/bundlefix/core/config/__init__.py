"""Configuration management for bundlefix."""

from bundlefix.core.config.loader import detect_format, load_config, load_engine_config
from bundlefix.core.config.models import (
    EngineConfig,
    LoggingConfig,
    ReportConfig,
    ReportFormat,
    RewriteMode,
    ScanConfig,
    ScanScope,
)

__all__ = [
    # Loaders
    "detect_format",
    "load_config",
    "load_engine_config",
    # Models
    "EngineConfig",
    "LoggingConfig",
    "ReportConfig",
    "ReportFormat",
    "RewriteMode",
    "ScanConfig",
    "ScanScope",
]
