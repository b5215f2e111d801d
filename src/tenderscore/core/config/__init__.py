"""Configuration loading and validation."""

from .models import (
    # Enums
    EvaluationMode,
    EventType,
    JobStatus,
    KeywordKind,
    # Config models
    AppConfig,
    DatabaseConfig,
    EvaluationConfig,
    LoggingConfig,
    RetentionConfig,
    WorkerConfig,
)
from .loader import ConfigError, load_app_config, validate_app_config_file

__all__ = [
    # Enums
    "EvaluationMode",
    "EventType",
    "JobStatus",
    "KeywordKind",
    # Config models
    "AppConfig",
    "DatabaseConfig",
    "EvaluationConfig",
    "LoggingConfig",
    "RetentionConfig",
    "WorkerConfig",
    # Loaders
    "ConfigError",
    "load_app_config",
    "validate_app_config_file",
]
