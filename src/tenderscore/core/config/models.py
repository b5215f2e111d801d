"""
Pydantic configuration models for TenderScore.

These models provide type-safe configuration with validation for:
- Application settings
- Database and logging
- Evaluation worker and batch runner
- Tender retention
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class EvaluationMode(str, Enum):
    """Batch evaluation modes."""

    INCREMENTAL = "incremental"
    FULL = "full"


class JobStatus(str, Enum):
    """Evaluation job lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    DEAD_LETTER = "dead_letter"


class EventType(str, Enum):
    """Events broadcast on an organization's evaluation channel."""

    EVALUATION_STARTED = "evaluation_started"
    EVALUATION_DONE = "evaluation_done"


class KeywordKind(str, Enum):
    """Profile keyword categories."""

    MINIMUM = "minimum"
    SUPPORT = "support"
    NEGATIVE = "negative"
    CPV = "cpv"


# =============================================================================
# Worker Configuration
# =============================================================================


class WorkerConfig(BaseModel):
    """Job queue worker settings."""

    poll_interval_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Wait between polls when the queue is empty",
    )
    max_loop_seconds: float = Field(
        default=50.0,
        gt=0,
        description="Wall-clock budget for a single worker invocation",
    )
    lease_seconds: int = Field(
        default=300,
        ge=1,
        description="How long a claim is held before another worker may reclaim it",
    )
    default_max_retries: int = Field(
        default=5,
        ge=0,
        le=20,
        description="Retry budget assigned to newly enqueued jobs",
    )
    backoff_base: float = Field(
        default=2.0,
        ge=1.0,
        description="Base of the exponential retry delay (seconds = base ** retry_count)",
    )
    max_backoff_seconds: int = Field(
        default=3600,
        ge=1,
        description="Upper bound for a single retry delay",
    )
    worker_interval_seconds: int = Field(
        default=60,
        ge=1,
        description="Interval between worker invocations when hosted by the scheduler",
    )

    @field_validator("max_loop_seconds")
    @classmethod
    def budget_gte_poll(cls, v: float, info) -> float:
        """Ensure at least one poll fits in the budget."""
        poll = info.data.get("poll_interval_seconds", 0)
        if v < poll:
            raise ValueError("max_loop_seconds must be >= poll_interval_seconds")
        return v


# =============================================================================
# Evaluation Configuration
# =============================================================================


class EvaluationConfig(BaseModel):
    """Batch evaluation settings."""

    default_mode: EvaluationMode = Field(
        default=EvaluationMode.INCREMENTAL,
        description="Mode used when a batch trigger does not name one",
    )
    batch_cron: str | None = Field(
        default=None,
        description="Cron expression for scheduled batch runs (disabled when empty)",
    )


class RetentionConfig(BaseModel):
    """Tender cleanup settings."""

    purge_after_deadline_days: int = Field(
        default=30,
        ge=0,
        description="Delete tenders whose deadline passed this many days ago",
    )
    max_age_days: int = Field(
        default=365,
        ge=1,
        description="Delete tenders published longer ago than this",
    )


# =============================================================================
# Database Configuration
# =============================================================================


class DatabaseConfig(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite:///data/tenderscore.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging)",
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Connection pool size",
    )


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=Path("logs/tenderscore.log"),
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.
    
    This is the main configuration object loaded from app.yaml.
    """

    data_dir: Path = Field(
        default=Path("data"),
        description="Data storage directory",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)

    scheduler_db_url: str = Field(
        default="sqlite+aiosqlite:///data/schedules.db",
        description="Async SQLAlchemy URL for the scheduler data store",
    )

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        
        if self.logging.file:
            self.logging.file.parent.mkdir(parents=True, exist_ok=True)
