"""
APScheduler v4 host for TenderScore.

Invokes the bounded evaluation worker on an interval and, when a cron
expression is configured, the batch evaluation runner.
"""

from __future__ import annotations

from apscheduler import AsyncScheduler, ConflictPolicy
from apscheduler.datastores.sqlalchemy import SQLAlchemyDataStore
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import create_async_engine

from tenderscore.core.config.loader import load_app_config
from tenderscore.core.config.models import AppConfig
from tenderscore.core.evaluation.batch import run_batch_evaluation
from tenderscore.core.logging import get_logger
from tenderscore.core.queue.worker import run_worker
from tenderscore.persistence.db import SessionScope, get_session_scope

logger = get_logger("scheduler")

WORKER_SCHEDULE_ID = "evaluation-worker"
BATCH_SCHEDULE_ID = "evaluation-batch"


def _scope_for(config: AppConfig) -> SessionScope:
    return get_session_scope(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
    )


def execute_worker_run(config_path: str | None = None) -> dict:
    """Scheduled task: one bounded worker invocation."""
    config = load_app_config(config_path)
    report = run_worker(_scope_for(config), config=config.worker)
    return report.to_dict()


def execute_batch_run(mode: str | None = None, config_path: str | None = None) -> list[dict]:
    """Scheduled task: batch evaluation over all organizations."""
    config = load_app_config(config_path)
    mode = mode or config.evaluation.default_mode.value
    results = run_batch_evaluation(_scope_for(config), mode=mode)
    return [stats.to_dict() for stats in results]


class SchedulerService:
    """APScheduler v4 integration for TenderScore."""

    def __init__(self, config: AppConfig, config_path: str | None = None) -> None:
        self.config = config
        self.config_path = config_path
        self._scheduler: AsyncScheduler | None = None

    async def start(self) -> None:
        """Start scheduler in foreground mode (blocking)."""
        engine = create_async_engine(self.config.scheduler_db_url)
        data_store = SQLAlchemyDataStore(engine)

        async with AsyncScheduler(data_store) as scheduler:
            self._scheduler = scheduler
            await self._register_schedules()
            await scheduler.run_until_stopped()

    async def _register_schedules(self) -> None:
        if self._scheduler is None:
            raise RuntimeError("Scheduler is not initialized")

        interval = self.config.worker.worker_interval_seconds
        await self._scheduler.add_schedule(
            execute_worker_run,
            IntervalTrigger(seconds=interval),
            id=WORKER_SCHEDULE_ID,
            args=[self.config_path],
            conflict_policy=ConflictPolicy.replace,
        )
        logger.info("Worker scheduled every %ss", interval)

        cron = self.config.evaluation.batch_cron
        if cron:
            await self._scheduler.add_schedule(
                execute_batch_run,
                CronTrigger.from_crontab(cron),
                id=BATCH_SCHEDULE_ID,
                args=[self.config.evaluation.default_mode.value, self.config_path],
                conflict_policy=ConflictPolicy.replace,
            )
            logger.info("Batch evaluation scheduled: %s", cron)
        else:
            await self._scheduler.remove_schedule(BATCH_SCHEDULE_ID)
