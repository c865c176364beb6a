from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from flip_oracle.config import SweepConfig
from flip_oracle.core.exceptions import OracleError
from flip_oracle.core.logger import get_logger
from flip_oracle.core.resolver import OracleResolver, SweepReport

logger = get_logger("scheduler")


class SweepScheduler:
    """Runs resolver sweeps on a fixed interval inside the server process."""

    JOB_ID = "oracle_sweep"

    def __init__(self, resolver_factory: Callable[[], OracleResolver], config: SweepConfig):
        self.resolver_factory = resolver_factory
        self.config = config
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.last_report: Optional[SweepReport] = None

    def start(self):
        if not self.config.schedule_enabled:
            logger.info("Scheduled sweeps disabled")
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.run_sweep,
            IntervalTrigger(seconds=self.config.interval_seconds),
            id=self.JOB_ID,
            name="Oracle sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info(f"Sweep scheduler started, every {self.config.interval_seconds}s")

    def shutdown(self):
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Sweep scheduler shutdown")
        self.scheduler = None

    async def run_sweep(self) -> Optional[SweepReport]:
        """One scheduled sweep; failures are logged and the next run tries again."""
        try:
            report = await self.resolver_factory().sweep()
        except OracleError as e:
            logger.error(f"Scheduled sweep failed: {e}", extra={"retryable": e.retryable})
            return None
        except Exception as e:
            logger.error(f"Scheduled sweep crashed: {e}", exc_info=True)
            return None

        self.last_report = report
        return report
