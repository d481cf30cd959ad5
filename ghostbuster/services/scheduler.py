import logging
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from ..clock import Clock, SystemClock, to_utc_naive
from .sweeper import RetentionSweeper, SweepReport

logger = logging.getLogger(__name__)


def next_run_after(moment: datetime, hour: int, minute: int, tz: ZoneInfo) -> datetime:
    """Next local hour:minute in `tz` strictly after `moment` (naive UTC in, naive UTC out)"""
    local = moment.replace(tzinfo=timezone.utc).astimezone(tz)
    candidate = local.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= local:
        candidate = (local + timedelta(days=1)).replace(hour=hour, minute=minute, second=0, microsecond=0)
    return to_utc_naive(candidate)


class SweepScheduler:
    """Runs the retention sweep once a day at a fixed local time"""

    def __init__(self, sweeper: RetentionSweeper, hour: int = 9, minute: int = 0,
                 tz_name: str = 'Europe/Warsaw', clock: Optional[Clock] = None):
        self.sweeper = sweeper
        self.scheduled_hour = hour
        self.scheduled_minute = minute
        self.tz = ZoneInfo(tz_name)
        self.clock = clock or SystemClock()
        self.running = False
        self.last_report: Optional[SweepReport] = None

    def next_run(self, now: Optional[datetime] = None) -> datetime:
        now = now or self.clock.now()
        return next_run_after(now, self.scheduled_hour, self.scheduled_minute, self.tz)

    async def start(self):
        """Start the scheduler"""
        self.running = True
        logger.info(
            f"Sweep scheduler started ({self.scheduled_hour:02d}:{self.scheduled_minute:02d} {self.tz.key})"
        )

        while self.running:
            now = self.clock.now()
            next_run = self.next_run(now)
            logger.info(f"Next sweep at {next_run:%Y-%m-%d %H:%M} UTC")
            await asyncio.sleep(max(0.0, (next_run - now).total_seconds()))
            if not self.running:
                break
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Error in scheduler loop: {e}")

    def stop(self):
        """Stop the scheduler"""
        self.running = False
        logger.info("Sweep scheduler stopped")

    async def run_once(self) -> SweepReport:
        self.last_report = await self.sweeper.run_sweep(self.clock.now())
        return self.last_report
