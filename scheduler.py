"""
Hourly low-stock check, run as a task inside the app lifespan.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from inventory import check_low_stock

logger = logging.getLogger(__name__)


def seconds_until_next_hour(now: Optional[datetime] = None) -> float:
    now = now or datetime.now(timezone.utc)
    next_hour = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    return (next_hour - now).total_seconds()


async def run_hourly_stock_check(get_db: Callable, get_mailer: Callable):
    """Run the low-stock scan at the top of every hour until cancelled.

    No state is kept between runs and missed hours are not caught up.
    """
    while True:
        await asyncio.sleep(seconds_until_next_hour())
        logger.info("Running scheduled stock check...")
        try:
            await asyncio.to_thread(check_low_stock, get_db(), get_mailer())
        except Exception:
            logger.exception("Scheduled stock check failed")
