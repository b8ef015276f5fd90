# jobs/vip_sweep.py
import logging
import threading
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..errors import ShopifyError

logger = logging.getLogger(__name__)

JOB_ID = "vip_sweep"

# held for the duration of a sweep; a second caller skips instead of queueing
_sweep_lock = threading.Lock()


def run_scheduled_sweep(sweep):
    """Scheduler entry point: a sweep that dies on a page fetch is logged, never raised into APScheduler."""
    if not _sweep_lock.acquire(blocking=False):
        logger.warning("VIP sweep already running; skipping this run")
        return None
    try:
        logger.info("Running scheduled VIP tagging task...")
        try:
            return sweep.run()
        except ShopifyError as e:
            logger.error(f"Error in VIP tagging process: {e}")
        except Exception:
            logger.exception("Unexpected error in VIP tagging process")
        return None
    finally:
        _sweep_lock.release()


def start_scheduler(sweep, cron: str, run_now: bool = False, scheduler=None):
    """Schedule the sweep on a crontab expression; optionally fire the same job right away."""
    scheduler = scheduler or BackgroundScheduler(timezone="UTC")
    job_kwargs = {}
    if run_now:
        # first run at boot, later runs on the cron; same job id
        job_kwargs["next_run_time"] = datetime.now(timezone.utc)
    scheduler.add_job(
        run_scheduled_sweep,
        CronTrigger.from_crontab(cron, timezone="UTC"),
        args=[sweep],
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
        **job_kwargs,
    )
    scheduler.start()
    logger.info(f"Scheduler started: VIP sweep cron '{cron}' (UTC)")
    return scheduler
