"""Weekly job rolling next week's draft roster out of the shift templates."""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from typing import Optional
import logging

from shiftboard.config import settings
from shiftboard.database import SessionLocal
from shiftboard.schemas.schedule import Schedule
from shiftboard.services.schedule_store import ScheduleStore
from shiftboard.utils import timezone
from shiftboard.utils.week import week_id_for


logger = logging.getLogger(__name__)


# Global scheduler instance
scheduler = AsyncIOScheduler(timezone=timezone.get_timezone())


def run_weekly_rollover() -> Optional[Schedule]:
    """
    Create next week's draft from the stored templates.

    Called by the scheduler once a week. Failures are logged, the job keeps
    its schedule.

    Returns:
        The draft schedule, or None if the rollover failed
    """
    current_week_id = week_id_for(timezone.now().date())
    logger.info(f"Starting weekly rollover from {current_week_id}...")

    db = SessionLocal()
    try:
        schedule = ScheduleStore(db).rollover_draft(current_week_id)
        logger.info(f"Weekly rollover completed: {schedule.week_id} has {len(schedule.shifts)} shifts")
        return schedule
    except Exception as e:
        logger.error(f"Error during weekly rollover: {str(e)}", exc_info=True)
        return None
    finally:
        db.close()


def start_scheduler():
    """
    Start the rollover scheduler.

    The job runs on the configured weekday and hour, in the roster timezone.
    """
    scheduler.add_job(
        run_weekly_rollover,
        trigger=CronTrigger(
            day_of_week=settings.rollover_day_of_week,
            hour=settings.rollover_hour,
            minute=0
        ),
        id="weekly_draft_rollover",
        name="Weekly Draft Rollover",
        replace_existing=True
    )

    logger.info(
        f"Rollover scheduler configured to run every {settings.rollover_day_of_week} "
        f"at {settings.rollover_hour}:00"
    )

    scheduler.start()
    logger.info("Rollover scheduler started")


def stop_scheduler():
    """Stop the rollover scheduler if it is running."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Rollover scheduler stopped")
    else:
        logger.info("Rollover scheduler was not running")
