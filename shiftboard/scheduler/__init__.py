"""Scheduler and background jobs package."""
from shiftboard.scheduler.rollover_scheduler import (
    start_scheduler,
    stop_scheduler,
    run_weekly_rollover
)

__all__ = [
    'start_scheduler',
    'stop_scheduler',
    'run_weekly_rollover'
]
