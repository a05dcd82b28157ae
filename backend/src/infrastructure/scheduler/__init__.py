"""
Scheduler de Jobs (APScheduler)
"""

from .scheduler import (
    create_scheduler,
    start_scheduler,
    stop_scheduler,
    get_scheduler_status,
    MESSAGE_DISPATCH_JOB_ID,
    EXPIRED_PIX_JOB_ID,
)

__all__ = [
    "create_scheduler",
    "start_scheduler",
    "stop_scheduler",
    "get_scheduler_status",
    "MESSAGE_DISPATCH_JOB_ID",
    "EXPIRED_PIX_JOB_ID",
]
