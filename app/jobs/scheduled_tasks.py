import threading
import time
from typing import Optional

import schedule
import structlog

from infrastructure.notifications.scheduler import QueueScheduler

logger = structlog.get_logger()


def safe_run(job):
    def wrapper(*args, **kwargs):
        try:
            job(*args, **kwargs)
        except Exception as e:
            logger.error(
                "safe_run_error",
                error=str(e),
                function=job.__name__,
                module=job.__module__,
                job_args=args,
                job_kwargs=kwargs,
            )

    return wrapper


def register_queue_scheduler(
    queue_scheduler: QueueScheduler,
    job_scheduler: Optional[schedule.Scheduler] = None,
) -> schedule.Scheduler:
    """Register the queue scheduler tick and the heartbeat.

    Args:
        queue_scheduler: QueueScheduler whose tick() runs every poll interval
        job_scheduler: schedule.Scheduler to register on (a new one if omitted)

    Returns:
        The schedule.Scheduler holding the jobs
    """
    job_scheduler = job_scheduler or schedule.Scheduler()
    poll_interval = queue_scheduler.config.poll_interval_seconds

    job_scheduler.every(poll_interval).seconds.do(safe_run(queue_scheduler.tick))
    job_scheduler.every(5).minutes.do(safe_run(scheduler_heartbeat))

    logger.info(
        "queue_scheduler_registered",
        worker_id=queue_scheduler.worker_id,
        poll_interval_seconds=poll_interval,
    )
    return job_scheduler


def scheduler_heartbeat():
    logger.info(
        "running_scheduler_heartbeat", module="scheduled_tasks", time=time.ctime()
    )


def run_continuously(job_scheduler: Optional[schedule.Scheduler] = None, interval=1):
    """Continuously run, while executing pending jobs at each
    elapsed time interval.
    @return cease_continuous_run: threading. Event which can
    be set to cease continuous run. Please note that it is
    *intended behavior that run_continuously() does not run
    missed jobs*. For example, if the queue polls every ten seconds
    and you set a continuous run interval of one minute, the tick runs
    once per minute, not six times.
    """
    cease_continuous_run = threading.Event()
    runner = job_scheduler or schedule.default_scheduler

    class ScheduleThread(threading.Thread):
        def run(self):
            while not cease_continuous_run.is_set():
                runner.run_pending()
                cease_continuous_run.wait(interval)

    continuous_thread = ScheduleThread(daemon=True)
    continuous_thread.start()
    return cease_continuous_run
