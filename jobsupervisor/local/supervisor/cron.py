"""
Runs a task as a CRON job: at most once per invocation of the process.

The supervisor is configured to run a single loop cycle without sleeping,
so an external scheduler (cron, Task Scheduler) is expected to invoke the
process periodically. PID and status handling are the same as for any
other supervised job.
"""
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from jobsupervisor.local.supervisor.jobs import Job
from jobsupervisor.local.supervisor.process_utils import ProcessTable
from jobsupervisor.local.supervisor.supervisor import Supervisor, SupervisorConfig

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


class CronTask(ABC):
    """A task that is run when its time has come."""

    log = log

    def init(self, params: Dict[str, Any]) -> None:
        """Configures the task before it runs. Does nothing by default."""

    def check_job_time(self) -> bool:
        """Checks if the time has come for the task to run. Always true by default."""
        return True

    @abstractmethod
    def do_job(self) -> None:
        """Runs the task."""


class CronScheduler(Job):
    """Adapts a CronTask to the Job interface driven by a Supervisor."""

    CONFIG = SupervisorConfig(check_interval_seconds=None, restart_ttl_seconds=0)

    def __init__(self, task: CronTask) -> None:
        self.task = task

    def type_name(self) -> str:
        return type(self.task).__name__

    def attach_logger(self, logger) -> None:
        super().attach_logger(logger)
        self.task.log = logger

    def init(self, params: Dict[str, Any]) -> None:
        self.task.init(params)

    def step(self) -> None:
        if self.task.check_job_time():
            self.task.do_job()
        else:
            self.log.info("CRON time not come yet")

    @classmethod
    def supervise(
        cls,
        task: CronTask,
        pid_file: PathLike,
        status_file: PathLike,
        log_file: Optional[PathLike] = None,
        process_table: Optional[ProcessTable] = None,
    ) -> Supervisor:
        """
        Builds a Supervisor that runs the task once per invocation.

        :param task: The task to run.
        :param pid_file: Daemon process id file.
        :param status_file: Daemon status file.
        :param log_file: Optional job log file.
        :param process_table: Platform process table, mostly useful for tests.
        :return Supervisor: A supervisor with no sleep and a zero restart TTL.
        """
        return Supervisor(
            cls(task),
            pid_file,
            status_file,
            log_file=log_file,
            supervisor_config=SupervisorConfig(
                cls.CONFIG.check_interval_seconds, cls.CONFIG.restart_ttl_seconds
            ),
            process_table=process_table,
        )
