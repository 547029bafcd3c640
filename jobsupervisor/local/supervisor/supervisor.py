import time
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from jobsupervisor.errors import ConfigurationError, ProcessControlError
from jobsupervisor.local.config import effective_settings as config
from jobsupervisor.log.handler import attach_job_log, detach_job_log
from jobsupervisor.local.supervisor.jobs import Job
from jobsupervisor.local.supervisor.process_utils import ProcessTable
from jobsupervisor.local.supervisor.persistence import JobStatus, ProcessTracker, StatusStore, start_guard

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


def job_logger_name(pid_file: PathLike) -> str:
    """
    Logger name of the daemon identified by a PID file.

    Built from the resolved path, with dots escaped so that every daemon
    gets a direct child of `jobsupervisor.jobs` and never a nested one.
    """
    key = str(Path(pid_file).resolve()).replace("%", "%25").replace(".", "%2E")
    return f"jobsupervisor.jobs.{key}"


class SupervisorConfig:
    """
    Loop timing of a Supervisor.

    :param check_interval_seconds: Sleep between loop cycles. None means no sleep.
    :param restart_ttl_seconds: Loop lifetime. None means forever, 0 means a single cycle.
    """

    def __init__(self, check_interval_seconds: Optional[float] = 1.0, restart_ttl_seconds: Optional[float] = None) -> None:
        self.check_interval_seconds = check_interval_seconds
        self.restart_ttl_seconds = restart_ttl_seconds

    @classmethod
    def from_settings(cls) -> "SupervisorConfig":
        """Builds the default loop timing from the effective settings."""
        return cls(config.DEFAULT_CHECK_INTERVAL_SECONDS, config.DEFAULT_RESTART_TTL_SECONDS)

    def __repr__(self) -> str:
        return (
            f"SupervisorConfig(check_interval_seconds={self.check_interval_seconds!r}, "
            f"restart_ttl_seconds={self.restart_ttl_seconds!r})"
        )


class Supervisor:
    """
    Runs a Job as a daemon loop that has at most one live instance.

    The loop is restarted from time to time (restart TTL); when the previous
    loop process is still running, a new instance is not started. The PID
    file and the status file identify the daemon, so two Supervisor objects
    pointed at the same files, even in different processes, control the
    same daemon.
    """

    def __init__(
        self,
        job: Job,
        pid_file: PathLike,
        status_file: PathLike,
        log_file: Optional[PathLike] = None,
        supervisor_config: Optional[SupervisorConfig] = None,
        process_table: Optional[ProcessTable] = None,
    ) -> None:
        """
        :param job: The job driven by the loop.
        :param pid_file: Daemon process id file.
        :param status_file: Daemon status file.
        :param log_file: Optional job log file, opened in append mode.
        :param supervisor_config: Loop timing, defaults to the configured defaults.
        :param process_table: Platform process table, mostly useful for tests.
        :raises ConfigurationError: If the PID or status file is not given.
        """
        if not pid_file:
            raise ConfigurationError("PID file not given")
        if not status_file:
            raise ConfigurationError("Status file not given")

        self.job = job
        self.job_type = job.type_name()
        self.config = supervisor_config or SupervisorConfig.from_settings()
        self.tracker = ProcessTracker(pid_file, process_table)
        self.status = StatusStore(status_file)

        job_logger = logging.getLogger(job_logger_name(pid_file))
        self._log_handler = attach_job_log(job_logger, log_file) if log_file else None
        self._job_logger = job_logger
        self.log = logging.LoggerAdapter(job_logger, {"job_type": self.job_type})
        self.job.attach_logger(self.log)

    def __enter__(self) -> "Supervisor":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        """Detaches and closes the job log file, if one was configured."""
        detach_job_log(self._job_logger, self._log_handler)
        self._log_handler = None

    #* --- Accessors ---
    @property
    def pid_file(self) -> Path:
        return self.tracker.pid_file

    @property
    def status_file(self) -> Path:
        return self.status.status_file

    def get_pid(self) -> Optional[int]:
        """Returns the PID of the last process that ran the loop."""
        return self.tracker.read_pid()

    def get_status(self) -> str:
        """Returns the stored status token."""
        return self.status.get()

    def is_running(self) -> bool:
        """Checks if the daemon PID is still active."""
        return self.tracker.is_running()

    #* --- Lifecycle ---
    def start(self, job_params: Optional[Dict[str, Any]] = None) -> None:
        """
        Starts the main daemon loop unless the daemon is running or disabled.

        Blocks until the loop exits. Exceptions raised by the job propagate
        to the caller and leave the status as RUNNING.

        :param job_params: Parameters handed to the job's `init`.
        :raises OSError: If the PID or status file cannot be written.
        """
        date_start = time.time()

        with start_guard(self.pid_file, config.LOCK_FILE_SUFFIX):
            if self.tracker.is_running() or self.status.get() == JobStatus.DISABLED:
                self.log.info("Daemon should not be running")
                return

            self.status.set(JobStatus.RUNNING)
            # A concurrent disable() may land between the write and this read.
            confirmed = self.status.get() == JobStatus.RUNNING
            if confirmed:
                self.tracker.write_pid()

        if confirmed:
            pid = self.get_pid()
            self.log.info(f"Starting PID: {pid}")
            try:
                self.job.init(job_params or {})
                self._loop(date_start)
            except Exception:
                self.log.exception(f"Job {self.job_type} failed, PID: {pid}")
                raise
            self.log.info(f"Finishing PID: {pid}")
        else:
            self.log.info("Daemon already running")

        self.status.set(JobStatus.FINISHED)

    def _loop(self, date_start: float) -> None:
        """Runs loop cycles until the restart TTL is reached (or forever without one)."""
        while True:
            self.log.debug("Loop..")
            self.job.step()

            restart_ttl = self.config.restart_ttl_seconds
            if restart_ttl is not None:
                if time.time() >= date_start + restart_ttl - config.RESTART_GRACE_SECONDS:
                    self.log.info("Daemon restarting")
                    break

            check_interval = self.config.check_interval_seconds
            if check_interval is not None:
                time.sleep(check_interval)

    def stop(self) -> None:
        """
        Stops the daemon loop if it is currently running.

        Sends a single termination request, waits at most STOP_GRACE_SECONDS
        and checks once more.

        :raises ProcessControlError: If the process is still alive after the check.
        """
        if not self.tracker.is_running():
            return

        pid = self.get_pid()
        self.log.info(f"Stopping PID: {pid}")
        self.tracker.terminate(pid)
        self.tracker.wait_for_exit(pid, config.STOP_GRACE_SECONDS)

        if self.tracker.is_running():
            raise ProcessControlError(f"Failed to kill process with PID: {pid}")

    def restart(self) -> None:
        """Stops the daemon and starts it again. Parameters of the previous start are not kept."""
        self.stop()
        self.start()

    def enable(self) -> None:
        """Marks the daemon as enabled."""
        self.status.set(JobStatus.ENABLED)

    def disable(self) -> None:
        """Marks the daemon as disabled and stops it."""
        self.status.set(JobStatus.DISABLED)
        self.stop()

    def status_report(self) -> str:
        """
        Describes the process on record.

        :return: "Not running (no PID)" without a PID, else the process table line ('' if gone).
        """
        if not self.get_pid():
            return "Not running (no PID)"
        return self.tracker.describe()
