import os
import re
import logging
from pathlib import Path
from contextlib import contextmanager
from typing import Generator, Optional, Union

from jobsupervisor.local.supervisor.process_utils import ProcessTable, get_process_table

try:
    import fcntl

    def _lock_fd(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_EX)

    def _unlock_fd(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_UN)
except ImportError:
    import msvcrt

    def _lock_fd(fd: int) -> None:
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_LOCK, 1)

    def _unlock_fd(fd: int) -> None:
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)

log = logging.getLogger(__name__)

PathLike = Union[str, Path]
PID_PATTERN = re.compile(r"^([0-9]+)\n?$")


class JobStatus:
    """Literal status tokens stored in the status file."""
    RUNNING = "run"
    FINISHED = "finish"
    DEAD = "dead"
    ENABLED = "enabled"
    DISABLED = "disabled"

    ALL = (RUNNING, FINISHED, DEAD, ENABLED, DISABLED)


class ProcessTracker:
    """
    Owns the PID file of a supervised job and answers liveness questions
    about the PID recorded in it.
    """

    def __init__(self, pid_file: PathLike, process_table: Optional[ProcessTable] = None) -> None:
        """
        :param pid_file: Path of the PID file.
        :param process_table: Platform process table, defaults to the current platform's.
        """
        self.pid_file = Path(pid_file)
        self.process_table = process_table or get_process_table()
        self._pid: Optional[int] = None

    def write_pid(self, pid: Optional[int] = None) -> int:
        """
        Writes a PID to the PID file and refreshes the cached value.

        :param pid: The PID to record, defaults to the current process.
        :return: The PID that was written.
        :raises OSError: If the PID file cannot be opened for writing.
        """
        pid = os.getpid() if pid is None else pid
        try:
            with self.pid_file.open("w") as f:
                f.write(str(pid))
        except OSError as e:
            log.error(f"Could not open file '{self.pid_file}' for writing: {e}")
            raise
        self._pid = pid
        return pid

    def read_pid(self) -> Optional[int]:
        """
        Returns the PID on record. The first successfully parsed value is cached.

        :return: The PID, or None if the file is absent or its content is not a plain number.
        """
        if self._pid is None and self.pid_file.exists():
            try:
                content = self.pid_file.read_text()
            except FileNotFoundError:
                return None
            match = PID_PATTERN.match(content)
            if match:
                self._pid = int(match.group(1))
            else:
                log.debug(f"Ignoring malformed PID file '{self.pid_file}'.")
        return self._pid

    def is_running(self) -> bool:
        """Checks if the PID on record belongs to a live process."""
        pid = self.read_pid()
        if not pid:
            return False
        return self.process_table.exists(pid)

    def terminate(self, pid: int) -> None:
        """Requests termination of the process. Does not confirm its death."""
        self.process_table.terminate(pid)

    def wait_for_exit(self, pid: int, timeout: float) -> None:
        """Waits at most `timeout` seconds for the process to exit."""
        if timeout and timeout > 0:
            self.process_table.wait(pid, timeout)

    def describe(self) -> str:
        """Returns the raw process table line of the PID on record, or an empty string."""
        pid = self.read_pid()
        if not pid:
            return ""
        return self.process_table.describe(pid)


class StatusStore:
    """Reads and writes the status token of a supervised job."""

    def __init__(self, status_file: PathLike) -> None:
        self.status_file = Path(status_file)

    def get(self) -> str:
        """
        Returns the stored status token.

        :return: The stripped file content, or JobStatus.DEAD if the file does not exist.
        """
        try:
            return self.status_file.read_text().strip()
        except FileNotFoundError:
            return JobStatus.DEAD

    def set(self, status: str) -> None:
        """
        Overwrites the status file with the given token. The write is not atomic.

        :raises OSError: If the status file cannot be opened for writing.
        """
        try:
            with self.status_file.open("w") as f:
                f.write(status)
        except OSError as e:
            log.error(f"Could not open file '{self.status_file}' for writing: {e}")
            raise


def lock_path_for(pid_file: PathLike, suffix: str = ".lock") -> Path:
    """Returns the advisory lock file path that belongs to a PID file."""
    pid_file = Path(pid_file)
    return pid_file.with_name(pid_file.name + suffix)


@contextmanager
def start_guard(pid_file: PathLike, suffix: str = ".lock") -> Generator[Path, None, None]:
    """
    Holds an exclusive OS advisory lock beside the PID file.

    Serializes the check-and-write sequence of concurrent `start()` calls
    across processes. Blocks until the lock is available.

    :param pid_file: The PID file the lock belongs to.
    :param suffix: Suffix appended to the PID file name to form the lock file name.
    :return Generator[Path, None, None]: Yields the lock file path while the lock is held.
    """
    lock_path = lock_path_for(pid_file, suffix)
    fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, 0o664)
    try:
        _lock_fd(fd)
        try:
            yield lock_path
        finally:
            _unlock_fd(fd)
    finally:
        os.close(fd)
