import os
import sys
import time
import signal
import psutil
import logging

log = logging.getLogger(__name__)


#* --- Process Status & Monitoring ---
def pid_exists(pid: int) -> bool:
    """A wrapper for psutil.pid_exists for easy testing/mocking if needed."""
    return psutil.pid_exists(pid)

def get_process_from_pid(pid: int) -> psutil.Process:
    """A wrapper for psutil.Process for easy testing/mocking if needed."""
    return psutil.Process(pid)

def _get_proc_status_string(proc: psutil.Process) -> str:
    """Gets a string representation of a process status."""
    try:
        if proc.status() == psutil.STATUS_ZOMBIE:
            return "zombie"
        return "running"
    except psutil.NoSuchProcess:
        return "stopped"
    except psutil.Error:
        return "unknown"

def _format_cpu_time(proc: psutil.Process) -> str:
    """Formats accumulated user+system CPU time as M:SS, the way `ps` does."""
    try:
        times = proc.cpu_times()
        total = int(times.user + times.system)
    except psutil.Error:
        total = 0
    return f"{total // 60}:{total % 60:02d}"


class ProcessTable:
    """
    Platform-neutral view of the OS process table.

    Subclasses implement the platform specific parts: how a termination
    request is delivered and how a single process line is rendered.
    """

    def exists(self, pid: int) -> bool:
        """
        Checks whether a live process with the given PID exists.
        Zombie processes are treated as gone.

        :param pid: The process id to look up.
        :return: True if the process exists and is not a zombie.
        """
        if not pid_exists(pid):
            return False
        try:
            proc = get_process_from_pid(pid)
        except psutil.NoSuchProcess:
            return False
        return _get_proc_status_string(proc) not in ("zombie", "stopped")

    def terminate(self, pid: int) -> None:
        """Issues a termination request. Does not confirm the process died."""
        raise NotImplementedError

    def wait(self, pid: int, timeout: float) -> None:
        """
        Waits up to `timeout` seconds for the process to disappear.

        :param pid: The process id to wait for.
        :param timeout: Maximum number of seconds to wait.
        """
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if not self.exists(pid):
                return
            time.sleep(0.1)

    def describe(self, pid: int) -> str:
        """Returns the process table line for the PID, or an empty string."""
        raise NotImplementedError


class PosixProcessTable(ProcessTable):
    """Process table for POSIX-like systems (signals, `ps` style lines)."""

    def terminate(self, pid: int) -> None:
        log.debug(f"Sending SIGTERM to PID {pid}")
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            log.warning(f"Process {pid} no longer exists, skipping termination.")
        except PermissionError as e:
            log.error(f"Not allowed to terminate process {pid}: {e}")

    def describe(self, pid: int) -> str:
        """Renders a line shaped like the output of `ps h <pid>`: PID TTY STAT TIME COMMAND."""
        if not pid_exists(pid):
            return ""
        try:
            proc = get_process_from_pid(pid)
            with proc.oneshot():
                tty = proc.terminal() or "?"
                status = proc.status()
                try:
                    command = " ".join(proc.cmdline()) or proc.name()
                except (psutil.AccessDenied, psutil.ZombieProcess):
                    command = f"[{proc.name()}]"
                cpu_time = _format_cpu_time(proc)
        except psutil.NoSuchProcess:
            return ""
        tty = tty.replace("/dev/", "")
        return f"{pid:>7} {tty:<8} {status:<8} {cpu_time:>6} {command}\n"


class WindowsProcessTable(ProcessTable):
    """Process table for Windows-like systems (TerminateProcess, `tasklist` style lines)."""

    def terminate(self, pid: int) -> None:
        log.debug(f"Requesting TerminateProcess for PID {pid}")
        try:
            get_process_from_pid(pid).terminate()
        except psutil.NoSuchProcess:
            log.warning(f"Process {pid} no longer exists, skipping termination.")
        except psutil.AccessDenied as e:
            log.error(f"Not allowed to terminate process {pid}: {e}")

    def describe(self, pid: int) -> str:
        """Renders a line shaped like `tasklist /NH`: Image PID Session Mem."""
        if not pid_exists(pid):
            return ""
        try:
            proc = get_process_from_pid(pid)
            with proc.oneshot():
                name = proc.name()
                try:
                    mem_kb = proc.memory_info().rss // 1024
                except psutil.AccessDenied:
                    mem_kb = 0
        except psutil.NoSuchProcess:
            return ""
        return f"{name:<25} {pid:>8} {'Console':<16} {mem_kb:>10,} K\n"


def get_process_table() -> ProcessTable:
    """Returns the process table variant for the current platform."""
    if sys.platform == "win32":
        return WindowsProcessTable()
    return PosixProcessTable()
