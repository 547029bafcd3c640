"""Test doubles for the OS process table, the clock and jobs."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from jobsupervisor.local.supervisor import CronTask, Job
from jobsupervisor.local.supervisor.process_utils import ProcessTable


class FakeProcessTable(ProcessTable):
    """In-memory process table. Terminated PIDs disappear unless marked stubborn."""

    def __init__(self, alive: Optional[set] = None):
        self.alive: set = set(alive or ())
        self.stubborn: set = set()
        self.terminated: List[int] = []
        self.waits: List[tuple] = []

    def exists(self, pid: int) -> bool:
        return pid in self.alive

    def terminate(self, pid: int) -> None:
        self.terminated.append(pid)
        if pid not in self.stubborn:
            self.alive.discard(pid)

    def wait(self, pid: int, timeout: float) -> None:
        self.waits.append((pid, timeout))

    def describe(self, pid: int) -> str:
        if pid not in self.alive:
            return ""
        return f"{pid:>7} pts/0    S        0:01 python worker.py\n"


class FakeClock:
    """Stands in for the `time` module inside the supervisor loop."""

    def __init__(self, start: float = 1_000.0):
        self.now = start
        self.sleeps: List[float] = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class RecordingJob(Job):
    """A job that records its calls and can stop the loop by raising."""

    def __init__(self, fail_after: Optional[int] = None):
        self.params: Optional[Dict[str, Any]] = None
        self.init_calls = 0
        self.steps = 0
        self.fail_after = fail_after

    def init(self, params: Dict[str, Any]) -> None:
        self.init_calls += 1
        self.params = params

    def step(self) -> None:
        self.steps += 1
        if self.fail_after is not None and self.steps >= self.fail_after:
            raise RuntimeError(f"job failed at step {self.steps}")


class RecordingCronTask(CronTask):
    """A cron task whose schedule is controlled by the test."""

    def __init__(self, due: bool = True):
        self.due = due
        self.runs = 0
        self.checks = 0

    def check_job_time(self) -> bool:
        self.checks += 1
        return self.due

    def do_job(self) -> None:
        self.runs += 1
