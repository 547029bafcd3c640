"""Shared fixtures: a fake process table, a fake clock and recording jobs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from jobsupervisor.local.config import effective_settings
from jobsupervisor.local.supervisor import Job, Supervisor, SupervisorConfig
from jobsupervisor.local.supervisor import supervisor as supervisor_module
from helpers import FakeClock, FakeProcessTable, RecordingJob


@pytest.fixture(autouse=True)
def _fast_stop(monkeypatch):
    """Keep stop() from waiting on real processes."""
    monkeypatch.setattr(effective_settings, "STOP_GRACE_SECONDS", 0)


@pytest.fixture
def job_files(tmp_path: Path) -> Dict[str, Path]:
    return {
        "pid_file": tmp_path / "job.pid",
        "status_file": tmp_path / "job.status",
        "log_file": tmp_path / "job.log",
    }


@pytest.fixture
def process_table() -> FakeProcessTable:
    return FakeProcessTable()


@pytest.fixture
def clock(monkeypatch) -> FakeClock:
    fake = FakeClock()
    monkeypatch.setattr(supervisor_module, "time", fake)
    return fake


@pytest.fixture
def make_supervisor(job_files, process_table):
    """Builds supervisors over the shared job files and fake process table."""
    created: List[Supervisor] = []

    def _make(job: Optional[Job] = None, check_interval=None, restart_ttl=0, log_file: bool = False) -> Supervisor:
        supervisor = Supervisor(
            job or RecordingJob(),
            job_files["pid_file"],
            job_files["status_file"],
            log_file=job_files["log_file"] if log_file else None,
            supervisor_config=SupervisorConfig(check_interval, restart_ttl),
            process_table=process_table,
        )
        created.append(supervisor)
        return supervisor

    yield _make
    for supervisor in created:
        supervisor.close()


@pytest.fixture
def debug_caplog(caplog):
    caplog.set_level(logging.DEBUG)
    return caplog
