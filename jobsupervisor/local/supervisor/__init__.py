"""
The Supervisor package.
Keeps at most one live instance of a background job and manages its lifecycle.

This package contains the central Supervisor class and its helper modules,
which together handle PID tracking, status persistence, the start/stop
protocol and the cron-style specialization.
"""
from .jobs import Job
from .persistence import JobStatus, ProcessTracker, StatusStore
from .supervisor import Supervisor, SupervisorConfig
from .cron import CronScheduler, CronTask

__all__ = [
    'Job', 'JobStatus', 'ProcessTracker', 'StatusStore',
    'Supervisor', 'SupervisorConfig', 'CronScheduler', 'CronTask',
]
