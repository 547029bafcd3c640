"""
jobsupervisor - keeps exactly one instance of a background job alive,
restarts it periodically and runs cron-style jobs once per invocation.
"""

from jobsupervisor.errors import ConfigurationError, NotFoundError, ProcessControlError, SupervisorError
from jobsupervisor.local.supervisor import CronScheduler, CronTask, Job, JobStatus, Supervisor, SupervisorConfig

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError", "NotFoundError", "ProcessControlError", "SupervisorError",
    "CronScheduler", "CronTask", "Job", "JobStatus", "Supervisor", "SupervisorConfig",
]
