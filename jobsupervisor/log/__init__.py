"""
Logging module for the job supervisor.
This module provides functionality to set up console logging and the
per-job log files written by each Supervisor.
"""

from .setup import setup_logging
from .handler import JobLogFormatter, attach_job_log, detach_job_log

__all__ = ["setup_logging", "JobLogFormatter", "attach_job_log", "detach_job_log"]
