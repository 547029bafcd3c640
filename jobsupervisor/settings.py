"""
This module contains the configuration settings for the job supervisor.
It defines paths, supervisor loop defaults and logging configuration.
Values can be overridden through environment variables or a `.env` file.
"""

import os
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=True)


def _optional_float(name: str, default):
    """Reads an optional float from the environment. Empty or 'none' means None."""
    raw = os.getenv(name)
    if raw is None:
        return default
    if raw.strip().lower() in ("", "none", "null"):
        return None
    return float(raw)


#* --- Core Paths ---
BASE_DIR = pathlib.Path(os.getenv("JOBSUPERVISOR_HOME", pathlib.Path.cwd())).resolve()
RUN_DIR = BASE_DIR / "run"
LOGS_DIR = BASE_DIR / "logs"

#* --- Registry ---
JOBS_FILE_PATH = pathlib.Path(os.getenv("JOBSUPERVISOR_JOBS_FILE", BASE_DIR / "jobs.yaml"))
OVERRIDES_JSON_PATH = RUN_DIR / "overrides.json"

#* --- Supervisor Loop Settings ---
DEFAULT_CHECK_INTERVAL_SECONDS = _optional_float("JOBSUPERVISOR_CHECK_INTERVAL", 1.0)
DEFAULT_RESTART_TTL_SECONDS = _optional_float("JOBSUPERVISOR_RESTART_TTL", None)
RESTART_GRACE_SECONDS = 5      # loop exits this many seconds before the restart TTL
STOP_GRACE_SECONDS = float(os.getenv("JOBSUPERVISOR_STOP_GRACE", "3"))
LOCK_FILE_SUFFIX = ".lock"

#* --- Process Title ---
PROCESS_TITLE_PREFIX = os.getenv("JOBSUPERVISOR_TITLE_PREFIX", "JobSupervisor")

#* --- Logging ---
CONSOLE_LOG_FORMAT = '%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s'
JOB_LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
VERBOSE_LOGGING = False

#* --- MODIFIABLE SETTINGS (Changeable through overrides.json) ---
MODIFIABLE_SETTINGS = {
    "DEFAULT_CHECK_INTERVAL_SECONDS",
    "DEFAULT_RESTART_TTL_SECONDS",
    "STOP_GRACE_SECONDS",
    "PROCESS_TITLE_PREFIX",
    "VERBOSE_LOGGING",
}
