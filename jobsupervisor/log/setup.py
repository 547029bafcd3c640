import logging
import sys

from jobsupervisor.local.config import effective_settings as config


class JobLogFilter(logging.Filter):
    """
    Identifies records that come from per-job loggers. Those are already
    written to the job's own log file, so the console only shows them
    in verbose mode.
    """
    def __init__(self, verbose: bool = False):
        super().__init__()
        self.verbose = verbose

    def filter(self, record):
        if self.verbose:
            return True
        return not (record.name.startswith('jobsupervisor.jobs.') and record.levelno < logging.INFO)

class MainFormatter(logging.Formatter):
    """A formatter that tags per-job records with the job type instead of the logger name."""

    JOB_FORMAT = '%(asctime)s - %(levelname)-8s - [%(job_type)s] - %(message)s'

    def __init__(self, fmt: str = None, datefmt: str = None):
        super().__init__(fmt, datefmt)
        self._job_formatter = logging.Formatter(self.JOB_FORMAT, datefmt)

    def format(self, record):
        if hasattr(record, 'job_type'):
            return self._job_formatter.format(record)
        return super().format(record)

def setup_logging(console_level: int = logging.INFO) -> None:
    """
    Configures the root logger for the supervisor process.
    Clears any previously configured handlers to prevent duplication.
    Job log files are attached separately by each Supervisor.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter(config.CONSOLE_LOG_FORMAT))
    console_handler.addFilter(JobLogFilter(verbose=console_level <= logging.DEBUG))
    root_logger.addHandler(console_handler)
