import logging
from typing import Any, Dict, List, Tuple

import setproctitle

from jobsupervisor.local.config import effective_settings as config
from jobsupervisor.local.registry import JobRegistry
from jobsupervisor.local.supervisor import Supervisor

log = logging.getLogger(__name__)


def parse_job_params(args: List[str]) -> Dict[str, Any]:
    """
    Turns `key=value` arguments into job parameters.

    :param args: Arguments following the job name.
    :return: A dictionary of parameters. Values stay strings.
    :raises ValueError: If an argument has no '='.
    """
    params: Dict[str, Any] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep or not key:
            raise ValueError(f"Job parameter '{arg}' must look like key=value")
        params[key] = value
    return params


def split_job_args(args: List[str]) -> Tuple[str, List[str]]:
    """Splits command arguments into the job name and the remaining arguments."""
    if not args:
        raise ValueError("A job name is required for this command.")
    return args[0], args[1:]


def set_job_process_title(job_name: str) -> None:
    """Names the current process after the job it runs, e.g. 'JobSupervisor - reports'."""
    title = f"{config.PROCESS_TITLE_PREFIX} - {job_name}"
    setproctitle.setproctitle(title)
    log.debug(f"Process title set to '{title}'")


def display_status(supervisor: Supervisor, job_name: str) -> None:
    """Prints the stored status and the process table line of a job."""
    print(f"Job '{job_name}' ({supervisor.job_type})")
    print(f"  Status : {supervisor.get_status()}")
    print(f"  PID    : {supervisor.get_pid() or '-'}")
    report = supervisor.status_report().strip()
    print(f"  Process: {report or 'Not running'}")


def display_jobs(registry: JobRegistry) -> None:
    """Prints all registered jobs."""
    jobs = registry.get_jobs()
    if not jobs:
        print("No jobs registered.")
        return
    print("\n--- Registered Jobs ---")
    for job in jobs:
        print(f"  {job.name:<20} {job.job_class}")
    print("-----------------------\n")


def print_help() -> None:
    """Prints the help message for the command line."""
    print("\nUsage: python -m jobsupervisor <command> [job] [key=value ...] [--verbose] [--jobs-file PATH]")
    print("\nCommands:")
    print("  start <job> [k=v ...]  - Run the job loop in this process unless it is already running or disabled.")
    print("  stop <job>             - Terminate the running job process.")
    print("  restart <job>          - Stop the job, then start it again without parameters.")
    print("  enable <job>           - Mark the job as enabled.")
    print("  disable <job>          - Mark the job as disabled and stop it.")
    print("  status <job>           - Show the stored status and the job process.")
    print("  list                   - List registered jobs.")
    print("  help                   - Show this help message.\n")
