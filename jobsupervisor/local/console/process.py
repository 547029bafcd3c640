import logging
from typing import Callable, Dict, List

from jobsupervisor.errors import SupervisorError
from jobsupervisor.local.registry import JobDescriptor, JobRegistry
from jobsupervisor.local.supervisor import Supervisor
from jobsupervisor.local.console.handler import (
    display_jobs, display_status, parse_job_params, print_help, set_job_process_title, split_job_args
)

log = logging.getLogger(__name__)

JobAction = Callable[[Supervisor, JobDescriptor, List[str]], None]


def _job_command(registry: JobRegistry, args: List[str], action: JobAction) -> None:
    """Loads the job named in `args` and runs `action` against its supervisor."""
    job_name, rest = split_job_args(args)
    descriptor = registry.get_job_or_raise(job_name)
    with registry.load_job(descriptor) as supervisor:
        action(supervisor, descriptor, rest)


def _start(supervisor: Supervisor, descriptor: JobDescriptor, rest: List[str]) -> None:
    """Starts the job with the registry parameters, overridden by command line ones."""
    params = dict(descriptor.params)
    params.update(parse_job_params(rest))
    set_job_process_title(descriptor.name)
    supervisor.start(params)


def execute_command(command: str, args: List[str], registry: JobRegistry) -> int:
    """
    Executes a single command from the user.

    :param command: The main command string (e.g., 'start', 'status').
    :param args: A list of arguments for the command.
    :param registry: The registry holding the configured jobs.
    :return int: The process exit code, 0 on success.
    """
    log.debug(f"Executing command: {command}, args: {args}")
    command_map: Dict[str, Callable[[], None]] = {
        "start": lambda: _job_command(registry, args, _start),
        "stop": lambda: _job_command(registry, args, lambda s, d, r: s.stop()),
        "restart": lambda: _job_command(registry, args, lambda s, d, r: s.restart()),
        "enable": lambda: _job_command(registry, args, lambda s, d, r: s.enable()),
        "disable": lambda: _job_command(registry, args, lambda s, d, r: s.disable()),
        "status": lambda: _job_command(registry, args, lambda s, d, r: display_status(s, d.name)),
        "list": lambda: display_jobs(registry),
        "help": print_help,
    }

    if command not in command_map:
        log.info(f"Unknown command: '{command}'. Type 'help' for a list of commands.")
        return 2

    try:
        command_map[command]()
    except (SupervisorError, ValueError) as e:
        log.error(f"Command '{command}' failed: {e}")
        return 1
    except OSError as e:
        log.error(f"Command '{command}' failed on file access: {e}")
        return 1
    return 0
