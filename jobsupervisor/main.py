import sys
import logging
from typing import List, Optional

# Basic console logger for messages BEFORE full setup is complete.
# This logger will be replaced by the full setup later.
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)-8s - [console] - %(message)s',
    stream=sys.stderr
)
log = logging.getLogger("console")

import jobsupervisor.local.console as console
from jobsupervisor.errors import ConfigurationError
from jobsupervisor.log.setup import setup_logging
from jobsupervisor.local.config import effective_settings as config
from jobsupervisor.local.registry import JobRegistry


def _pop_option(args: List[str], name: str) -> Optional[str]:
    """Removes `name VALUE` (or `name=VALUE`) from args and returns VALUE."""
    for i, arg in enumerate(args):
        if arg == name and i + 1 < len(args):
            value = args[i + 1]
            del args[i:i + 2]
            return value
        if arg.startswith(name + "="):
            del args[i]
            return arg.split("=", 1)[1]
    return None


def main(argv: Optional[List[str]] = None) -> int:
    """The main entry point for the command line."""
    args = list(sys.argv[1:] if argv is None else argv)

    verbose = config.VERBOSE_LOGGING
    if "--verbose" in args:
        args.remove("--verbose")
        verbose = True
    setup_logging(logging.DEBUG if verbose else logging.INFO)
    if verbose:
        log.debug("Verbose logging enabled.")

    jobs_file = _pop_option(args, "--jobs-file") or config.JOBS_FILE_PATH

    if not args:
        console.print_help()
        return 0

    command, args = args[0].lower(), args[1:]
    if command == "help":
        console.print_help()
        return 0

    try:
        registry = JobRegistry.from_yaml(jobs_file)
    except ConfigurationError as e:
        log.error(f"Could not load job registry: {e}")
        return 1

    return console.execute_command(command, args, registry)


if __name__ == "__main__":
    sys.exit(main())
