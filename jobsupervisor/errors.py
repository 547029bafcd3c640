"""
Exception types raised by the job supervisor.

Absent PID and status files are never errors. Failures to open those files
for writing surface as the built-in `OSError` (`IOError`).
"""


class SupervisorError(Exception):
    """Base class for all supervisor errors."""


class ConfigurationError(SupervisorError, ValueError):
    """A required path or job definition is missing or invalid."""


class ProcessControlError(SupervisorError, RuntimeError):
    """Termination was requested but the process is still alive."""


class NotFoundError(SupervisorError, LookupError):
    """No job is registered under the requested name."""
