import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Union

log = logging.getLogger(__name__)

JobLogger = Union[logging.Logger, logging.LoggerAdapter]


class Job(ABC):
    """
    The unit of work driven by a Supervisor.

    `init` is called once before the loop, `step` once per loop cycle.
    Exceptions raised by either are not caught by the supervisor.
    """

    log: JobLogger = log

    def type_name(self) -> str:
        """Name used to tag this job in log lines."""
        return type(self).__name__

    def attach_logger(self, logger: JobLogger) -> None:
        """Routes this job's log messages through the supervisor's job logger."""
        self.log = logger

    @abstractmethod
    def init(self, params: Dict[str, Any]) -> None:
        """Configures the job before looping."""

    @abstractmethod
    def step(self) -> None:
        """Runs a single loop cycle."""
