import logging
from pathlib import Path
from typing import Optional, Union

from jobsupervisor.local.config import effective_settings as config


class JobLogFormatter(logging.Formatter):
    """
    Formats job log lines as `<date time> <fraction> [<job type>] <message>`,
    e.g. `2024-01-31 12:00:05 0.123456 [ReportJob] Loop..`.
    """

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(fraction)s [%(job_type)s] %(message)s",
            datefmt=config.JOB_LOG_DATE_FORMAT,
        )

    def format(self, record: logging.LogRecord) -> str:
        record.fraction = f"{record.created % 1:01.6f}"
        if not hasattr(record, "job_type"):
            record.job_type = record.name.rsplit(".", 1)[-1]
        return super().format(record)


def attach_job_log(logger: logging.Logger, log_file: Union[str, Path]) -> logging.FileHandler:
    """
    Attaches an append-mode file handler for a job log to the given logger.
    An existing handler for the same file is shared instead of added twice;
    it stays open until every user has detached it.

    :param logger: The per-job logger.
    :param log_file: Path of the job log file.
    :return logging.FileHandler: The handler writing to the log file.
    :raises OSError: If the log file cannot be opened.
    """
    target = str(Path(log_file).resolve())
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            handler.job_log_users = getattr(handler, "job_log_users", 1) + 1
            return handler

    file_handler = logging.FileHandler(target, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(JobLogFormatter())
    file_handler.job_log_users = 1
    logger.addHandler(file_handler)
    if logger.level == logging.NOTSET or logger.level > logging.DEBUG:
        logger.setLevel(logging.DEBUG)
    return file_handler


def detach_job_log(logger: logging.Logger, handler: Optional[logging.Handler]) -> None:
    """
    Releases a job log handler previously returned by attach_job_log.
    The handler is removed and closed once its last user detaches it.
    """
    if handler is None:
        return
    handler.job_log_users = getattr(handler, "job_log_users", 1) - 1
    if handler.job_log_users > 0:
        return
    logger.removeHandler(handler)
    handler.close()
