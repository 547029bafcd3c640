import sys
import yaml
import hashlib
import logging
import importlib
import importlib.util
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from jobsupervisor.errors import ConfigurationError, NotFoundError
from jobsupervisor.local.config import check_seconds, effective_settings as config
from jobsupervisor.local.supervisor.jobs import Job
from jobsupervisor.local.supervisor.cron import CronScheduler, CronTask
from jobsupervisor.local.supervisor.supervisor import Supervisor, SupervisorConfig

log = logging.getLogger(__name__)

_UNSET = object()


class JobDescriptor:
    """
    Registry entry of a job: which class to run and which files describe it.

    Relative file paths are resolved against `base_dir`.
    """

    def __init__(self, job: Dict[str, Any], base_dir: Optional[Path] = None) -> None:
        """
        :param job: Mapping with `name`, `class` and the file paths of the job.
        :param base_dir: Directory relative paths are resolved against.
        :raises ConfigurationError: If `name` or `class` is missing, or a loop timing value is invalid.
        """
        if not job.get("name"):
            raise ConfigurationError('Job "name" must be given')
        if not job.get("class"):
            raise ConfigurationError('Job "class" must be given')

        self.base_dir = Path(base_dir) if base_dir else config.BASE_DIR
        self.name: str = str(job["name"])
        self.job_class: str = str(job["class"])
        self.source_path = self._resolve(job.get("classFile") or job.get("source"))
        self.pid_file = self._resolve(job.get("pidFile"))
        self.status_file = self._resolve(job.get("statusFile"))
        self.log_file = self._resolve(job.get("logFile") or job.get("jobFile"))
        self.check_interval = self._timing(job, "checkInterval")
        self.restart_ttl = self._timing(job, "restartTtl")
        self.params: Dict[str, Any] = dict(job.get("params") or {})

    def _timing(self, job: Dict[str, Any], key: str) -> Any:
        value = job.get(key, _UNSET)
        if value is _UNSET:
            return value
        try:
            return check_seconds(value)
        except ValueError as e:
            raise ConfigurationError(f'Job "{self.name}": "{key}" {e}, got {value!r}') from e

    def _resolve(self, value: Optional[str]) -> Optional[Path]:
        if not value:
            return None
        path = Path(value)
        return path if path.is_absolute() else self.base_dir / path

    def supervisor_config(self) -> SupervisorConfig:
        """Loop timing for the job, falling back to the configured defaults."""
        defaults = SupervisorConfig.from_settings()
        if self.check_interval is not _UNSET:
            defaults.check_interval_seconds = self.check_interval
        if self.restart_ttl is not _UNSET:
            defaults.restart_ttl_seconds = self.restart_ttl
        return defaults

    def __repr__(self) -> str:
        return f"JobDescriptor(name={self.name!r}, job_class={self.job_class!r})"


class JobRegistry:
    """Keeps the configured jobs and turns them into supervisors."""

    def __init__(self, jobs: Optional[Iterable[Dict[str, Any]]] = None, base_dir: Optional[Path] = None) -> None:
        self.base_dir = base_dir
        self._jobs: List[JobDescriptor] = []
        if jobs:
            self.set_jobs(jobs)

    @classmethod
    def from_yaml(cls, jobs_file: Union[str, Path]) -> "JobRegistry":
        """
        Loads a registry from a YAML file with a top-level `jobs` list.
        Relative paths in the file are resolved against the file's directory.

        :param jobs_file: Path to the YAML jobs file.
        :return JobRegistry: The populated registry.
        :raises ConfigurationError: If the file is missing or malformed.
        """
        jobs_file = Path(jobs_file)
        if not jobs_file.exists():
            raise ConfigurationError(f"Jobs file not found: {jobs_file}")
        try:
            data = yaml.safe_load(jobs_file.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse jobs file '{jobs_file}': {e}") from e

        jobs = data.get("jobs") if isinstance(data, dict) else None
        if not isinstance(jobs, list):
            raise ConfigurationError(f"Jobs file '{jobs_file}' must contain a 'jobs' list")
        log.debug(f"Loaded {len(jobs)} job definitions from {jobs_file}")
        return cls(jobs, base_dir=jobs_file.resolve().parent)

    def get_jobs(self) -> List[JobDescriptor]:
        return list(self._jobs)

    def add_job(self, job: Dict[str, Any]) -> "JobRegistry":
        """
        Registers a job definition.

        :param job: Mapping with at least `name` and `class`.
        :return JobRegistry: The registry itself, for chaining.
        :raises ConfigurationError: If the definition is incomplete.
        """
        self._jobs.append(JobDescriptor(job, self.base_dir))
        return self

    def set_jobs(self, jobs: Iterable[Dict[str, Any]]) -> "JobRegistry":
        """Replaces all registered jobs."""
        self._jobs = []
        for job in jobs:
            self.add_job(job)
        return self

    def get_job(self, name: str) -> Optional[JobDescriptor]:
        for job in self._jobs:
            if job.name == name:
                return job
        return None

    def get_job_or_raise(self, name: str) -> JobDescriptor:
        """
        :raises NotFoundError: If no job is registered under the name.
        """
        job = self.get_job(name)
        if job is None:
            raise NotFoundError(f"Job is not registered: {name}")
        return job

    def load_job(self, job: JobDescriptor) -> Supervisor:
        """
        Instantiates the job class of a descriptor and wraps it in a supervisor.

        A CronTask gets a cron supervisor; a Job gets a generic supervisor
        with the descriptor's loop timing.

        :param job: The job descriptor.
        :return Supervisor: The supervisor controlling the job.
        :raises ConfigurationError: If the class cannot be loaded or is not a job.
        """
        clazz = _import_job_class(job.job_class, job.source_path)
        try:
            instance = clazz()
        except TypeError as e:
            raise ConfigurationError(f"Could not instantiate job class '{job.job_class}': {e}") from e

        if isinstance(instance, CronTask):
            return CronScheduler.supervise(instance, job.pid_file, job.status_file, job.log_file)
        if isinstance(instance, Job):
            return Supervisor(
                instance,
                job.pid_file,
                job.status_file,
                log_file=job.log_file,
                supervisor_config=job.supervisor_config(),
            )
        raise ConfigurationError(f"Class '{job.job_class}' is neither a Job nor a CronTask")

    def load_job_by_name(self, name: str) -> Supervisor:
        return self.load_job(self.get_job_or_raise(name))


def _module_name_for(source_path: Path) -> str:
    """Private module name for a job file, unique per resolved path."""
    digest = hashlib.sha1(str(source_path.resolve()).encode("utf-8")).hexdigest()[:10]
    return f"_jobsupervisor_job_{source_path.stem}_{digest}"


def _import_job_class(class_path: str, source_path: Optional[Path] = None) -> type:
    """
    Resolves a job class from `module:Class` or `module.Class`.

    When `source_path` is given, the module is loaded from that file instead
    of the import path, and `class_path` may be a bare class name.
    """
    if ":" in class_path:
        module_name, _, class_name = class_path.partition(":")
    else:
        module_name, _, class_name = class_path.rpartition(".")

    if source_path is not None:
        if not source_path.exists():
            raise ConfigurationError(f"Job class file does not exist: {source_path}")
        module_name = module_name or _module_name_for(source_path)
        module = sys.modules.get(module_name)
        if module is None:
            spec = importlib.util.spec_from_file_location(module_name, source_path)
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            try:
                spec.loader.exec_module(module)
            except Exception as e:
                sys.modules.pop(module_name, None)
                raise ConfigurationError(f"Could not load job file '{source_path}': {e}") from e
    else:
        if not module_name:
            raise ConfigurationError(f"Job class '{class_path}' must include its module")
        try:
            module = importlib.import_module(module_name)
        except (ImportError, SyntaxError) as e:
            raise ConfigurationError(f"Could not import job module '{module_name}': {e}") from e

    try:
        return getattr(module, class_name)
    except AttributeError:
        raise ConfigurationError(f"Job class '{class_name}' not found in '{module_name}'") from None
