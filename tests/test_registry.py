import textwrap
from pathlib import Path

import pytest

from jobsupervisor.errors import ConfigurationError, NotFoundError
from jobsupervisor.local.config import effective_settings
from jobsupervisor.local.registry import JobRegistry
from jobsupervisor.local.supervisor import CronScheduler


JOB_SOURCE = textwrap.dedent("""
    from jobsupervisor.local.supervisor import CronTask, Job


    class ImportLoop(Job):
        def init(self, params):
            self.params = params

        def step(self):
            pass


    class NightlyReport(CronTask):
        def do_job(self):
            pass


    class NotAJob:
        pass


    class NeedsArguments(Job):
        def __init__(self, target):
            self.target = target

        def init(self, params):
            pass

        def step(self):
            pass
""")


@pytest.fixture
def job_source(tmp_path: Path) -> Path:
    source = tmp_path / f"jobs_{tmp_path.name}.py"
    source.write_text(JOB_SOURCE)
    return source


def _job(name="importer", **extra):
    job = {"name": name, "class": "ImportLoop", "pidFile": f"{name}.pid", "statusFile": f"{name}.status"}
    job.update(extra)
    return job


#* --- Registration ---
@pytest.mark.parametrize("job, message", [
    ({"class": "ImportLoop"}, 'Job "name" must be given'),
    ({"name": "", "class": "ImportLoop"}, 'Job "name" must be given'),
    ({"name": "importer"}, 'Job "class" must be given'),
])
def test_add_job_requires_name_and_class(job, message):
    with pytest.raises(ConfigurationError, match=message):
        JobRegistry().add_job(job)


def test_get_job_by_name(tmp_path):
    registry = JobRegistry([_job("a"), _job("b")], base_dir=tmp_path)

    assert registry.get_job("b").name == "b"
    assert registry.get_job("missing") is None
    assert [job.name for job in registry.get_jobs()] == ["a", "b"]


def test_get_job_or_raise_unknown_name():
    with pytest.raises(NotFoundError, match="Job is not registered: ghost"):
        JobRegistry([_job()]).get_job_or_raise("ghost")


def test_set_jobs_replaces_registered_jobs():
    registry = JobRegistry([_job("a")])
    registry.set_jobs([_job("b")])
    assert [job.name for job in registry.get_jobs()] == ["b"]


def test_relative_paths_resolve_against_base_dir(tmp_path):
    job = JobRegistry([_job(logFile="logs/importer.log")], base_dir=tmp_path).get_job("importer")

    assert job.pid_file == tmp_path / "importer.pid"
    assert job.status_file == tmp_path / "importer.status"
    assert job.log_file == tmp_path / "logs" / "importer.log"


def test_absolute_paths_are_kept(tmp_path):
    pid_file = tmp_path / "elsewhere" / "x.pid"
    job = JobRegistry([_job(pidFile=str(pid_file))], base_dir=Path("/srv")).get_job("importer")
    assert job.pid_file == pid_file


#* --- Loading ---
def test_load_generic_job(tmp_path, job_source):
    registry = JobRegistry([_job(classFile=job_source.name, checkInterval=2, restartTtl=600)], base_dir=tmp_path)

    with registry.load_job_by_name("importer") as supervisor:
        assert type(supervisor.job).__name__ == "ImportLoop"
        assert supervisor.pid_file == tmp_path / "importer.pid"
        assert supervisor.config.check_interval_seconds == 2
        assert supervisor.config.restart_ttl_seconds == 600


def test_load_generic_job_uses_default_timing(tmp_path, job_source):
    registry = JobRegistry([_job(classFile=job_source.name)], base_dir=tmp_path)

    with registry.load_job_by_name("importer") as supervisor:
        assert supervisor.config.check_interval_seconds == effective_settings.DEFAULT_CHECK_INTERVAL_SECONDS
        assert supervisor.config.restart_ttl_seconds == effective_settings.DEFAULT_RESTART_TTL_SECONDS


def test_null_timing_in_descriptor_means_no_sleep_and_no_ttl(tmp_path, job_source):
    registry = JobRegistry([_job(classFile=job_source.name, checkInterval=None, restartTtl=None)], base_dir=tmp_path)

    with registry.load_job_by_name("importer") as supervisor:
        assert supervisor.config.check_interval_seconds is None
        assert supervisor.config.restart_ttl_seconds is None


def test_load_cron_task_gets_cron_supervisor(tmp_path, job_source):
    registry = JobRegistry([_job("nightly", **{"class": "NightlyReport", "classFile": job_source.name})], base_dir=tmp_path)

    with registry.load_job_by_name("nightly") as supervisor:
        assert isinstance(supervisor.job, CronScheduler)
        assert supervisor.job_type == "NightlyReport"
        assert supervisor.config.check_interval_seconds is None
        assert supervisor.config.restart_ttl_seconds == 0


def test_load_job_by_import_path(tmp_path, job_source, monkeypatch):
    monkeypatch.syspath_prepend(str(tmp_path))
    registry = JobRegistry([_job(**{"class": f"{job_source.stem}:ImportLoop"})], base_dir=tmp_path)

    with registry.load_job_by_name("importer") as supervisor:
        assert type(supervisor.job).__name__ == "ImportLoop"


def test_load_job_by_dotted_path(tmp_path, job_source, monkeypatch):
    monkeypatch.syspath_prepend(str(tmp_path))
    registry = JobRegistry([_job(**{"class": f"{job_source.stem}.NightlyReport"})], base_dir=tmp_path)

    with registry.load_job_by_name("importer") as supervisor:
        assert supervisor.job_type == "NightlyReport"


def test_missing_class_file_is_configuration_error(tmp_path):
    registry = JobRegistry([_job(classFile="nope.py")], base_dir=tmp_path)
    with pytest.raises(ConfigurationError, match="Job class file does not exist"):
        registry.load_job_by_name("importer")


def test_unknown_module_is_configuration_error():
    registry = JobRegistry([_job(**{"class": "no_such_module_anywhere:Job"})])
    with pytest.raises(ConfigurationError, match="Could not import job module"):
        registry.load_job_by_name("importer")


def test_unknown_class_is_configuration_error(tmp_path, job_source):
    registry = JobRegistry([_job(**{"class": "Missing", "classFile": job_source.name})], base_dir=tmp_path)
    with pytest.raises(ConfigurationError, match="Job class 'Missing' not found"):
        registry.load_job_by_name("importer")


def test_class_that_is_not_a_job_is_rejected(tmp_path, job_source):
    registry = JobRegistry([_job(**{"class": "NotAJob", "classFile": job_source.name})], base_dir=tmp_path)
    with pytest.raises(ConfigurationError, match="neither a Job nor a CronTask"):
        registry.load_job_by_name("importer")


def test_descriptor_without_pid_file_fails_on_load(tmp_path, job_source):
    registry = JobRegistry([{"name": "x", "class": "ImportLoop", "classFile": job_source.name, "statusFile": "x.status"}],
                           base_dir=tmp_path)
    with pytest.raises(ConfigurationError, match="PID file not given"):
        registry.load_job_by_name("x")


#* --- YAML jobs file ---
def test_from_yaml(tmp_path, job_source):
    jobs_file = tmp_path / "jobs.yaml"
    jobs_file.write_text(textwrap.dedent(f"""
        jobs:
          - name: importer
            class: ImportLoop
            classFile: {job_source.name}
            pidFile: run/importer.pid
            statusFile: run/importer.status
            params:
              batch: 50
          - name: nightly
            class: NightlyReport
            classFile: {job_source.name}
            pidFile: run/nightly.pid
            statusFile: run/nightly.status
    """))

    registry = JobRegistry.from_yaml(jobs_file)

    importer = registry.get_job_or_raise("importer")
    assert importer.pid_file == tmp_path / "run" / "importer.pid"
    assert importer.params == {"batch": 50}
    assert registry.get_job_or_raise("nightly").job_class == "NightlyReport"


def test_from_yaml_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="Jobs file not found"):
        JobRegistry.from_yaml(tmp_path / "jobs.yaml")


@pytest.mark.parametrize("content", ["jobs: {name: x}", "- name: x", "jobs: [unclosed"])
def test_from_yaml_rejects_malformed_files(tmp_path, content):
    jobs_file = tmp_path / "jobs.yaml"
    jobs_file.write_text(content)
    with pytest.raises(ConfigurationError):
        JobRegistry.from_yaml(jobs_file)


def test_class_needing_constructor_arguments_is_configuration_error(tmp_path, job_source):
    registry = JobRegistry([_job(**{"class": "NeedsArguments", "classFile": job_source.name})], base_dir=tmp_path)
    with pytest.raises(ConfigurationError, match="Could not instantiate job class 'NeedsArguments'"):
        registry.load_job_by_name("importer")


def test_job_file_with_syntax_error_is_configuration_error(tmp_path):
    broken = tmp_path / f"broken_{tmp_path.name}.py"
    broken.write_text("class Broken(:\n")
    registry = JobRegistry([_job(classFile=broken.name)], base_dir=tmp_path)

    with pytest.raises(ConfigurationError, match="Could not load job file"):
        registry.load_job_by_name("importer")


#* --- Loop timing ---
@pytest.mark.parametrize("key, value", [
    ("checkInterval", "10"),
    ("checkInterval", -1),
    ("restartTtl", True),
    ("restartTtl", [60]),
])
def test_invalid_loop_timing_is_rejected(key, value):
    with pytest.raises(ConfigurationError, match=f'"{key}" must be a non-negative number'):
        JobRegistry().add_job(_job(**{key: value}))


def test_float_loop_timing_is_accepted(tmp_path):
    job = JobRegistry([_job(checkInterval=0.5, restartTtl=0)], base_dir=tmp_path).get_job("importer")
    assert job.supervisor_config().check_interval_seconds == 0.5
    assert job.supervisor_config().restart_ttl_seconds == 0
