from pathlib import Path

import pytest

from dita_ot_worker import worker
from dita_ot_worker.errors import ConfigError, ConversionError, TransferError
from dita_ot_worker.models import JobParameters, JobState, Stage


class Recorder:
    def __init__(self, fail_stage=None):
        self.calls = []
        self.fail_stage = fail_stage

    def fetch(self, uri, local_dir):
        self.calls.append("fetch")
        if self.fail_stage is Stage.FETCH:
            raise TransferError("download failed")
        return Path(local_dir) / "doc.xml"

    def convert(self, input_path, output_dir, extra_args):
        self.calls.append(("convert", input_path, tuple(extra_args)))
        if self.fail_stage is Stage.CONVERT:
            raise ConversionError("exit status 1", returncode=1)

    def publish(self, output_dir, uri):
        self.calls.append("publish")
        if self.fail_stage is Stage.PUBLISH:
            raise TransferError("upload failed")


def _params(tmp_path):
    return JobParameters(
        source="file:///in/doc.xml",
        destination="file:///out/",
        input_dir=tmp_path / "in",
        output_dir=tmp_path / "out",
        extra_args=("-Dtranstype=html5",),
    )


def _orchestrator(tmp_path, recorder):
    return worker.JobOrchestrator(
        _params(tmp_path), recorder.fetch, recorder.convert, recorder.publish
    )


def test_stages_run_in_order(tmp_path):
    recorder = Recorder()
    orchestrator = _orchestrator(tmp_path, recorder)

    result = orchestrator.run()

    assert result.ok
    assert recorder.calls == [
        "fetch",
        ("convert", tmp_path / "in" / "doc.xml", ("-Dtranstype=html5",)),
        "publish",
    ]
    assert orchestrator.history == [
        JobState.INIT,
        JobState.FETCHING,
        JobState.CONVERTING,
        JobState.PUBLISHING,
        JobState.DONE,
    ]


def test_conversion_failure_skips_publish(tmp_path):
    recorder = Recorder(fail_stage=Stage.CONVERT)
    orchestrator = _orchestrator(tmp_path, recorder)

    result = orchestrator.run()

    assert not result.ok
    assert result.stage is Stage.CONVERT
    assert isinstance(result.cause, ConversionError)
    assert "publish" not in recorder.calls
    assert orchestrator.state is JobState.FAILED


def test_fetch_failure_stops_pipeline(tmp_path):
    recorder = Recorder(fail_stage=Stage.FETCH)

    result = _orchestrator(tmp_path, recorder).run()

    assert result.stage is Stage.FETCH
    assert recorder.calls == ["fetch"]


def test_publish_failure_is_attributed(tmp_path):
    result = _orchestrator(tmp_path, Recorder(fail_stage=Stage.PUBLISH)).run()
    assert result.stage is Stage.PUBLISH


def test_orchestrator_runs_once(tmp_path):
    orchestrator = _orchestrator(tmp_path, Recorder())
    orchestrator.run()
    with pytest.raises(RuntimeError):
        orchestrator.run()


@pytest.mark.parametrize(
    "environ",
    [
        {"output": "file:///out/"},
        {"input": "file:///in/doc.xml"},
        {"input": "ftp://host/doc.xml", "output": "file:///out/"},
        {"input": "file:///in/doc.xml", "output": "http://[::1"},
    ],
)
def test_invalid_locations_allocate_nothing(tmp_path, environ):
    with pytest.raises(ConfigError):
        with worker.prepare_job(environ, temp_root=tmp_path):
            pytest.fail("job must not start")

    assert list(tmp_path.iterdir()) == []


def test_prepare_job_builds_parameters(tmp_path):
    environ = {"input": "file:///in/doc.xml", "output": "jar:file:///out/result.zip!/"}

    with worker.prepare_job(environ, ["-Dtranstype=pdf"], temp_root=tmp_path) as params:
        assert params.source == "file:///in/doc.xml"
        assert params.destination == "jar:file:///out/result.zip!/"
        assert params.input_dir.is_dir()
        assert params.output_dir.is_dir()
        assert params.extra_args == ("-Dtranstype=pdf",)

    assert not params.input_dir.exists()
    assert not params.output_dir.exists()


def test_prepare_job_accepts_object_store_locations(tmp_path):
    environ = {"input": "s3://docs-bucket/jobs/42/root.ditamap", "output": "s3://site-bucket/42/"}

    with worker.prepare_job(environ, temp_root=tmp_path) as params:
        assert params.source == "s3://docs-bucket/jobs/42/root.ditamap"
        assert params.destination == "s3://site-bucket/42/"
