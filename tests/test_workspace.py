import pytest

from dita_ot_worker import workspace
from dita_ot_worker.errors import WorkspaceError


def test_workspaces_are_unique_and_removed(tmp_path):
    with workspace.job_workspaces(tmp_path) as (input_dir, output_dir):
        assert input_dir.is_dir()
        assert output_dir.is_dir()
        assert input_dir != output_dir
        (output_dir / "index.html").write_text("<html/>")

    assert not input_dir.exists()
    assert not output_dir.exists()


def test_workspaces_removed_when_job_raises(tmp_path):
    with pytest.raises(RuntimeError):
        with workspace.job_workspaces(tmp_path) as (input_dir, output_dir):
            raise RuntimeError("boom")

    assert list(tmp_path.iterdir()) == []


def test_keep_leaves_workspaces(tmp_path):
    with workspace.job_workspaces(tmp_path, keep=True) as (input_dir, output_dir):
        pass

    assert input_dir.is_dir()
    assert output_dir.is_dir()


def test_allocation_failure_is_workspace_error(tmp_path):
    with pytest.raises(WorkspaceError):
        workspace.create_workspace("in", tmp_path / "missing")


def test_input_removed_when_output_allocation_fails(tmp_path, monkeypatch):
    real_create = workspace.create_workspace

    def create_or_fail(prefix, temp_root=None):
        if prefix == "out":
            raise WorkspaceError("disk full")
        return real_create(prefix, temp_root)

    monkeypatch.setattr(workspace, "create_workspace", create_or_fail)

    with pytest.raises(WorkspaceError):
        with workspace.job_workspaces(tmp_path):
            pytest.fail("job must not start")

    assert list(tmp_path.iterdir()) == []
