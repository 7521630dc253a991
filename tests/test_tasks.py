"""Tests for the Celery task: handler loading and the pipeline run."""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path

import pytest

import pipeline
import tasks
from conftest import make_project
from models import Job, JobStatus, Project, ProjectStatus

HANDLERS_MODULE = '''
from models import PipelineStage
from pipeline import stage_handler


def _make(stage):
    @stage_handler(stage)
    def handler(ctx):
        ctx.progress(50)
    return handler


for _stage in PipelineStage:
    _make(_stage)
'''


@pytest.fixture()
def worker(app, settings, monkeypatch, tmp_path: Path):
    """Point the task module at the test database and a fresh handler registry."""
    monkeypatch.setattr(pipeline, "STAGE_HANDLERS", {})
    monkeypatch.setattr(tasks, "settings", settings)
    monkeypatch.setattr(tasks, "get_session_factory", lambda: app.state.session_factory)

    package_dir = tmp_path / "handlers_pkg"
    package_dir.mkdir()
    (package_dir / "smartdocs_test_handlers.py").write_text(textwrap.dedent(HANDLERS_MODULE))
    monkeypatch.syspath_prepend(str(package_dir))
    yield settings
    sys.modules.pop("smartdocs_test_handlers", None)


def test_configured_handler_modules_run_the_pipeline(worker, db) -> None:
    worker.stage_handler_modules = ["smartdocs_test_handlers"]
    make_project(db, "p1")

    result = tasks.process_project_task.run("p1")

    assert result == {"success": True, "project_id": "p1"}
    db.expire_all()
    assert db.get(Project, "p1").status == ProjectStatus.COMPLETED
    jobs = db.query(Job).filter(Job.project_id == "p1").all()
    assert len(jobs) == 7
    assert {j.status for j in jobs} == {JobStatus.COMPLETED}


def test_without_handlers_the_project_is_left_pending(worker, db) -> None:
    make_project(db, "p1")

    result = tasks.process_project_task.run("p1")

    assert result["success"] is False
    assert "DOWNLOAD" in result["error"]
    db.expire_all()
    assert db.get(Project, "p1").status == ProjectStatus.PENDING
    assert db.query(Job).count() == 0


def test_unknown_handler_module_is_an_import_error(worker) -> None:
    worker.stage_handler_modules = ["smartdocs_no_such_handlers"]
    with pytest.raises(ModuleNotFoundError):
        tasks.process_project_task.run("p1")


def test_unknown_project(worker) -> None:
    worker.stage_handler_modules = ["smartdocs_test_handlers"]
    result = tasks.process_project_task.run("missing")
    assert result == {"success": False, "project_id": "missing", "error": "Project not found"}
