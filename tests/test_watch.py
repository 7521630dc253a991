"""Tests for the smartdocs-watch stepper output."""

from __future__ import annotations

from typer.testing import CliRunner

import watch
from schemas import ProjectDetail


def _detail(status: str, jobs: list | None = None, lessons: list | None = None, error: str | None = None) -> ProjectDetail:
    return ProjectDetail.model_validate({
        "id": "p1",
        "title": "Forklift safety",
        "sourceType": "youtube",
        "sourceUrl": "https://youtu.be/x",
        "status": status,
        "errorMessage": error,
        "createdAt": "2026-01-01T12:00:00Z",
        "updatedAt": "2026-01-01T12:00:00Z",
        "jobs": jobs or [],
        "lessons": lessons or [],
    })


def _job(stage: str, status: str, progress: int = 0) -> dict:
    return {
        "id": f"j-{stage}", "projectId": "p1", "stage": stage, "status": status,
        "progress": progress, "createdAt": "2026-01-01T12:00:00Z",
    }


def test_render_active_stage_with_progress() -> None:
    lines = watch.render_project(_detail("transcribing", jobs=[_job("TRANSCRIBE", "processing", 40)]))

    assert lines[0] == "Forklift safety (transcribing)"
    assert "  [x] Download" in lines
    assert "  [x] Extract Audio" in lines
    assert "  [>] Transcribe 40%" in lines
    assert "  [ ] Extract Frames" in lines


def test_render_failure_and_lessons() -> None:
    lesson = {
        "id": "l1", "projectId": "p1", "orderIndex": 0, "title": "Mount the battery",
        "startTime": 12.5, "endTime": 75.0, "status": "completed",
        "createdAt": "2026-01-01T12:00:00Z",
        "frames": [{"id": "f1", "lessonId": "l1", "orderIndex": 0, "timestamp": 13.0, "filePath": "/x.jpg"}],
    }
    lines = watch.render_project(_detail("failed", lessons=[lesson], error="disk full"))

    assert "  [!] Download" in lines
    assert "  error: disk full" in lines
    assert "  1. Mount the battery [00:00:12.500 - 00:01:15.000] 1 frame(s)" in lines


class _FakeClient:
    def __init__(self, base_url: str) -> None:
        self.base_url = base_url

    def get_project(self, project_id: str) -> ProjectDetail:
        return _detail("completed")


def test_watch_command_exits_when_idle(monkeypatch) -> None:
    monkeypatch.setattr(watch, "SmartDocsClient", _FakeClient)

    result = CliRunner().invoke(watch.app, ["p1", "--api", "http://api.test/api"])

    assert result.exit_code == 0
    assert "[x] Generate SOPs" in result.output
