"""Shared fixtures: an app wired to a throwaway SQLite file and storage root."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app
from models import (
    Frame,
    Job,
    JobStatus,
    Lesson,
    PipelineStage,
    Project,
    ProjectStatus,
    SourceType,
)

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'data' / 'test.db'}",
        storage_dir=tmp_path / "storage",
    )


@pytest.fixture()
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def db(app):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def make_project(db, project_id: str = "proj-1", status=ProjectStatus.PENDING, **kwargs) -> Project:
    project = Project(
        id=project_id,
        title=kwargs.pop("title", "Onboarding walkthrough"),
        source_type=kwargs.pop("source_type", SourceType.YOUTUBE),
        source_url=kwargs.pop("source_url", "https://www.youtube.com/watch?v=abc123"),
        status=status,
        **kwargs,
    )
    db.add(project)
    db.commit()
    return project


def seed_project_tree(db, project_id: str = "proj-1", lessons: int = 2, frames: int = 3, jobs: int = 4) -> Project:
    """A project with lessons, frames and jobs, inserted out of order."""
    project = make_project(db, project_id, status=ProjectStatus.ANALYZING)

    for order in reversed(range(lessons)):
        lesson = Lesson(
            id=f"{project_id}-lesson-{order}",
            project_id=project_id,
            order_index=order,
            title=f"Lesson {order}",
            start_time=order * 60.0,
            end_time=order * 60.0 + 45.0,
        )
        db.add(lesson)
        for f in reversed(range(frames)):
            db.add(Frame(
                id=f"{lesson.id}-frame-{f}",
                lesson_id=lesson.id,
                order_index=f,
                timestamp=order * 60.0 + f * 5.0,
                file_path=f"/storage/projects/{project_id}/lessons/{lesson.id}/frames/{f}.jpg",
            ))

    stages = list(PipelineStage)
    for i in range(jobs):
        db.add(Job(
            id=f"{project_id}-job-{i}",
            project_id=project_id,
            stage=stages[i],
            status=JobStatus.COMPLETED,
            progress=100,
            created_at=T0 + timedelta(seconds=i),
        ))
    db.commit()
    return project
