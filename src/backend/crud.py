import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

import storage
from errors import NotFoundError, StorageError, ValidationError
from models import Lesson, Project, ProjectStatus, SourceType, new_id
from schemas import ProjectCreate

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_SIZE = 500 * 1024 * 1024


@dataclass
class VideoUpload:
    """An uploaded video as handed over by the HTTP layer."""
    file: BinaryIO
    filename: Optional[str] = None
    content_type: Optional[str] = None


def validate_project_input(title, source_type, source_url=None, video: Optional[VideoUpload] = None) -> ProjectCreate:
    """Check create-project fields; raises ValidationError naming the bad field."""
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("title is required", field="title")
    if not source_type:
        raise ValidationError("sourceType is required", field="sourceType")
    try:
        kind = SourceType(source_type)
    except (ValueError, TypeError):
        raise ValidationError('sourceType must be "upload" or "youtube"', field="sourceType") from None

    if kind == SourceType.YOUTUBE:
        if not isinstance(source_url, str) or not source_url.strip():
            raise ValidationError("sourceUrl is required for youtube projects", field="sourceUrl")
        source_url = source_url.strip()
    else:
        if video is None:
            raise ValidationError("video file is required for upload projects", field="video")
        if not (video.content_type or "").startswith("video/"):
            raise ValidationError("Only video files are allowed", field="video")
        source_url = None

    return ProjectCreate(title=title.strip(), source_type=kind, source_url=source_url)


def _discard_project_dir(storage_root: Path, project_id: str):
    try:
        storage.remove_project_dir(storage_root, project_id)
    except StorageError as e:
        logger.warning("Orphaned project directory left behind: %s", e)


def create_project(
    db: Session,
    storage_root: Path,
    title,
    source_type,
    source_url=None,
    video: Optional[VideoUpload] = None,
    max_upload_size: int = DEFAULT_MAX_UPLOAD_SIZE,
) -> Project:
    """Validate input, provision storage and persist a new pending project."""
    data = validate_project_input(title, source_type, source_url, video)

    # One id for both the directory and the row
    project_id = new_id()
    project_dir = storage.provision_project_dir(storage_root, project_id)

    video_path = None
    if data.source_type == SourceType.UPLOAD:
        dest = storage.video_path(storage_root, project_id, storage.video_extension(video.filename))
        try:
            size = storage.save_video(video.file, dest, max_upload_size)
        except (ValidationError, StorageError):
            _discard_project_dir(storage_root, project_id)
            raise
        video_path = str(dest.resolve())
        logger.debug("Stored %d byte upload for project %s at %s", size, project_id, dest)

    project = Project(
        id=project_id,
        title=data.title,
        source_type=data.source_type,
        source_url=data.source_url,
        video_path=video_path,
        status=ProjectStatus.PENDING,
    )
    db.add(project)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("Insert of project %s failed; removing directory %s", project_id, project_dir)
        _discard_project_dir(storage_root, project_id)
        raise
    db.refresh(project)

    logger.info("Created %s project %s (%r)", data.source_type.value, project_id, data.title)
    return project


def list_projects(db: Session) -> List[Project]:
    """All projects, newest first."""
    return db.query(Project).order_by(Project.created_at.desc(), Project.id).all()


def get_project(db: Session, project_id: str) -> Project:
    """Fetch a project with its ordered lessons, their ordered frames and all jobs."""
    project = (
        db.query(Project)
        .options(
            selectinload(Project.lessons).selectinload(Lesson.frames),
            selectinload(Project.jobs),
        )
        .filter(Project.id == project_id)
        .first()
    )
    if project is None:
        raise NotFoundError("Project not found")
    return project


def delete_project(db: Session, storage_root: Path, project_id: str) -> None:
    """Delete the project row (cascading to lessons, frames, jobs), then its files.

    The database delete is committed first and is never undone; a failure to
    remove the files afterwards is logged and re-raised as StorageError.
    """
    project = db.query(Project).filter(Project.id == project_id).first()
    if project is None:
        raise NotFoundError("Project not found")

    db.delete(project)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    logger.info("Deleted project %s", project_id)

    try:
        storage.remove_project_dir(storage_root, project_id)
    except StorageError as e:
        logger.error("Project %s deleted but its files were not removed: %s", project_id, e)
        raise
