"""Worker-side progress recording.

Stage handlers do the actual media work; this module owns the bookkeeping
around them: one Job row per attempted stage, and Project.status moved in
step so the stepper can be derived from either.
"""

import importlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from errors import NotFoundError, SmartDocsError
from models import Job, JobStatus, PipelineStage, Project, ProjectStatus, utcnow
from stages import PIPELINE_STAGES

logger = logging.getLogger(__name__)

_STAGES_BY_KEY = {stage.key: stage for stage in PIPELINE_STAGES}


class PipelineError(SmartDocsError):
    """A stage could not be run."""


@dataclass
class StageContext:
    db: Session
    project: Project
    job: Job
    storage_root: Path

    def progress(self, pct) -> None:
        report_progress(self.db, self.job, pct)


StageHandler = Callable[[StageContext], None]

STAGE_HANDLERS: Dict[PipelineStage, StageHandler] = {}


def stage_handler(stage):
    """Register the decorated function as the handler for ``stage``."""
    def decorator(func: StageHandler) -> StageHandler:
        STAGE_HANDLERS[PipelineStage(stage)] = func
        return func
    return decorator


def load_stage_handlers(module_names: Iterable[str]) -> Dict[PipelineStage, StageHandler]:
    """Import handler modules so their ``@stage_handler`` registrations run."""
    for name in module_names:
        importlib.import_module(name)
        logger.debug("Loaded stage handlers from %s", name)
    missing = [stage.key.value for stage in PIPELINE_STAGES if stage.key not in STAGE_HANDLERS]
    if missing:
        logger.warning("No stage handler registered for: %s", ", ".join(missing))
    return STAGE_HANDLERS


def start_stage(db: Session, project: Project, stage) -> Job:
    stage = PipelineStage(stage)
    job = Job(
        project_id=project.id,
        stage=stage,
        status=JobStatus.PROCESSING,
        progress=0,
        started_at=utcnow(),
    )
    db.add(job)
    descriptor = _STAGES_BY_KEY[stage]
    if descriptor.status is not None:
        project.status = descriptor.status
    db.commit()
    db.refresh(job)
    logger.info("Project %s: stage %s started", project.id, stage.value)
    return job


def report_progress(db: Session, job: Job, pct) -> None:
    job.progress = max(0, min(100, int(pct)))
    db.commit()


def complete_stage(db: Session, job: Job) -> None:
    job.status = JobStatus.COMPLETED
    job.progress = 100
    job.completed_at = utcnow()
    db.commit()
    logger.info("Project %s: stage %s completed", job.project_id, job.stage.value)


def fail_stage(db: Session, project: Project, job: Job, message: str) -> None:
    job.status = JobStatus.FAILED
    job.error_message = message
    job.completed_at = utcnow()
    project.status = ProjectStatus.FAILED
    project.error_message = message
    db.commit()
    logger.warning("Project %s: stage %s failed: %s", project.id, job.stage.value, message)


def complete_project(db: Session, project: Project) -> None:
    project.status = ProjectStatus.COMPLETED
    project.error_message = None
    db.commit()
    logger.info("Project %s completed", project.id)


def run_pipeline(
    db: Session,
    project_id: str,
    storage_root: Path,
    handlers: Optional[Dict[PipelineStage, StageHandler]] = None,
) -> bool:
    """Run every stage in order. Returns False once a stage fails."""
    if handlers is None:
        handlers = STAGE_HANDLERS

    project = db.query(Project).filter(Project.id == project_id).first()
    if project is None:
        raise NotFoundError("Project not found")

    for stage in PIPELINE_STAGES:
        job = start_stage(db, project, stage.key)
        handler = handlers.get(stage.key)
        try:
            if handler is None:
                raise PipelineError(f"No handler registered for stage {stage.key.value}")
            handler(StageContext(db=db, project=project, job=job, storage_root=storage_root))
        except Exception as e:
            logger.exception("Stage %s raised for project %s", stage.key.value, project_id)
            db.rollback()
            fail_stage(db, project, job, str(e))
            return False
        complete_stage(db, job)

    complete_project(db, project)
    return True
