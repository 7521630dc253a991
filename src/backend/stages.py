"""Stage derivation for the project stepper.

Projects the stored truth (project status + per-stage job rows) into one
render state per pipeline stage. Pure: nothing here reads the database or
mutates its inputs, and every stage always gets a state.
"""

import enum
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from models import JobStatus, PipelineStage, ProjectStatus


class StageState(str, enum.Enum):
    COMPLETED = "completed"
    ACTIVE = "active"
    FAILED = "failed"
    PENDING = "pending"


@dataclass(frozen=True)
class Stage:
    key: PipelineStage
    label: str
    status: Optional[ProjectStatus] = None


PIPELINE_STAGES = (
    Stage(PipelineStage.DOWNLOAD, "Download", ProjectStatus.DOWNLOADING),
    Stage(PipelineStage.EXTRACT_AUDIO, "Extract Audio", ProjectStatus.EXTRACTING_AUDIO),
    Stage(PipelineStage.TRANSCRIBE, "Transcribe", ProjectStatus.TRANSCRIBING),
    Stage(PipelineStage.ANALYZE, "Analyze Content", ProjectStatus.ANALYZING),
    Stage(PipelineStage.CLIP, "Create Clips", ProjectStatus.CLIPPING),
    # No project-level status while frames are extracted
    Stage(PipelineStage.EXTRACT_FRAMES, "Extract Frames"),
    Stage(PipelineStage.GENERATE_SOPS, "Generate SOPs", ProjectStatus.GENERATING_SOPS),
)

# Total order over the non-failure statuses. FAILED is deliberately absent.
STATUS_ORDER: Dict[ProjectStatus, int] = {
    ProjectStatus.PENDING: 0,
    ProjectStatus.DOWNLOADING: 1,
    ProjectStatus.EXTRACTING_AUDIO: 2,
    ProjectStatus.TRANSCRIBING: 3,
    ProjectStatus.ANALYZING: 4,
    ProjectStatus.CLIPPING: 5,
    ProjectStatus.GENERATING_SOPS: 6,
    ProjectStatus.COMPLETED: 7,
}

_JOB_STATE = {
    JobStatus.COMPLETED: StageState.COMPLETED,
    JobStatus.PROCESSING: StageState.ACTIVE,
    JobStatus.FAILED: StageState.FAILED,
}


def _coerce(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def status_ordinal(status) -> Optional[int]:
    """Position of ``status`` in STATUS_ORDER, or None for failed/unknown."""
    return STATUS_ORDER.get(_coerce(ProjectStatus, status))


def _job_sort_key(job):
    created = getattr(job, "created_at", None)
    # Missing timestamps sort first; the id keeps equal timestamps deterministic
    return (created is not None, created or 0, str(getattr(job, "id", "")))


def latest_job_per_stage(jobs: Iterable) -> Dict[PipelineStage, object]:
    """Pick one job row per stage: latest created_at wins, then highest id."""
    latest: Dict[PipelineStage, object] = {}
    for job in jobs:
        stage = _coerce(PipelineStage, job.stage)
        if stage is None:
            continue
        current = latest.get(stage)
        if current is None or _job_sort_key(job) > _job_sort_key(current):
            latest[stage] = job
    return latest


def derive_stage_state(stage: Stage, project_status, job=None) -> StageState:
    """Derive the render state of a single stage."""
    if job is not None:
        state = _JOB_STATE.get(_coerce(JobStatus, job.status))
        if state is not None:
            return state

    status = _coerce(ProjectStatus, project_status)
    if status == ProjectStatus.COMPLETED:
        return StageState.COMPLETED
    if status == ProjectStatus.FAILED:
        return StageState.FAILED

    if stage.status is None or status is None:
        return StageState.PENDING
    if stage.status == status:
        return StageState.ACTIVE
    if STATUS_ORDER[status] > STATUS_ORDER[stage.status]:
        return StageState.COMPLETED
    return StageState.PENDING


def derive_stage_states(
    project_status,
    jobs: Iterable = (),
    stages: Sequence[Stage] = PIPELINE_STAGES,
) -> List[StageState]:
    """Derive one state per stage, in stage order."""
    latest = latest_job_per_stage(jobs)
    return [derive_stage_state(stage, project_status, latest.get(stage.key)) for stage in stages]


@dataclass(frozen=True)
class StageView:
    stage: Stage
    state: StageState
    progress: Optional[int] = None
    error_message: Optional[str] = None


def stage_views(
    project_status,
    jobs: Iterable = (),
    stages: Sequence[Stage] = PIPELINE_STAGES,
) -> List[StageView]:
    """Stage states paired with the chosen job's progress, for rendering."""
    latest = latest_job_per_stage(jobs)
    views = []
    for stage in stages:
        job = latest.get(stage.key)
        views.append(StageView(
            stage=stage,
            state=derive_stage_state(stage, project_status, job),
            progress=getattr(job, "progress", None),
            error_message=getattr(job, "error_message", None),
        ))
    return views
