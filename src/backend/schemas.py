from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime
from models import JobStatus, PipelineStage, ProjectStatus, SourceType


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ProjectCreate(CamelModel):
    title: str
    source_type: SourceType
    source_url: Optional[str] = None


class ProjectOut(CamelModel):
    id: str
    title: str
    source_type: SourceType
    source_url: Optional[str] = None
    video_path: Optional[str] = None
    audio_path: Optional[str] = None
    transcript_path: Optional[str] = None
    analysis_path: Optional[str] = None
    status: ProjectStatus
    error_message: Optional[str] = None
    video_duration: Optional[float] = None
    created_at: datetime
    updated_at: datetime


class FrameOut(CamelModel):
    id: str
    lesson_id: str
    order_index: int
    timestamp: float
    file_path: str
    caption: Optional[str] = None


class LessonOut(CamelModel):
    id: str
    project_id: str
    order_index: int
    title: str
    summary: Optional[str] = None
    start_time: float
    end_time: float
    clip_path: Optional[str] = None
    sop_json_path: Optional[str] = None
    sop_html_path: Optional[str] = None
    thumbnail_path: Optional[str] = None
    status: JobStatus
    error_message: Optional[str] = None
    created_at: datetime
    frames: List[FrameOut] = []


class JobOut(CamelModel):
    id: str
    project_id: str
    stage: PipelineStage
    status: JobStatus
    progress: int
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime


class ProjectDetail(ProjectOut):
    lessons: List[LessonOut] = []
    jobs: List[JobOut] = []


class DeleteResponse(BaseModel):
    success: bool


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    error: str
