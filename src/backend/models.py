from sqlalchemy import (
    CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, String, Text,
    Enum as SQLEnum,
)
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime, timezone
import enum
import uuid

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class SourceType(str, enum.Enum):
    UPLOAD = "upload"
    YOUTUBE = "youtube"


class ProjectStatus(str, enum.Enum):
    PENDING = "pending"
    DOWNLOADING = "downloading"
    EXTRACTING_AUDIO = "extracting_audio"
    TRANSCRIBING = "transcribing"
    ANALYZING = "analyzing"
    CLIPPING = "clipping"
    GENERATING_SOPS = "generating_sops"
    COMPLETED = "completed"
    FAILED = "failed"


class JobStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PipelineStage(str, enum.Enum):
    DOWNLOAD = "DOWNLOAD"
    EXTRACT_AUDIO = "EXTRACT_AUDIO"
    TRANSCRIBE = "TRANSCRIBE"
    ANALYZE = "ANALYZE"
    CLIP = "CLIP"
    EXTRACT_FRAMES = "EXTRACT_FRAMES"
    GENERATE_SOPS = "GENERATE_SOPS"


def _enum_column(enum_cls):
    # Persist values ("pending"), not member names
    return SQLEnum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=32,
    )


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, index=True)
    title = Column(String(500), nullable=False)
    source_type = Column(_enum_column(SourceType), nullable=False)
    source_url = Column(Text, nullable=True)
    video_path = Column(Text, nullable=True)
    audio_path = Column(Text, nullable=True)
    transcript_path = Column(Text, nullable=True)
    analysis_path = Column(Text, nullable=True)
    status = Column(_enum_column(ProjectStatus), default=ProjectStatus.PENDING, nullable=False)
    error_message = Column(Text, nullable=True)
    video_duration = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    lessons = relationship(
        "Lesson",
        back_populates="project",
        order_by="Lesson.order_index",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    jobs = relationship(
        "Job",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Lesson(Base):
    __tablename__ = "lessons"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_lessons_time_span"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_index = Column(Integer, nullable=False)
    title = Column(String(500), nullable=False)
    summary = Column(Text, nullable=True)
    start_time = Column(Float, nullable=False)
    end_time = Column(Float, nullable=False)
    clip_path = Column(Text, nullable=True)
    sop_json_path = Column(Text, nullable=True)
    sop_html_path = Column(Text, nullable=True)
    thumbnail_path = Column(Text, nullable=True)
    status = Column(_enum_column(JobStatus), default=JobStatus.PENDING, nullable=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    project = relationship("Project", back_populates="lessons")
    frames = relationship(
        "Frame",
        back_populates="lesson",
        order_by="Frame.order_index",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Frame(Base):
    __tablename__ = "frames"

    id = Column(String(36), primary_key=True, default=new_id)
    lesson_id = Column(
        String(36), ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_index = Column(Integer, nullable=False)
    timestamp = Column(Float, nullable=False)
    file_path = Column(Text, nullable=False)
    caption = Column(Text, nullable=True)

    lesson = relationship("Lesson", back_populates="frames")


class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_jobs_progress"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    stage = Column(_enum_column(PipelineStage), nullable=False)
    status = Column(_enum_column(JobStatus), default=JobStatus.PENDING, nullable=False)
    progress = Column(Integer, default=0, nullable=False)
    error_message = Column(Text, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    project = relationship("Project", back_populates="jobs")
