from datetime import datetime, timezone
import json
import logging

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

import crud
from config import Settings, configure_logging
from database import create_db_engine, create_session_factory, get_db, init_db
from errors import SmartDocsError, StorageError, ValidationError
from schemas import DeleteResponse, HealthResponse, ProjectDetail, ProjectOut

logger = logging.getLogger(__name__)

router = APIRouter()

# Room for multipart boundaries and the text fields around the video part
MULTIPART_OVERHEAD = 1024 * 1024


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _check_content_length(request: Request, max_upload_size: int):
    try:
        length = int(request.headers.get("content-length", ""))
    except ValueError:
        return
    if length > max_upload_size + MULTIPART_OVERHEAD:
        raise ValidationError(
            f"video exceeds the maximum upload size of {max_upload_size} bytes",
            field="video",
        )


async def _read_create_fields(request: Request, max_upload_size: int):
    """Pull title/sourceType/sourceUrl/video from a multipart or JSON body."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        # Refuse before Starlette spools the body to disk
        _check_content_length(request, max_upload_size)
        form = await request.form()
        video = form.get("video")
        upload = None
        if isinstance(video, UploadFile):
            upload = crud.VideoUpload(
                file=video.file,
                filename=video.filename,
                content_type=video.content_type,
            )
        return form.get("title"), form.get("sourceType"), form.get("sourceUrl"), upload

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Invalid JSON body")
    if not isinstance(body, dict):
        raise ValidationError("Invalid JSON body")
    return body.get("title"), body.get("sourceType"), body.get("sourceUrl"), None


@router.post("/projects", response_model=ProjectOut, status_code=201)
async def create_project(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Create a project from a YouTube URL or an uploaded video"""
    title, source_type, source_url, video = await _read_create_fields(request, settings.max_upload_size)

    # Copying the upload and committing both block
    project = await run_in_threadpool(
        crud.create_project,
        db,
        settings.storage_root,
        title,
        source_type,
        source_url=source_url,
        video=video,
        max_upload_size=settings.max_upload_size,
    )

    if settings.pipeline_autostart:
        from tasks import process_project_task
        process_project_task.delay(project.id)

    return project


@router.get("/projects", response_model=list[ProjectOut])
def list_projects(db: Session = Depends(get_db)):
    """List all projects, newest first"""
    return crud.list_projects(db)


@router.get("/projects/{project_id}", response_model=ProjectDetail)
def get_project(project_id: str, db: Session = Depends(get_db)):
    """Get a project with its lessons, frames and jobs"""
    return crud.get_project(db, project_id)


@router.delete("/projects/{project_id}", response_model=DeleteResponse)
def delete_project(
    project_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Delete a project, its rows and its files"""
    crud.delete_project(db, settings.storage_root, project_id)
    return DeleteResponse(success=True)


@router.get("/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint"""
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))


async def smartdocs_error_handler(request: Request, exc: SmartDocsError):
    if isinstance(exc, StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.response_message})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(settings: Settings = None) -> FastAPI:
    if settings is None:
        settings = Settings()

    engine = create_db_engine(settings.database_url)
    init_db(engine)
    storage_root = settings.storage_root
    storage_root.mkdir(parents=True, exist_ok=True)
    logger.info("Database: %s, storage: %s", engine.url, storage_root)
    if settings.pipeline_autostart and not settings.stage_handler_modules:
        logger.warning("PIPELINE_AUTOSTART is on but STAGE_HANDLER_MODULES is empty; queued projects will not run")

    app = FastAPI(title="SmartDocs API", version="1.0.0")
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(SmartDocsError, smartdocs_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router, prefix=settings.api_prefix)
    app.mount(settings.static_prefix, StaticFiles(directory=storage_root), name="storage")

    return app


def main():
    import uvicorn

    settings = Settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
