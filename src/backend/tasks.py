import logging

from celery import Celery
from sqlalchemy.orm import Session
from config import Settings
from database import create_db_engine, create_session_factory, init_db
from errors import NotFoundError
from pipeline import load_stage_handlers, run_pipeline
from stages import PIPELINE_STAGES

logger = logging.getLogger(__name__)

settings = Settings()

celery_app = Celery('smartdocs', broker=settings.broker_url)

_session_factory = None


def get_session_factory():
    # Built on first use so importing this module never opens the database
    global _session_factory
    if _session_factory is None:
        engine = create_db_engine(settings.database_url)
        init_db(engine)
        _session_factory = create_session_factory(engine)
    return _session_factory


@celery_app.task(bind=True)
def process_project_task(self, project_id: str):
    """Background task that walks a project through every pipeline stage"""
    handlers = load_stage_handlers(settings.stage_handler_modules)
    missing = [stage.key.value for stage in PIPELINE_STAGES if stage.key not in handlers]
    if missing:
        # Leave the project pending; it can be re-queued once handlers are configured
        logger.error("Not running project %s: no handler for %s", project_id, ", ".join(missing))
        return {"success": False, "project_id": project_id, "error": f"No handler registered for {', '.join(missing)}"}

    db: Session = get_session_factory()()

    try:
        succeeded = run_pipeline(db, project_id, settings.storage_root, handlers)
        return {"success": succeeded, "project_id": project_id}

    except NotFoundError as e:
        return {"success": False, "project_id": project_id, "error": str(e)}

    finally:
        db.close()
