"""Filesystem layout shared by the API and the pipeline workers.

    <storage root>/projects/<project id>/
        video.<ext>  audio.mp3  transcript.json  analysis.json
        lessons/<lesson id>/
            clip.mp4  frames/  sop.json  sop.html
"""

import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Optional

from errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = {
    "mp4", "mkv", "avi", "mov", "webm", "flv",
    "wmv", "m4v", "mpg", "mpeg", "3gp", "ts",
}
DEFAULT_VIDEO_EXTENSION = "mp4"
COPY_CHUNK_SIZE = 1024 * 1024


def project_dir(root: Path, project_id: str) -> Path:
    return Path(root) / "projects" / project_id


def video_path(root: Path, project_id: str, ext: str = DEFAULT_VIDEO_EXTENSION) -> Path:
    return project_dir(root, project_id) / f"video.{ext}"


def audio_path(root: Path, project_id: str) -> Path:
    return project_dir(root, project_id) / "audio.mp3"


def transcript_path(root: Path, project_id: str) -> Path:
    return project_dir(root, project_id) / "transcript.json"


def analysis_path(root: Path, project_id: str) -> Path:
    return project_dir(root, project_id) / "analysis.json"


def lesson_dir(root: Path, project_id: str, lesson_id: str) -> Path:
    return project_dir(root, project_id) / "lessons" / lesson_id


def clip_path(root: Path, project_id: str, lesson_id: str) -> Path:
    return lesson_dir(root, project_id, lesson_id) / "clip.mp4"


def frames_dir(root: Path, project_id: str, lesson_id: str) -> Path:
    return lesson_dir(root, project_id, lesson_id) / "frames"


def sop_json_path(root: Path, project_id: str, lesson_id: str) -> Path:
    return lesson_dir(root, project_id, lesson_id) / "sop.json"


def sop_html_path(root: Path, project_id: str, lesson_id: str) -> Path:
    return lesson_dir(root, project_id, lesson_id) / "sop.html"


def video_extension(filename: Optional[str]) -> str:
    """Pick the stored video extension.

    Only whitelisted container suffixes are honoured; anything else is stored
    as ``video.mp4`` so the name never depends on arbitrary client input.
    """
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
        if ext in VIDEO_EXTENSIONS:
            return ext
    return DEFAULT_VIDEO_EXTENSION


def provision_project_dir(root: Path, project_id: str) -> Path:
    path = project_dir(root, project_id)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Could not create project directory {path}: {e}", path=path) from e
    return path


def remove_project_dir(root: Path, project_id: str) -> bool:
    """Recursively delete a project's directory.

    Returns False when there was nothing to delete.
    """
    path = project_dir(root, project_id)
    if not path.exists():
        return False
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise StorageError(f"Could not remove project directory {path}: {e}", path=path) from e
    return True


def save_video(src: BinaryIO, dest: Path, max_bytes: int) -> int:
    """Stream an uploaded video to ``dest``, enforcing the size limit."""
    written = 0
    try:
        with open(dest, "wb") as buffer:
            while True:
                chunk = src.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise ValidationError(
                        f"video exceeds the maximum upload size of {max_bytes} bytes",
                        field="video",
                    )
                buffer.write(chunk)
    except OSError as e:
        raise StorageError(f"Could not write video to {dest}: {e}", path=dest) from e
    return written
