"""Tests for the storage layout helpers, timestamps and settings."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

import storage
from config import Settings
from errors import StorageError, ValidationError
from timestamps import format_timestamp, parse_timestamp


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

def test_layout_is_rooted_at_project_id(tmp_path: Path) -> None:
    root = tmp_path
    assert storage.project_dir(root, "p1") == root / "projects" / "p1"
    assert storage.audio_path(root, "p1").name == "audio.mp3"
    assert storage.transcript_path(root, "p1").name == "transcript.json"
    assert storage.analysis_path(root, "p1").name == "analysis.json"
    assert storage.clip_path(root, "p1", "l1") == root / "projects" / "p1" / "lessons" / "l1" / "clip.mp4"
    assert storage.frames_dir(root, "p1", "l1").name == "frames"
    assert storage.sop_json_path(root, "p1", "l1").name == "sop.json"
    assert storage.sop_html_path(root, "p1", "l1").name == "sop.html"


@pytest.mark.parametrize(
    "filename, ext",
    [("clip.MKV", "mkv"), ("a.b.webm", "webm"), ("noext", "mp4"), (None, "mp4"), ("x.sh", "mp4")],
)
def test_video_extension(filename, ext: str) -> None:
    assert storage.video_extension(filename) == ext


def test_remove_missing_directory_is_not_an_error(tmp_path: Path) -> None:
    assert storage.remove_project_dir(tmp_path, "ghost") is False


def test_provision_failure_is_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "projects"
    blocker.write_text("not a directory")
    with pytest.raises(StorageError):
        storage.provision_project_dir(tmp_path, "p1")


def test_save_video_enforces_limit(tmp_path: Path) -> None:
    dest = tmp_path / "video.mp4"
    assert storage.save_video(io.BytesIO(b"x" * 10), dest, max_bytes=10) == 10

    with pytest.raises(ValidationError) as exc_info:
        storage.save_video(io.BytesIO(b"x" * 11), dest, max_bytes=10)
    assert exc_info.value.field == "video"


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

def test_format_timestamp() -> None:
    assert format_timestamp(0) == "00:00:00.000"
    assert format_timestamp(3723.25) == "01:02:03.250"


@pytest.mark.parametrize("text, seconds", [("01:02:03", 3723.0), ("02:30", 150.0), ("42.5", 42.5)])
def test_parse_timestamp(text: str, seconds: float) -> None:
    assert parse_timestamp(text) == seconds


def test_parse_timestamp_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        parse_timestamp("1:2:3:4")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def test_settings_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("STORAGE_DIR", str(tmp_path / "store"))
    monkeypatch.setenv("MAX_UPLOAD_SIZE", "1024")
    monkeypatch.setenv("PIPELINE_AUTOSTART", "true")

    settings = Settings()
    assert settings.storage_root == (tmp_path / "store").resolve()
    assert settings.max_upload_size == 1024
    assert settings.pipeline_autostart is True
    assert settings.api_prefix == "/api"


def test_settings_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    for key in ("DATABASE_URL", "STORAGE_DIR", "MAX_UPLOAD_SIZE", "API_PREFIX", "PIPELINE_AUTOSTART"):
        monkeypatch.delenv(key, raising=False)

    settings = Settings()
    assert settings.max_upload_size == 500 * 1024 * 1024
    assert settings.database_url == "sqlite:///./data/smartdocs.db"
    assert settings.pipeline_autostart is False


def test_errors_keep_their_context(tmp_path: Path) -> None:
    err = ValidationError("sourceUrl is required for youtube projects", field="sourceUrl")
    assert (err.status_code, err.field, err.response_message) == (400, "sourceUrl", err.message)

    err = StorageError("disk gone", path=tmp_path)
    assert err.path == tmp_path
    assert err.response_message == "Storage operation failed"
    assert ValidationError("x").field is None
