"""HTTP client for the SmartDocs API."""

import mimetypes
from pathlib import Path
from typing import List, Optional

import requests

from schemas import ProjectDetail, ProjectOut

DEFAULT_TIMEOUT = 30


class ApiError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SmartDocsClient:
    def __init__(self, base_url: str = "http://localhost:8000/api", session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs):
        kwargs.setdefault("timeout", self.timeout)
        try:
            resp = self.session.request(method, f"{self.base_url}{path}", **kwargs)
        except requests.exceptions.ConnectionError as e:
            raise ApiError(f"Could not connect to {self.base_url}: {e}") from e
        except requests.exceptions.Timeout as e:
            raise ApiError(f"Request to {path} timed out") from e
        except requests.exceptions.RequestException as e:
            raise ApiError(f"Request to {path} failed: {e}") from e

        if not resp.ok:
            try:
                message = resp.json().get("error") or resp.reason
            except (ValueError, AttributeError):
                message = resp.reason
            raise ApiError(message or "API request failed", status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON in response to {path}", status_code=resp.status_code) from e

    def health(self) -> dict:
        return self._request("GET", "/health")

    def create_project(self, title: str, source_type: str, source_url: Optional[str] = None,
                       video: Optional[Path] = None) -> ProjectOut:
        if video is not None:
            video = Path(video)
            content_type = mimetypes.guess_type(video.name)[0] or "application/octet-stream"
            with open(video, "rb") as fh:
                data = self._request(
                    "POST", "/projects",
                    data={"title": title, "sourceType": source_type},
                    files={"video": (video.name, fh, content_type)},
                )
        else:
            data = self._request(
                "POST", "/projects",
                json={"title": title, "sourceType": source_type, "sourceUrl": source_url},
            )
        return ProjectOut.model_validate(data)

    def list_projects(self) -> List[ProjectOut]:
        return [ProjectOut.model_validate(p) for p in self._request("GET", "/projects")]

    def get_project(self, project_id: str) -> ProjectDetail:
        return ProjectDetail.model_validate(self._request("GET", f"/projects/{project_id}"))

    def delete_project(self, project_id: str) -> bool:
        return bool(self._request("DELETE", f"/projects/{project_id}").get("success"))
