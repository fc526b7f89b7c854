"""Google Classroom adapter.

Implements ClassroomPort against the Classroom REST API v1 with the
signed-in user's OAuth2 token.
"""

import logging
from typing import Any

import httpx

from switchboard.core.ports import ClassroomPort

from .google_credentials import GoogleBearerAuth, UserTokenCredentials
from .http import json_body, segment, send

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://classroom.googleapis.com/v1"


def _submissions_path(course_id: str, course_work_id: str) -> str:
    return (
        f"/courses/{segment(course_id)}"
        f"/courseWork/{segment(course_work_id)}/studentSubmissions"
    )


class GoogleClassroomAdapter(ClassroomPort):
    """Google Classroom API client."""

    def __init__(
        self,
        credentials: UserTokenCredentials,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.credentials = credentials
        self.client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            auth=GoogleBearerAuth(credentials),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.client.aclose()

    async def close(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await send(self.client, method, path, vendor="Classroom", **kwargs)
        return json_body(response) or {}

    async def create_course(self, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/courses", json=body)

    async def list_courses(self, page_size: int = 50) -> list[dict[str, Any]]:
        body = await self._request("GET", "/courses", params={"pageSize": page_size})
        return body.get("courses") or []

    async def get_course(self, course_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/courses/{segment(course_id)}")

    async def list_announcements(
        self, course_id: str, page_size: int = 20
    ) -> list[dict[str, Any]]:
        body = await self._request(
            "GET",
            f"/courses/{segment(course_id)}/announcements",
            params={"pageSize": page_size},
        )
        return body.get("announcements") or []

    async def create_course_work(
        self, course_id: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request("POST", f"/courses/{segment(course_id)}/courseWork", json=body)

    async def list_students(
        self, course_id: str, page_size: int = 100
    ) -> list[dict[str, Any]]:
        body = await self._request(
            "GET", f"/courses/{segment(course_id)}/students", params={"pageSize": page_size}
        )
        return body.get("students") or []

    async def list_submissions(
        self, course_id: str, course_work_id: str, page_size: int = 100
    ) -> list[dict[str, Any]]:
        body = await self._request(
            "GET",
            _submissions_path(course_id, course_work_id),
            params={"pageSize": page_size},
        )
        return body.get("studentSubmissions") or []

    async def patch_submission(
        self,
        course_id: str,
        course_work_id: str,
        submission_id: str,
        body: dict[str, Any],
        update_mask: str,
    ) -> dict[str, Any]:
        logger.debug(
            f"Patching submission {submission_id}",
            extra={"course_id": course_id, "update_mask": update_mask},
        )
        return await self._request(
            "PATCH",
            f"{_submissions_path(course_id, course_work_id)}/{segment(submission_id)}",
            params={"updateMask": update_mask},
            json=body,
        )
