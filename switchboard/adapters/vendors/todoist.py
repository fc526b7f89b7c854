"""Todoist adapter.

Implements TodoistPort against the Todoist REST API v1 using a bearer
token. Collection endpoints return ``{"results": [...], "next_cursor": ...}``.
"""

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from switchboard.core.models import Page
from switchboard.core.ports import TodoistPort

from .http import json_body, segment, send

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.todoist.com/api/v1"


def _page(body: Any) -> Page:
    if isinstance(body, list):
        return Page(results=tuple(body))
    if not isinstance(body, dict):
        return Page()
    return Page(
        results=tuple(body.get("results") or ()),
        next_cursor=body.get("next_cursor") or None,
    )


def _params(**values: Any) -> dict[str, Any]:
    """Drop unset query parameters."""
    return {k: v for k, v in values.items() if v is not None}


class TodoistAdapter(TodoistPort):
    """Todoist REST API client."""

    def __init__(
        self,
        api_token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Todoist adapter.

        Args:
            api_token: Personal API token.
            api_url: Base URL of the REST API.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.api_url = api_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.api_url,
            headers={
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.client.aclose()

    async def close(self) -> None:
        await self.client.aclose()

    async def _get(self, path: str, **params: Any) -> Any:
        response = await send(self.client, "GET", path, vendor="Todoist", params=_params(**params))
        return json_body(response)

    async def _post(self, path: str, data: dict[str, Any] | None = None) -> Any:
        response = await send(self.client, "POST", path, vendor="Todoist", json=data or {})
        return json_body(response) or {}

    async def _delete(self, path: str) -> None:
        await send(self.client, "DELETE", path, vendor="Todoist")

    # Tasks

    async def get_tasks(
        self,
        *,
        project_id: str | None = None,
        section_id: str | None = None,
        parent_id: str | None = None,
        label: str | None = None,
        ids: Sequence[str] | None = None,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page:
        body = await self._get(
            "/tasks",
            project_id=project_id,
            section_id=section_id,
            parent_id=parent_id,
            label=label,
            ids=",".join(ids) if ids else None,
            cursor=cursor,
            limit=limit,
        )
        return _page(body)

    async def filter_tasks(
        self, query: str, *, cursor: str | None = None, limit: int | None = None
    ) -> Page:
        return _page(await self._get("/tasks/filter", query=query, cursor=cursor, limit=limit))

    async def get_task(self, task_id: str) -> dict[str, Any]:
        return await self._get(f"/tasks/{segment(task_id)}")

    async def add_task(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._post("/tasks", data)

    async def quick_add_task(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._post("/tasks/quick", data)

    async def update_task(self, task_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._post(f"/tasks/{segment(task_id)}", data)

    async def delete_task(self, task_id: str) -> None:
        await self._delete(f"/tasks/{segment(task_id)}")

    async def close_task(self, task_id: str) -> None:
        await self._post(f"/tasks/{segment(task_id)}/close")

    async def reopen_task(self, task_id: str) -> None:
        await self._post(f"/tasks/{segment(task_id)}/reopen")

    async def move_task(self, task_id: str, destination: dict[str, str]) -> dict[str, Any]:
        logger.debug(
            f"Moving task {task_id}",
            extra={"task_id": task_id, "destination": destination},
        )
        return await self._post(f"/tasks/{segment(task_id)}/move", destination)

    # Projects

    async def get_projects(
        self, *, cursor: str | None = None, limit: int | None = None
    ) -> Page:
        return _page(await self._get("/projects", cursor=cursor, limit=limit))

    async def get_project(self, project_id: str) -> dict[str, Any]:
        return await self._get(f"/projects/{segment(project_id)}")

    async def add_project(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._post("/projects", data)

    async def update_project(self, project_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._post(f"/projects/{segment(project_id)}", data)

    async def delete_project(self, project_id: str) -> None:
        await self._delete(f"/projects/{segment(project_id)}")

    # Sections

    async def get_sections(
        self,
        *,
        project_id: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page:
        return _page(
            await self._get("/sections", project_id=project_id, cursor=cursor, limit=limit)
        )

    async def add_section(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._post("/sections", data)

    async def update_section(self, section_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._post(f"/sections/{segment(section_id)}", data)

    async def delete_section(self, section_id: str) -> None:
        await self._delete(f"/sections/{segment(section_id)}")

    # Labels

    async def get_labels(
        self, *, cursor: str | None = None, limit: int | None = None
    ) -> Page:
        return _page(await self._get("/labels", cursor=cursor, limit=limit))

    async def get_label(self, label_id: str) -> dict[str, Any]:
        return await self._get(f"/labels/{segment(label_id)}")

    async def add_label(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._post("/labels", data)

    async def update_label(self, label_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._post(f"/labels/{segment(label_id)}", data)

    async def delete_label(self, label_id: str) -> None:
        await self._delete(f"/labels/{segment(label_id)}")

    # Comments

    async def get_comments(
        self,
        *,
        task_id: str | None = None,
        project_id: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page:
        return _page(
            await self._get(
                "/comments",
                task_id=task_id,
                project_id=project_id,
                cursor=cursor,
                limit=limit,
            )
        )

    async def get_comment(self, comment_id: str) -> dict[str, Any]:
        return await self._get(f"/comments/{segment(comment_id)}")

    async def add_comment(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._post("/comments", data)

    async def update_comment(self, comment_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._post(f"/comments/{segment(comment_id)}", data)

    async def delete_comment(self, comment_id: str) -> None:
        await self._delete(f"/comments/{segment(comment_id)}")
