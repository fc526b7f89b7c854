"""Fake ClassroomPort implementation for testing."""

import itertools
from typing import Any

from switchboard.core.errors import NotAuthenticatedError, VendorAPIError
from switchboard.core.ports import ClassroomPort


class FakeClassroomPort(ClassroomPort):
    """In-memory Google Classroom for testing.

    Set ``authenticated = False`` to simulate a missing user token.
    """

    def __init__(self):
        """Initialize with no courses."""
        self.courses: dict[str, dict[str, Any]] = {}
        self.announcements: dict[str, list[dict[str, Any]]] = {}
        self.course_work: dict[str, list[dict[str, Any]]] = {}
        self.students: dict[str, list[dict[str, Any]]] = {}
        self.submissions: dict[tuple[str, str], list[dict[str, Any]]] = {}
        self.patches: list[dict[str, Any]] = []
        self.page_sizes: list[int] = []
        self.authenticated = True
        self.call_count = 0
        self.closed = False
        self._ids = itertools.count(500)

    def _check(self) -> None:
        self.call_count += 1
        if not self.authenticated:
            raise NotAuthenticatedError(
                "Not authenticated: run `switchboard classroom-auth` to authorize Google Classroom"
            )

    def _course(self, course_id: str) -> dict[str, Any]:
        if course_id not in self.courses:
            raise VendorAPIError("Requested entity was not found.", status_code=404)
        return self.courses[course_id]

    async def create_course(self, body: dict[str, Any]) -> dict[str, Any]:
        self._check()
        course = {"id": str(next(self._ids)), "enrollmentCode": "abc123", **body}
        self.courses[course["id"]] = course
        return course

    async def list_courses(self, page_size: int = 50) -> list[dict[str, Any]]:
        self._check()
        self.page_sizes.append(page_size)
        return list(self.courses.values())[:page_size]

    async def get_course(self, course_id: str) -> dict[str, Any]:
        self._check()
        return self._course(course_id)

    async def list_announcements(
        self, course_id: str, page_size: int = 20
    ) -> list[dict[str, Any]]:
        self._check()
        self.page_sizes.append(page_size)
        return self.announcements.get(course_id, [])[:page_size]

    async def create_course_work(
        self, course_id: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        self._check()
        self._course(course_id)
        work = {"id": str(next(self._ids)), "courseId": course_id, **body}
        self.course_work.setdefault(course_id, []).append(work)
        return work

    async def list_students(
        self, course_id: str, page_size: int = 100
    ) -> list[dict[str, Any]]:
        self._check()
        self.page_sizes.append(page_size)
        return self.students.get(course_id, [])

    async def list_submissions(
        self, course_id: str, course_work_id: str, page_size: int = 100
    ) -> list[dict[str, Any]]:
        self._check()
        self.page_sizes.append(page_size)
        return self.submissions.get((course_id, course_work_id), [])

    async def patch_submission(
        self,
        course_id: str,
        course_work_id: str,
        submission_id: str,
        body: dict[str, Any],
        update_mask: str,
    ) -> dict[str, Any]:
        self._check()
        self.patches.append(
            {
                "course_id": course_id,
                "course_work_id": course_work_id,
                "submission_id": submission_id,
                "body": body,
                "update_mask": update_mask,
            }
        )
        return {"id": submission_id, **body}

    async def close(self) -> None:
        self.closed = True
